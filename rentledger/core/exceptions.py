"""
Ledger error taxonomy.

Every error carries a human-readable message; the API layer maps each class
to an HTTP status in ``rentledger.main``.
"""


class LedgerError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """A required field is missing or a value is out of range."""


class NotFoundError(LedgerError):
    """A referenced building, unit, tenant, payment or record does not exist."""


class AuthError(LedgerError):
    """The operation was attempted without an authenticated owner."""


class SyncError(LedgerError):
    """The underlying document store operation failed."""
