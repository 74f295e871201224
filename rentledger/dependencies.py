from typing import Iterator, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from rentledger.core.security import OWNER_ROLE, TENANT_ROLE, subject_from_token
from rentledger.database import SessionLocal
from rentledger.services.document_store import DocumentStore
from rentledger.services.ledger_session import LedgerSession
from rentledger.services.reminder_service import ReminderDispatcher
from rentledger.services.storage_service import StorageService

security = HTTPBearer(auto_error=False)

_store: Optional[DocumentStore] = None


def get_store() -> DocumentStore:
    """Process-wide document store; subscriptions live on it."""
    global _store
    if _store is None:
        _store = DocumentStore(SessionLocal)
    return _store


def get_dispatcher() -> ReminderDispatcher:
    return ReminderDispatcher()


def get_storage() -> StorageService:
    return StorageService()


def _token(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_current_owner(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> str:
    return subject_from_token(_token(credentials), OWNER_ROLE)


def get_current_tenant_id(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> str:
    return subject_from_token(_token(credentials), TENANT_ROLE)


def get_ledger_session(
    owner_id: str = Depends(get_current_owner),
    store: DocumentStore = Depends(get_store),
    dispatcher: ReminderDispatcher = Depends(get_dispatcher),
) -> Iterator[LedgerSession]:
    session = LedgerSession(store, owner_id, dispatcher)
    try:
        yield session
    finally:
        session.close()
