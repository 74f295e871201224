"""
Declarative base and document timestamps

Collections are read back ordered by ``created_at``, so snapshots list
buildings, expenses and reminders in the order they were first saved.
``updated_at`` moves on every merge and is never used for ordering.
"""
from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _saved_at() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for rentledger tables."""


class TimestampMixin:
    """When a stored document was first saved and last merged."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_saved_at,
        nullable=False,
        index=True,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_saved_at,
        onupdate=_saved_at,
        nullable=False,
    )
