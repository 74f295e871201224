"""
Document Model - One row per stored document

Buildings (with their units, tenants and ledgers inline), expenses and
reminders are all kept as JSON bodies in a single table keyed by
``(collection, id)``. ``owner_id`` is lifted out of the body so the owner
filter runs in SQL.
"""
from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from rentledger.db.base import Base, TimestampMixin


class Document(Base, TimestampMixin):
    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(50), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=True, index=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_documents_collection_owner", "collection", "owner_id"),
    )

    def as_dict(self) -> dict:
        """Stored body with the document id filled in."""
        body = dict(self.data or {})
        body["id"] = self.id
        return body
