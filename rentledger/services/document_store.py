"""
Document Store - Synchronization layer over SQLAlchemy

Responsibilities:
  • fetch / get      — read documents of a collection, filtered by owner
  • persist          — upsert by id with merge semantics
  • remove           — hard delete by id
  • subscribe        — push full-collection snapshots to listeners after
                       every write that touches their collection and owner

Merge semantics: top-level fields of the incoming document are laid over the
stored body; nested arrays and objects (``units``, ``rentPayments``) are
replaced wholesale. Top-level ``None`` values are dropped before writing, so a
merge never clears a stored field.

Every stored body passes through the pydantic models on read, which is where
dates are normalized and missing arrays become empty lists.
"""
from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from rentledger.core.exceptions import SyncError
from rentledger.models.document import Document
from rentledger.schemas.ledger import COLLECTION_MODELS, LedgerModel, collection_of

logger = logging.getLogger(__name__)

OnChange = Callable[[List[LedgerModel]], None]
Unsubscribe = Callable[[], None]


@dataclass(eq=False)
class _Subscription:
    owner_id: Optional[str]
    on_change: OnChange


def _model_for(collection: str):
    try:
        return COLLECTION_MODELS[collection]
    except KeyError:
        raise SyncError(f"Unknown collection '{collection}'")


def _clean_top_level(body: dict) -> dict:
    return {k: v for k, v in body.items() if v is not None and k != "id"}


class DocumentStore:
    """
    Owner-scoped document collections backed by the ``documents`` table.

    ``session_factory`` is a SQLAlchemy ``sessionmaker``; each operation runs
    in its own short session.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory
        self._subscribers: Dict[str, List[_Subscription]] = defaultdict(list)
        self._lock = threading.RLock()

    # ── Reads ─────────────────────────────────────────────────────────────────

    def _load(self, collection: str, rows) -> List[LedgerModel]:
        model = _model_for(collection)
        return [model.model_validate(row.as_dict()) for row in rows]

    def fetch(self, collection: str, owner_id: Optional[str] = None) -> List[LedgerModel]:
        """All documents in ``collection``; ``owner_id=None`` reads every owner."""
        _model_for(collection)
        stmt = select(Document).where(Document.collection == collection)
        if owner_id is not None:
            stmt = stmt.where(Document.owner_id == owner_id)
        stmt = stmt.order_by(Document.created_at, Document.id)
        try:
            with self._session_factory() as db:
                rows = db.execute(stmt).scalars().all()
                return self._load(collection, rows)
        except SQLAlchemyError as exc:
            logger.error(f"[STORE] Fetch of '{collection}' failed: {exc}")
            raise SyncError(f"Failed to fetch {collection}") from exc

    def get(self, collection: str, doc_id: str) -> Optional[LedgerModel]:
        model = _model_for(collection)
        try:
            with self._session_factory() as db:
                row = db.get(Document, (collection, doc_id))
                return model.model_validate(row.as_dict()) if row else None
        except SQLAlchemyError as exc:
            logger.error(f"[STORE] Get {collection}/{doc_id} failed: {exc}")
            raise SyncError(f"Failed to read {collection}/{doc_id}") from exc

    # ── Writes ────────────────────────────────────────────────────────────────

    def persist(self, entity: LedgerModel) -> None:
        """Upsert ``entity`` by id, merging over any stored body."""
        collection = collection_of(entity)
        body = _clean_top_level(entity.to_document())
        owner_id = getattr(entity, "owner_id", None)

        try:
            with self._session_factory() as db:
                row = db.get(Document, (collection, entity.id))
                if row is None:
                    row = Document(collection=collection, id=entity.id, owner_id=owner_id, data=body)
                    db.add(row)
                else:
                    previous_owner = row.owner_id
                    row.data = {**(row.data or {}), **body}
                    if owner_id is not None:
                        row.owner_id = owner_id
                    if previous_owner not in (None, row.owner_id):
                        owner_id = previous_owner
                db.commit()
        except SQLAlchemyError as exc:
            logger.error(f"[STORE] Persist {collection}/{entity.id} failed: {exc}")
            raise SyncError(f"Failed to save {collection}/{entity.id}") from exc

        logger.info(f"[STORE] Persisted {collection}/{entity.id}")
        self._notify(collection, {owner_id, getattr(entity, "owner_id", None)})

    def remove(self, collection: str, doc_id: str) -> None:
        """Hard delete; removing an absent id is a no-op."""
        _model_for(collection)
        try:
            with self._session_factory() as db:
                row = db.get(Document, (collection, doc_id))
                if row is None:
                    return
                owner_id = row.owner_id
                db.delete(row)
                db.commit()
        except SQLAlchemyError as exc:
            logger.error(f"[STORE] Remove {collection}/{doc_id} failed: {exc}")
            raise SyncError(f"Failed to delete {collection}/{doc_id}") from exc

        logger.info(f"[STORE] Removed {collection}/{doc_id}")
        self._notify(collection, {owner_id})

    # ── Subscriptions ─────────────────────────────────────────────────────────

    def subscribe(self, collection: str, owner_id: Optional[str], on_change: OnChange) -> Unsubscribe:
        """
        Register ``on_change`` for ``collection`` filtered by ``owner_id``.

        The listener receives the current snapshot immediately and a full
        snapshot after every later write; each call replaces the previous one.
        If the initial read fails the listener is removed before the error
        propagates.
        """
        subscription = _Subscription(owner_id=owner_id, on_change=on_change)
        with self._lock:
            self._subscribers[collection].append(subscription)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._subscribers.get(collection, [])
                if subscription in listeners:
                    listeners.remove(subscription)

        try:
            on_change(self.fetch(collection, owner_id))
        except Exception:
            unsubscribe()
            raise

        return unsubscribe

    def _notify(self, collection: str, owner_ids) -> None:
        with self._lock:
            listeners = list(self._subscribers.get(collection, []))

        snapshots: Dict[Optional[str], Optional[List[LedgerModel]]] = {}
        for subscription in listeners:
            if subscription.owner_id is not None and subscription.owner_id not in owner_ids:
                continue
            if subscription.owner_id not in snapshots:
                try:
                    snapshots[subscription.owner_id] = self.fetch(collection, subscription.owner_id)
                except SyncError as exc:
                    logger.error(f"[STORE] Refresh of '{collection}' for owner {subscription.owner_id} failed: {exc}")
                    snapshots[subscription.owner_id] = None
            snapshot = snapshots[subscription.owner_id]
            if snapshot is None:
                continue
            try:
                subscription.on_change(snapshot)
            except Exception as exc:
                # The write has already committed
                logger.error(f"[STORE] Subscriber for '{collection}' failed: {exc}")
