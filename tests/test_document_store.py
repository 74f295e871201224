from datetime import datetime

import pytest
from sqlalchemy.orm import Session

from conftest import OTHER_OWNER_ID, OWNER_ID, make_building
from rentledger.core.exceptions import SyncError
from rentledger.models.document import Document
from rentledger.schemas.ledger import Building, Expense, Reminder


def test_persist_and_fetch_round_trip(store):
    building = make_building()
    store.persist(building)

    fetched = store.fetch("buildings", OWNER_ID)
    assert fetched == [building]
    assert store.get("buildings", "b1") == building


def test_fetch_filters_by_owner(store):
    store.persist(make_building())
    store.persist(make_building(owner_id=OTHER_OWNER_ID).model_copy(update={"id": "b2"}))

    assert [b.id for b in store.fetch("buildings", OWNER_ID)] == ["b1"]
    assert {b.id for b in store.fetch("buildings")} == {"b1", "b2"}


def test_persist_merges_and_drops_none(store, engine):
    store.persist(Reminder(
        id="r1", date=datetime(2024, 3, 5), time="09:00", title="Water bill",
        phone="+15551234567", owner_id=OWNER_ID,
    ))
    store.persist(Reminder(
        id="r1", date=datetime(2024, 3, 5), time="09:00", title="Water bill",
        completed=True, owner_id=OWNER_ID,
    ))

    reminder = store.get("reminders", "r1")
    assert reminder.completed is True
    assert reminder.phone == "+15551234567"


def test_missing_arrays_load_as_empty(store, engine):
    with Session(engine) as db:
        db.add(Document(
            collection="buildings", id="legacy", owner_id=OWNER_ID,
            data={"name": "Old Block", "unitsCount": 1, "ownerId": OWNER_ID,
                  "units": [{"id": "u1", "name": "U1", "tenant": {"id": "t", "name": "X",
                                                                "rentPayments": None}}]},
        ))
        db.commit()

    building = store.get("buildings", "legacy")
    assert building.units[0].previous_tenants == []
    assert building.units[0].tenant.rent_payments == []
    assert building.units[0].tenant.electricity_records == []


def test_remove_is_idempotent(store):
    store.persist(Expense(id="x1", date=datetime(2024, 3, 1), amount=10, owner_id=OWNER_ID))
    store.remove("expenses", "x1")
    store.remove("expenses", "x1")
    assert store.get("expenses", "x1") is None


def test_subscribe_pushes_initial_and_updated_snapshots(store):
    snapshots = []
    unsubscribe = store.subscribe("buildings", OWNER_ID, snapshots.append)
    assert snapshots == [[]]

    store.persist(make_building())
    assert [b.id for b in snapshots[-1]] == ["b1"]

    unsubscribe()
    store.persist(make_building().model_copy(update={"name": "Renamed"}))
    assert len(snapshots) == 2


def test_subscribers_only_see_their_owner(store):
    mine, theirs = [], []
    store.subscribe("buildings", OWNER_ID, mine.append)
    store.subscribe("buildings", OTHER_OWNER_ID, theirs.append)

    store.persist(make_building())

    assert len(mine) == 2
    assert theirs == [[]]


def test_failing_subscriber_does_not_break_the_write(store, caplog):
    def broken(_snapshot):
        if _snapshot:
            raise RuntimeError("boom")

    store.subscribe("buildings", OWNER_ID, broken)
    store.persist(make_building())

    assert store.get("buildings", "b1") is not None
    assert "Subscriber for 'buildings' failed" in caplog.text


def test_failed_refresh_does_not_fail_committed_write(store, caplog, monkeypatch):
    snapshots = []
    store.subscribe("buildings", OWNER_ID, snapshots.append)

    def unavailable(collection, owner_id=None):
        raise SyncError(f"Failed to fetch {collection}")

    monkeypatch.setattr(store, "fetch", unavailable)
    store.persist(make_building())

    assert store.get("buildings", "b1") is not None
    assert snapshots == [[]]
    assert "Refresh of 'buildings'" in caplog.text


def test_failed_initial_read_drops_subscription(store, engine):
    Document.__table__.drop(engine)

    with pytest.raises(SyncError):
        store.subscribe("buildings", OWNER_ID, lambda snapshot: None)

    assert store._subscribers["buildings"] == []


def test_database_failure_raises_sync_error(store, engine):
    Document.__table__.drop(engine)
    with pytest.raises(SyncError):
        store.persist(make_building())
    with pytest.raises(SyncError):
        store.fetch("buildings", OWNER_ID)


def test_merge_keeps_first_saved_order(store, engine):
    store.persist(Expense(id="z1", date=datetime(2024, 3, 1), amount=10, owner_id=OWNER_ID))
    store.persist(Expense(id="a1", date=datetime(2024, 3, 2), amount=20, owner_id=OWNER_ID))
    with Session(engine) as db:
        first_saved = db.get(Document, ("expenses", "z1")).created_at

    store.persist(Expense(id="z1", date=datetime(2024, 3, 1), amount=15, owner_id=OWNER_ID))

    assert [e.id for e in store.fetch("expenses", OWNER_ID)] == ["z1", "a1"]
    with Session(engine) as db:
        row = db.get(Document, ("expenses", "z1"))
        assert row.created_at == first_saved
        assert row.updated_at >= row.created_at


def test_unknown_collection(store):
    with pytest.raises(SyncError):
        store.fetch("invoices")


def test_stored_body_uses_wire_names(store, engine):
    store.persist(make_building())
    with Session(engine) as db:
        body = db.get(Document, ("buildings", "b1")).data

    assert body["unitsCount"] == 2
    assert body["ownerId"] == OWNER_ID
    assert "rentPayments" in body["units"][0]["tenant"]
    assert isinstance(Building.model_validate(body | {"id": "b1"}), Building)
