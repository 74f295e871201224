from datetime import datetime

import pytest

from conftest import OWNER_ID, make_building, payment
from rentledger.core.exceptions import NotFoundError, ValidationError
from rentledger.schemas.ledger import ElectricityRecordInput, RentPaymentInput, TenantInput
from rentledger.services import ledger_service


def _reading(previous, current, rate=8.0, **extra):
    return ElectricityRecordInput(
        date=datetime(2024, 3, 31), previous_reading=previous, current_reading=current,
        rate_per_unit=rate, **extra,
    )


def test_create_building_names_units_in_order():
    building = ledger_service.create_building("Lake View", 3, OWNER_ID)
    assert [u.name for u in building.units] == ["Unit 1", "Unit 2", "Unit 3"]
    assert len({u.id for u in building.units}) == 3
    assert building.units_count == 3
    assert building.owner_id == OWNER_ID


def test_create_building_requires_name():
    with pytest.raises(ValidationError):
        ledger_service.create_building("  ", 2, OWNER_ID)


# ── Tenants ───────────────────────────────────────────────────────────────────

def test_upsert_tenant_into_vacant_unit():
    building = make_building()
    updated = ledger_service.upsert_tenant(
        building, "u2", TenantInput(name="Ravi", contact_no="555", rent_amount=8000),
        now=datetime(2024, 3, 1),
    )

    tenant = updated.find_unit("u2").tenant
    assert tenant.name == "Ravi"
    assert tenant.active is True
    assert tenant.move_in_date == datetime(2024, 3, 1)
    assert tenant.rent_payments == []
    assert building.find_unit("u2").tenant is None


def test_upsert_existing_tenant_keeps_identity_and_ledgers():
    building = make_building(rent_payments=[payment("p1", 5, 6000.0)])
    building = building.model_copy(update={"units": [
        building.units[0].model_copy(update={
            "tenant": building.units[0].tenant.model_copy(update={"id_proof": "http://files/old-id.png"}),
        }),
        building.units[1],
    ]})

    updated = ledger_service.upsert_tenant(
        building, "u1", TenantInput(name="Asha K", contact_no="+91 98765 43210", rent_amount=11000),
    )

    tenant = updated.find_unit("u1").tenant
    assert tenant.id == "t1"
    assert tenant.name == "Asha K"
    assert tenant.rent_amount == 11000
    assert [p.id for p in tenant.rent_payments] == ["p1"]
    assert tenant.move_in_date == datetime(2024, 1, 1)
    assert tenant.date_of_birth == "1990-04-12"
    assert tenant.id_proof == "http://files/old-id.png"


def test_uploaded_document_wins_over_passed_and_stored():
    building = make_building()
    tenant_in = TenantInput(name="Asha", contact_no="1", id_proof="http://files/passed.png")

    updated = ledger_service.upsert_tenant(
        building, "u1", tenant_in, uploaded={"id_proof": "http://files/uploaded.png"},
    )
    assert updated.find_unit("u1").tenant.id_proof == "http://files/uploaded.png"

    updated = ledger_service.upsert_tenant(updated, "u1", tenant_in)
    assert updated.find_unit("u1").tenant.id_proof == "http://files/passed.png"


def test_upsert_tenant_ignores_ledger_arrays_in_payload():
    building = make_building(rent_payments=[payment("p1", 5, 6000.0)])
    tenant_in = TenantInput.model_validate({
        "name": "Asha", "contactNo": "1",
        "rentPayments": [{"id": "x", "date": "2024-03-01", "amount": -5}],
        "electricityRecords": [{
            "id": "e1", "date": "2024-03-31", "previousReading": 80, "currentReading": 50,
            "ratePerUnit": 8, "unitsConsumed": 999, "amount": 123456,
        }],
    })

    tenant = ledger_service.upsert_tenant(building, "u1", tenant_in).find_unit("u1").tenant
    assert [p.id for p in tenant.rent_payments] == ["p1"]
    assert tenant.electricity_records == []

    fresh = ledger_service.upsert_tenant(building, "u2", tenant_in).find_unit("u2").tenant
    assert fresh.rent_payments == []
    assert fresh.electricity_records == []


def test_upsert_tenant_validates_input():
    with pytest.raises(ValidationError):
        ledger_service.upsert_tenant(make_building(), "u1", TenantInput(name="", contact_no="1"))
    with pytest.raises(ValidationError):
        ledger_service.upsert_tenant(make_building(), "u1", TenantInput(name="A", contact_no=""))


def test_upsert_tenant_unknown_unit():
    with pytest.raises(NotFoundError):
        ledger_service.upsert_tenant(make_building(), "nope", TenantInput(name="A", contact_no="1"))


def test_move_tenant_to_previous_vacates_unit():
    building = make_building(rent_payments=[payment("p1", 5, 6000.0)])
    moved = ledger_service.move_tenant_to_previous(building, "u1", now=datetime(2024, 4, 1))

    unit = moved.find_unit("u1")
    assert unit.tenant is None
    assert len(unit.previous_tenants) == 1
    archived = unit.previous_tenants[0]
    assert archived.active is False
    assert archived.move_out_date == datetime(2024, 4, 1)
    assert archived.owner_id == OWNER_ID
    assert [p.id for p in archived.rent_payments] == ["p1"]
    assert len(moved.units) == len(building.units)
    ledger_service.check_building_invariants(moved)


def test_move_out_of_vacant_unit_fails():
    with pytest.raises(NotFoundError):
        ledger_service.move_tenant_to_previous(make_building(), "u2")


# ── Rent payments ─────────────────────────────────────────────────────────────

def test_add_rent_payment_appends():
    building = ledger_service.add_rent_payment(
        make_building(), "u1", RentPaymentInput(date="2024-03-05", amount=6000, month="March", year=2024)
    )
    payments = building.find_unit("u1").tenant.rent_payments
    assert len(payments) == 1
    assert payments[0].amount == 6000
    assert payments[0].date == datetime(2024, 3, 5)
    assert payments[0].id


def test_edit_rent_payment_preserves_id_and_length():
    building = make_building(rent_payments=[payment("p1", 5, 5000.0), payment("p2", 6, 100.0)])
    updated = ledger_service.edit_rent_payment(
        building, "u1", "p1", RentPaymentInput(date=datetime(2024, 3, 5), amount=5500)
    )

    payments = updated.find_unit("u1").tenant.rent_payments
    assert len(payments) == 2
    assert [p for p in payments if p.id == "p1"][0].amount == 5500
    assert sum(1 for p in payments if p.id == "p1") == 1


def test_edit_unknown_rent_payment():
    with pytest.raises(NotFoundError):
        ledger_service.edit_rent_payment(
            make_building(), "u1", "missing", RentPaymentInput(date=datetime(2024, 3, 5), amount=1)
        )


def test_rent_payment_on_vacant_unit_fails():
    payment_in = RentPaymentInput(date=datetime(2024, 3, 5), amount=1000)
    with pytest.raises(NotFoundError):
        ledger_service.add_rent_payment(make_building(), "u2", payment_in)
    with pytest.raises(NotFoundError):
        ledger_service.edit_rent_payment(make_building(), "u2", "p1", payment_in)


def test_rent_payment_must_be_positive():
    with pytest.raises(ValidationError):
        ledger_service.validate_rent_payment(RentPaymentInput(date=datetime(2024, 3, 5), amount=0))


# ── Electricity ───────────────────────────────────────────────────────────────

@pytest.mark.parametrize("previous,current,rate", [(0, 0, 8), (100, 130, 8), (1200.5, 1300, 7.5)])
def test_electricity_derived_fields_are_recomputed(previous, current, rate):
    record_in = _reading(previous, current, rate, units_consumed=999, amount=1)
    building = ledger_service.add_electricity_record(make_building(), "u1", record_in)

    record = building.find_unit("u1").tenant.electricity_records[0]
    assert record.units_consumed == current - previous
    assert record.amount == (current - previous) * rate


def test_electricity_reading_below_previous_is_rejected():
    building = make_building()
    with pytest.raises(ValidationError):
        ledger_service.add_electricity_record(building, "u1", _reading(80, 50))
    assert building.find_unit("u1").tenant.electricity_records == []


def test_edit_electricity_record_keeps_id():
    building = ledger_service.add_electricity_record(make_building(), "u1", _reading(100, 130))
    record_id = building.find_unit("u1").tenant.electricity_records[0].id

    updated = ledger_service.edit_electricity_record(building, "u1", record_id, _reading(100, 150))

    records = updated.find_unit("u1").tenant.electricity_records
    assert [r.id for r in records] == [record_id]
    assert records[0].units_consumed == 50
    assert records[0].amount == 400


def test_edit_electricity_record_rejects_reading_below_previous():
    building = ledger_service.add_electricity_record(make_building(), "u1", _reading(100, 130))
    record_id = building.find_unit("u1").tenant.electricity_records[0].id

    with pytest.raises(ValidationError):
        ledger_service.edit_electricity_record(building, "u1", record_id, _reading(80, 50))

    record = building.find_unit("u1").tenant.electricity_records[0]
    assert (record.previous_reading, record.current_reading, record.units_consumed) == (100, 130, 30)


def test_electricity_record_on_vacant_unit_fails():
    with pytest.raises(NotFoundError):
        ledger_service.add_electricity_record(make_building(), "u2", _reading(100, 130))
    with pytest.raises(NotFoundError):
        ledger_service.edit_electricity_record(make_building(), "u2", "e1", _reading(100, 130))


def test_next_previous_reading_uses_latest_record():
    building = ledger_service.add_electricity_record(make_building(), "u1", ElectricityRecordInput(
        date=datetime(2024, 4, 30), previous_reading=130, current_reading=170,
    ))
    building = ledger_service.add_electricity_record(building, "u1", _reading(100, 130))

    assert ledger_service.next_previous_reading(building.find_unit("u1").tenant) == 170
    assert ledger_service.next_previous_reading(None) == 0.0


# ── Invariants ────────────────────────────────────────────────────────────────

def test_invariants_reject_duplicate_tenant():
    building = make_building()
    duplicate = building.units[0].tenant
    building = building.model_copy(update={"units": [
        building.units[0],
        building.units[1].model_copy(update={"tenant": duplicate}),
    ]})
    with pytest.raises(ValidationError):
        ledger_service.check_building_invariants(building)
