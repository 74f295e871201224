"""
Ledger Mutation Service

Copy-on-write operations on the Building aggregate. Each function locates the
target unit, builds an updated Unit, splices it into a new ``units`` list and
returns a new Building. Nothing here touches storage: the LedgerSession
persists the result and only then swaps its snapshot.

Unit count and unit ids never change as a side effect of a tenant or ledger
mutation.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Optional

from rentledger.core.exceptions import NotFoundError, ValidationError
from rentledger.schemas.ledger import (
    Building,
    ElectricityRecord,
    ElectricityRecordInput,
    RentPayment,
    RentPaymentInput,
    Tenant,
    TenantInput,
    Unit,
)
from rentledger.utils.dates import utcnow
from rentledger.utils.ids import new_id

logger = logging.getLogger(__name__)

DOCUMENT_FIELDS = ("id_proof", "police_verification", "other_documents")


# ── Validation ────────────────────────────────────────────────────────────────

def validate_tenant_input(tenant_data: TenantInput) -> None:
    if not (tenant_data.name or "").strip():
        raise ValidationError("Tenant name is required")
    if not (tenant_data.contact_no or "").strip():
        raise ValidationError("Tenant contact number is required")
    if tenant_data.rent_amount < 0:
        raise ValidationError("Rent amount cannot be negative")


def validate_rent_payment(payment: RentPaymentInput) -> None:
    if payment.amount is None or payment.amount <= 0:
        raise ValidationError("Payment amount must be greater than zero")


def validate_electricity_reading(record: ElectricityRecordInput) -> None:
    if record.current_reading < record.previous_reading:
        raise ValidationError(
            f"Current reading ({record.current_reading}) cannot be lower than "
            f"previous reading ({record.previous_reading})"
        )
    if record.rate_per_unit < 0:
        raise ValidationError("Rate per unit cannot be negative")


def check_building_invariants(building: Building) -> None:
    """Active tenants sit in Unit.tenant, archived ones in previousTenants, once."""
    seen: Dict[str, str] = {}
    for unit in building.units:
        if unit.tenant is not None:
            if not unit.tenant.active:
                raise ValidationError(f"Inactive tenant {unit.tenant.id} occupies unit {unit.id}")
            if unit.tenant.id in seen:
                raise ValidationError(f"Tenant {unit.tenant.id} appears more than once")
            seen[unit.tenant.id] = unit.id
        for previous in unit.previous_tenants:
            if previous.active:
                raise ValidationError(f"Active tenant {previous.id} is archived in unit {unit.id}")
            if previous.id in seen:
                raise ValidationError(f"Tenant {previous.id} appears more than once")
            seen[previous.id] = unit.id


# ── Building helpers ──────────────────────────────────────────────────────────

def create_building(name: str, units_count: int, owner_id: str, address: Optional[str] = None) -> Building:
    """New building with ``units_count`` empty units named ``Unit 1..N``."""
    if not (name or "").strip():
        raise ValidationError("Building name is required")
    if units_count < 0:
        raise ValidationError("Units count cannot be negative")

    units = [Unit(id=new_id(), name=f"Unit {i + 1}") for i in range(units_count)]
    return Building(
        id=new_id(),
        name=name.strip(),
        units_count=units_count,
        address=address,
        units=units,
        owner_id=owner_id,
    )


def _unit_index(building: Building, unit_id: str) -> int:
    for index, unit in enumerate(building.units):
        if unit.id == unit_id:
            return index
    raise NotFoundError(f"Unit {unit_id} not found in building {building.id}")


def _replace_unit(building: Building, index: int, unit: Unit) -> Building:
    units = list(building.units)
    units[index] = unit
    return building.model_copy(update={"units": units})


def _occupied_unit(building: Building, unit_id: str):
    index = _unit_index(building, unit_id)
    unit = building.units[index]
    if unit.tenant is None:
        raise NotFoundError(f"Unit {unit_id} has no tenant")
    return index, unit, unit.tenant


def _with_tenant(building: Building, index: int, unit: Unit, tenant: Tenant) -> Building:
    return _replace_unit(building, index, unit.model_copy(update={"tenant": tenant}))


# ── Tenants ───────────────────────────────────────────────────────────────────

def upsert_tenant(
    building: Building,
    unit_id: str,
    tenant_data: TenantInput,
    uploaded: Optional[Dict[str, str]] = None,
    now: Optional[datetime] = None,
) -> Building:
    """
    Attach a tenant to a unit, or edit the one already there.

    An existing tenant always keeps its id and ledgers; its move-in date
    stays unless the payload supplies one. Ledgers only change through the
    rent and electricity operations. Document fields resolve as: freshly uploaded URL,
    then the value passed in, then whatever was stored.
    """
    validate_tenant_input(tenant_data)
    index = _unit_index(building, unit_id)
    unit = building.units[index]
    existing = unit.tenant
    uploaded = uploaded or {}

    documents = {}
    for field in DOCUMENT_FIELDS:
        documents[field] = (
            uploaded.get(field)
            or getattr(tenant_data, field)
            or (getattr(existing, field) if existing else None)
        )

    if existing is not None:
        tenant_id = existing.id
        rent_payments = existing.rent_payments
        electricity_records = existing.electricity_records
        move_in_date = existing.move_in_date
        date_of_birth = existing.date_of_birth
    else:
        tenant_id = new_id()
        rent_payments = []
        electricity_records = []
        move_in_date = now or utcnow()
        date_of_birth = None

    if tenant_data.move_in_date is not None:
        move_in_date = tenant_data.move_in_date
    if tenant_data.date_of_birth:
        date_of_birth = tenant_data.date_of_birth

    tenant = Tenant(
        id=tenant_id,
        name=tenant_data.name.strip(),
        contact_no=tenant_data.contact_no.strip(),
        member_count=tenant_data.member_count,
        rent_amount=tenant_data.rent_amount,
        room_details=tenant_data.room_details,
        about=tenant_data.about,
        date_of_birth=date_of_birth,
        rent_payments=list(rent_payments),
        electricity_records=list(electricity_records),
        active=True,
        move_in_date=move_in_date,
        **documents,
    )

    logger.info(f"[LEDGER] {'Updated' if existing else 'Added'} tenant {tenant.id} in unit {unit_id}")
    return _with_tenant(building, index, unit, tenant)


def move_tenant_to_previous(
    building: Building,
    unit_id: str,
    owner_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Building:
    """Archive the active tenant; the unit becomes vacant. There is no undo."""
    index, unit, tenant = _occupied_unit(building, unit_id)

    archived = tenant.model_copy(update={
        "active": False,
        "move_out_date": now or utcnow(),
        "owner_id": owner_id or building.owner_id,
        "building_id": building.id,
        "building_name": building.name,
        "unit_id": unit.id,
        "unit_name": unit.name,
    })
    updated_unit = unit.model_copy(update={
        "tenant": None,
        "previous_tenants": [*unit.previous_tenants, archived],
    })

    logger.info(f"[LEDGER] Moved tenant {tenant.id} out of unit {unit_id}")
    return _replace_unit(building, index, updated_unit)


# ── Rent payments ─────────────────────────────────────────────────────────────

def _rent_payment(payment_id: str, payment: RentPaymentInput) -> RentPayment:
    return RentPayment(
        id=payment_id,
        date=payment.date,
        amount=payment.amount,
        month=payment.month,
        year=payment.year,
        payment_method=payment.payment_method,
        remarks=payment.remarks,
    )


def add_rent_payment(building: Building, unit_id: str, payment: RentPaymentInput) -> Building:
    index, unit, tenant = _occupied_unit(building, unit_id)
    entry = _rent_payment(new_id(), payment)
    updated = tenant.model_copy(update={"rent_payments": [*tenant.rent_payments, entry]})
    logger.info(f"[LEDGER] Added rent payment {entry.id} ({entry.amount}) for unit {unit_id}")
    return _with_tenant(building, index, unit, updated)


def edit_rent_payment(building: Building, unit_id: str, payment_id: str, payment: RentPaymentInput) -> Building:
    index, unit, tenant = _occupied_unit(building, unit_id)
    if not any(p.id == payment_id for p in tenant.rent_payments):
        raise NotFoundError(f"Rent payment {payment_id} not found")

    payments = [
        _rent_payment(payment_id, payment) if p.id == payment_id else p
        for p in tenant.rent_payments
    ]
    updated = tenant.model_copy(update={"rent_payments": payments})
    logger.info(f"[LEDGER] Edited rent payment {payment_id} for unit {unit_id}")
    return _with_tenant(building, index, unit, updated)


# ── Electricity ───────────────────────────────────────────────────────────────

def _electricity_record(record_id: str, record: ElectricityRecordInput) -> ElectricityRecord:
    """Derived fields are always recomputed from the readings."""
    units_consumed = record.current_reading - record.previous_reading
    return ElectricityRecord(
        id=record_id,
        date=record.date,
        previous_reading=record.previous_reading,
        current_reading=record.current_reading,
        units_consumed=units_consumed,
        rate_per_unit=record.rate_per_unit,
        amount=units_consumed * record.rate_per_unit,
    )


def add_electricity_record(building: Building, unit_id: str, record: ElectricityRecordInput) -> Building:
    validate_electricity_reading(record)
    index, unit, tenant = _occupied_unit(building, unit_id)
    entry = _electricity_record(new_id(), record)
    updated = tenant.model_copy(update={"electricity_records": [*tenant.electricity_records, entry]})
    logger.info(f"[LEDGER] Added electricity record {entry.id} ({entry.units_consumed} units) for unit {unit_id}")
    return _with_tenant(building, index, unit, updated)


def edit_electricity_record(
    building: Building,
    unit_id: str,
    record_id: str,
    record: ElectricityRecordInput,
) -> Building:
    validate_electricity_reading(record)
    index, unit, tenant = _occupied_unit(building, unit_id)
    if not any(r.id == record_id for r in tenant.electricity_records):
        raise NotFoundError(f"Electricity record {record_id} not found")

    records = [
        _electricity_record(record_id, record) if r.id == record_id else r
        for r in tenant.electricity_records
    ]
    updated = tenant.model_copy(update={"electricity_records": records})
    logger.info(f"[LEDGER] Edited electricity record {record_id} for unit {unit_id}")
    return _with_tenant(building, index, unit, updated)


def next_previous_reading(tenant: Optional[Tenant]) -> float:
    """Current reading of the latest record, the default for the next one."""
    if tenant is None or not tenant.electricity_records:
        return 0.0
    latest = max(tenant.electricity_records, key=lambda r: r.date)
    return latest.current_reading
