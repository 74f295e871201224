"""
Building Routes - Buildings, tenants, rent and electricity ledgers
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status

from rentledger.core.exceptions import NotFoundError, ValidationError
from rentledger.dependencies import get_ledger_session, get_storage
from rentledger.schemas.ledger import (
    Building,
    BuildingCreate,
    ElectricityRecordInput,
    RentPaymentInput,
    TenantInput,
)
from rentledger.schemas.reports import Occupancy, UnpaidUnit
from rentledger.services.ledger_session import LedgerSession
from rentledger.services.storage_service import StorageService
from rentledger.utils.dates import month_to_date

router = APIRouter(tags=["buildings"])

DOCUMENT_FIELDS = {
    "idProof": "id_proof",
    "policeVerification": "police_verification",
    "otherDocuments": "other_documents",
}


# ==================== BUILDINGS ====================

@router.post("/", response_model=Building, status_code=status.HTTP_201_CREATED)
def create_building(
    building_in: BuildingCreate,
    session: LedgerSession = Depends(get_ledger_session),
):
    """Create a building with ``unitsCount`` empty units"""
    return session.add_building(building_in)


@router.get("/", response_model=List[Building])
def list_buildings(session: LedgerSession = Depends(get_ledger_session)):
    return session.buildings


@router.get("/{building_id}", response_model=Building)
def get_building(building_id: str, session: LedgerSession = Depends(get_ledger_session)):
    return session.get_building(building_id)


@router.get("/{building_id}/occupancy", response_model=Occupancy)
def get_occupancy(building_id: str, session: LedgerSession = Depends(get_ledger_session)):
    return session.occupancy(building_id)


@router.get("/{building_id}/unpaid", response_model=List[UnpaidUnit])
def get_unpaid_units(
    building_id: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    session: LedgerSession = Depends(get_ledger_session),
):
    """Occupied units short on rent for the range (defaults to month to date)"""
    start, end = month_to_date(start, end)
    return session.unpaid_units(building_id, start, end)


# ==================== TENANTS ====================

@router.put("/{building_id}/units/{unit_id}/tenant", response_model=Building)
def upsert_tenant(
    building_id: str,
    unit_id: str,
    tenant_in: TenantInput,
    session: LedgerSession = Depends(get_ledger_session),
):
    """Add a tenant to a vacant unit, or update the current tenant's details"""
    return session.upsert_tenant(building_id, unit_id, tenant_in)


@router.post("/{building_id}/units/{unit_id}/tenant/documents/{document_type}", response_model=Building)
def upload_tenant_document(
    building_id: str,
    unit_id: str,
    document_type: str,
    file: UploadFile = File(...),
    session: LedgerSession = Depends(get_ledger_session),
    storage: StorageService = Depends(get_storage),
):
    """Upload an ID proof, police verification or other document for the tenant"""
    field = DOCUMENT_FIELDS.get(document_type)
    if field is None:
        raise ValidationError(f"Unknown document type '{document_type}'")
    unit = session.get_building(building_id).find_unit(unit_id)
    if unit is None:
        raise NotFoundError(f"Unit {unit_id} not found in building {building_id}")
    if unit.tenant is None:
        raise NotFoundError(f"Unit {unit_id} has no tenant")

    url = storage.upload_binary(file.filename or "", file.file.read(), building_id, unit_id, document_type)
    return session.attach_document(building_id, unit_id, field, url)


@router.post("/{building_id}/units/{unit_id}/move-out", response_model=Building)
def move_out_tenant(
    building_id: str,
    unit_id: str,
    session: LedgerSession = Depends(get_ledger_session),
):
    """Archive the unit's tenant into its previous tenants"""
    return session.move_tenant_to_previous(building_id, unit_id)


# ==================== RENT PAYMENTS ====================

@router.post(
    "/{building_id}/units/{unit_id}/rent-payments",
    response_model=Building,
    status_code=status.HTTP_201_CREATED,
)
def add_rent_payment(
    building_id: str,
    unit_id: str,
    payment_in: RentPaymentInput,
    session: LedgerSession = Depends(get_ledger_session),
):
    return session.add_rent_payment(building_id, unit_id, payment_in)


@router.put("/{building_id}/units/{unit_id}/rent-payments/{payment_id}", response_model=Building)
def edit_rent_payment(
    building_id: str,
    unit_id: str,
    payment_id: str,
    payment_in: RentPaymentInput,
    session: LedgerSession = Depends(get_ledger_session),
):
    return session.edit_rent_payment(building_id, unit_id, payment_id, payment_in)


# ==================== ELECTRICITY ====================

@router.get("/{building_id}/units/{unit_id}/electricity-records/next-reading")
def get_next_reading(
    building_id: str,
    unit_id: str,
    session: LedgerSession = Depends(get_ledger_session),
):
    """Suggested previous reading for the next meter record"""
    return {"success": True, "previousReading": session.previous_reading(building_id, unit_id)}


@router.post(
    "/{building_id}/units/{unit_id}/electricity-records",
    response_model=Building,
    status_code=status.HTTP_201_CREATED,
)
def add_electricity_record(
    building_id: str,
    unit_id: str,
    record_in: ElectricityRecordInput,
    session: LedgerSession = Depends(get_ledger_session),
):
    return session.add_electricity_record(building_id, unit_id, record_in)


@router.put("/{building_id}/units/{unit_id}/electricity-records/{record_id}", response_model=Building)
def edit_electricity_record(
    building_id: str,
    unit_id: str,
    record_id: str,
    record_in: ElectricityRecordInput,
    session: LedgerSession = Depends(get_ledger_session),
):
    return session.edit_electricity_record(building_id, unit_id, record_id, record_in)
