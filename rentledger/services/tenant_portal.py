"""
Tenant Portal - Read-only ledger access for tenants

A tenant signs in with the contact number and date of birth their landlord
recorded. Lookups span every building, not just one owner's.
"""
import logging
from typing import Iterable

from rentledger.core.exceptions import NotFoundError, ValidationError
from rentledger.schemas.ledger import Building, Unit
from rentledger.schemas.reports import TenantView, UnitSummary
from rentledger.utils.dates import normalize_dob

logger = logging.getLogger(__name__)


def _digits(phone: str) -> str:
    return "".join(c for c in (phone or "") if c.isdigit())


def _view(building: Building, unit: Unit) -> TenantView:
    return TenantView(
        tenant=unit.tenant,
        building_id=building.id,
        building_name=building.name,
        unit=UnitSummary(id=unit.id, name=unit.name, floor=unit.floor, details=unit.details),
    )


def tenant_login(buildings: Iterable[Building], contact_no: str, date_of_birth: str) -> TenantView:
    """Find the active tenant matching both contact number and date of birth."""
    phone = _digits(contact_no)
    dob = normalize_dob(date_of_birth)
    if not phone or not dob:
        raise ValidationError("Contact number and date of birth are required")

    for building in buildings:
        for unit in building.units:
            tenant = unit.tenant
            if tenant is None or not tenant.active:
                continue
            if _digits(tenant.contact_no) != phone:
                continue
            if normalize_dob(tenant.date_of_birth or "") == dob:
                logger.info(f"[PORTAL] Tenant {tenant.id} signed in")
                return _view(building, unit)

    logger.info("[PORTAL] Failed tenant sign-in attempt")
    raise NotFoundError("No active tenant matches these details")


def find_tenant_view(buildings: Iterable[Building], tenant_id: str) -> TenantView:
    """Resolve a signed-in tenant again; archived tenants lose access."""
    for building in buildings:
        for unit in building.units:
            if unit.tenant is not None and unit.tenant.id == tenant_id:
                return _view(building, unit)
    raise NotFoundError("Tenant not found")
