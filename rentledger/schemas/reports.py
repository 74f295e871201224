"""
Report Pydantic Schemas - Aggregation results
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from rentledger.schemas.ledger import Tenant


class ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Totals(ReportModel):
    total_rent: float = 0.0
    total_electricity: float = 0.0
    total_expense: float = 0.0


class Occupancy(ReportModel):
    occupied_units: int = 0
    occupancy_rate: int = 0


class UnpaidUnit(ReportModel):
    unit_name: str
    tenant_name: str
    rent_amount: float
    rent_paid: float


class BuildingRentSummary(ReportModel):
    building_id: str
    name: str
    expected_rent: float = 0.0
    received_rent: float = 0.0
    unpaid_units: List[UnpaidUnit] = []


class PropertyReport(ReportModel):
    building_id: str
    name: str
    units: int
    occupied: int
    occupancy_rate: int
    rent: float = 0.0
    electricity: float = 0.0
    expenses: float = 0.0
    income: float = 0.0


class PaymentDetail(ReportModel):
    building_name: str
    unit_name: str
    tenant_name: str
    amount: float
    date: datetime
    payment_method: Optional[str] = None


class UnitSummary(ReportModel):
    id: str
    name: str
    floor: Optional[str] = None
    details: Optional[str] = None


class TenantView(ReportModel):
    """What the tenant portal shows a signed-in tenant."""
    tenant: Tenant
    building_id: str
    building_name: str
    unit: UnitSummary
