"""
Ledger Pydantic Schemas - Stored documents and API payloads

Field names on the wire are camelCase (``unitsCount``, ``rentPayments``);
Python attributes are snake_case. Entity models are frozen: updates go through
``model_copy(update=...)`` and produce a new value.
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from rentledger.core.config import settings
from rentledger.utils.dates import parse_optional_timestamp, parse_timestamp


class LedgerModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    def to_document(self) -> dict:
        """Serialize with wire field names, dates as ISO strings."""
        return self.model_dump(by_alias=True, mode="json")


def _list_or_empty(value: Any) -> Any:
    if value is None or not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if item is not None]


# ==================== Ledger Entries ====================

class RentPayment(LedgerModel):
    id: str
    date: datetime
    amount: float = 0.0
    month: str = ""
    year: int = 0
    payment_method: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return parse_timestamp(value)


class ElectricityRecord(LedgerModel):
    id: str
    date: datetime
    previous_reading: float = 0.0
    current_reading: float = 0.0
    units_consumed: float = 0.0
    rate_per_unit: float = 0.0
    amount: float = 0.0

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return parse_timestamp(value)


# ==================== Tenants, Units, Buildings ====================

class Tenant(LedgerModel):
    id: str
    name: str
    contact_no: str = ""
    member_count: int = 0
    rent_amount: float = 0.0
    room_details: str = ""
    about: str = ""
    date_of_birth: Optional[str] = None
    id_proof: Optional[str] = None
    police_verification: Optional[str] = None
    other_documents: Optional[str] = None
    rent_payments: List[RentPayment] = Field(default_factory=list)
    electricity_records: List[ElectricityRecord] = Field(default_factory=list)
    active: bool = True
    move_in_date: Optional[datetime] = None
    move_out_date: Optional[datetime] = None

    # Cross-reference context, only set on archived tenants
    owner_id: Optional[str] = None
    building_id: Optional[str] = None
    building_name: Optional[str] = None
    unit_id: Optional[str] = None
    unit_name: Optional[str] = None

    @field_validator("rent_payments", "electricity_records", mode="before")
    @classmethod
    def _ensure_list(cls, value):
        return _list_or_empty(value)

    @field_validator("move_in_date", "move_out_date", mode="before")
    @classmethod
    def _parse_dates(cls, value):
        return parse_optional_timestamp(value)

    @field_validator("room_details", "about", "contact_no", mode="before")
    @classmethod
    def _text_or_empty(cls, value):
        return "" if value is None else value


class Unit(LedgerModel):
    id: str
    name: str
    floor: Optional[str] = None
    details: Optional[str] = None
    tenant: Optional[Tenant] = None
    previous_tenants: List[Tenant] = Field(default_factory=list)

    @field_validator("previous_tenants", mode="before")
    @classmethod
    def _ensure_list(cls, value):
        return _list_or_empty(value)


class Building(LedgerModel):
    id: str
    name: str
    units_count: int = 0
    address: Optional[str] = None
    units: List[Unit] = Field(default_factory=list)
    owner_id: str

    @field_validator("units", mode="before")
    @classmethod
    def _ensure_list(cls, value):
        return _list_or_empty(value)

    def find_unit(self, unit_id: str) -> Optional[Unit]:
        return next((u for u in self.units if u.id == unit_id), None)


# ==================== Top-level Collections ====================

class Expense(LedgerModel):
    id: str
    date: datetime
    amount: float = 0.0
    description: str = ""
    building_id: Optional[str] = None
    unit_id: Optional[str] = None
    owner_id: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return parse_timestamp(value)


class Reminder(LedgerModel):
    id: str
    date: datetime
    time: str = ""
    title: str = ""
    message: str = ""
    completed: bool = False
    send_sms: Optional[bool] = Field(default=None, alias="sendSMS")
    phone: Optional[str] = None
    owner_id: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return parse_timestamp(value)


COLLECTION_MODELS = {
    "buildings": Building,
    "expenses": Expense,
    "reminders": Reminder,
}


def collection_of(entity: LedgerModel) -> str:
    for name, model in COLLECTION_MODELS.items():
        if isinstance(entity, model):
            return name
    raise TypeError(f"{type(entity).__name__} is not a top-level document")


# ==================== Request Payloads ====================

class PayloadModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BuildingCreate(PayloadModel):
    name: str
    units_count: int = Field(..., ge=0)
    address: Optional[str] = None


class TenantInput(PayloadModel):
    """Tenant details as submitted by the owner; documents may be URLs."""
    name: str = ""
    contact_no: str = ""
    member_count: int = 0
    rent_amount: float = 0.0
    room_details: str = ""
    about: str = ""
    date_of_birth: Optional[str] = None
    id_proof: Optional[str] = None
    police_verification: Optional[str] = None
    other_documents: Optional[str] = None
    move_in_date: Optional[datetime] = None


class RentPaymentInput(PayloadModel):
    date: datetime
    amount: float
    month: str = ""
    year: int = 0
    payment_method: Optional[str] = None
    remarks: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return parse_timestamp(value)


class ElectricityRecordInput(PayloadModel):
    """Meter reading; derived fields sent by the caller are ignored."""
    date: datetime
    previous_reading: float
    current_reading: float
    rate_per_unit: float = Field(default_factory=lambda: settings.DEFAULT_RATE_PER_UNIT)
    units_consumed: Optional[float] = None
    amount: Optional[float] = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return parse_timestamp(value)


class ExpenseInput(PayloadModel):
    date: datetime
    amount: float
    description: str = ""
    building_id: Optional[str] = None
    unit_id: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return parse_timestamp(value)


class ReminderInput(PayloadModel):
    date: datetime
    time: str
    title: str
    message: str = ""
    send_sms: Optional[bool] = Field(default=None, alias="sendSMS")
    phone: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value):
        return parse_timestamp(value)
