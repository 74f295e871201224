"""
Ledger Session - An owner's live view of the ledger

Holds the current snapshot of the owner's buildings, expenses and reminders,
kept fresh by document store subscriptions. Every write follows the same
order: read the current building from the snapshot, apply a pure mutation,
persist, and only after the store confirms replace the snapshot. A failed
persist raises and leaves the snapshot untouched.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from rentledger.core.exceptions import AuthError, NotFoundError, ValidationError
from rentledger.schemas.ledger import (
    Building,
    BuildingCreate,
    ElectricityRecordInput,
    Expense,
    ExpenseInput,
    Reminder,
    ReminderInput,
    RentPaymentInput,
    Tenant,
    TenantInput,
)
from rentledger.schemas.reports import (
    BuildingRentSummary,
    Occupancy,
    PaymentDetail,
    PropertyReport,
    Totals,
    UnpaidUnit,
)
from rentledger.services import aggregation, ledger_service
from rentledger.services.document_store import DocumentStore
from rentledger.services.reminder_service import DispatchResult, ReminderDispatcher
from rentledger.utils.ids import new_id

logger = logging.getLogger(__name__)


class LedgerSession:
    """
    Owner-scoped entity graph plus the operations that read and change it.

    Use as a context manager (or call ``close``) to drop the store
    subscriptions.
    """

    def __init__(
        self,
        store: DocumentStore,
        owner_id: Optional[str],
        dispatcher: Optional[ReminderDispatcher] = None,
    ):
        if not owner_id:
            raise AuthError("User not authenticated")
        self.store = store
        self.owner_id = owner_id
        self.dispatcher = dispatcher
        self.buildings: List[Building] = []
        self.expenses: List[Expense] = []
        self.reminders: List[Reminder] = []
        self.previous_tenants: List[Tenant] = []
        self._unsubscribers: List[Callable[[], None]] = []
        try:
            for collection, on_change in (
                ("buildings", self._on_buildings),
                ("expenses", self._on_expenses),
                ("reminders", self._on_reminders),
            ):
                self._unsubscribers.append(store.subscribe(collection, owner_id, on_change))
        except Exception:
            self.close()
            raise

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    # ── Subscription callbacks ────────────────────────────────────────────────

    def _on_buildings(self, buildings) -> None:
        self.buildings = list(buildings)
        self.previous_tenants = aggregation.collect_previous_tenants(self.buildings)

    def _on_expenses(self, expenses) -> None:
        self.expenses = list(expenses)

    def _on_reminders(self, reminders) -> None:
        self.reminders = list(reminders)

    def _swap_building(self, building: Building) -> None:
        replaced = [building if b.id == building.id else b for b in self.buildings]
        if not any(b.id == building.id for b in self.buildings):
            replaced.append(building)
        self._on_buildings(replaced)

    # ── Lookups ───────────────────────────────────────────────────────────────

    def get_building(self, building_id: str) -> Building:
        for building in self.buildings:
            if building.id == building_id:
                return building
        raise NotFoundError(f"Building {building_id} not found")

    def get_reminder(self, reminder_id: str) -> Reminder:
        for reminder in self.reminders:
            if reminder.id == reminder_id:
                return reminder
        raise NotFoundError("Reminder not found")

    def get_expense(self, expense_id: str) -> Expense:
        for expense in self.expenses:
            if expense.id == expense_id:
                return expense
        raise NotFoundError("Expense not found")

    # ── Building writes ───────────────────────────────────────────────────────

    def _commit(self, building: Building) -> Building:
        self.store.persist(building)
        self._swap_building(building)
        return building

    def _mutate(self, building_id: str, mutation: Callable[[Building], Building]) -> Building:
        current = self.get_building(building_id)
        updated = mutation(current)
        return self._commit(updated)

    def add_building(self, data: BuildingCreate) -> Building:
        building = ledger_service.create_building(data.name, data.units_count, self.owner_id, data.address)
        logger.info(f"[LEDGER] Adding building {building.name} with {building.units_count} units")
        return self._commit(building)

    def upsert_tenant(
        self,
        building_id: str,
        unit_id: str,
        tenant_data: TenantInput,
        uploaded: Optional[Dict[str, str]] = None,
    ) -> Building:
        return self._mutate(
            building_id,
            lambda b: ledger_service.upsert_tenant(b, unit_id, tenant_data, uploaded),
        )

    def attach_document(self, building_id: str, unit_id: str, field: str, url: str) -> Building:
        """Store an uploaded document URL on the unit's current tenant."""
        building = self.get_building(building_id)
        unit = building.find_unit(unit_id)
        if unit is None or unit.tenant is None:
            raise NotFoundError(f"Unit {unit_id} has no tenant")
        current = TenantInput.model_validate(unit.tenant.model_dump(
            include=set(TenantInput.model_fields),
        ))
        return self.upsert_tenant(building_id, unit_id, current, uploaded={field: url})

    def move_tenant_to_previous(self, building_id: str, unit_id: str) -> Building:
        return self._mutate(
            building_id,
            lambda b: ledger_service.move_tenant_to_previous(b, unit_id, owner_id=self.owner_id),
        )

    def add_rent_payment(self, building_id: str, unit_id: str, payment: RentPaymentInput) -> Building:
        ledger_service.validate_rent_payment(payment)
        return self._mutate(building_id, lambda b: ledger_service.add_rent_payment(b, unit_id, payment))

    def edit_rent_payment(
        self, building_id: str, unit_id: str, payment_id: str, payment: RentPaymentInput
    ) -> Building:
        ledger_service.validate_rent_payment(payment)
        return self._mutate(
            building_id,
            lambda b: ledger_service.edit_rent_payment(b, unit_id, payment_id, payment),
        )

    def add_electricity_record(self, building_id: str, unit_id: str, record: ElectricityRecordInput) -> Building:
        ledger_service.validate_electricity_reading(record)
        return self._mutate(
            building_id,
            lambda b: ledger_service.add_electricity_record(b, unit_id, record),
        )

    def edit_electricity_record(
        self, building_id: str, unit_id: str, record_id: str, record: ElectricityRecordInput
    ) -> Building:
        ledger_service.validate_electricity_reading(record)
        return self._mutate(
            building_id,
            lambda b: ledger_service.edit_electricity_record(b, unit_id, record_id, record),
        )

    # ── Expenses ──────────────────────────────────────────────────────────────

    def add_expense(self, data: ExpenseInput) -> Expense:
        if data.amount is None or data.amount <= 0:
            raise ValidationError("Expense amount must be greater than zero")
        if data.building_id:
            self.get_building(data.building_id)

        expense = Expense(
            id=new_id(),
            date=data.date,
            amount=data.amount,
            description=data.description,
            building_id=data.building_id,
            unit_id=data.unit_id,
            owner_id=self.owner_id,
        )
        self.store.persist(expense)
        if not any(e.id == expense.id for e in self.expenses):
            self.expenses = [*self.expenses, expense]
        return expense

    def delete_expense(self, expense_id: str) -> None:
        self.get_expense(expense_id)
        self.store.remove("expenses", expense_id)
        self.expenses = [e for e in self.expenses if e.id != expense_id]

    # ── Reminders ─────────────────────────────────────────────────────────────

    def add_reminder(self, data: ReminderInput) -> Tuple[Reminder, Optional[DispatchResult]]:
        """
        Create a reminder; send it by SMS straight away when asked to.

        SMS failure is reported in the returned DispatchResult and never
        undoes the reminder.
        """
        if not (data.title or "").strip():
            raise ValidationError("Reminder title is required")
        if data.send_sms and not (data.phone or "").strip():
            raise ValidationError("Phone number is required to send an SMS reminder")

        reminder = Reminder(
            id=new_id(),
            date=data.date,
            time=data.time,
            title=data.title.strip(),
            message=data.message,
            completed=False,
            send_sms=data.send_sms,
            phone=data.phone,
            owner_id=self.owner_id,
        )
        self.store.persist(reminder)
        if not any(r.id == reminder.id for r in self.reminders):
            self.reminders = [*self.reminders, reminder]

        result = None
        if reminder.send_sms and reminder.phone and self.dispatcher is not None:
            result = self.dispatcher.send(reminder.id, reminder.title, reminder.message, reminder.phone)
            if not result.ok:
                logger.warning(f"[REMINDERS] SMS for reminder {reminder.id} failed: {result.detail}")
        return reminder, result

    def mark_reminder_complete(self, reminder_id: str) -> Reminder:
        reminder = self.get_reminder(reminder_id)
        if reminder.completed:
            return reminder
        updated = reminder.model_copy(update={"completed": True})
        self.store.persist(updated)
        self.reminders = [updated if r.id == reminder_id else r for r in self.reminders]
        return updated

    def delete_reminder(self, reminder_id: str) -> None:
        self.get_reminder(reminder_id)
        self.store.remove("reminders", reminder_id)
        self.reminders = [r for r in self.reminders if r.id != reminder_id]

    def pending_reminders(self) -> List[Reminder]:
        return sorted((r for r in self.reminders if not r.completed), key=lambda r: r.date)

    # ── Reads ─────────────────────────────────────────────────────────────────

    def totals(self, start_date, end_date) -> Totals:
        return aggregation.compute_totals(self.buildings, self.expenses, start_date, end_date, self.owner_id)

    def occupancy(self, building_id: str) -> Occupancy:
        return aggregation.compute_occupancy(self.get_building(building_id))

    def unpaid_units(self, building_id: str, start_date, end_date) -> List[UnpaidUnit]:
        return aggregation.compute_unpaid_units(self.get_building(building_id), start_date, end_date)

    def dashboard(self, start_date, end_date) -> List[BuildingRentSummary]:
        return [aggregation.summarize_building(b, start_date, end_date) for b in self.buildings]

    def property_reports(self, start_date, end_date) -> List[PropertyReport]:
        return aggregation.build_property_reports(
            self.buildings, self.expenses, start_date, end_date, self.owner_id
        )

    def payment_details(self, start_date, end_date) -> List[PaymentDetail]:
        return aggregation.build_payment_details(self.buildings, start_date, end_date, self.owner_id)

    def previous_reading(self, building_id: str, unit_id: str) -> float:
        building = self.get_building(building_id)
        unit = building.find_unit(unit_id)
        if unit is None:
            raise NotFoundError(f"Unit {unit_id} not found in building {building_id}")
        return ledger_service.next_previous_reading(unit.tenant)

