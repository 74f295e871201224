"""
Ledger Aggregation Engine

Pure functions over an in-memory entity graph:
  • compute_totals          — rent / electricity / expense sums in a date range
  • compute_occupancy       — occupied units and occupancy percentage
  • compute_unpaid_units    — occupied units whose in-range rent is short
  • summarize_building      — expected vs received rent for the dashboard
  • build_property_reports  — per-building income statement
  • build_payment_details   — flat list of rent payments in range
  • collect_previous_tenants — archived tenants with building/unit context

Range bounds are inclusive. A plain ``date`` end bound covers the whole day.
Active tenants and archived tenants are disjoint by construction, so walking
both never counts a payment twice.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Iterator, List, Optional, Tuple

from rentledger.schemas.ledger import Building, Expense, Tenant, Unit
from rentledger.schemas.reports import (
    BuildingRentSummary,
    Occupancy,
    PaymentDetail,
    PropertyReport,
    Totals,
    UnpaidUnit,
)
from rentledger.utils.dates import in_range, range_bounds

logger = logging.getLogger(__name__)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _unit_tenants(unit: Unit) -> Iterator[Tuple[Tenant, bool]]:
    """Yield (tenant, is_previous) for the active tenant and the archive."""
    if unit.tenant is not None:
        yield unit.tenant, False
    for previous in unit.previous_tenants:
        yield previous, True


def _owned(buildings: Iterable[Building], owner_id: Optional[str]) -> List[Building]:
    if owner_id is None:
        return list(buildings)
    return [b for b in buildings if b.owner_id == owner_id]


def rent_paid(tenant: Tenant, start, end) -> float:
    return sum(p.amount for p in tenant.rent_payments if in_range(p.date, start, end))


def electricity_billed(tenant: Tenant, start, end) -> float:
    return sum(r.amount for r in tenant.electricity_records if in_range(r.date, start, end))


# ── Totals ────────────────────────────────────────────────────────────────────

def compute_totals(
    buildings: Iterable[Building],
    expenses: Iterable[Expense],
    start_date: Any,
    end_date: Any,
    owner_id: str,
) -> Totals:
    """
    Sum rent payments, electricity bills and expenses dated in the range.

    Only the owner's buildings and expenses count. An inverted range simply
    matches nothing.
    """
    start, end = range_bounds(start_date, end_date)
    if start > end:
        return Totals()

    total_rent = 0.0
    total_electricity = 0.0
    for building in _owned(buildings, owner_id):
        for unit in building.units:
            for tenant, _ in _unit_tenants(unit):
                total_rent += rent_paid(tenant, start, end)
                total_electricity += electricity_billed(tenant, start, end)

    total_expense = sum(
        e.amount for e in expenses
        if e.owner_id == owner_id and in_range(e.date, start, end)
    )

    return Totals(
        total_rent=total_rent,
        total_electricity=total_electricity,
        total_expense=total_expense,
    )


# ── Occupancy & unpaid rent ───────────────────────────────────────────────────

def compute_occupancy(building: Building) -> Occupancy:
    occupied = sum(1 for unit in building.units if unit.tenant is not None)
    if building.units_count <= 0:
        return Occupancy(occupied_units=occupied, occupancy_rate=0)
    # Half-up like the dashboard, not Python's banker's rounding
    rate = int(occupied / building.units_count * 100 + 0.5)
    return Occupancy(occupied_units=occupied, occupancy_rate=rate)


def compute_unpaid_units(building: Building, start_date: Any, end_date: Any) -> List[UnpaidUnit]:
    """Occupied units whose rent paid in range is below the tenant's rent."""
    start, end = range_bounds(start_date, end_date)
    unpaid = []
    for unit in building.units:
        tenant = unit.tenant
        if tenant is None:
            continue
        paid = rent_paid(tenant, start, end) if start <= end else 0.0
        if paid < tenant.rent_amount:
            unpaid.append(UnpaidUnit(
                unit_name=unit.name,
                tenant_name=tenant.name,
                rent_amount=tenant.rent_amount,
                rent_paid=paid,
            ))
    return unpaid


def summarize_building(building: Building, start_date: Any, end_date: Any) -> BuildingRentSummary:
    start, end = range_bounds(start_date, end_date)
    expected = sum(u.tenant.rent_amount for u in building.units if u.tenant is not None)
    received = 0.0
    if start <= end:
        received = sum(rent_paid(u.tenant, start, end) for u in building.units if u.tenant is not None)
    return BuildingRentSummary(
        building_id=building.id,
        name=building.name,
        expected_rent=expected,
        received_rent=received,
        unpaid_units=compute_unpaid_units(building, start, end),
    )


# ── Reports ───────────────────────────────────────────────────────────────────

def build_property_reports(
    buildings: Iterable[Building],
    expenses: Iterable[Expense],
    start_date: Any,
    end_date: Any,
    owner_id: str,
) -> List[PropertyReport]:
    start, end = range_bounds(start_date, end_date)
    expenses = list(expenses)
    reports = []

    for building in _owned(buildings, owner_id):
        occupancy = compute_occupancy(building)
        rent = electricity = spent = 0.0
        if start <= end:
            for unit in building.units:
                for tenant, _ in _unit_tenants(unit):
                    rent += rent_paid(tenant, start, end)
                    electricity += electricity_billed(tenant, start, end)
            spent = sum(
                e.amount for e in expenses
                if e.building_id == building.id and in_range(e.date, start, end)
            )

        reports.append(PropertyReport(
            building_id=building.id,
            name=building.name,
            units=building.units_count,
            occupied=occupancy.occupied_units,
            occupancy_rate=occupancy.occupancy_rate,
            rent=rent,
            electricity=electricity,
            expenses=spent,
            income=rent + electricity - spent,
        ))

    return reports


def build_payment_details(
    buildings: Iterable[Building],
    start_date: Any,
    end_date: Any,
    owner_id: str,
) -> List[PaymentDetail]:
    start, end = range_bounds(start_date, end_date)
    details = []
    if start > end:
        return details

    for building in _owned(buildings, owner_id):
        for unit in building.units:
            for tenant, is_previous in _unit_tenants(unit):
                label = f"{tenant.name} (Previous)" if is_previous else tenant.name
                for payment in tenant.rent_payments:
                    if not in_range(payment.date, start, end):
                        continue
                    details.append(PaymentDetail(
                        building_name=building.name,
                        unit_name=unit.name,
                        tenant_name=label,
                        amount=payment.amount,
                        date=payment.date,
                        payment_method=payment.payment_method,
                    ))

    details.sort(key=lambda d: d.date)
    return details


def collect_previous_tenants(buildings: Iterable[Building]) -> List[Tenant]:
    """Every archived tenant, annotated with where they lived."""
    collected = []
    for building in buildings:
        for unit in building.units:
            for tenant in unit.previous_tenants:
                collected.append(tenant.model_copy(update={
                    "building_id": building.id,
                    "building_name": building.name,
                    "unit_id": unit.id,
                    "unit_name": unit.name,
                }))
    collected.sort(key=lambda t: t.move_out_date or datetime.min, reverse=True)
    return collected
