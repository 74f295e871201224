"""
Report Routes - Totals, property performance and payment listings
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from rentledger.dependencies import get_ledger_session
from rentledger.schemas.ledger import Tenant
from rentledger.schemas.reports import BuildingRentSummary, PaymentDetail, PropertyReport, Totals
from rentledger.services.ledger_session import LedgerSession
from rentledger.utils.dates import month_to_date

router = APIRouter(tags=["reports"])


@router.get("/reports/totals", response_model=Totals)
def get_totals(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    session: LedgerSession = Depends(get_ledger_session),
):
    """Rent, electricity and expense totals for the range (defaults to month to date)"""
    start, end = month_to_date(start, end)
    return session.totals(start, end)


@router.get("/reports/properties", response_model=List[PropertyReport])
def get_property_reports(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    session: LedgerSession = Depends(get_ledger_session),
):
    start, end = month_to_date(start, end)
    return session.property_reports(start, end)


@router.get("/reports/payments", response_model=List[PaymentDetail])
def get_payment_details(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    session: LedgerSession = Depends(get_ledger_session),
):
    start, end = month_to_date(start, end)
    return session.payment_details(start, end)


@router.get("/reports/dashboard")
def get_dashboard(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    session: LedgerSession = Depends(get_ledger_session),
):
    """Headline totals plus per-building rent collection"""
    start, end = month_to_date(start, end)
    totals = session.totals(start, end)
    buildings: List[BuildingRentSummary] = session.dashboard(start, end)
    return {
        "success": True,
        "totals": totals.model_dump(by_alias=True),
        "buildings": [b.model_dump(by_alias=True) for b in buildings],
        "pendingReminders": len(session.pending_reminders()),
    }


@router.get("/tenants/previous", response_model=List[Tenant])
def list_previous_tenants(session: LedgerSession = Depends(get_ledger_session)):
    """Archived tenants across every building, most recent move-out first"""
    return session.previous_tenants
