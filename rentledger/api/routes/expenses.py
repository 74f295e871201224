"""
Expense Routes
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from rentledger.dependencies import get_ledger_session
from rentledger.schemas.ledger import Expense, ExpenseInput
from rentledger.services.ledger_session import LedgerSession
from rentledger.utils.dates import in_range, range_bounds

router = APIRouter(tags=["expenses"])


@router.get("/", response_model=List[Expense])
def list_expenses(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    building_id: Optional[str] = Query(None, alias="buildingId"),
    session: LedgerSession = Depends(get_ledger_session),
):
    """Owner's expenses, newest first, optionally filtered by date range and building"""
    expenses = session.expenses
    if building_id:
        expenses = [e for e in expenses if e.building_id == building_id]
    if start or end:
        lower, upper = range_bounds(start or date.min, end or date.max)
        expenses = [e for e in expenses if in_range(e.date, lower, upper)]
    return sorted(expenses, key=lambda e: e.date, reverse=True)


@router.post("/", response_model=Expense, status_code=status.HTTP_201_CREATED)
def create_expense(expense_in: ExpenseInput, session: LedgerSession = Depends(get_ledger_session)):
    return session.add_expense(expense_in)


@router.delete("/{expense_id}")
def delete_expense(expense_id: str, session: LedgerSession = Depends(get_ledger_session)):
    session.delete_expense(expense_id)
    return {"success": True, "message": "Expense deleted"}
