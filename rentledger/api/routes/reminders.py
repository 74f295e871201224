"""
Reminder Routes - Owner reminders and the scheduled dispatch hook
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, status

from rentledger.core.config import settings
from rentledger.core.exceptions import AuthError
from rentledger.dependencies import get_dispatcher, get_ledger_session, get_store
from rentledger.schemas.ledger import Reminder, ReminderInput
from rentledger.services.document_store import DocumentStore
from rentledger.services.ledger_session import LedgerSession
from rentledger.services.reminder_service import ReminderDispatcher, process_due_reminders

router = APIRouter(tags=["reminders"])


# ==================== SCHEDULED JOB ====================

@router.post("/check-due")
def check_due_reminders(
    x_cron_secret: Optional[str] = Header(None),
    store: DocumentStore = Depends(get_store),
    dispatcher: ReminderDispatcher = Depends(get_dispatcher),
):
    """Run the due-reminder job; called by an external scheduler every minute"""
    if not settings.CRON_SECRET or x_cron_secret != settings.CRON_SECRET:
        raise AuthError("Invalid cron secret")

    processed = process_due_reminders(store, dispatcher)
    return {"success": True, "processed": processed}


# ==================== OWNER REMINDERS ====================

@router.get("/", response_model=List[Reminder])
def list_reminders(
    include_completed: bool = False,
    session: LedgerSession = Depends(get_ledger_session),
):
    if include_completed:
        return sorted(session.reminders, key=lambda r: r.date)
    return session.pending_reminders()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_reminder(reminder_in: ReminderInput, session: LedgerSession = Depends(get_ledger_session)):
    """Create a reminder; with ``sendSMS`` set the SMS goes out immediately"""
    reminder, result = session.add_reminder(reminder_in)
    response = {"success": True, "reminder": reminder.model_dump(by_alias=True, mode="json")}
    if result is not None:
        response["sms"] = {"sent": result.ok, "detail": result.detail}
    return response


@router.post("/{reminder_id}/complete", response_model=Reminder)
def complete_reminder(reminder_id: str, session: LedgerSession = Depends(get_ledger_session)):
    return session.mark_reminder_complete(reminder_id)


@router.delete("/{reminder_id}")
def delete_reminder(reminder_id: str, session: LedgerSession = Depends(get_ledger_session)):
    session.delete_reminder(reminder_id)
    return {"success": True, "message": "Reminder deleted"}
