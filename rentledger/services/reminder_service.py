"""
Reminder Dispatch

Responsibilities:
  • ReminderDispatcher.send  — best-effort SMS through the Twilio Messages API
  • process_due_reminders    — the periodic job: send every incomplete reminder
                               whose HH:MM matches now, then mark it completed

SMS: Twilio REST API. Reads TWILIO_ACCOUNT_SID / TWILIO_AUTH_TOKEN /
     TWILIO_PHONE_NUMBER from settings. If they are missing, logs the message
     instead of failing.

Delivery is at-most-once: a reminder is marked completed whether or not its
SMS went out.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import httpx

from rentledger.core.config import Settings, settings as default_settings
from rentledger.core.exceptions import SyncError
from rentledger.schemas.ledger import Reminder

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    ok: bool
    detail: str = ""


def format_sms_body(title: str, message: str) -> str:
    return f"Reminder: {title}\n{message}"


class ReminderDispatcher:
    """
    Sends reminder SMS. Never raises: every failure comes back as
    ``DispatchResult(ok=False)`` and is logged.
    """

    def __init__(self, config: Optional[Settings] = None, transport: Optional[httpx.BaseTransport] = None):
        self.config = config or default_settings
        self._transport = transport

    def _messages_url(self) -> str:
        base = self.config.TWILIO_API_URL.rstrip("/")
        return f"{base}/Accounts/{self.config.TWILIO_ACCOUNT_SID}/Messages.json"

    def send(self, reminder_id: str, title: str, message: str, phone: str) -> DispatchResult:
        body = format_sms_body(title, message)

        if not phone:
            logger.warning(f"[SMS] Reminder {reminder_id} has no phone number")
            return DispatchResult(ok=False, detail="Missing phone number")

        if not self.config.sms_configured:
            logger.info(f"[SMS – no key] Reminder {reminder_id} to {phone}: {body}")
            return DispatchResult(ok=True, detail="SMS not configured; message logged")

        try:
            with httpx.Client(timeout=self.config.SMS_TIMEOUT_SECONDS, transport=self._transport) as client:
                response = client.post(
                    self._messages_url(),
                    data={
                        "From": self.config.TWILIO_PHONE_NUMBER,
                        "To": phone,
                        "Body": body,
                    },
                    auth=(self.config.TWILIO_ACCOUNT_SID, self.config.TWILIO_AUTH_TOKEN),
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.error(f"[SMS] Exception sending reminder {reminder_id} to {phone}: {exc}")
            return DispatchResult(ok=False, detail=str(exc))

        if response.is_success:
            sid = ""
            try:
                sid = response.json().get("sid", "")
            except ValueError:
                pass
            logger.info(f"[SMS] Sent reminder {reminder_id} to {phone} {sid}".rstrip())
            return DispatchResult(ok=True, detail=sid)

        logger.warning(f"[SMS] Send failed for reminder {reminder_id}: {response.status_code} {response.text}")
        return DispatchResult(ok=False, detail=f"HTTP {response.status_code}")


def is_due(reminder: Reminder, now: datetime) -> bool:
    """Incomplete and scheduled for this wall-clock minute."""
    return not reminder.completed and reminder.time.strip() == now.strftime("%H:%M")


def process_due_reminders(store, dispatcher: ReminderDispatcher, now: Optional[datetime] = None) -> int:
    """
    Dispatch and complete every due reminder across all owners.

    Returns the number of reminders processed. A store failure while marking
    one reminder is logged and the job moves on to the next.
    """
    now = now or datetime.now()
    due = [r for r in store.fetch("reminders") if is_due(r, now)]
    logger.info(f"[REMINDERS] Found {len(due)} reminders due at {now.strftime('%H:%M')}")

    for reminder in due:
        if reminder.send_sms and reminder.phone:
            result = dispatcher.send(reminder.id, reminder.title, reminder.message, reminder.phone)
            if not result.ok:
                logger.warning(f"[REMINDERS] SMS for {reminder.id} failed: {result.detail}")

        try:
            store.persist(reminder.model_copy(update={"completed": True}))
            logger.info(f"[REMINDERS] Marked reminder {reminder.id} as completed")
        except SyncError as exc:
            logger.error(f"[REMINDERS] Failed to mark reminder {reminder.id} as completed: {exc}")

    return len(due)
