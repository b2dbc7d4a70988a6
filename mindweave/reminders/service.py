"""Reminder service - set, snooze and dismiss reminders, and the hourly cron.

A reminder walks the 1d -> 3d -> 7d -> 30d ladder: each time it comes due the
cron advances it to the next interval, and after 30d it is completed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from mindweave.content.models import utc_now
from mindweave.content.repository import ContentRepository
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter, log_event
from mindweave.reminders.models import INTERVALS, get_next_interval, get_next_remind_at
from mindweave.reminders.repository import ReminderRepository

logger = get_logger(__name__)

NOT_FOUND = {"success": False, "message": "Reminder not found"}


def set_reminder(
    user_id: str, content_id: str, interval: str, now: datetime | None = None
) -> dict[str, Any]:
    if interval not in INTERVALS:
        return {"success": False, "message": "Invalid interval"}
    if ContentRepository.get_owned(content_id, user_id) is None:
        return {"success": False, "message": "Content not found"}
    if ReminderRepository.find_active(user_id, content_id) is not None:
        return {
            "success": False,
            "message": "An active reminder already exists for this content",
        }

    reminder = ReminderRepository.create(
        user_id, content_id, interval, get_next_remind_at(interval, now)
    )
    counter("reminders.set")
    return {"success": True, "message": "Reminder set successfully", "id": reminder.id}


def dismiss_reminder(user_id: str, reminder_id: str) -> dict[str, Any]:
    if ReminderRepository.get_owned(reminder_id, user_id) is None:
        return NOT_FOUND
    ReminderRepository.update(reminder_id, {"status": "completed"})
    return {"success": True, "message": "Reminder dismissed"}


def snooze_reminder(
    user_id: str, reminder_id: str, duration: str, now: datetime | None = None
) -> dict[str, Any]:
    """Push the next reminder out by duration; reactivates a completed reminder."""
    if duration not in INTERVALS:
        return {"success": False, "message": "Invalid snooze duration"}
    if ReminderRepository.get_owned(reminder_id, user_id) is None:
        return NOT_FOUND
    ReminderRepository.update(
        reminder_id,
        {"next_remind_at": get_next_remind_at(duration, now), "status": "active"},
    )
    return {"success": True, "message": "Reminder snoozed"}


def get_active_reminders(user_id: str) -> dict[str, Any]:
    reminders = ReminderRepository.list_active(user_id)
    return {"success": True, "reminders": [r.to_api_dict() for r in reminders]}


def run_reminders_cron(now: datetime | None = None) -> dict[str, Any]:
    """Advance every due reminder one step along the ladder."""
    now = now or utc_now()
    due = ReminderRepository.list_due(now)
    processed = 0
    completed = 0

    for reminder in due:
        try:
            log_event("reminders.due", reminder_id=reminder.id, interval=reminder.interval)
            next_interval = get_next_interval(reminder.interval)
            if next_interval:
                ReminderRepository.update(
                    reminder.id,
                    {
                        "interval": next_interval,
                        "next_remind_at": get_next_remind_at(next_interval, now),
                    },
                )
            else:
                ReminderRepository.update(reminder.id, {"status": "completed"})
                completed += 1
            processed += 1
        except Exception as e:
            logger.error("Reminder %s failed: %s", reminder.id, e)
            counter("reminders.failed")

    log_event("reminders.cron", due=len(due), processed=processed, completed=completed)
    return {"success": True, "due": len(due), "processed": processed, "completed": completed}
