"""
Reminder Repository - reminders table.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from mindweave.content.models import to_iso, utc_now
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from mindweave.observability.logging import get_logger
from mindweave.reminders.models import Reminder

logger = get_logger(__name__)

_JOINED_SELECT = """
    SELECT r.*, c.title AS title, c.type AS content_type
    FROM reminders r
    JOIN content c ON c.id = r.content_id
"""


class ReminderRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(user_id: str, content_id: str, interval: str, next_remind_at: datetime) -> Reminder:
        reminder = Reminder(
            id=str(uuid.uuid4()),
            user_id=user_id,
            content_id=content_id,
            interval=interval,
            next_remind_at=next_remind_at,
        )
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO reminders
                    (id, user_id, content_id, interval, status, next_remind_at,
                     created_at, updated_at)
                VALUES
                    (:id, :user_id, :content_id, :interval, :status, :next_remind_at,
                     :created_at, :updated_at)
                """,
                reminder.to_db_dict(),
            )
        logger.info("Created reminder %s for content %s", reminder.id, content_id)
        return reminder

    @staticmethod
    def get_owned(reminder_id: str, user_id: str) -> Reminder | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM reminders WHERE id = ? AND user_id = ?",
                (reminder_id, user_id),
            ).fetchone()
        return Reminder.from_db_row(dict(row)) if row else None

    @staticmethod
    def find_active(user_id: str, content_id: str) -> Reminder | None:
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM reminders
                WHERE user_id = ? AND content_id = ? AND status = 'active'
                """,
                (user_id, content_id),
            ).fetchone()
        return Reminder.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_active(user_id: str) -> list[Reminder]:
        """Active reminders with their content title and type, soonest first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                _JOINED_SELECT
                + " WHERE r.user_id = ? AND r.status = 'active' ORDER BY r.next_remind_at ASC",
                (user_id,),
            ).fetchall()
        return [Reminder.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def list_due(now: datetime) -> list[Reminder]:
        with get_db_connection() as conn:
            rows = conn.execute(
                _JOINED_SELECT
                + " WHERE r.status = 'active' AND r.next_remind_at <= ?"
                + " ORDER BY r.next_remind_at ASC",
                (to_iso(now),),
            ).fetchall()
        return [Reminder.from_db_row(dict(row)) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def update(reminder_id: str, changes: dict[str, Any]) -> None:
        columns = {**changes, "updated_at": to_iso(utc_now())}
        if isinstance(columns.get("next_remind_at"), datetime):
            columns["next_remind_at"] = to_iso(columns["next_remind_at"])
        assignments = ", ".join(f"{name} = :{name}" for name in columns)
        with db_transaction() as conn:
            conn.execute(
                f"UPDATE reminders SET {assignments} WHERE id = :reminder_id",
                {**columns, "reminder_id": reminder_id},
            )
