"""Reminder model and the spaced-repetition schedule."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Literal

from pydantic import BaseModel, Field

from mindweave.content.models import parse_dt, to_iso, utc_now

ReminderInterval = Literal["1d", "3d", "7d", "30d"]

INTERVALS: dict[str, timedelta] = {
    "1d": timedelta(days=1),
    "3d": timedelta(days=3),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}

# Each reminder that fires moves one step along this ladder; 30d is the last.
INTERVAL_PROGRESSION = ["1d", "3d", "7d", "30d"]


def get_next_interval(current: str) -> str | None:
    """The interval after current, or None once the ladder is finished."""
    if current not in INTERVAL_PROGRESSION:
        return None
    index = INTERVAL_PROGRESSION.index(current)
    if index + 1 >= len(INTERVAL_PROGRESSION):
        return None
    return INTERVAL_PROGRESSION[index + 1]


def get_next_remind_at(interval: str, now: datetime | None = None) -> datetime:
    """
    Raises:
        ValueError: Unknown interval
    """
    if interval not in INTERVALS:
        raise ValueError(f"Invalid interval: {interval}")
    return (now or utc_now()) + INTERVALS[interval]


class Reminder(BaseModel):
    id: str
    user_id: str
    content_id: str
    interval: ReminderInterval
    status: Literal["active", "completed"] = "active"
    next_remind_at: datetime
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Joined from content when listing
    title: str | None = None
    content_type: str | None = None

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "content_id": self.content_id,
            "interval": self.interval,
            "status": self.status,
            "next_remind_at": to_iso(self.next_remind_at),
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Reminder:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            content_id=row["content_id"],
            interval=row["interval"],
            status=row["status"],
            next_remind_at=parse_dt(row["next_remind_at"]),
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
            title=row.get("title"),
            content_type=row.get("content_type"),
        )

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "contentId": self.content_id,
            "title": self.title,
            "type": self.content_type,
            "interval": self.interval,
            "status": self.status,
            "nextRemindAt": to_iso(self.next_remind_at),
        }
