"""
Digest Settings Repository - digest_settings table, one row per user.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from mindweave.content.models import parse_dt, to_iso, utc_now
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock


@dataclass
class DigestSettings:
    enabled: bool = False
    frequency: str = "weekly"
    preferred_day: int = 1
    preferred_hour: int = 9
    last_sent_at: datetime | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> DigestSettings:
        return cls(
            enabled=bool(row["enabled"]),
            frequency=row["frequency"],
            preferred_day=row["preferred_day"],
            preferred_hour=row["preferred_hour"],
            last_sent_at=parse_dt(row.get("last_sent_at")),
        )

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "frequency": self.frequency,
            "preferredDay": self.preferred_day,
            "preferredHour": self.preferred_hour,
        }


@dataclass
class DigestRecipient:
    user_id: str
    email: str
    settings: DigestSettings


class DigestSettingsRepository:
    @staticmethod
    def get(user_id: str) -> DigestSettings | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM digest_settings WHERE user_id = ?", (user_id,)
            ).fetchone()
        return DigestSettings.from_db_row(dict(row)) if row else None

    @staticmethod
    @retry_on_db_lock()
    def upsert(user_id: str, settings: DigestSettings) -> None:
        now = to_iso(utc_now())
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO digest_settings (
                    user_id, enabled, frequency, preferred_day, preferred_hour,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    enabled = excluded.enabled,
                    frequency = excluded.frequency,
                    preferred_day = excluded.preferred_day,
                    preferred_hour = excluded.preferred_hour,
                    updated_at = excluded.updated_at
                """,
                (
                    user_id,
                    int(settings.enabled),
                    settings.frequency,
                    settings.preferred_day,
                    settings.preferred_hour,
                    now,
                    now,
                ),
            )

    @staticmethod
    def list_enabled() -> list[DigestRecipient]:
        """Every user with the digest enabled, joined to their email."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT d.*, u.email FROM digest_settings d
                JOIN users u ON u.id = d.user_id
                WHERE d.enabled = 1
                """
            ).fetchall()
        return [
            DigestRecipient(
                user_id=row["user_id"],
                email=row["email"],
                settings=DigestSettings.from_db_row(dict(row)),
            )
            for row in rows
        ]

    @staticmethod
    def list_enabled_user_ids() -> list[str]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT user_id FROM digest_settings WHERE enabled = 1"
            ).fetchall()
        return [row["user_id"] for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def mark_sent(user_id: str, sent_at: datetime) -> None:
        with db_transaction() as conn:
            conn.execute(
                "UPDATE digest_settings SET last_sent_at = ? WHERE user_id = ?",
                (to_iso(sent_at), user_id),
            )
