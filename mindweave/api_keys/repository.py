"""
API Key Repository - api_keys table.

Only the sha256 hash of a key and its display prefix are stored.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from mindweave.content.models import parse_dt, to_iso, utc_now
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from mindweave.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ApiKey:
    id: str
    user_id: str
    name: str
    key_prefix: str
    is_active: bool
    last_used_at: datetime | None
    expires_at: datetime | None
    created_at: datetime

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> ApiKey:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            key_prefix=row["key_prefix"],
            is_active=bool(row["is_active"]),
            last_used_at=parse_dt(row.get("last_used_at")),
            expires_at=parse_dt(row.get("expires_at")),
            created_at=parse_dt(row["created_at"]),
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at is not None and self.expires_at <= (now or utc_now())

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "keyPrefix": self.key_prefix,
            "lastUsedAt": to_iso(self.last_used_at),
            "expiresAt": to_iso(self.expires_at),
            "isActive": self.is_active,
            "createdAt": to_iso(self.created_at),
        }


class ApiKeyRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(
        user_id: str, name: str, key_prefix: str, key_hash: str, expires_at: datetime | None
    ) -> str:
        key_id = str(uuid.uuid4())
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO api_keys (id, user_id, name, key_prefix, key_hash, expires_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (key_id, user_id, name, key_prefix, key_hash, to_iso(expires_at), to_iso(utc_now())),
            )
        logger.info("Created API key %s for user %s", key_id, user_id)
        return key_id

    @staticmethod
    def list_by_user(user_id: str) -> list[ApiKey]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM api_keys WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
        return [ApiKey.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def count_active(user_id: str) -> int:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM api_keys WHERE user_id = ? AND is_active = 1",
                (user_id,),
            ).fetchone()
        return row[0]

    @staticmethod
    def get_by_hash(key_hash: str) -> ApiKey | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM api_keys WHERE key_hash = ?", (key_hash,)
            ).fetchone()
        return ApiKey.from_db_row(dict(row)) if row else None

    @staticmethod
    @retry_on_db_lock()
    def deactivate(key_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "UPDATE api_keys SET is_active = 0 WHERE id = ? AND user_id = ?",
                (key_id, user_id),
            )
        return cursor.rowcount > 0

    @staticmethod
    @retry_on_db_lock()
    def touch(key_id: str) -> None:
        with db_transaction() as conn:
            conn.execute(
                "UPDATE api_keys SET last_used_at = ? WHERE id = ?",
                (to_iso(utc_now()), key_id),
            )
