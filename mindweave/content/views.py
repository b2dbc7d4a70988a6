"""
Content view tracking - feeds "recently viewed" and lets other features tell
read items from unread ones.

Repeat views of the same item within VIEW_DEBOUNCE_SECONDS are recorded once.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Any

from mindweave.config import RECENTLY_VIEWED_DEFAULT, RECENTLY_VIEWED_MAX, VIEW_DEBOUNCE_SECONDS
from mindweave.content.models import to_iso, utc_now
from mindweave.content.repository import ContentRepository
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from mindweave.observability.logging import get_logger

logger = get_logger(__name__)


class ContentViewRepository:
    @staticmethod
    @retry_on_db_lock()
    def record(user_id: str, content_id: str, now: datetime, debounce_seconds: int) -> bool:
        """Insert a view unless one was recorded within the debounce window."""
        cutoff = to_iso(now - timedelta(seconds=debounce_seconds))
        with db_transaction() as conn:
            recent = conn.execute(
                """
                SELECT 1 FROM content_views
                WHERE user_id = ? AND content_id = ? AND viewed_at > ?
                """,
                (user_id, content_id, cutoff),
            ).fetchone()
            if recent:
                return False
            conn.execute(
                """
                INSERT INTO content_views (id, user_id, content_id, viewed_at)
                VALUES (?, ?, ?, ?)
                """,
                (str(uuid.uuid4()), user_id, content_id, to_iso(now)),
            )
        return True

    @staticmethod
    def recently_viewed(user_id: str, limit: int) -> list[dict[str, Any]]:
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT c.id, c.title, c.type, MAX(v.viewed_at) AS last_viewed_at
                FROM content_views v
                JOIN content c ON c.id = v.content_id
                WHERE v.user_id = ? AND c.user_id = ?
                GROUP BY c.id
                ORDER BY last_viewed_at DESC
                LIMIT ?
                """,
                (user_id, user_id, limit),
            ).fetchall()
        return [dict(row) for row in rows]

    @staticmethod
    def viewed_ids(user_id: str, since: datetime | None = None) -> list[str]:
        query = "SELECT DISTINCT content_id FROM content_views WHERE user_id = ?"
        params: list[Any] = [user_id]
        if since is not None:
            query += " AND viewed_at >= ?"
            params.append(to_iso(since))
        with get_db_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [row["content_id"] for row in rows]


def track_content_view(
    user_id: str, content_id: str, now: datetime | None = None
) -> dict[str, Any]:
    if not content_id or not content_id.strip():
        return {"success": False, "message": "Invalid content ID."}
    if ContentRepository.get_owned(content_id, user_id) is None:
        return {"success": False, "message": "Content not found"}
    ContentViewRepository.record(user_id, content_id, now or utc_now(), VIEW_DEBOUNCE_SECONDS)
    return {"success": True}


def get_recently_viewed(user_id: str, limit: int = RECENTLY_VIEWED_DEFAULT) -> dict[str, Any]:
    limit = max(1, min(limit, RECENTLY_VIEWED_MAX))
    rows = ContentViewRepository.recently_viewed(user_id, limit)
    return {
        "success": True,
        "items": [
            {
                "id": row["id"],
                "title": row["title"],
                "type": row["type"],
                "lastViewedAt": row["last_viewed_at"],
            }
            for row in rows
        ],
    }


def get_viewed_content_ids(user_id: str, since: datetime | None = None) -> dict[str, Any]:
    return {"success": True, "contentIds": ContentViewRepository.viewed_ids(user_id, since)}
