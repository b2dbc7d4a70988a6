"""
Daily Highlight Repository - daily_highlights table.
"""

from __future__ import annotations

import uuid
from typing import Any

from mindweave.content.models import ContentItem, to_iso, utc_now
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock


class HighlightRepository:
    @staticmethod
    def get_for_date(user_id: str, highlight_date: str) -> dict[str, Any] | None:
        """
        Cached highlight for a date, joined to its content item.

        Returns:
            {"content_id", "insight", "title", "type", "tags"} or None. When
            the content was deleted since, the row is gone with it.
        """
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT h.content_id, h.insight, c.title, c.type, c.tags
                FROM daily_highlights h
                JOIN content c ON c.id = h.content_id
                WHERE h.user_id = ? AND h.highlight_date = ?
                """,
                (user_id, highlight_date),
            ).fetchone()
        return dict(row) if row else None

    @staticmethod
    def pick_candidate(user_id: str, highlight_date: str) -> ContentItem | None:
        """Deterministic pick for the day among items with a body or tags."""
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM content
                WHERE user_id = ?
                  AND (body IS NOT NULL AND body != '' OR json_array_length(tags) > 0)
                ORDER BY md5(id || ?)
                LIMIT 1
                """,
                (user_id, highlight_date),
            ).fetchone()
        return ContentItem.from_db_row(dict(row)) if row else None

    @staticmethod
    @retry_on_db_lock()
    def upsert(user_id: str, content_id: str, insight: str, highlight_date: str) -> None:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO daily_highlights (
                    id, user_id, content_id, insight, highlight_date, created_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, highlight_date) DO UPDATE SET
                    content_id = excluded.content_id,
                    insight = excluded.insight,
                    created_at = excluded.created_at
                """,
                (str(uuid.uuid4()), user_id, content_id, insight, highlight_date, to_iso(utc_now())),
            )
