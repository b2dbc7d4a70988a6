"""
Knowledge Wrapped Repository - stats queries and the knowledge_wrapped table.
"""

from __future__ import annotations

import json
import uuid
from datetime import date, datetime
from typing import Any

from mindweave.content.models import parse_dt, to_iso, utc_now
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock


def _snapshot(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "shareId": row["share_id"],
        "stats": json.loads(row["stats"]),
        "period": row["period"],
        "createdAt": to_iso(parse_dt(row["created_at"])),
    }


class WrappedRepository:
    @staticmethod
    def active_days(user_id: str, since: datetime | None = None) -> dict[date, int]:
        """Item count per UTC calendar day."""
        sql = "SELECT substr(created_at, 1, 10) AS day, COUNT(*) AS cnt FROM content WHERE user_id = ?"
        params: tuple[Any, ...] = (user_id,)
        if since is not None:
            sql += " AND created_at >= ?"
            params = (*params, to_iso(since))
        sql += " GROUP BY day"
        with get_db_connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return {date.fromisoformat(row["day"]): row["cnt"] for row in rows}

    @staticmethod
    def top_tags(user_id: str, limit: int) -> list[str]:
        """Most used lowercased tags across tags and auto_tags."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT lower(tag) AS tag, COUNT(*) AS cnt FROM (
                    SELECT j.value AS tag FROM content c, json_each(c.tags) j
                    WHERE c.user_id = ?
                    UNION ALL
                    SELECT j.value AS tag FROM content c, json_each(c.auto_tags) j
                    WHERE c.user_id = ?
                )
                WHERE tag IS NOT NULL AND tag != ''
                GROUP BY lower(tag)
                ORDER BY cnt DESC, tag ASC
                LIMIT ?
                """,
                (user_id, user_id, limit),
            ).fetchall()
        return [row["tag"] for row in rows]

    @staticmethod
    def count_between(user_id: str, start: datetime, end: datetime | None = None) -> int:
        sql = "SELECT COUNT(*) FROM content WHERE user_id = ? AND created_at >= ?"
        params: tuple[Any, ...] = (user_id, to_iso(start))
        if end is not None:
            sql += " AND created_at < ?"
            params = (*params, to_iso(end))
        with get_db_connection() as conn:
            return conn.execute(sql, params).fetchone()[0]

    @staticmethod
    def most_connected(user_id: str, min_similarity: float) -> dict[str, Any] | None:
        """The item with the most embedding neighbours above min_similarity."""
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT c.id, c.title, COUNT(e2.id) AS connection_count
                FROM content c
                JOIN embeddings e1 ON e1.content_id = c.id
                JOIN embeddings e2 ON e2.content_id != c.id
                JOIN content c2 ON c2.id = e2.content_id AND c2.user_id = c.user_id
                WHERE c.user_id = ?
                  AND cosine_distance(e1.embedding, e2.embedding) IS NOT NULL
                  AND 1 - cosine_distance(e1.embedding, e2.embedding) > ?
                GROUP BY c.id, c.title
                ORDER BY connection_count DESC, c.id ASC
                LIMIT 1
                """,
                (user_id, min_similarity),
            ).fetchone()
        if row is None:
            return None
        return {"id": row["id"], "title": row["title"], "connectionCount": row["connection_count"]}

    @staticmethod
    @retry_on_db_lock()
    def create(user_id: str, share_id: str, stats: dict[str, Any], period: str) -> None:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO knowledge_wrapped (id, user_id, share_id, stats, period, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (str(uuid.uuid4()), user_id, share_id, json.dumps(stats), period, to_iso(utc_now())),
            )

    @staticmethod
    def get_by_share_id(share_id: str) -> dict[str, Any] | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM knowledge_wrapped WHERE share_id = ?", (share_id,)
            ).fetchone()
        return _snapshot(dict(row)) if row else None

    @staticmethod
    def get_latest(user_id: str) -> dict[str, Any] | None:
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM knowledge_wrapped
                WHERE user_id = ?
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (user_id,),
            ).fetchone()
        return _snapshot(dict(row)) if row else None
