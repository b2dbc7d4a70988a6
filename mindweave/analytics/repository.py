"""
Analytics Repository - aggregate queries and the connections cache.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from typing import Any

from mindweave.content.models import to_iso, utc_now
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock


class AnalyticsRepository:
    @staticmethod
    def count_items(user_id: str, since: datetime | None = None) -> int:
        sql = "SELECT COUNT(*) FROM content WHERE user_id = ?"
        params: tuple[Any, ...] = (user_id,)
        if since is not None:
            sql += " AND created_at >= ?"
            params = (*params, to_iso(since))
        with get_db_connection() as conn:
            return conn.execute(sql, params).fetchone()[0]

    @staticmethod
    def count_distinct_tags(user_id: str) -> int:
        """Distinct non-empty values across tags and auto_tags."""
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT COUNT(DISTINCT tag) FROM (
                    SELECT j.value AS tag FROM content c, json_each(c.tags) j
                    WHERE c.user_id = ?
                    UNION ALL
                    SELECT j.value AS tag FROM content c, json_each(c.auto_tags) j
                    WHERE c.user_id = ?
                )
                WHERE tag IS NOT NULL AND tag != ''
                """,
                (user_id, user_id),
            ).fetchone()
        return row[0]

    @staticmethod
    def growth_counts(
        user_id: str, start: datetime, end: datetime, bucket_chars: int
    ) -> list[tuple[str, str, int]]:
        """
        Item counts per (bucket, type) between start and end.

        Args:
            bucket_chars: 10 buckets by day (YYYY-MM-DD), 7 by month (YYYY-MM)
        """
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT substr(created_at, 1, ?) AS bucket, type, COUNT(*) AS cnt
                FROM content
                WHERE user_id = ? AND created_at >= ? AND created_at <= ?
                GROUP BY bucket, type
                ORDER BY bucket ASC
                """,
                (bucket_chars, user_id, to_iso(start), to_iso(end)),
            ).fetchall()
        return [(row["bucket"], row["type"], row["cnt"]) for row in rows]


class ConnectionRepository:
    @staticmethod
    def list_recent(user_id: str, since: datetime, limit: int) -> list[dict[str, Any]]:
        """Cached connections created after `since`, newest first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM connections
                WHERE user_id = ? AND created_at >= ?
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (user_id, to_iso(since), limit),
            ).fetchall()
        return [
            {
                **dict(row),
                "tag_group_a": json.loads(row["tag_group_a"]),
                "tag_group_b": json.loads(row["tag_group_b"]),
            }
            for row in rows
        ]

    @staticmethod
    @retry_on_db_lock()
    def create(
        user_id: str,
        content_id_a: str,
        content_id_b: str,
        insight: str,
        similarity: int,
        tag_group_a: list[str],
        tag_group_b: list[str],
    ) -> str:
        connection_id = str(uuid.uuid4())
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO connections (
                    id, user_id, content_id_a, content_id_b, insight, similarity,
                    tag_group_a, tag_group_b, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    connection_id,
                    user_id,
                    content_id_a,
                    content_id_b,
                    insight,
                    similarity,
                    json.dumps(tag_group_a),
                    json.dumps(tag_group_b),
                    to_iso(utc_now()),
                ),
            )
        return connection_id
