"""Search history persistence."""

from __future__ import annotations

import uuid

from mindweave.content.models import to_iso, utc_now
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock


@retry_on_db_lock()
def record_search(user_id: str, query: str) -> None:
    with db_transaction() as conn:
        conn.execute(
            "INSERT INTO search_history (id, user_id, query, created_at) VALUES (?, ?, ?, ?)",
            (str(uuid.uuid4()), user_id, query, to_iso(utc_now())),
        )


def get_recent_searches(user_id: str, limit: int = 5) -> list[str]:
    """Distinct queries, most recently used first."""
    with get_db_connection() as conn:
        rows = conn.execute(
            """
            SELECT query, MAX(created_at) AS last_used
            FROM search_history
            WHERE user_id = ?
            GROUP BY query
            ORDER BY last_used DESC
            LIMIT ?
            """,
            (user_id, limit),
        ).fetchall()
    return [row["query"] for row in rows]
