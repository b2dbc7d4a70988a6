"""
Public Graph Repository - public_graphs table.
"""

from __future__ import annotations

import json
import uuid
from typing import Any

from mindweave.content.models import parse_dt, to_iso, utc_now
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock


def _row_to_dict(row: dict[str, Any], with_data: bool = True) -> dict[str, Any]:
    graph = {
        "graphId": row["graph_id"],
        "title": row["title"],
        "description": row.get("description"),
        "createdAt": to_iso(parse_dt(row["created_at"])),
    }
    if with_data:
        graph["graphData"] = json.loads(row["graph_data"])
        graph["settings"] = json.loads(row["settings"]) if row.get("settings") else None
    return graph


class PublicGraphRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(
        user_id: str,
        graph_id: str,
        title: str,
        description: str | None,
        graph_data: dict[str, Any],
        settings: dict[str, Any] | None,
    ) -> None:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO public_graphs (
                    id, user_id, graph_id, title, description, graph_data, settings, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(uuid.uuid4()),
                    user_id,
                    graph_id,
                    title,
                    description,
                    json.dumps(graph_data),
                    json.dumps(settings or {}),
                    to_iso(utc_now()),
                ),
            )

    @staticmethod
    def get_by_graph_id(graph_id: str) -> dict[str, Any] | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM public_graphs WHERE graph_id = ?", (graph_id,)
            ).fetchone()
        return _row_to_dict(dict(row)) if row else None

    @staticmethod
    def list_by_user(user_id: str) -> list[dict[str, Any]]:
        """Graph summaries without the node/edge payload, newest first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT graph_id, title, description, created_at FROM public_graphs
                WHERE user_id = ?
                ORDER BY created_at DESC
                """,
                (user_id,),
            ).fetchall()
        return [_row_to_dict(dict(row), with_data=False) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def delete(graph_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM public_graphs WHERE graph_id = ? AND user_id = ?",
                (graph_id, user_id),
            )
        return cursor.rowcount > 0
