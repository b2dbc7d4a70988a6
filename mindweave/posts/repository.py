"""
Generated Post Repository - generated_posts table.

Weekly briefings are stored here too, with tone "weekly-briefing".
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from mindweave.content.models import parse_dt, to_iso, utc_now
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock

BRIEFING_TONE = "weekly-briefing"


@dataclass
class GeneratedPost:
    id: str
    user_id: str
    post_content: str
    tone: str
    length: str
    include_hashtags: bool
    source_content_ids: list[str]
    source_content_titles: list[str]
    created_at: datetime

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> GeneratedPost:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            post_content=row["post_content"],
            tone=row["tone"],
            length=row["length"],
            include_hashtags=bool(row["include_hashtags"]),
            source_content_ids=json.loads(row["source_content_ids"] or "[]"),
            source_content_titles=json.loads(row["source_content_titles"] or "[]"),
            created_at=parse_dt(row["created_at"]),
        )

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "postContent": self.post_content,
            "tone": self.tone,
            "length": self.length,
            "includeHashtags": self.include_hashtags,
            "sourceContentTitles": self.source_content_titles,
            "createdAt": to_iso(self.created_at),
        }


class PostRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(
        user_id: str,
        post_content: str,
        tone: str,
        length: str,
        include_hashtags: bool,
        source_content_ids: list[str],
        source_content_titles: list[str],
    ) -> GeneratedPost:
        post = GeneratedPost(
            id=str(uuid.uuid4()),
            user_id=user_id,
            post_content=post_content,
            tone=tone,
            length=length,
            include_hashtags=include_hashtags,
            source_content_ids=source_content_ids,
            source_content_titles=source_content_titles,
            created_at=utc_now(),
        )
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO generated_posts (
                    id, user_id, post_content, tone, length, include_hashtags,
                    source_content_ids, source_content_titles, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    post.id,
                    user_id,
                    post_content,
                    tone,
                    length,
                    int(include_hashtags),
                    json.dumps(source_content_ids),
                    json.dumps(source_content_titles),
                    to_iso(post.created_at),
                ),
            )
        return post

    @staticmethod
    def list_by_user(user_id: str, limit: int) -> list[GeneratedPost]:
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM generated_posts
                WHERE user_id = ?
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        return [GeneratedPost.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def latest_with_tone(user_id: str, tone: str) -> GeneratedPost | None:
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM generated_posts
                WHERE user_id = ? AND tone = ?
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (user_id, tone),
            ).fetchone()
        return GeneratedPost.from_db_row(dict(row)) if row else None

    @staticmethod
    @retry_on_db_lock()
    def delete(post_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM generated_posts WHERE id = ? AND user_id = ?",
                (post_id, user_id),
            )
        return cursor.rowcount > 0
