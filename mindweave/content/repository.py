"""
Content Repository - CRUD operations for the content table.

Follows the database patterns in mindweave/infrastructure/database.py.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from typing import Any

from mindweave.content.models import ContentCreate, ContentItem, to_iso, utc_now
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from mindweave.observability.logging import get_logger

logger = get_logger(__name__)

SORT_COLUMNS = {"created_at": "created_at", "title": "title COLLATE NOCASE"}

# Columns update_content may touch
UPDATABLE_FIELDS = {"title", "body", "url", "tags", "metadata"}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _rows_to_items(rows: list[Any]) -> list[ContentItem]:
    return [ContentItem.from_db_row(dict(row)) for row in rows]


class ContentRepository:
    """
    Repository for content CRUD operations.

    Reads take the owner explicitly where the caller is user-facing, so an
    item belonging to someone else reads the same as a missing one.
    """

    @staticmethod
    @retry_on_db_lock()
    def create(data: ContentCreate) -> ContentItem:
        """
        Insert a content item.

        Side Effects:
            - Inserts row into content table
            - Commits transaction
        """
        now = utc_now()
        item = ContentItem(
            id=str(uuid.uuid4()),
            user_id=data.user_id,
            type=data.type,
            title=data.title,
            body=data.body,
            url=data.url,
            tags=data.tags,
            auto_tags=data.auto_tags,
            metadata=data.metadata,
            created_at=data.created_at or now,
            updated_at=now,
        )

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO content (
                    id, user_id, type, title, body, url, tags, auto_tags, summary,
                    metadata, is_favorite, is_shared, share_id, created_at, updated_at
                ) VALUES (
                    :id, :user_id, :type, :title, :body, :url, :tags, :auto_tags, :summary,
                    :metadata, :is_favorite, :is_shared, :share_id, :created_at, :updated_at
                )
                """,
                item.to_db_dict(),
            )

        logger.info("Created %s content %s for user %s", item.type, item.id, item.user_id)
        return item

    @staticmethod
    @retry_on_db_lock()
    def create_many(batch: list[ContentCreate]) -> list[ContentItem]:
        """Insert a batch in one transaction; all or nothing."""
        now = utc_now()
        items = [
            ContentItem(
                id=str(uuid.uuid4()),
                updated_at=now,
                **{**data.model_dump(), "created_at": data.created_at or now},
            )
            for data in batch
        ]
        with db_transaction() as conn:
            conn.executemany(
                """
                INSERT INTO content (
                    id, user_id, type, title, body, url, tags, auto_tags, summary,
                    metadata, is_favorite, is_shared, share_id, created_at, updated_at
                ) VALUES (
                    :id, :user_id, :type, :title, :body, :url, :tags, :auto_tags, :summary,
                    :metadata, :is_favorite, :is_shared, :share_id, :created_at, :updated_at
                )
                """,
                [item.to_db_dict() for item in items],
            )
        return items

    @staticmethod
    def get_by_id(content_id: str) -> ContentItem | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM content WHERE id = ?", (content_id,)).fetchone()
        return ContentItem.from_db_row(dict(row)) if row else None

    @staticmethod
    def get_owned(content_id: str, user_id: str) -> ContentItem | None:
        """Get an item only if it belongs to user_id."""
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM content WHERE id = ? AND user_id = ?",
                (content_id, user_id),
            ).fetchone()
        return ContentItem.from_db_row(dict(row)) if row else None

    @staticmethod
    def get_many_owned(user_id: str, content_ids: list[str]) -> list[ContentItem]:
        """Items among content_ids owned by user_id, newest first."""
        if not content_ids:
            return []
        placeholders = ", ".join("?" for _ in content_ids)
        with get_db_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM content
                WHERE user_id = ? AND id IN ({placeholders})
                ORDER BY created_at DESC
                """,
                (user_id, *content_ids),
            ).fetchall()
        return _rows_to_items(rows)

    @staticmethod
    def get_by_share_id(share_id: str) -> ContentItem | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM content WHERE share_id = ? AND is_shared = 1",
                (share_id,),
            ).fetchone()
        return ContentItem.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_by_user(
        user_id: str,
        content_type: str | None = None,
        tag: str | None = None,
        query: str | None = None,
        favorites_only: bool = False,
        sort: str = "created_at",
        order: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> list[ContentItem]:
        """
        List a user's content with optional filters.

        Args:
            tag: Matches user tags or auto tags exactly
            query: Case-insensitive substring of title or body
            sort: "created_at" or "title"
            order: "asc" or "desc"
        """
        where, params = ContentRepository._filters(
            user_id, content_type, tag, query, favorites_only
        )
        sort_sql = SORT_COLUMNS.get(sort, "created_at")
        order_sql = "ASC" if order == "asc" else "DESC"

        with get_db_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM content
                WHERE {where}
                ORDER BY {sort_sql} {order_sql}
                LIMIT ? OFFSET ?
                """,
                (*params, limit, offset),
            ).fetchall()
        return _rows_to_items(rows)

    @staticmethod
    def count_by_user(
        user_id: str,
        content_type: str | None = None,
        tag: str | None = None,
        query: str | None = None,
        favorites_only: bool = False,
    ) -> int:
        where, params = ContentRepository._filters(
            user_id, content_type, tag, query, favorites_only
        )
        with get_db_connection() as conn:
            row = conn.execute(f"SELECT COUNT(*) FROM content WHERE {where}", params).fetchone()
        return row[0]

    @staticmethod
    def _filters(
        user_id: str,
        content_type: str | None,
        tag: str | None,
        query: str | None,
        favorites_only: bool,
    ) -> tuple[str, tuple[Any, ...]]:
        clauses = ["user_id = ?"]
        params: list[Any] = [user_id]
        if content_type:
            clauses.append("type = ?")
            params.append(content_type)
        if tag:
            clauses.append(
                "(EXISTS (SELECT 1 FROM json_each(content.tags) WHERE value = ?)"
                " OR EXISTS (SELECT 1 FROM json_each(content.auto_tags) WHERE value = ?))"
            )
            params.extend([tag, tag])
        if query:
            pattern = f"%{_escape_like(query)}%"
            clauses.append(
                "(title LIKE ? ESCAPE '\\'"
                " OR COALESCE(body, '') LIKE ? ESCAPE '\\')"
            )
            params.extend([pattern, pattern])
        if favorites_only:
            clauses.append("is_favorite = 1")
        return " AND ".join(clauses), tuple(params)

    @staticmethod
    def list_page(
        user_id: str,
        limit: int,
        cursor: str | None = None,
        content_type: str | None = None,
    ) -> list[ContentItem]:
        """
        Newest-first page for cursor pagination.

        Args:
            cursor: created_at ISO timestamp; only strictly older items are returned
        """
        clauses = ["user_id = ?"]
        params: list[Any] = [user_id]
        if cursor:
            clauses.append("created_at < ?")
            params.append(cursor)
        if content_type:
            clauses.append("type = ?")
            params.append(content_type)

        with get_db_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM content
                WHERE {" AND ".join(clauses)}
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (*params, limit),
            ).fetchall()
        return _rows_to_items(rows)

    @staticmethod
    def list_since(
        user_id: str, since: datetime, limit: int | None = None
    ) -> list[ContentItem]:
        """Items created at or after since, newest first."""
        sql = "SELECT * FROM content WHERE user_id = ? AND created_at >= ? ORDER BY created_at DESC"
        params: tuple[Any, ...] = (user_id, to_iso(since))
        if limit is not None:
            sql += " LIMIT ?"
            params = (*params, limit)
        with get_db_connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return _rows_to_items(rows)

    @staticmethod
    def list_recent(user_id: str, limit: int) -> list[ContentItem]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM content WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
                (user_id, limit),
            ).fetchall()
        return _rows_to_items(rows)

    @staticmethod
    def search_keyword(
        user_id: str,
        query: str,
        content_type: str | None = None,
        tags: list[str] | None = None,
        limit: int = 20,
    ) -> list[ContentItem]:
        """Case-insensitive title/body match; tags must all be present."""
        clauses = [
            "user_id = ?",
            "(title LIKE ? ESCAPE '\\'"
            " OR COALESCE(body, '') LIKE ? ESCAPE '\\')",
        ]
        pattern = f"%{_escape_like(query)}%"
        params: list[Any] = [user_id, pattern, pattern]
        if content_type:
            clauses.append("type = ?")
            params.append(content_type)
        for tag in tags or []:
            clauses.append(
                "(EXISTS (SELECT 1 FROM json_each(content.tags) WHERE value = ?)"
                " OR EXISTS (SELECT 1 FROM json_each(content.auto_tags) WHERE value = ?))"
            )
            params.extend([tag, tag])

        with get_db_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM content
                WHERE {" AND ".join(clauses)}
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (*params, limit),
            ).fetchall()
        return _rows_to_items(rows)

    @staticmethod
    def tag_counts(user_id: str, limit: int | None = None) -> list[tuple[str, int]]:
        """
        Tag usage across tags and auto_tags, most used first.

        Returns:
            [(tag, count), ...]
        """
        sql = """
            SELECT tag, COUNT(*) AS cnt FROM (
                SELECT j.value AS tag FROM content c, json_each(c.tags) j WHERE c.user_id = ?
                UNION ALL
                SELECT j.value AS tag FROM content c, json_each(c.auto_tags) j WHERE c.user_id = ?
            )
            GROUP BY tag
            ORDER BY cnt DESC, tag ASC
        """
        params: tuple[Any, ...] = (user_id, user_id)
        if limit is not None:
            sql += " LIMIT ?"
            params = (*params, limit)
        with get_db_connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [(row["tag"], row["cnt"]) for row in rows]

    @staticmethod
    def type_counts(user_id: str) -> dict[str, int]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT type, COUNT(*) AS cnt FROM content WHERE user_id = ? GROUP BY type",
                (user_id,),
            ).fetchall()
        return {row["type"]: row["cnt"] for row in rows}

    @staticmethod
    def created_timestamps(user_id: str, since: datetime | None = None) -> list[datetime]:
        """created_at of every item (optionally since a cutoff), oldest first."""
        sql = "SELECT created_at FROM content WHERE user_id = ?"
        params: tuple[Any, ...] = (user_id,)
        if since is not None:
            sql += " AND created_at >= ?"
            params = (*params, to_iso(since))
        sql += " ORDER BY created_at ASC"
        with get_db_connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [datetime.fromisoformat(row["created_at"]) for row in rows]

    @staticmethod
    def dedup_candidates(user_id: str) -> list[tuple[str, str | None, str]]:
        """(type, url, title) for every item a user has, for import dedup."""
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT type, url, title FROM content WHERE user_id = ?",
                (user_id,),
            ).fetchall()
        return [(row["type"], row["url"], row["title"]) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def update(content_id: str, changes: dict[str, Any]) -> ContentItem | None:
        """
        Apply field changes. Empty strings clear body/url.

        Raises:
            ValueError: If changes contain a field that cannot be updated
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        columns: dict[str, Any] = {}
        for field, value in changes.items():
            if field in ("tags", "metadata"):
                columns[field] = json.dumps(value)
            elif field in ("body", "url") and value == "":
                columns[field] = None
            else:
                columns[field] = value
        columns["updated_at"] = to_iso(utc_now())

        assignments = ", ".join(f"{name} = :{name}" for name in columns)
        with db_transaction() as conn:
            cursor = conn.execute(
                f"UPDATE content SET {assignments} WHERE id = :content_id",
                {**columns, "content_id": content_id},
            )
            if cursor.rowcount == 0:
                return None

        return ContentRepository.get_by_id(content_id)

    @staticmethod
    @retry_on_db_lock()
    def _set_columns(content_id: str, **columns: Any) -> bool:
        columns["updated_at"] = to_iso(utc_now())
        assignments = ", ".join(f"{name} = :{name}" for name in columns)
        with db_transaction() as conn:
            cursor = conn.execute(
                f"UPDATE content SET {assignments} WHERE id = :content_id",
                {**columns, "content_id": content_id},
            )
        return cursor.rowcount > 0

    @staticmethod
    def set_auto_tags(content_id: str, auto_tags: list[str]) -> bool:
        return ContentRepository._set_columns(content_id, auto_tags=json.dumps(auto_tags))

    @staticmethod
    def set_tags(content_id: str, tags: list[str]) -> bool:
        return ContentRepository._set_columns(content_id, tags=json.dumps(tags))

    @staticmethod
    def set_summary(content_id: str, summary: str) -> bool:
        return ContentRepository._set_columns(content_id, summary=summary)

    @staticmethod
    def set_favorite(content_id: str, is_favorite: bool) -> bool:
        return ContentRepository._set_columns(content_id, is_favorite=int(is_favorite))

    @staticmethod
    def set_share(content_id: str, share_id: str | None) -> bool:
        """Share with share_id, or unshare when share_id is None."""
        return ContentRepository._set_columns(
            content_id, share_id=share_id, is_shared=int(share_id is not None)
        )

    @staticmethod
    @retry_on_db_lock()
    def delete(content_id: str, user_id: str) -> bool:
        """Delete an owned item. Embeddings and memberships cascade."""
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM content WHERE id = ? AND user_id = ?",
                (content_id, user_id),
            )
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted content %s", content_id)
        return deleted

    @staticmethod
    @retry_on_db_lock()
    def delete_many(user_id: str, content_ids: list[str]) -> int:
        if not content_ids:
            return 0
        placeholders = ", ".join("?" for _ in content_ids)
        with db_transaction() as conn:
            cursor = conn.execute(
                f"DELETE FROM content WHERE user_id = ? AND id IN ({placeholders})",
                (user_id, *content_ids),
            )
        logger.info("Bulk deleted %d content items for user %s", cursor.rowcount, user_id)
        return cursor.rowcount

    @staticmethod
    def search_titles(user_id: str, query: str, limit: int = 3) -> list[str]:
        """Titles containing query (case-insensitive)."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT title FROM content
                WHERE user_id = ? AND title LIKE ? ESCAPE '\\'
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (user_id, f"%{_escape_like(query)}%", limit),
            ).fetchall()
        return [row["title"] for row in rows]

    @staticmethod
    def list_all(user_id: str) -> list[ContentItem]:
        """Every item a user owns, newest first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM content WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
        return _rows_to_items(rows)
