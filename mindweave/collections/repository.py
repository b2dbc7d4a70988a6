"""
Collection Repository - collections and content_collections tables, plus
the collection_members and collection_invitations tables behind sharing.
"""

from __future__ import annotations

import uuid
from typing import Any

from mindweave.collections.models import Collection, CollectionInvitation
from mindweave.content.models import to_iso, utc_now
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from mindweave.observability.logging import get_logger

logger = get_logger(__name__)


class CollectionRepository:
    """CRUD for collections plus membership of content items."""

    @staticmethod
    @retry_on_db_lock()
    def create(
        user_id: str, name: str, description: str | None = None, color: str | None = None
    ) -> Collection:
        collection = Collection(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=name,
            description=description,
            color=color,
        )
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO collections (id, user_id, name, description, color, created_at, updated_at)
                VALUES (:id, :user_id, :name, :description, :color, :created_at, :updated_at)
                """,
                collection.to_db_dict(),
            )
        logger.info("Created collection %s for user %s", collection.id, user_id)
        return collection

    @staticmethod
    def get_owned(collection_id: str, user_id: str) -> Collection | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM collections WHERE id = ? AND user_id = ?",
                (collection_id, user_id),
            ).fetchone()
        return Collection.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_by_user(user_id: str) -> list[Collection]:
        """All collections with their item counts, ordered by name."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT col.*, COUNT(cc.content_id) AS content_count
                FROM collections col
                LEFT JOIN content_collections cc ON cc.collection_id = col.id
                WHERE col.user_id = ?
                GROUP BY col.id
                ORDER BY col.name COLLATE NOCASE ASC
                """,
                (user_id,),
            ).fetchall()
        return [Collection.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def count_by_user(user_id: str) -> int:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM collections WHERE user_id = ?", (user_id,)
            ).fetchone()
        return row[0]

    @staticmethod
    @retry_on_db_lock()
    def update(collection_id: str, changes: dict[str, Any]) -> None:
        columns = {**changes, "updated_at": to_iso(utc_now())}
        assignments = ", ".join(f"{name} = :{name}" for name in columns)
        with db_transaction() as conn:
            conn.execute(
                f"UPDATE collections SET {assignments} WHERE id = :collection_id",
                {**columns, "collection_id": collection_id},
            )

    @staticmethod
    @retry_on_db_lock()
    def delete(collection_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM collections WHERE id = ? AND user_id = ?",
                (collection_id, user_id),
            )
        return cursor.rowcount > 0

    @staticmethod
    def member_ids(collection_id: str, content_ids: list[str]) -> set[str]:
        """Which of content_ids are already in the collection."""
        if not content_ids:
            return set()
        placeholders = ", ".join("?" for _ in content_ids)
        with get_db_connection() as conn:
            rows = conn.execute(
                f"""
                SELECT content_id FROM content_collections
                WHERE collection_id = ? AND content_id IN ({placeholders})
                """,
                (collection_id, *content_ids),
            ).fetchall()
        return {row["content_id"] for row in rows}

    @staticmethod
    @retry_on_db_lock()
    def add_items(collection_id: str, content_ids: list[str]) -> int:
        now = to_iso(utc_now())
        with db_transaction() as conn:
            cursor = conn.executemany(
                """
                INSERT OR IGNORE INTO content_collections (content_id, collection_id, added_at)
                VALUES (?, ?, ?)
                """,
                [(content_id, collection_id, now) for content_id in content_ids],
            )
        return cursor.rowcount

    @staticmethod
    @retry_on_db_lock()
    def remove_item(collection_id: str, content_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM content_collections WHERE collection_id = ? AND content_id = ?",
                (collection_id, content_id),
            )
        return cursor.rowcount > 0

    @staticmethod
    def collections_for_content(content_id: str, user_id: str) -> list[str]:
        """Collection ids holding an item, scoped to the item's owner."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT cc.collection_id
                FROM content_collections cc
                JOIN content c ON c.id = cc.content_id
                WHERE cc.content_id = ? AND c.user_id = ?
                """,
                (content_id, user_id),
            ).fetchall()
        return [row["collection_id"] for row in rows]

    @staticmethod
    def usage(user_id: str) -> list[tuple[str, str, int]]:
        """(id, name, item_count) per collection, most items first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT col.id, col.name, COUNT(cc.content_id) AS item_count
                FROM collections col
                LEFT JOIN content_collections cc ON cc.collection_id = col.id
                WHERE col.user_id = ?
                GROUP BY col.id
                ORDER BY item_count DESC, col.name ASC
                """,
                (user_id,),
            ).fetchall()
        return [(row["id"], row["name"], row["item_count"]) for row in rows]


class CollectionSharingRepository:
    """Members and invitations of shared collections."""

    @staticmethod
    def get_collection(collection_id: str) -> Collection | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM collections WHERE id = ?", (collection_id,)
            ).fetchone()
        return Collection.from_db_row(dict(row)) if row else None

    @staticmethod
    def member_role(collection_id: str, user_id: str) -> str | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT role FROM collection_members WHERE collection_id = ? AND user_id = ?",
                (collection_id, user_id),
            ).fetchone()
        return row["role"] if row else None

    @staticmethod
    def list_members(collection_id: str) -> list[dict[str, Any]]:
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT m.user_id, u.name, u.email, m.role, m.joined_at
                FROM collection_members m
                JOIN users u ON u.id = m.user_id
                WHERE m.collection_id = ?
                ORDER BY m.joined_at ASC
                """,
                (collection_id,),
            ).fetchall()
        return [dict(row) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def remove_member(collection_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM collection_members WHERE collection_id = ? AND user_id = ?",
                (collection_id, user_id),
            )
        return cursor.rowcount > 0

    @staticmethod
    @retry_on_db_lock()
    def update_member_role(collection_id: str, user_id: str, role: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE collection_members SET role = ?
                WHERE collection_id = ? AND user_id = ?
                """,
                (role, collection_id, user_id),
            )
        return cursor.rowcount > 0

    @staticmethod
    @retry_on_db_lock()
    def create_invitation(invitation: CollectionInvitation) -> CollectionInvitation:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO collection_invitations
                    (id, collection_id, email, role, token, status, invited_by,
                     expires_at, created_at)
                VALUES
                    (:id, :collection_id, :email, :role, :token, :status, :invited_by,
                     :expires_at, :created_at)
                """,
                invitation.to_db_dict(),
            )
        logger.info(
            "Created invitation %s for collection %s", invitation.id, invitation.collection_id
        )
        return invitation

    @staticmethod
    def get_invitation(invitation_id: str) -> CollectionInvitation | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM collection_invitations WHERE id = ?", (invitation_id,)
            ).fetchone()
        return CollectionInvitation.from_db_row(dict(row)) if row else None

    @staticmethod
    def get_pending_by_token(token: str) -> CollectionInvitation | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM collection_invitations WHERE token = ? AND status = 'pending'",
                (token,),
            ).fetchone()
        return CollectionInvitation.from_db_row(dict(row)) if row else None

    @staticmethod
    def has_pending_invitation(collection_id: str, email: str) -> bool:
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT 1 FROM collection_invitations
                WHERE collection_id = ? AND email = ? COLLATE NOCASE AND status = 'pending'
                """,
                (collection_id, email),
            ).fetchone()
        return row is not None

    @staticmethod
    def list_pending_invitations(collection_id: str) -> list[CollectionInvitation]:
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM collection_invitations
                WHERE collection_id = ? AND status = 'pending'
                ORDER BY created_at ASC
                """,
                (collection_id,),
            ).fetchall()
        return [CollectionInvitation.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def list_pending_for_email(email: str) -> list[dict[str, Any]]:
        """Pending invitations addressed to email, with collection and inviter names."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT i.id, col.name AS collection_name, u.name AS inviter_name,
                       i.role, i.token, i.created_at
                FROM collection_invitations i
                JOIN collections col ON col.id = i.collection_id
                JOIN users u ON u.id = i.invited_by
                WHERE i.email = ? COLLATE NOCASE AND i.status = 'pending'
                ORDER BY i.created_at DESC
                """,
                (email,),
            ).fetchall()
        return [dict(row) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def set_invitation_status(invitation_id: str, status: str) -> None:
        with db_transaction() as conn:
            conn.execute(
                "UPDATE collection_invitations SET status = ? WHERE id = ?",
                (status, invitation_id),
            )

    @staticmethod
    @retry_on_db_lock()
    def accept_invitation(invitation: CollectionInvitation, user_id: str) -> None:
        """Add the member and mark the invitation accepted in one transaction."""
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO collection_members (collection_id, user_id, role, joined_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(collection_id, user_id) DO UPDATE SET role = excluded.role
                """,
                (invitation.collection_id, user_id, invitation.role, to_iso(utc_now())),
            )
            conn.execute(
                "UPDATE collection_invitations SET status = 'accepted' WHERE id = ?",
                (invitation.id,),
            )
