"""
User Repository - users are created on first authenticated request.
"""

from __future__ import annotations

from dataclasses import dataclass

from mindweave.content.models import to_iso, utc_now
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from mindweave.observability.logging import get_logger
from mindweave.utils.redaction import redact_email

logger = get_logger(__name__)


@dataclass
class User:
    id: str
    email: str
    name: str | None = None
    image: str | None = None


class UserRepository:
    @staticmethod
    @retry_on_db_lock()
    def upsert(user_id: str, email: str, name: str | None = None, image: str | None = None) -> User:
        """
        Insert the user or refresh their profile fields.

        Args:
            user_id: Google subject id
        """
        now = to_iso(utc_now())
        with db_transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO users (id, email, name, image, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    email = excluded.email,
                    name = COALESCE(excluded.name, users.name),
                    image = COALESCE(excluded.image, users.image),
                    updated_at = excluded.updated_at
                """,
                (user_id, email, name, image, now, now),
            )
        if cursor.rowcount:
            logger.debug("Upserted user %s (%s)", user_id, redact_email(email))
        return User(id=user_id, email=email, name=name, image=image)

    @staticmethod
    def get_by_id(user_id: str) -> User | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT id, email, name, image FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        return User(**dict(row)) if row else None

    @staticmethod
    def get_by_email(email: str) -> User | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT id, email, name, image FROM users WHERE email = ? COLLATE NOCASE",
                (email,),
            ).fetchone()
        return User(**dict(row)) if row else None

    @staticmethod
    def list_all() -> list[User]:
        with get_db_connection() as conn:
            rows = conn.execute("SELECT id, email, name, image FROM users").fetchall()
        return [User(**dict(row)) for row in rows]
