"""
Webhook Repository - webhook_configs table.
"""

from __future__ import annotations

import json
from typing import Any

from mindweave.content.models import to_iso, utc_now
from mindweave.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from mindweave.observability.logging import get_logger
from mindweave.webhooks.models import WebhookConfig

logger = get_logger(__name__)

UPDATABLE_FIELDS = {"name", "secret", "is_active", "config"}


class WebhookRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(config: WebhookConfig) -> WebhookConfig:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO webhook_configs (
                    id, user_id, name, type, secret, is_active, config,
                    last_received_at, total_received, created_at, updated_at
                ) VALUES (
                    :id, :user_id, :name, :type, :secret, :is_active, :config,
                    :last_received_at, :total_received, :created_at, :updated_at
                )
                """,
                config.to_db_dict(),
            )
        logger.info("Created %s webhook %s for user %s", config.type, config.id, config.user_id)
        return config

    @staticmethod
    def get_owned(webhook_id: str, user_id: str) -> WebhookConfig | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM webhook_configs WHERE id = ? AND user_id = ?",
                (webhook_id, user_id),
            ).fetchone()
        return WebhookConfig.from_db_row(dict(row)) if row else None

    @staticmethod
    def list_by_user(user_id: str) -> list[WebhookConfig]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM webhook_configs WHERE user_id = ? ORDER BY created_at ASC",
                (user_id,),
            ).fetchall()
        return [WebhookConfig.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def list_active(webhook_type: str) -> list[WebhookConfig]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM webhook_configs WHERE type = ? AND is_active = 1",
                (webhook_type,),
            ).fetchall()
        return [WebhookConfig.from_db_row(dict(row)) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def update(webhook_id: str, changes: dict[str, Any]) -> None:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        columns = dict(changes)
        if "config" in columns:
            columns["config"] = json.dumps(columns["config"])
        if "is_active" in columns:
            columns["is_active"] = int(columns["is_active"])
        columns["updated_at"] = to_iso(utc_now())

        assignments = ", ".join(f"{name} = :{name}" for name in columns)
        with db_transaction() as conn:
            conn.execute(
                f"UPDATE webhook_configs SET {assignments} WHERE id = :webhook_id",
                {**columns, "webhook_id": webhook_id},
            )

    @staticmethod
    @retry_on_db_lock()
    def delete(webhook_id: str, user_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM webhook_configs WHERE id = ? AND user_id = ?",
                (webhook_id, user_id),
            )
        return cursor.rowcount > 0

    @staticmethod
    @retry_on_db_lock()
    def record_received(webhook_id: str) -> None:
        with db_transaction() as conn:
            conn.execute(
                """
                UPDATE webhook_configs
                SET last_received_at = ?, total_received = total_received + 1
                WHERE id = ?
                """,
                (to_iso(utc_now()), webhook_id),
            )

    @staticmethod
    @retry_on_db_lock()
    def record_generic_received(user_id: str) -> None:
        with db_transaction() as conn:
            conn.execute(
                """
                UPDATE webhook_configs
                SET last_received_at = ?, total_received = total_received + 1
                WHERE user_id = ? AND type = 'generic'
                """,
                (to_iso(utc_now()), user_id),
            )
