"""Webhook service - inbound capture from Slack, Discord and generic HTTP clients.

Slack requests are authenticated by their v0 signing-secret HMAC and Discord
interactions by an Ed25519 signature, each tried against every active config
of that type. Generic captures use a personal API key.
Captured items are enriched in the background like any other new content.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets
import time
import uuid
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from fastapi import BackgroundTasks
from pydantic import ValidationError as PydanticValidationError

from mindweave.config import SLACK_SIGNATURE_MAX_AGE_SECONDS
from mindweave.content.models import ContentCreate
from mindweave.content.repository import ContentRepository
from mindweave.content.service import schedule_enrichment
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter, log_event
from mindweave.webhooks.models import (
    WEBHOOK_NAME_MAX,
    CapturePayload,
    WebhookConfig,
    WebhookSettings,
)
from mindweave.webhooks.repository import WebhookRepository

logger = get_logger(__name__)

WEBHOOK_TYPES = ("slack", "discord", "generic")
SLACK_TITLE_MAX = 200
DISCORD_TITLE_MAX = 200
DISCORD_PUBLIC_KEY = re.compile(r"^[0-9a-fA-F]{64}$")

# Discord interaction types and callback types
DISCORD_PING = 1
DISCORD_APPLICATION_COMMAND = 2
DISCORD_PONG = 1
DISCORD_CHANNEL_MESSAGE = 4
NOT_FOUND = {"success": False, "message": "Webhook not found"}


class WebhookAuthError(Exception):
    """No active webhook accepted the request's signature."""


# ---------------------------------------------------------------------------
# Config management
# ---------------------------------------------------------------------------


def _settings_error(error: PydanticValidationError) -> str:
    return error.errors()[0].get("msg", "Invalid webhook config")


def list_webhooks(user_id: str) -> dict[str, Any]:
    configs = WebhookRepository.list_by_user(user_id)
    return {"success": True, "configs": [c.to_api_dict() for c in configs]}


def create_webhook(
    user_id: str,
    name: str | None,
    webhook_type: str,
    secret: str | None = None,
    config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    name = (name or "").strip()
    if not name:
        return {"success": False, "message": "Name is required"}
    if len(name) > WEBHOOK_NAME_MAX:
        return {"success": False, "message": "Name too long"}
    if webhook_type not in WEBHOOK_TYPES:
        return {"success": False, "message": "Invalid webhook type"}
    try:
        settings = WebhookSettings.model_validate(config or {})
    except PydanticValidationError as e:
        return {"success": False, "message": _settings_error(e)}
    if webhook_type == "discord" and not DISCORD_PUBLIC_KEY.match(secret or ""):
        return {
            "success": False,
            "message": "Discord webhooks need the application public key (64 hex characters)",
        }

    webhook = WebhookRepository.create(
        WebhookConfig(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=name,
            type=webhook_type,
            secret=secret or secrets.token_hex(32),
            config=settings,
        )
    )
    return {
        "success": True,
        "message": "Webhook created successfully",
        "config": webhook.to_api_dict(),
    }


def update_webhook(user_id: str, webhook_id: str, changes: dict[str, Any]) -> dict[str, Any]:
    """
    Args:
        changes: Subset of name, secret, is_active, config
    """
    webhook = WebhookRepository.get_owned(webhook_id, user_id)
    if webhook is None:
        return NOT_FOUND

    fields = {key: value for key, value in changes.items() if value is not None}
    if webhook.type == "discord" and "secret" in fields:
        if not DISCORD_PUBLIC_KEY.match(fields["secret"]):
            return {"success": False, "message": "Invalid Discord public key"}
    if "name" in fields:
        fields["name"] = fields["name"].strip()
        if not fields["name"] or len(fields["name"]) > WEBHOOK_NAME_MAX:
            return {"success": False, "message": "Name must be 1-100 characters"}
    if "config" in fields:
        try:
            fields["config"] = WebhookSettings.model_validate(fields["config"]).to_json_dict()
        except PydanticValidationError as e:
            return {"success": False, "message": _settings_error(e)}

    if fields:
        WebhookRepository.update(webhook_id, fields)
    return {"success": True, "message": "Webhook updated successfully"}


def toggle_webhook(user_id: str, webhook_id: str) -> dict[str, Any]:
    webhook = WebhookRepository.get_owned(webhook_id, user_id)
    if webhook is None:
        return NOT_FOUND
    WebhookRepository.update(webhook_id, {"is_active": not webhook.is_active})
    return {
        "success": True,
        "message": "Webhook updated successfully",
        "isActive": not webhook.is_active,
    }


def delete_webhook(user_id: str, webhook_id: str) -> dict[str, Any]:
    if not WebhookRepository.delete(webhook_id, user_id):
        return NOT_FOUND
    return {"success": True, "message": "Webhook deleted successfully"}


# ---------------------------------------------------------------------------
# Slack
# ---------------------------------------------------------------------------


def verify_slack_signature(
    signing_secret: str,
    timestamp: str,
    body: str,
    signature: str,
    now: float | None = None,
) -> bool:
    """
    Check a Slack v0 request signature.

    Requests older than five minutes are rejected to block replays.
    """
    try:
        sent_at = int(timestamp)
    except (TypeError, ValueError):
        return False
    if sent_at < int(now if now is not None else time.time()) - SLACK_SIGNATURE_MAX_AGE_SECONDS:
        return False

    digest = hmac.new(
        signing_secret.encode(), f"v0:{timestamp}:{body}".encode(), hashlib.sha256
    ).hexdigest()
    return hmac.compare_digest(f"v0={digest}", signature or "")


def find_slack_webhook(timestamp: str, raw_body: str, signature: str) -> WebhookConfig | None:
    for webhook in WebhookRepository.list_active("slack"):
        if webhook.secret and verify_slack_signature(
            webhook.secret, timestamp, raw_body, signature
        ):
            return webhook
    return None


def _is_capturable(event: dict[str, Any] | None, settings: WebhookSettings) -> bool:
    if not event or event.get("type") != "message":
        return False
    if event.get("bot_id") or event.get("subtype"):
        return False
    if settings.channel_filter and event.get("channel") not in settings.channel_filter:
        return False
    return True


def handle_slack_event(
    payload: dict[str, Any],
    raw_body: str,
    timestamp: str,
    signature: str,
    background_tasks: BackgroundTasks | None = None,
) -> dict[str, Any]:
    """
    Process one Slack Events API delivery.

    Raises:
        WebhookAuthError: Signature matched no active Slack webhook
    """
    if payload.get("type") == "url_verification":
        return {"challenge": payload.get("challenge")}

    webhook = find_slack_webhook(timestamp, raw_body, signature)
    if webhook is None:
        counter("webhooks.slack.rejected")
        raise WebhookAuthError("Invalid signature or no matching webhook.")

    event = payload.get("event") if payload.get("type") == "event_callback" else None
    if not _is_capturable(event, webhook.config):
        return {"ok": True}

    text = event.get("text") or ""
    item = ContentRepository.create(
        ContentCreate(
            user_id=webhook.user_id,
            type=webhook.config.content_type,
            title=text[:SLACK_TITLE_MAX].strip() or "Slack message",
            body=text or None,
            tags=webhook.config.default_tags,
            metadata={"source": "slack", "channel": event.get("channel")},
        )
    )
    schedule_enrichment(background_tasks, item.id)
    WebhookRepository.record_received(webhook.id)
    log_event("webhooks.slack.captured", webhook_id=webhook.id)

    return {"ok": True}


# ---------------------------------------------------------------------------
# Discord
# ---------------------------------------------------------------------------


def verify_discord_signature(public_key: str, timestamp: str, body: str, signature: str) -> bool:
    """Check an interaction's Ed25519 signature over timestamp + body."""
    try:
        key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key))
        key.verify(bytes.fromhex(signature), f"{timestamp}{body}".encode())
    except (InvalidSignature, ValueError):
        return False
    return True


def find_discord_webhook(timestamp: str, raw_body: str, signature: str) -> WebhookConfig | None:
    for webhook in WebhookRepository.list_active("discord"):
        if webhook.secret and verify_discord_signature(
            webhook.secret, timestamp, raw_body, signature
        ):
            return webhook
    return None


def _interaction_text(payload: dict[str, Any]) -> str:
    data = payload.get("data") or {}
    options = data.get("options") or []
    if options and isinstance(options[0], dict) and options[0].get("value") is not None:
        return str(options[0]["value"])
    return str(data.get("content") or "")


def handle_discord_interaction(
    payload: dict[str, Any],
    raw_body: str,
    timestamp: str,
    signature: str,
    background_tasks: BackgroundTasks | None = None,
) -> dict[str, Any]:
    """
    Process one Discord interaction.

    PINGs are answered with a PONG once the signature matches an active
    Discord webhook. Slash commands and forwarded messages are captured as
    content owned by that webhook's user.

    Raises:
        WebhookAuthError: Signature matched no active Discord webhook
    """
    webhook = find_discord_webhook(timestamp, raw_body, signature)
    if payload.get("type") == DISCORD_PING:
        if webhook is None:
            raise WebhookAuthError("Invalid signature.")
        return {"type": DISCORD_PONG}

    if webhook is None:
        counter("webhooks.discord.rejected")
        raise WebhookAuthError("Invalid signature or no matching webhook.")

    if payload.get("type") == DISCORD_APPLICATION_COMMAND or payload.get("data"):
        text = _interaction_text(payload)
        if text:
            item = ContentRepository.create(
                ContentCreate(
                    user_id=webhook.user_id,
                    type=webhook.config.content_type,
                    title=text[:DISCORD_TITLE_MAX].strip() or "Discord message",
                    body=text,
                    tags=webhook.config.default_tags,
                    metadata={"source": "discord"},
                )
            )
            schedule_enrichment(background_tasks, item.id)
            WebhookRepository.record_received(webhook.id)
            log_event("webhooks.discord.captured", webhook_id=webhook.id)

    return {"type": DISCORD_CHANNEL_MESSAGE, "data": {"content": "Captured!"}}


# ---------------------------------------------------------------------------
# Generic capture
# ---------------------------------------------------------------------------


def capture_content(
    user_id: str,
    payload: CapturePayload,
    background_tasks: BackgroundTasks | None = None,
    source: str | None = None,
) -> str:
    """
    Store a captured item and return its id.

    The type defaults to link when a URL is present, otherwise note.
    """
    content_type = payload.type or ("link" if payload.url else "note")
    item = ContentRepository.create(
        ContentCreate(
            user_id=user_id,
            type=content_type,
            title=payload.title,
            body=payload.body,
            url=payload.url,
            tags=payload.tags,
            metadata={"source": source} if source else {},
        )
    )
    schedule_enrichment(background_tasks, item.id)
    return item.id


def capture_generic(
    user_id: str, payload: CapturePayload, background_tasks: BackgroundTasks | None = None
) -> dict[str, Any]:
    content_id = capture_content(user_id, payload, background_tasks)
    try:
        WebhookRepository.record_generic_received(user_id)
    except Exception as e:
        logger.warning("Failed to update generic webhook stats for %s: %s", user_id, e)
    counter("webhooks.generic.captured")
    return {"success": True, "id": content_id, "message": "Content captured successfully."}
