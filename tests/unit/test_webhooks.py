"""Unit tests for webhook configs and inbound capture

Tests cover:
- Slack v0 signature verification and replay window
- Slack event handling (url_verification, filters, capture)
- Discord Ed25519 signatures, PING and slash-command capture
- Generic capture type defaults
- Config create/update/toggle/delete with ownership
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from mindweave.content.repository import ContentRepository
from mindweave.webhooks.models import CapturePayload
from mindweave.webhooks.repository import WebhookRepository
from mindweave.webhooks.service import (
    WebhookAuthError,
    capture_content,
    capture_generic,
    create_webhook,
    delete_webhook,
    handle_discord_interaction,
    handle_slack_event,
    list_webhooks,
    toggle_webhook,
    update_webhook,
    verify_discord_signature,
    verify_slack_signature,
)

SECRET = "slack-signing-secret"


def sign(body: str, timestamp: str, secret: str = SECRET) -> str:
    digest = hmac.new(secret.encode(), f"v0:{timestamp}:{body}".encode(), hashlib.sha256)
    return "v0=" + digest.hexdigest()


def slack_message(**event) -> dict:
    return {"type": "event_callback", "event": {"type": "message", "channel": "C1", **event}}


@pytest.fixture
def slack_webhook(user):
    result = create_webhook(
        user.id, "Slack", "slack", secret=SECRET, config={"defaultTags": ["slack", " inbox "]}
    )
    return result["config"]


def deliver(payload: dict, secret: str = SECRET):
    body = json.dumps(payload)
    timestamp = str(int(time.time()))
    return handle_slack_event(payload, body, timestamp, sign(body, timestamp, secret))


class TestSlackSignature:
    def test_valid_signature(self):
        signature = sign("{}", "1700000000")
        assert verify_slack_signature(SECRET, "1700000000", "{}", signature, now=1700000010)

    def test_stale_timestamp_rejected(self):
        signature = sign("{}", "1700000000")
        assert not verify_slack_signature(SECRET, "1700000000", "{}", signature, now=1700000301)

    def test_tampered_body_and_bad_timestamp(self):
        signature = sign("{}", "1700000000")
        assert not verify_slack_signature(SECRET, "1700000000", '{"a":1}', signature, now=1700000000)
        assert not verify_slack_signature(SECRET, "soon", "{}", signature, now=1700000000)


class TestSlackEvents:
    def test_url_verification_echoes_challenge(self):
        assert handle_slack_event({"type": "url_verification", "challenge": "abc"}, "", "", "") == {
            "challenge": "abc"
        }

    def test_message_is_captured(self, user, slack_webhook):
        text = "Read this later " + "x" * 300

        assert deliver(slack_message(text=text)) == {"ok": True}

        items = ContentRepository.list_all(user.id)
        assert len(items) == 1
        assert items[0].title == text[:200].strip()
        assert items[0].body == text
        assert items[0].tags == ["slack", "inbox"]
        assert items[0].metadata == {"source": "slack", "channel": "C1"}
        stored = WebhookRepository.get_owned(slack_webhook["id"], user.id)
        assert stored.total_received == 1
        assert stored.last_received_at is not None

    @pytest.mark.parametrize(
        "payload",
        [
            slack_message(text="from a bot", bot_id="B1"),
            slack_message(text="edited", subtype="message_changed"),
            {"type": "event_callback", "event": {"type": "reaction_added"}},
        ],
    )
    def test_ignored_events(self, user, slack_webhook, payload):
        assert deliver(payload) == {"ok": True}
        assert ContentRepository.list_all(user.id) == []

    def test_channel_filter(self, user, slack_webhook):
        update_webhook(user.id, slack_webhook["id"], {"config": {"channelFilter": ["C9"]}})

        deliver(slack_message(text="wrong channel"))
        deliver(slack_message(text="right channel", channel="C9"))

        assert [i.title for i in ContentRepository.list_all(user.id)] == ["right channel"]

    def test_bad_signature_raises(self, slack_webhook):
        with pytest.raises(WebhookAuthError):
            deliver(slack_message(text="hi"), secret="other-secret")

    def test_inactive_webhook_does_not_match(self, user, slack_webhook):
        toggle_webhook(user.id, slack_webhook["id"])
        with pytest.raises(WebhookAuthError):
            deliver(slack_message(text="hi"))


class TestDiscord:
    @pytest.fixture
    def signing_key(self):
        return Ed25519PrivateKey.generate()

    @pytest.fixture
    def discord_webhook(self, user, signing_key):
        public_key = signing_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex()
        result = create_webhook(
            user.id, "Discord", "discord", secret=public_key, config={"defaultTags": ["discord"]}
        )
        return result["config"]

    def deliver(self, payload: dict, key: Ed25519PrivateKey) -> dict:
        body = json.dumps(payload)
        timestamp = str(int(time.time()))
        signature = key.sign(f"{timestamp}{body}".encode()).hex()
        return handle_discord_interaction(payload, body, timestamp, signature)

    def test_signature_verification(self, signing_key):
        public_key = signing_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex()
        signature = signing_key.sign(b"1700000000{}").hex()

        assert verify_discord_signature(public_key, "1700000000", "{}", signature)
        assert not verify_discord_signature(public_key, "1700000001", "{}", signature)
        assert not verify_discord_signature(public_key, "1700000000", "{}", "zz")
        assert not verify_discord_signature("not-hex", "1700000000", "{}", signature)

    def test_ping_is_answered_with_pong(self, discord_webhook, signing_key):
        assert self.deliver({"type": 1}, signing_key) == {"type": 1}

    def test_ping_with_unknown_key_is_rejected(self, discord_webhook):
        with pytest.raises(WebhookAuthError, match="Invalid signature."):
            self.deliver({"type": 1}, Ed25519PrivateKey.generate())

    def test_slash_command_is_captured(self, user, discord_webhook, signing_key):
        payload = {"type": 2, "data": {"name": "save", "options": [{"value": "Read the RFC"}]}}

        response = self.deliver(payload, signing_key)

        assert response == {"type": 4, "data": {"content": "Captured!"}}
        items = ContentRepository.list_all(user.id)
        assert [(i.title, i.body, i.tags) for i in items] == [
            ("Read the RFC", "Read the RFC", ["discord"])
        ]
        assert items[0].metadata == {"source": "discord"}
        assert WebhookRepository.get_owned(discord_webhook["id"], user.id).total_received == 1

    def test_forwarded_message_content_and_empty_data(self, user, discord_webhook, signing_key):
        self.deliver({"type": 3, "data": {"content": "Forwarded note"}}, signing_key)
        self.deliver({"type": 2, "data": {"options": []}}, signing_key)

        assert [i.title for i in ContentRepository.list_all(user.id)] == ["Forwarded note"]

    def test_command_with_unknown_key_is_rejected(self, user, discord_webhook):
        payload = {"type": 2, "data": {"options": [{"value": "x"}]}}
        with pytest.raises(WebhookAuthError, match="no matching webhook"):
            self.deliver(payload, Ed25519PrivateKey.generate())
        assert ContentRepository.list_all(user.id) == []

    def test_public_key_is_validated_on_update(self, user, discord_webhook):
        result = update_webhook(user.id, discord_webhook["id"], {"secret": "short"})
        assert result == {"success": False, "message": "Invalid Discord public key"}


class TestCapture:
    def test_type_defaults_from_url(self, user):
        link_id = capture_content(user.id, CapturePayload(title="L", url="https://example.com"))
        note_id = capture_content(user.id, CapturePayload(title="N", body="text"), source="extension")

        assert ContentRepository.get_by_id(link_id).type == "link"
        note = ContentRepository.get_by_id(note_id)
        assert note.type == "note"
        assert note.metadata == {"source": "extension"}

    def test_generic_capture_counts_on_generic_config(self, user):
        config = create_webhook(user.id, "HTTP", "generic")["config"]

        result = capture_generic(user.id, CapturePayload(title="Captured"))
        assert result["success"] is True
        assert WebhookRepository.get_owned(config["id"], user.id).total_received == 1

    def test_payload_validation(self):
        with pytest.raises(ValueError):
            CapturePayload(title="   ")
        with pytest.raises(ValueError):
            CapturePayload(title="x", url="javascript:alert(1)")


class TestConfigManagement:
    def test_create_generates_secret(self, user):
        result = create_webhook(user.id, " Zapier ", "generic")
        assert result["success"] is True
        assert result["config"]["name"] == "Zapier"
        assert len(result["config"]["secret"]) == 64

    @pytest.mark.parametrize(
        ("name", "webhook_type", "message"),
        [
            ("", "slack", "Name is required"),
            ("x" * 101, "slack", "Name too long"),
            ("ok", "teams", "Invalid webhook type"),
            (
                "ok",
                "discord",
                "Discord webhooks need the application public key (64 hex characters)",
            ),
        ],
    )
    def test_create_validation(self, user, name, webhook_type, message):
        assert create_webhook(user.id, name, webhook_type)["message"] == message

    def test_invalid_config_rejected(self, user):
        result = create_webhook(user.id, "s", "slack", config={"contentType": "file"})
        assert result["success"] is False

    def test_owner_only_operations(self, user, other_user, slack_webhook):
        webhook_id = slack_webhook["id"]

        assert update_webhook(other_user.id, webhook_id, {"name": "x"})["success"] is False
        assert toggle_webhook(other_user.id, webhook_id)["success"] is False
        assert delete_webhook(other_user.id, webhook_id)["success"] is False

        assert toggle_webhook(user.id, webhook_id)["isActive"] is False
        assert update_webhook(user.id, webhook_id, {"name": " Renamed "})["success"] is True
        assert list_webhooks(user.id)["configs"][0]["name"] == "Renamed"
        assert delete_webhook(user.id, webhook_id)["success"] is True
        assert list_webhooks(user.id)["configs"] == []
