"""Unit tests for personal API keys"""

from __future__ import annotations

from mindweave.api_keys.service import (
    create_api_key,
    generate_api_key,
    hash_api_key,
    list_api_keys,
    revoke_api_key,
    validate_api_key,
)
from mindweave.infrastructure.database import db_transaction


def test_generated_key_shape():
    raw, key_hash, prefix = generate_api_key()
    assert raw.startswith("mw_")
    assert len(raw) == 3 + 43
    assert prefix == raw[:8]
    assert key_hash == hash_api_key(raw)


def test_create_then_validate(user):
    result = create_api_key(user.id, " CLI ")

    assert result["success"] is True
    assert validate_api_key(result["rawKey"]) == user.id

    keys = list_api_keys(user.id)["keys"]
    assert len(keys) == 1
    assert keys[0]["name"] == "CLI"
    assert keys[0]["keyPrefix"] == result["rawKey"][:8]
    assert keys[0]["lastUsedAt"] is not None
    assert "rawKey" not in keys[0]


def test_unknown_and_malformed_keys(user):
    assert validate_api_key(None) is None
    assert validate_api_key("sk_live_nope") is None
    assert validate_api_key("mw_unknown") is None


def test_revoked_key_stops_working(user, other_user):
    result = create_api_key(user.id, "temp")

    assert revoke_api_key(other_user.id, result["keyId"])["success"] is False
    assert revoke_api_key(user.id, result["keyId"]) == {
        "success": True,
        "message": "API key revoked.",
    }
    assert validate_api_key(result["rawKey"]) is None


def test_expired_key_is_rejected(user):
    result = create_api_key(user.id, "short", expires_in_days=1)
    assert validate_api_key(result["rawKey"]) == user.id

    with db_transaction() as conn:
        conn.execute(
            "UPDATE api_keys SET expires_at = '2000-01-01T00:00:00+00:00' WHERE id = ?",
            (result["keyId"],),
        )
    assert validate_api_key(result["rawKey"]) is None


def test_validation_and_active_limit(user, monkeypatch):
    assert create_api_key(user.id, "  ")["success"] is False
    assert create_api_key(user.id, "x" * 101)["success"] is False
    assert create_api_key(user.id, "x", expires_in_days=0)["success"] is False

    monkeypatch.setattr("mindweave.api_keys.service.API_KEY_MAX_ACTIVE", 2)
    create_api_key(user.id, "one")
    second = create_api_key(user.id, "two")
    denied = create_api_key(user.id, "three")
    assert denied["success"] is False
    assert "Maximum 2 active API keys" in denied["message"]

    # revoked keys free a slot
    revoke_api_key(user.id, second["keyId"])
    assert create_api_key(user.id, "three")["success"] is True
