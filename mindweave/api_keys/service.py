"""API key service - issue, list, revoke and validate personal API keys.

Keys look like "mw_<43 urlsafe chars>". The raw key is shown once at
creation; afterwards only its first 8 characters are available.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta
from typing import Any

from mindweave.api_keys.repository import ApiKeyRepository
from mindweave.config import API_KEY_MAX_ACTIVE, API_KEY_PREFIX
from mindweave.content.models import utc_now
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter

logger = get_logger(__name__)

KEY_PREFIX_LENGTH = 8
API_KEY_NAME_MAX = 100


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode()).hexdigest()


def generate_api_key() -> tuple[str, str, str]:
    """
    Returns:
        (raw key, sha256 hex digest, display prefix)
    """
    raw = API_KEY_PREFIX + secrets.token_urlsafe(32)
    return raw, hash_api_key(raw), raw[:KEY_PREFIX_LENGTH]


def list_api_keys(user_id: str) -> dict[str, Any]:
    return {
        "success": True,
        "keys": [key.to_api_dict() for key in ApiKeyRepository.list_by_user(user_id)],
    }


def create_api_key(user_id: str, name: str | None, expires_in_days: int | None = None) -> dict[str, Any]:
    name = (name or "").strip()
    if not name or len(name) > API_KEY_NAME_MAX:
        return {"success": False, "message": "Name is required and must be under 100 characters."}
    if expires_in_days is not None and expires_in_days <= 0:
        return {"success": False, "message": "Expiry must be a positive number of days."}

    if ApiKeyRepository.count_active(user_id) >= API_KEY_MAX_ACTIVE:
        return {
            "success": False,
            "message": f"Maximum {API_KEY_MAX_ACTIVE} active API keys allowed. "
            "Revoke an existing key first.",
        }

    raw, key_hash, prefix = generate_api_key()
    expires_at = utc_now() + timedelta(days=expires_in_days) if expires_in_days else None
    key_id = ApiKeyRepository.create(user_id, name, prefix, key_hash, expires_at)
    counter("api_keys.created")

    return {
        "success": True,
        "message": "API key created. Copy it now, it won't be shown again.",
        "rawKey": raw,
        "keyId": key_id,
    }


def revoke_api_key(user_id: str, key_id: str) -> dict[str, Any]:
    if not ApiKeyRepository.deactivate(key_id, user_id):
        return {"success": False, "message": "API key not found."}
    logger.info("Revoked API key %s", key_id)
    return {"success": True, "message": "API key revoked."}


def validate_api_key(raw_key: str | None) -> str | None:
    """
    Resolve a raw key to its owner.

    Returns:
        The user id, or None for unknown, revoked or expired keys
    """
    if not raw_key or not raw_key.startswith(API_KEY_PREFIX):
        return None

    key = ApiKeyRepository.get_by_hash(hash_api_key(raw_key))
    if key is None or not key.is_active or key.is_expired():
        counter("api_keys.rejected")
        return None

    ApiKeyRepository.touch(key.id)
    return key.user_id
