"""
API key authentication for the v1 API and the browser extension.

Keys travel as `Authorization: Bearer mw_...`.
"""

from __future__ import annotations

from fastapi import Request

from mindweave.api.middleware.user_auth import (
    AuthenticatedUser,
    _unauthorized,
    extract_bearer_token,
    verify_google_token,
)
from mindweave.api_keys.service import validate_api_key
from mindweave.config import API_KEY_PREFIX
from mindweave.users.repository import UserRepository


def _user_for_key(raw_key: str) -> AuthenticatedUser:
    user_id = validate_api_key(raw_key)
    if user_id is None:
        raise _unauthorized("Invalid or expired API key")
    user = UserRepository.get_by_id(user_id)
    if user is None:
        raise _unauthorized("Invalid or expired API key")
    return AuthenticatedUser(id=user.id, email=user.email, name=user.name, picture=user.image)


async def get_api_key_user(request: Request) -> AuthenticatedUser:
    """FastAPI dependency: the owner of a valid, active, unexpired API key."""
    token = extract_bearer_token(request.headers.get("Authorization"))
    if not token.startswith(API_KEY_PREFIX):
        raise _unauthorized("Invalid or expired API key")
    return _user_for_key(token)


async def get_key_or_session_user(request: Request) -> AuthenticatedUser:
    """API key when the bearer token looks like one, otherwise a Google session."""
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token.startswith(API_KEY_PREFIX):
        return _user_for_key(token)
    return await verify_google_token(token)
