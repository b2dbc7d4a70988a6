"""
User authentication for the Mindweave API.

Verifies Google OAuth access tokens and records the user on first sight.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import httpx
from cachetools import TTLCache
from fastapi import HTTPException, Request, status

from mindweave.infrastructure.settings import is_production
from mindweave.observability.logging import get_logger
from mindweave.users.repository import UserRepository
from mindweave.utils.redaction import redact_email

logger = get_logger(__name__)

GOOGLE_TOKEN_INFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

_CACHE_MAX_SIZE = 1000
# Shorter than Google's one hour token lifetime so revocations are picked up
_CACHE_TTL_SECONDS = 600


@dataclass
class AuthenticatedUser:
    """The caller, identified by Google subject id."""

    id: str
    email: str
    name: str | None = None
    picture: str | None = None

    def __str__(self) -> str:
        return f"User({self.id}, {redact_email(self.email)})"


_token_cache: TTLCache[str, AuthenticatedUser] = TTLCache(
    maxsize=_CACHE_MAX_SIZE, ttl=_CACHE_TTL_SECONDS
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def verify_google_token(token: str) -> AuthenticatedUser:
    """
    Verify a Google OAuth access token and return the user behind it.

    The first successful verification of a token upserts the users row.

    Raises:
        HTTPException: 401 for bad tokens, 503 when Google is unreachable
    """
    if token in _token_cache:
        return _token_cache[token]

    async with httpx.AsyncClient() as client:
        try:
            token_response = await client.get(
                GOOGLE_TOKEN_INFO_URL, params={"access_token": token}, timeout=10.0
            )
        except httpx.RequestError as e:
            logger.error("Token validation request failed: %s", e)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable",
            ) from None

        if token_response.status_code != 200:
            logger.warning("Invalid token (status %s)", token_response.status_code)
            raise _unauthorized("Invalid or expired token")

        token_info = token_response.json()
        expected_client_id = os.getenv("GOOGLE_OAUTH_CLIENT_ID")
        if not expected_client_id and is_production():
            logger.error("GOOGLE_OAUTH_CLIENT_ID not configured in production")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Server misconfiguration: OAuth client ID not set",
            )
        if expected_client_id and token_info.get("aud", "") != expected_client_id:
            logger.warning("Token audience mismatch")
            raise _unauthorized("Token not issued for this application")

        try:
            userinfo_response = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {token}"},
                timeout=10.0,
            )
        except httpx.RequestError as e:
            logger.error("Failed to get user info: %s", e)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Failed to retrieve user information",
            ) from None

        if userinfo_response.status_code != 200:
            raise _unauthorized("Failed to retrieve user information")

        userinfo = userinfo_response.json()

    user = AuthenticatedUser(
        id=userinfo["id"],
        email=userinfo.get("email", ""),
        name=userinfo.get("name"),
        picture=userinfo.get("picture"),
    )
    UserRepository.upsert(user.id, user.email, user.name, user.picture)
    _token_cache[token] = user
    logger.info("Authenticated %s (cache size: %d)", user, len(_token_cache))
    return user


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise _unauthorized("Missing authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _unauthorized("Invalid authorization header format. Expected: Bearer <token>")
    return parts[1]


async def get_current_user(request: Request) -> AuthenticatedUser:
    """
    FastAPI dependency for signed-in endpoints.

    Usage:
        @router.get("/endpoint")
        async def endpoint(user: AuthenticatedUser = Depends(get_current_user)):
            ...
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    return await verify_google_token(token)


async def get_optional_user(request: Request) -> AuthenticatedUser | None:
    """Like get_current_user, but None instead of 401 for anonymous callers."""
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    try:
        return await verify_google_token(extract_bearer_token(authorization))
    except HTTPException:
        return None


def clear_token_cache() -> None:
    _token_cache.clear()
