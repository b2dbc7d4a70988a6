"""Rate limiting dependencies for Mindweave routes

`rate_limited(endpoint, preset)` limits per client (IP) before the handler
runs; `enforce_action_limit` limits per signed-in user inside a handler.
Both reject with 429.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import HTTPException, Request, status

from mindweave.infrastructure.rate_limit import (
    RateLimitExceeded,
    check_rate_limit,
    check_server_action_rate_limit,
    get_client_identifier,
)


def rate_limited(endpoint: str, preset: str = "api") -> Callable[[Request], None]:
    """
    Build a dependency that counts the request against a per-client window.

    Usage:
        @router.post("/upload", dependencies=[Depends(rate_limited("upload", "upload"))])
    """

    async def dependency(request: Request) -> None:
        result = check_rate_limit(get_client_identifier(request.headers), endpoint, preset)
        if not result.success:
            raise RateLimitExceeded(result)

    return dependency


def enforce_action_limit(user_id: str, action: str, preset: str = "serverAction") -> None:
    """
    Count one authenticated action for the user.

    Raises:
        HTTPException: 429 with the limiter's message
    """
    result = check_server_action_rate_limit(user_id, action, preset)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=result.message)
