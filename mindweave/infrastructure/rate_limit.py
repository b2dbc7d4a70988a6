"""Fixed-window rate limiting for Mindweave

One in-memory store serves three kinds of keys:
- "{endpoint}:{client_id}"          per-client limits on HTTP routes
- "action:{action}:{user_id}"      per-user limits on authenticated actions
- "unauth:{action}:{identifier}"   limits on unauthenticated actions

The store is process-local. Multi-instance deployments get one window per
instance.
"""

from __future__ import annotations

import ipaddress
import math
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from threading import Lock

from cachetools import TTLCache

from mindweave.config import RATE_LIMIT_MAX_KEYS, RATE_LIMITS
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter, log_event

logger = get_logger(__name__)

# Longest preset window; entries carry their own reset time
_STORE_TTL_SECONDS = max(window for _, window in RATE_LIMITS.values())


@dataclass
class _Window:
    count: int
    reset_time: float


@dataclass
class RateLimitResult:
    """Outcome of a per-client check."""

    success: bool
    remaining: int
    reset_time: float
    retry_after: int | None = None


@dataclass
class ActionRateLimitResult:
    """Outcome of a per-user or unauthenticated action check."""

    success: bool
    message: str | None = None


class RateLimitExceeded(Exception):
    """Raised by route dependencies; rendered as a 429 by the app handler."""

    def __init__(self, result: RateLimitResult):
        super().__init__(f"Rate limit exceeded. Please try again in {result.retry_after} seconds.")
        self.result = result


_store: TTLCache[str, _Window] = TTLCache(maxsize=RATE_LIMIT_MAX_KEYS, ttl=_STORE_TTL_SECONDS)
_lock = Lock()


def _now() -> float:
    return time.time()


def _resolve_preset(preset: str | tuple[int, int]) -> tuple[int, int]:
    if isinstance(preset, tuple):
        return preset
    if preset not in RATE_LIMITS:
        raise ValueError(f"Unknown rate limit preset: {preset}")
    return RATE_LIMITS[preset]


def _hit(key: str, max_requests: int, window_seconds: int) -> tuple[bool, int, float, int | None]:
    """Count one request against key. Returns (allowed, remaining, reset_time, retry_after)."""
    now = _now()
    with _lock:
        entry = _store.get(key)
        if entry is None or now > entry.reset_time:
            entry = _Window(count=1, reset_time=now + window_seconds)
            _store[key] = entry
            return True, max_requests - 1, entry.reset_time, None

        entry.count += 1
        if entry.count > max_requests:
            retry_after = max(1, math.ceil(entry.reset_time - now))
            return False, 0, entry.reset_time, retry_after

        return True, max_requests - entry.count, entry.reset_time, None


def _is_valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def get_client_identifier(headers: dict[str, str] | object) -> str:
    """
    Identify the caller for per-client limits.

    Uses the LAST X-Forwarded-For entry (appended by the trusted load
    balancer; earlier entries are client-controlled), then X-Real-IP, then
    "localhost" for direct local connections.
    """
    get = headers.get  # type: ignore[attr-defined]
    forwarded = get("x-forwarded-for")
    if forwarded:
        ips = [ip.strip() for ip in forwarded.split(",") if ip.strip()]
        if ips and _is_valid_ip(ips[-1]):
            return ips[-1]

    real_ip = get("x-real-ip")
    if real_ip and _is_valid_ip(real_ip.strip()):
        return real_ip.strip()

    return "localhost"


def check_rate_limit(
    client_id: str, endpoint: str, preset: str | tuple[int, int] = "api"
) -> RateLimitResult:
    """Check and count a request from client_id against an endpoint window."""
    max_requests, window = _resolve_preset(preset)
    allowed, remaining, reset_time, retry_after = _hit(
        f"{endpoint}:{client_id}", max_requests, window
    )

    if not allowed:
        counter(f"rate_limit.{endpoint}.exceeded")
        log_event("rate_limit.exceeded", endpoint=endpoint, retry_after=retry_after)

    return RateLimitResult(
        success=allowed, remaining=remaining, reset_time=reset_time, retry_after=retry_after
    )


def check_server_action_rate_limit(
    user_id: str, action: str, preset: str | tuple[int, int] = "serverAction"
) -> ActionRateLimitResult:
    """Per-user limit for authenticated actions."""
    max_requests, window = _resolve_preset(preset)
    allowed, _, _, retry_after = _hit(f"action:{action}:{user_id}", max_requests, window)
    if allowed:
        return ActionRateLimitResult(success=True)

    counter(f"rate_limit.action.{action}.exceeded")
    return ActionRateLimitResult(
        success=False,
        message=f"Rate limit exceeded. Please try again in {retry_after} seconds.",
    )


def check_unauthenticated_rate_limit(
    identifier: str, action: str, preset: str | tuple[int, int] = "auth"
) -> ActionRateLimitResult:
    """Limit for actions made before sign-in, keyed by an email or client id."""
    max_requests, window = _resolve_preset(preset)
    allowed, _, _, retry_after = _hit(f"unauth:{action}:{identifier}", max_requests, window)
    if allowed:
        return ActionRateLimitResult(success=True)

    counter(f"rate_limit.unauth.{action}.exceeded")
    return ActionRateLimitResult(
        success=False,
        message=f"Too many attempts. Please try again in {retry_after} seconds.",
    )


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    headers = {
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": datetime.fromtimestamp(result.reset_time, UTC).isoformat(),
    }
    if not result.success and result.retry_after:
        headers["Retry-After"] = str(result.retry_after)
    return headers


def rate_limit_body(result: RateLimitResult) -> dict[str, object]:
    return {
        "error": "Too many requests",
        "message": f"Rate limit exceeded. Please try again in {result.retry_after} seconds.",
        "retryAfter": result.retry_after,
    }


def reset_rate_limit_store() -> None:
    """Clear every window (tests)."""
    with _lock:
        _store.clear()
