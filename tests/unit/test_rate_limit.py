"""Unit tests for fixed-window rate limiting

Tests cover:
- Requests under the limit allowed, the next one rejected
- Window reset after expiry
- Per-client and per-endpoint isolation
- Client identification from proxy headers
- Route dependency and per-user action limits
- 429 headers and body
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from fastapi import Depends, FastAPI, HTTPException
from fastapi.testclient import TestClient

from mindweave.api.middleware.rate_limit import enforce_action_limit, rate_limited
from mindweave.infrastructure import rate_limit
from mindweave.infrastructure.rate_limit import (
    RateLimitExceeded,
    check_rate_limit,
    check_server_action_rate_limit,
    check_unauthenticated_rate_limit,
    get_client_identifier,
    rate_limit_body,
    rate_limit_headers,
)


@pytest.fixture
def clock(monkeypatch):
    """Controllable time source for the limiter"""
    now = {"t": 1_700_000_000.0}
    monkeypatch.setattr(rate_limit, "_now", lambda: now["t"])
    return now


def test_requests_under_limit_allowed(clock):
    """Test that requests up to the limit pass with decreasing remaining"""
    results = [check_rate_limit("1.2.3.4", "test", (3, 60)) for _ in range(3)]
    assert all(r.success for r in results)
    assert [r.remaining for r in results] == [2, 1, 0]


def test_limit_enforced_with_retry_after(clock):
    """Test that the request after the limit is rejected until the window ends"""
    for _ in range(3):
        check_rate_limit("1.2.3.4", "test", (3, 60))

    clock["t"] += 20
    result = check_rate_limit("1.2.3.4", "test", (3, 60))
    assert not result.success
    assert result.remaining == 0
    assert result.retry_after == 40


def test_window_resets(clock):
    for _ in range(4):
        check_rate_limit("1.2.3.4", "test", (3, 60))

    clock["t"] += 61
    result = check_rate_limit("1.2.3.4", "test", (3, 60))
    assert result.success
    assert result.remaining == 2


def test_clients_and_endpoints_are_isolated(clock):
    check_rate_limit("1.1.1.1", "upload", (1, 60))
    assert not check_rate_limit("1.1.1.1", "upload", (1, 60)).success
    assert check_rate_limit("2.2.2.2", "upload", (1, 60)).success
    assert check_rate_limit("1.1.1.1", "export", (1, 60)).success


def test_unknown_preset_rejected():
    with pytest.raises(ValueError, match="Unknown rate limit preset"):
        check_rate_limit("1.1.1.1", "test", "nope")


class TestClientIdentifier:
    def test_last_forwarded_entry_wins(self):
        headers = {"x-forwarded-for": "6.6.6.6, 10.0.0.1"}
        assert get_client_identifier(headers) == "10.0.0.1"

    def test_invalid_forwarded_falls_back_to_real_ip(self):
        headers = {"x-forwarded-for": "not-an-ip", "x-real-ip": " 9.9.9.9 "}
        assert get_client_identifier(headers) == "9.9.9.9"

    def test_direct_connection_is_localhost(self):
        assert get_client_identifier({}) == "localhost"


def test_action_limits_are_per_user(clock):
    for _ in range(2):
        assert check_server_action_rate_limit("u1", "createContent", (2, 60)).success

    denied = check_server_action_rate_limit("u1", "createContent", (2, 60))
    assert not denied.success
    assert "Rate limit exceeded" in denied.message
    assert check_server_action_rate_limit("u2", "createContent", (2, 60)).success


def test_unauthenticated_limits_use_their_own_keys(clock):
    check_unauthenticated_rate_limit("a@example.com", "signup", (1, 60))
    denied = check_unauthenticated_rate_limit("a@example.com", "signup", (1, 60))
    assert not denied.success
    assert denied.message.startswith("Too many attempts")
    # same identifier, authenticated action: separate window
    assert check_server_action_rate_limit("a@example.com", "signup", (1, 60)).success


def test_429_headers_and_body(clock):
    for _ in range(2):
        result = check_rate_limit("1.2.3.4", "test", (1, 30))

    headers = rate_limit_headers(result)
    assert headers["X-RateLimit-Remaining"] == "0"
    assert headers["Retry-After"] == "30"
    reset = datetime.fromisoformat(headers["X-RateLimit-Reset"])
    assert reset == datetime.fromtimestamp(clock["t"] + 30, UTC)
    body = rate_limit_body(result)
    assert body["error"] == "Too many requests"
    assert body["retryAfter"] == 30


def test_route_dependency_returns_429():
    """Test that rate_limited() rejects through the app's exception handler"""
    app = FastAPI()

    @app.exception_handler(RateLimitExceeded)
    async def handler(request, exc):
        from fastapi.responses import JSONResponse

        return JSONResponse(
            status_code=429,
            content=rate_limit_body(exc.result),
            headers=rate_limit_headers(exc.result),
        )

    @app.get("/limited", dependencies=[Depends(rate_limited("limited-test", "wrappedGeneration"))])
    async def limited():
        return {"ok": True}

    client = TestClient(app)
    for _ in range(3):
        assert client.get("/limited").status_code == 200

    response = client.get("/limited")
    assert response.status_code == 429
    assert "Retry-After" in response.headers
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert datetime.fromisoformat(response.headers["X-RateLimit-Reset"]).tzinfo is not None
    assert response.json()["error"] == "Too many requests"


def test_enforce_action_limit_raises_http_429():
    for _ in range(3):
        enforce_action_limit("u1", "generateWrapped", "wrappedGeneration")

    with pytest.raises(HTTPException) as exc_info:
        enforce_action_limit("u1", "generateWrapped", "wrappedGeneration")
    assert exc_info.value.status_code == 429
