"""
Cron-triggered jobs.

Every job authenticates with `Authorization: Bearer $CRON_SECRET`. The secret
is read per request so it can be rotated without a restart.
"""

from __future__ import annotations

import hmac
import os
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from mindweave.briefing.service import run_briefing_cron
from mindweave.digest.service import run_digest_cron
from mindweave.observability.logging import get_logger
from mindweave.reminders.service import run_reminders_cron

router = APIRouter(prefix="/api/cron", tags=["cron"])
logger = get_logger(__name__)


def _check_cron_auth(request: Request) -> JSONResponse | None:
    """An error response when the caller is not the scheduler, else None."""
    secret = os.getenv("CRON_SECRET")
    if not secret:
        logger.error("CRON_SECRET not configured")
        return JSONResponse(status_code=500, content={"error": "CRON_SECRET not configured"})

    expected = f"Bearer {secret}"
    provided = request.headers.get("Authorization") or ""
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})
    return None


@router.post("/digest")
async def digest_cron(request: Request) -> Any:
    """Send digests to every user whose preferred hour (and day) is now."""
    denied = _check_cron_auth(request)
    if denied is not None:
        return denied
    try:
        return run_digest_cron()
    except Exception as e:
        logger.error("Digest cron failed: %s", e)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


@router.post("/weekly-briefing")
async def weekly_briefing_cron(request: Request) -> Any:
    denied = _check_cron_auth(request)
    if denied is not None:
        return denied
    try:
        return run_briefing_cron()
    except Exception as e:
        logger.error("Weekly briefing cron failed: %s", e)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


@router.post("/reminders")
async def reminders_cron(request: Request) -> Any:
    """Advance due spaced-repetition reminders (hourly)."""
    denied = _check_cron_auth(request)
    if denied is not None:
        return denied
    try:
        return run_reminders_cron()
    except Exception as e:
        logger.error("Reminders cron failed: %s", e)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
