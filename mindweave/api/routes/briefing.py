"""Weekly briefing endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from mindweave.api.middleware.rate_limit import enforce_action_limit
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.briefing import service

router = APIRouter(prefix="/api/briefing", tags=["briefing"])


@router.post("")
async def generate_briefing(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    enforce_action_limit(user.id, "generateBriefing", "serverActionAI")
    return service.generate_user_briefing(user.id)


@router.get("/latest")
async def latest_briefing(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    return service.get_latest_briefing(user.id)
