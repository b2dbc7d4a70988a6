"""Email digest settings endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from mindweave.api.middleware.rate_limit import enforce_action_limit
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.digest import service

router = APIRouter(prefix="/api/digest", tags=["digest"])


class DigestSettingsRequest(BaseModel):
    enabled: bool
    frequency: str = "weekly"
    preferred_day: int = Field(default=1, alias="preferredDay")
    preferred_hour: int = Field(default=9, alias="preferredHour")

    model_config = {"populate_by_name": True}


@router.get("/settings")
async def get_settings(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    return service.get_digest_settings(user.id)


@router.put("/settings")
async def save_settings(
    request: DigestSettingsRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "saveDigestSettings")
    return service.save_digest_settings(
        user.id, request.enabled, request.frequency, request.preferred_day, request.preferred_hour
    )
