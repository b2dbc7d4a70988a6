"""View tracking endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from mindweave.api.middleware.rate_limit import enforce_action_limit
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.config import RECENTLY_VIEWED_DEFAULT
from mindweave.content import views

router = APIRouter(prefix="/api/views", tags=["views"])


class TrackViewRequest(BaseModel):
    content_id: str = Field(..., alias="contentId")

    model_config = {"populate_by_name": True}


@router.post("")
async def track_view(
    request: TrackViewRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "trackView")
    return views.track_content_view(user.id, request.content_id)


@router.get("/recent")
async def recently_viewed(
    limit: int = Query(RECENTLY_VIEWED_DEFAULT),
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    return views.get_recently_viewed(user.id, limit)


@router.get("/ids")
async def viewed_ids(
    since: datetime | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    return views.get_viewed_content_ids(user.id, since)
