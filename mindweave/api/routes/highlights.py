"""Daily highlight endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.highlights.service import get_daily_highlight
from mindweave.observability.logging import get_logger

router = APIRouter(prefix="/api/highlights", tags=["highlights"])
logger = get_logger(__name__)


@router.get("/daily")
async def daily_highlight(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    try:
        return get_daily_highlight(user.id)
    except Exception as e:
        logger.error("Failed to get daily highlight: %s", e)
        return {"success": False, "message": "Failed to load today's highlight"}
