"""
Analytics endpoints.

Overview counters, growth series, tag and collection breakdowns,
rule-based insights and AI-explained cross-domain connections.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from mindweave.api.middleware.rate_limit import enforce_action_limit
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.analytics import service
from mindweave.observability.logging import get_logger

router = APIRouter(prefix="/api/analytics", tags=["analytics"])
logger = get_logger(__name__)


@router.get("/overview")
async def overview(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    return service.get_overview(user.id)


@router.get("/growth")
async def content_growth(
    user: AuthenticatedUser = Depends(get_current_user),
    period: str = Query("month", description="week | month | year"),
) -> dict[str, Any]:
    return service.get_content_growth(user.id, period)


@router.get("/tags")
async def tag_distribution(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    return service.get_tag_distribution(user.id)


@router.get("/collections")
async def collection_usage(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    return service.get_collection_usage(user.id)


@router.get("/insights")
async def knowledge_insights(
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    return service.get_knowledge_insights(user.id)


@router.get("/connections")
async def connections(
    user: AuthenticatedUser = Depends(get_current_user),
    limit: int = Query(5, ge=1, le=10),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "connections", "connectionGeneration")
    try:
        return service.get_connections(user.id, limit)
    except Exception as e:
        logger.error("Failed to generate connections: %s", e)
        raise HTTPException(status_code=500, detail="Failed to generate connections") from None
