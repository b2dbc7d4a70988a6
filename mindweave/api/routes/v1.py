"""
Public v1 API.

Authenticated with a personal API key (`Bearer mw_...`) or a Google session.
Lists use cursor pagination on created_at, newest first.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from mindweave.api.middleware.api_key_auth import get_key_or_session_user
from mindweave.api.middleware.rate_limit import rate_limited
from mindweave.api.middleware.user_auth import AuthenticatedUser
from mindweave.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX, CONTENT_TYPES
from mindweave.content import service
from mindweave.content.models import ContentItem, parse_dt, to_iso
from mindweave.content.repository import ContentRepository
from mindweave.observability.logging import get_logger

router = APIRouter(
    prefix="/api/v1/content",
    tags=["v1"],
    dependencies=[Depends(rate_limited("api-v1-content", "api"))],
)
logger = get_logger(__name__)


class CreateContentRequest(BaseModel):
    type: str
    title: str
    body: str | None = None
    url: str | None = None
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


def _v1_item(item: ContentItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "type": item.type,
        "title": item.title,
        "body": item.body,
        "url": item.url,
        "tags": item.tags,
        "autoTags": item.auto_tags,
        "summary": item.summary,
        "isFavorite": item.is_favorite,
        "createdAt": to_iso(item.created_at),
    }


@router.get("")
async def list_content(
    user: AuthenticatedUser = Depends(get_key_or_session_user),
    cursor: str | None = Query(None, description="createdAt of the last item seen"),
    limit: int = Query(API_LIST_LIMIT_DEFAULT),
    content_type: str | None = Query(None, alias="type"),
) -> dict[str, Any]:
    limit = min(max(limit, 1), API_LIST_LIMIT_MAX)
    if content_type not in CONTENT_TYPES:
        content_type = None

    try:
        normalized_cursor = to_iso(parse_dt(cursor)) if cursor else None
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid cursor") from None

    # One extra row tells us whether another page exists
    items = ContentRepository.list_page(user.id, limit + 1, normalized_cursor, content_type)
    has_more = len(items) > limit
    page = items[:limit]

    return {
        "data": [_v1_item(item) for item in page],
        "pagination": {
            "hasMore": has_more,
            "nextCursor": to_iso(page[-1].created_at) if has_more and page else None,
        },
    }


@router.post("", status_code=201)
async def create_content(
    request: CreateContentRequest,
    background_tasks: BackgroundTasks,
    user: AuthenticatedUser = Depends(get_key_or_session_user),
) -> Any:
    """Create an item; tags and the embedding are generated in the background."""
    result = service.create_content(
        user.id,
        request.type,
        request.title,
        request.body,
        request.url,
        request.tags,
        request.metadata,
        background_tasks,
    )
    if not result["success"]:
        return JSONResponse(
            status_code=400,
            content={"error": "Validation failed", "details": result.get("errors", [])},
        )

    item = service.get_content(user.id, result["data"]["id"])
    if item is None:
        logger.error("Content %s vanished right after creation", result["data"]["id"])
        raise HTTPException(status_code=500, detail="Failed to create content")
    return {
        "data": {
            "id": item.id,
            "type": item.type,
            "title": item.title,
            "createdAt": to_iso(item.created_at),
        }
    }


@router.get("/{content_id}")
async def get_content(
    content_id: str,
    user: AuthenticatedUser = Depends(get_key_or_session_user),
) -> dict[str, Any]:
    item = service.get_content(user.id, content_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Content not found")
    return {"data": _v1_item(item)}
