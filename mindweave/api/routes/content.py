"""
Content API endpoints.

CRUD, favorites, sharing, AI summaries and bulk actions over a user's
library. Action endpoints return the service result dict as-is; callers
check `success`.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from mindweave.ai.clustering import get_content_cluster
from mindweave.ai.embeddings import recommendations
from mindweave.api.middleware.rate_limit import enforce_action_limit, rate_limited
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.collections.service import get_content_collections
from mindweave.config import BULK_ACTION_MAX_IDS
from mindweave.content import service
from mindweave.observability.logging import get_logger
from mindweave.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/content", tags=["content"])
share_router = APIRouter(prefix="/api/share", tags=["content"])
logger = get_logger(__name__)


# ============================================================================
# Request Models
# ============================================================================


class CreateContentRequest(BaseModel):
    type: str
    title: str
    body: str | None = None
    url: str | None = None
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class UpdateContentRequest(BaseModel):
    title: str | None = None
    body: str | None = None
    url: str | None = None
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None


class BulkIdsRequest(BaseModel):
    content_ids: list[str] = Field(..., alias="contentIds", max_length=BULK_ACTION_MAX_IDS)

    model_config = {"populate_by_name": True}


class BulkTagsRequest(BulkIdsRequest):
    tags: list[str]


# ============================================================================
# Endpoints
# ============================================================================


@router.get("")
async def list_content(
    user: AuthenticatedUser = Depends(get_current_user),
    content_type: str | None = Query(None, alias="type", description="note | link | file"),
    tag: str | None = Query(None),
    q: str | None = Query(None, max_length=200),
    favorites: bool = Query(False),
    sort: str = Query("created_at"),
    order: str = Query("desc"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> dict[str, Any]:
    try:
        return service.list_content(
            user.id, content_type, tag, q, favorites, sort, order, limit, offset
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Failed to list content: %s", e)
        raise HTTPException(status_code=500, detail="Failed to list content") from None


@router.post("")
async def create_content(
    request: CreateContentRequest,
    background_tasks: BackgroundTasks,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "createContent")
    try:
        return service.create_content(
            user.id,
            request.type,
            request.title,
            request.body,
            request.url,
            request.tags,
            request.metadata,
            background_tasks,
        )
    except Exception as e:
        logger.error("Failed to create content: %s", e)
        raise HTTPException(status_code=500, detail="Failed to save content") from None


@router.post("/bulk/delete")
async def bulk_delete(
    request: BulkIdsRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "bulkDelete", "serverActionBulk")
    try:
        return service.bulk_delete(user.id, request.content_ids)
    except Exception as e:
        logger.error("Bulk delete failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to delete items") from None


@router.post("/bulk/tags")
async def bulk_add_tags(
    request: BulkTagsRequest,
    background_tasks: BackgroundTasks,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "bulkTags", "serverActionBulk")
    try:
        return service.bulk_add_tags(user.id, request.content_ids, request.tags, background_tasks)
    except Exception as e:
        logger.error("Bulk tagging failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to add tags") from None


@router.get("/{content_id}")
async def get_content(
    content_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    item = service.get_content(user.id, content_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Content not found")
    return {"success": True, "data": item.to_api_dict()}


@router.patch("/{content_id}")
async def update_content(
    content_id: str,
    request: UpdateContentRequest,
    background_tasks: BackgroundTasks,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "updateContent")
    try:
        changes = request.model_dump(exclude_unset=True)
        return service.update_content(user.id, content_id, changes, background_tasks)
    except Exception as e:
        logger.error("Failed to update content %s: %s", content_id, e)
        raise HTTPException(status_code=500, detail="Failed to update content") from None


@router.delete("/{content_id}")
async def delete_content(
    content_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "deleteContent")
    return service.delete_content(user.id, content_id)


@router.post("/{content_id}/favorite")
async def toggle_favorite(
    content_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "toggleFavorite")
    return service.toggle_favorite(user.id, content_id)


@router.post("/{content_id}/share")
async def share_content(
    content_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "shareContent")
    return service.share_content(user.id, content_id)


@router.delete("/{content_id}/share")
async def unshare_content(
    content_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "unshareContent")
    return service.unshare_content(user.id, content_id)


@router.post("/{content_id}/summary")
async def generate_summary(
    content_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "generateSummary", "serverActionAI")
    return service.generate_summary(user.id, content_id)


@router.get("/{content_id}/recommendations")
async def get_recommendations(
    content_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    limit: int = Query(5, ge=1, le=20),
) -> dict[str, Any]:
    return recommendations(user.id, content_id, limit)


@router.get("/{content_id}/cluster")
async def get_cluster(
    content_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    try:
        cluster = get_content_cluster(user.id, content_id)
    except Exception as e:
        logger.error("Failed to find cluster for %s: %s", content_id, e)
        raise HTTPException(status_code=500, detail="Failed to load cluster") from None
    return {"success": True, "cluster": cluster.to_api_dict() if cluster else None}


@router.get("/{content_id}/collections")
async def content_collections(
    content_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    return get_content_collections(user.id, content_id)


# ============================================================================
# Public share view
# ============================================================================


@share_router.get("/{share_id}", dependencies=[Depends(rate_limited("share"))])
async def get_shared_content(share_id: str) -> dict[str, Any]:
    data = service.get_shared_content(share_id)
    if data is None:
        raise HTTPException(status_code=404, detail="Content not found")
    return {"success": True, "data": data}
