"""LinkedIn post generator endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from mindweave.api.middleware.rate_limit import enforce_action_limit
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.posts import service

router = APIRouter(prefix="/api/posts", tags=["posts"])


class GeneratePostRequest(BaseModel):
    content_ids: list[str] = Field(..., alias="contentIds")
    tone: str = "professional"
    length: str = "medium"
    include_hashtags: bool = Field(default=True, alias="includeHashtags")

    model_config = {"populate_by_name": True}


@router.post("/generate")
async def generate_post(
    request: GeneratePostRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "generatePost", "serverActionAI")
    return service.generate_post(
        user.id, request.content_ids, request.tone, request.length, request.include_hashtags
    )


@router.get("")
async def post_history(
    user: AuthenticatedUser = Depends(get_current_user),
    limit: int = Query(20),
) -> dict[str, Any]:
    return service.get_post_history(user.id, limit)


@router.get("/content-options")
async def content_options(
    user: AuthenticatedUser = Depends(get_current_user),
    q: str | None = Query(None, max_length=200),
) -> dict[str, Any]:
    """Items the user can pick as post sources."""
    return service.get_content_for_selection(user.id, q)


@router.delete("/{post_id}")
async def delete_post(
    post_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "deletePost")
    return service.delete_post(user.id, post_id)
