"""LinkedIn post generator - turn selected items into a post and keep a history."""

from __future__ import annotations

from typing import Any

from mindweave.ai.generation import (
    LENGTH_RANGES,
    TONE_INSTRUCTIONS,
    ContextItem,
    LLMNotConfiguredError,
    generate_linkedin_post,
)
from mindweave.content.repository import ContentRepository
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter
from mindweave.posts.repository import PostRepository

logger = get_logger(__name__)

MAX_SOURCE_ITEMS = 10
HISTORY_LIMIT_MAX = 50
PICKER_LIMIT = 50


def generate_post(
    user_id: str,
    content_ids: list[str],
    tone: str = "professional",
    length: str = "medium",
    include_hashtags: bool = True,
) -> dict[str, Any]:
    if not content_ids:
        return {"success": False, "message": "Select at least one content item"}
    if len(content_ids) > MAX_SOURCE_ITEMS:
        return {"success": False, "message": f"Select at most {MAX_SOURCE_ITEMS} content items"}
    if tone not in TONE_INSTRUCTIONS:
        return {"success": False, "message": "Invalid tone"}
    if length not in LENGTH_RANGES:
        return {"success": False, "message": "Invalid length"}

    items = ContentRepository.get_many_owned(user_id, content_ids)
    if not items:
        return {
            "success": False,
            "message": "No content found. Make sure you own the selected items.",
        }

    try:
        text = generate_linkedin_post(
            [
                ContextItem(title=i.title, body=i.body, tags=i.tags, url=i.url, type=i.type)
                for i in items
            ],
            tone,
            length,
            include_hashtags,
        )
    except LLMNotConfiguredError:
        return {"success": False, "message": "AI features are not configured"}
    except Exception as e:
        logger.error("Post generation failed: %s", e)
        counter("posts.generation_failed")
        return {"success": False, "message": "Failed to generate post. Please try again."}

    post = PostRepository.create(
        user_id,
        text,
        tone,
        length,
        include_hashtags,
        [item.id for item in items],
        [item.title for item in items],
    )
    counter("posts.generated")
    return {"success": True, "post": post.to_api_dict()}


def get_post_history(user_id: str, limit: int = 20) -> dict[str, Any]:
    safe_limit = min(max(1, int(limit)), HISTORY_LIMIT_MAX)
    posts = PostRepository.list_by_user(user_id, safe_limit)
    return {"success": True, "posts": [post.to_api_dict() for post in posts]}


def delete_post(user_id: str, post_id: str) -> dict[str, Any]:
    if not PostRepository.delete(post_id, user_id):
        return {"success": False, "message": "Post not found."}
    return {"success": True}


def get_content_for_selection(user_id: str, query: str | None = None) -> dict[str, Any]:
    """Picker list: newest items, optionally filtered on title or body."""
    query = (query or "").strip()
    if query:
        items = ContentRepository.search_keyword(user_id, query, limit=PICKER_LIMIT)
    else:
        items = ContentRepository.list_recent(user_id, PICKER_LIMIT)
    return {
        "success": True,
        "items": [
            {
                "id": item.id,
                "title": item.title,
                "type": item.type,
                "tags": item.tags,
                "createdAt": item.to_api_dict()["createdAt"],
            }
            for item in items
        ],
    }
