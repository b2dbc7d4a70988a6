"""Content service layer - facade between API routes and repository.

Centralizes ownership checks, input validation and the background AI
enrichment (auto tags + embedding) that follows a write. Every operation
returns the {success, message?, data?} result dict the API serves.
"""

from __future__ import annotations

import secrets
from typing import Any

from fastapi import BackgroundTasks

from mindweave.ai.embeddings import upsert_content_embedding
from mindweave.ai.generation import LLMNotConfiguredError, generate_tags, summarize_content
from mindweave.config import APP_URL, BULK_ACTION_MAX_IDS
from mindweave.content.models import ContentCreate, ContentItem
from mindweave.content.repository import ContentRepository
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter, log_event
from mindweave.utils.validators import (
    ValidationError,
    clean_tags,
    validate_body,
    validate_content_type,
    validate_title,
    validate_url,
)

logger = get_logger(__name__)

NOT_FOUND = {"success": False, "message": "Content not found"}


# ---------------------------------------------------------------------------
# Background enrichment
# ---------------------------------------------------------------------------


def enrich_content(content_id: str, with_tags: bool = True, with_embedding: bool = True) -> None:
    """
    Generate auto tags and the embedding for an item.

    Runs after the response; failures are logged and dropped.
    """
    try:
        item = ContentRepository.get_by_id(content_id)
        if item is None:
            logger.warning("Skipping enrichment - content %s no longer exists", content_id)
            return

        if with_tags:
            auto_tags = generate_tags(item.title, item.body, item.url, item.type)
            if auto_tags:
                ContentRepository.set_auto_tags(content_id, auto_tags)
                counter("content.auto_tagged")

        if with_embedding:
            upsert_content_embedding(content_id)
    except Exception as e:
        logger.error("Background enrichment failed for %s: %s", content_id, e)
        counter("content.enrichment_failed")


def schedule_enrichment(
    background_tasks: BackgroundTasks | None,
    content_id: str,
    with_tags: bool = True,
    with_embedding: bool = True,
) -> None:
    """Queue enrichment on the request's BackgroundTasks, or run it inline."""
    if background_tasks is None:
        enrich_content(content_id, with_tags, with_embedding)
    else:
        background_tasks.add_task(enrich_content, content_id, with_tags, with_embedding)


# ---------------------------------------------------------------------------
# Single-item operations
# ---------------------------------------------------------------------------


def build_content_create(
    user_id: str,
    content_type: str,
    title: str | None,
    body: str | None = None,
    url: str | None = None,
    tags: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
) -> ContentCreate:
    """
    Validate raw fields into a ContentCreate.

    Raises:
        ValidationError: With a user-facing message
    """
    content_type = validate_content_type(content_type)
    title = validate_title(title)
    body = validate_body(body)
    if content_type == "link":
        url = validate_url(url)
    else:
        url = (url or "").strip() or None
    return ContentCreate(
        user_id=user_id,
        type=content_type,
        title=title,
        body=body,
        url=url,
        tags=clean_tags(tags),
        metadata=metadata or {},
    )


def create_content(
    user_id: str,
    content_type: str,
    title: str | None,
    body: str | None = None,
    url: str | None = None,
    tags: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
    background_tasks: BackgroundTasks | None = None,
) -> dict[str, Any]:
    try:
        data = build_content_create(user_id, content_type, title, body, url, tags, metadata)
    except ValidationError as e:
        return {
            "success": False,
            "message": "Validation failed. Please check your input.",
            "errors": [str(e)],
        }

    item = ContentRepository.create(data)
    schedule_enrichment(background_tasks, item.id)
    log_event("content.created", content_type=item.type)

    return {"success": True, "message": "Content saved successfully!", "data": {"id": item.id}}


def get_content(user_id: str, content_id: str) -> ContentItem | None:
    """Owned item or None."""
    return ContentRepository.get_owned(content_id, user_id)


def list_content(
    user_id: str,
    content_type: str | None = None,
    tag: str | None = None,
    query: str | None = None,
    favorites_only: bool = False,
    sort: str = "created_at",
    order: str = "desc",
    limit: int = 50,
    offset: int = 0,
) -> dict[str, Any]:
    """
    Filtered listing.

    Raises:
        ValueError: On unknown type, sort or order
    """
    if content_type:
        validate_content_type(content_type)
    if sort not in ("created_at", "title"):
        raise ValueError("Invalid sort field")
    if order not in ("asc", "desc"):
        raise ValueError("Invalid sort order")

    query = (query or "").strip() or None
    items = ContentRepository.list_by_user(
        user_id, content_type, tag, query, favorites_only, sort, order, limit, offset
    )
    total = ContentRepository.count_by_user(user_id, content_type, tag, query, favorites_only)
    return {
        "success": True,
        "data": {
            "items": [item.to_api_dict() for item in items],
            "total": total,
            "limit": limit,
            "offset": offset,
        },
    }


def update_content(
    user_id: str,
    content_id: str,
    changes: dict[str, Any],
    background_tasks: BackgroundTasks | None = None,
) -> dict[str, Any]:
    """
    Update owned fields; re-embeds when title, body or tags changed.

    Args:
        changes: Subset of title, body, url, tags, metadata
    """
    item = ContentRepository.get_owned(content_id, user_id)
    if item is None:
        return NOT_FOUND
    if not changes:
        return {"success": True, "message": "No changes", "data": item.to_api_dict()}

    try:
        if "title" in changes:
            changes["title"] = validate_title(changes["title"])
        if "body" in changes:
            changes["body"] = validate_body(changes["body"]) or ""
        if "url" in changes and item.type == "link":
            changes["url"] = validate_url(changes["url"]) or ""
        if "tags" in changes:
            changes["tags"] = clean_tags(changes["tags"])
    except ValidationError as e:
        return {"success": False, "message": str(e)}

    updated = ContentRepository.update(content_id, changes)
    if updated is None:
        return NOT_FOUND

    if {"title", "body", "tags"} & set(changes):
        schedule_enrichment(background_tasks, content_id, with_tags=False)

    return {"success": True, "message": "Content updated successfully", "data": updated.to_api_dict()}


def delete_content(user_id: str, content_id: str) -> dict[str, Any]:
    if not ContentRepository.delete(content_id, user_id):
        return NOT_FOUND
    counter("content.deleted")
    return {"success": True, "message": "Content deleted successfully"}


def toggle_favorite(user_id: str, content_id: str) -> dict[str, Any]:
    item = ContentRepository.get_owned(content_id, user_id)
    if item is None:
        return NOT_FOUND
    new_value = not item.is_favorite
    ContentRepository.set_favorite(content_id, new_value)
    return {
        "success": True,
        "message": "Added to favorites" if new_value else "Removed from favorites",
        "data": {"isFavorite": new_value},
    }


def share_url(share_id: str) -> str:
    return f"{APP_URL.rstrip('/')}/share/{share_id}"


def share_content(user_id: str, content_id: str) -> dict[str, Any]:
    """Make an item publicly readable; an existing share id is reused."""
    item = ContentRepository.get_owned(content_id, user_id)
    if item is None:
        return NOT_FOUND

    share_id = item.share_id if item.is_shared and item.share_id else secrets.token_hex(16)
    ContentRepository.set_share(content_id, share_id)
    return {
        "success": True,
        "message": "Content shared successfully",
        "data": {"shareId": share_id, "shareUrl": share_url(share_id)},
    }


def unshare_content(user_id: str, content_id: str) -> dict[str, Any]:
    if ContentRepository.get_owned(content_id, user_id) is None:
        return NOT_FOUND
    ContentRepository.set_share(content_id, None)
    return {"success": True, "message": "Content is no longer shared"}


def get_shared_content(share_id: str) -> dict[str, Any] | None:
    """Public view of a shared item (no owner fields)."""
    item = ContentRepository.get_by_share_id(share_id)
    if item is None:
        return None
    data = item.to_api_dict()
    for private in ("isFavorite", "metadata"):
        data.pop(private, None)
    return data


def generate_summary(user_id: str, content_id: str) -> dict[str, Any]:
    item = ContentRepository.get_owned(content_id, user_id)
    if item is None:
        return NOT_FOUND

    text = "\n\n".join(part for part in (item.title, item.body) if part)
    try:
        summary = summarize_content(text)
    except LLMNotConfiguredError:
        return {"success": False, "message": "AI features are not configured"}
    except Exception as e:
        logger.error("Summary generation failed for %s: %s", content_id, e)
        return {"success": False, "message": "Failed to generate summary"}

    if not summary:
        return {"success": False, "message": "Failed to generate summary"}
    ContentRepository.set_summary(content_id, summary)
    return {"success": True, "data": {"summary": summary}}


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------


def _check_bulk_ids(content_ids: list[str]) -> list[str]:
    ids = list(dict.fromkeys(content_ids))
    if not ids:
        raise ValueError("No items selected")
    if len(ids) > BULK_ACTION_MAX_IDS:
        raise ValueError(f"Cannot process more than {BULK_ACTION_MAX_IDS} items at once")
    return ids


def bulk_delete(user_id: str, content_ids: list[str]) -> dict[str, Any]:
    try:
        ids = _check_bulk_ids(content_ids)
    except ValueError as e:
        return {"success": False, "message": str(e)}

    deleted = ContentRepository.delete_many(user_id, ids)
    return {
        "success": True,
        "message": f"Deleted {deleted} item(s)",
        "data": {"deleted": deleted},
    }


def bulk_add_tags(
    user_id: str,
    content_ids: list[str],
    tags: list[str],
    background_tasks: BackgroundTasks | None = None,
) -> dict[str, Any]:
    """Merge tags into each owned item; items not owned are ignored."""
    try:
        ids = _check_bulk_ids(content_ids)
    except ValueError as e:
        return {"success": False, "message": str(e)}
    new_tags = clean_tags(tags)
    if not new_tags:
        return {"success": False, "message": "No tags provided"}

    updated = 0
    for item in ContentRepository.get_many_owned(user_id, ids):
        merged = clean_tags([*item.tags, *new_tags])
        if merged != item.tags:
            ContentRepository.set_tags(item.id, merged)
            schedule_enrichment(background_tasks, item.id, with_tags=False)
            updated += 1

    return {
        "success": True,
        "message": f"Tagged {updated} item(s)",
        "data": {"updated": updated},
    }
