"""Weekly briefing: a LinkedIn-style recap of the last week of captured items."""

from __future__ import annotations

from collections import Counter
from datetime import timedelta
from typing import Any

from mindweave.ai.generation import ContextItem, LLMNotConfiguredError, generate_weekly_briefing
from mindweave.content.models import ContentItem, utc_now
from mindweave.content.repository import ContentRepository
from mindweave.digest.repository import DigestSettingsRepository
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter, log_event
from mindweave.posts.repository import BRIEFING_TONE, PostRepository

logger = get_logger(__name__)

BRIEFING_WINDOW_DAYS = 7
BRIEFING_MAX_ITEMS = 20
BRIEFING_MIN_ITEMS = 2
BRIEFING_THEMES = 5

NOT_ENOUGH_CONTENT = (
    "You need at least 2 items from this week to generate a briefing. "
    "Keep capturing knowledge!"
)


def extract_themes(items: list[ContentItem], limit: int = BRIEFING_THEMES) -> list[str]:
    """Most frequent lowercased tags (manual and auto) across items."""
    counts = Counter(tag.lower() for item in items for tag in item.tags + item.auto_tags)
    return [tag for tag, _ in counts.most_common(limit)]


def _week_content(user_id: str) -> list[ContentItem]:
    since = utc_now() - timedelta(days=BRIEFING_WINDOW_DAYS)
    return ContentRepository.list_since(user_id, since, limit=BRIEFING_MAX_ITEMS)


def _build_and_save(user_id: str, items: list[ContentItem]) -> dict[str, Any]:
    themes = extract_themes(items)
    post_content = generate_weekly_briefing(
        [ContextItem(title=i.title, body=i.body, tags=i.all_tags) for i in items], themes
    )
    PostRepository.create(
        user_id,
        post_content,
        BRIEFING_TONE,
        "medium",
        True,
        [item.id for item in items],
        [item.title for item in items],
    )
    return {
        "postContent": post_content,
        "sourceContentTitles": [item.title for item in items],
        "themes": themes,
    }


def generate_user_briefing(user_id: str) -> dict[str, Any]:
    items = _week_content(user_id)
    if len(items) < BRIEFING_MIN_ITEMS:
        return {"success": False, "message": NOT_ENOUGH_CONTENT}

    try:
        data = _build_and_save(user_id, items)
    except LLMNotConfiguredError:
        return {"success": False, "message": "AI features are not configured"}
    except Exception as e:
        logger.error("Weekly briefing failed: %s", e)
        return {"success": False, "message": "Failed to generate briefing. Please try again."}

    counter("briefing.generated")
    return {"success": True, "data": data}


def get_latest_briefing(user_id: str) -> dict[str, Any]:
    post = PostRepository.latest_with_tone(user_id, BRIEFING_TONE)
    if post is None:
        return {"success": True}
    return {
        "success": True,
        "data": {
            "postContent": post.post_content,
            "sourceContentTitles": post.source_content_titles,
            "themes": [],
            "createdAt": post.to_api_dict()["createdAt"],
        },
    }


def run_briefing_cron() -> dict[str, Any]:
    """
    Generate a briefing for every user with the digest enabled.

    A failure for one user is logged and counted as skipped.
    """
    user_ids = DigestSettingsRepository.list_enabled_user_ids()
    generated = 0
    skipped = 0

    for user_id in user_ids:
        try:
            items = _week_content(user_id)
            if len(items) < BRIEFING_MIN_ITEMS:
                skipped += 1
                continue
            _build_and_save(user_id, items)
            generated += 1
        except Exception as e:
            logger.error("Error generating briefing for user %s: %s", user_id, e)
            skipped += 1

    log_event("briefing.cron", generated=generated, skipped=skipped, total=len(user_ids))
    return {"success": True, "generated": generated, "skipped": skipped, "total": len(user_ids)}
