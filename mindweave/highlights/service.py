"""Daily highlight: one item a day worth revisiting, with a short AI insight."""

from __future__ import annotations

import json
from typing import Any

from mindweave.ai.generation import generate_highlight_insight
from mindweave.content.models import utc_now
from mindweave.highlights.repository import HighlightRepository
from mindweave.observability.telemetry import counter


def today_utc() -> str:
    return utc_now().date().isoformat()


def get_daily_highlight(user_id: str, highlight_date: str | None = None) -> dict[str, Any]:
    """
    Today's highlight, from cache or freshly picked.

    Returns {"success": True, "highlight": None} when the user has nothing
    eligible (no item with a body or tags).
    """
    highlight_date = highlight_date or today_utc()

    cached = HighlightRepository.get_for_date(user_id, highlight_date)
    if cached is not None:
        counter("highlights.cache_hit")
        return {
            "success": True,
            "highlight": {
                "contentId": cached["content_id"],
                "title": cached["title"],
                "type": cached["type"],
                "insight": cached["insight"],
                "tags": json.loads(cached["tags"] or "[]"),
            },
        }

    picked = HighlightRepository.pick_candidate(user_id, highlight_date)
    if picked is None:
        return {"success": True, "highlight": None}

    insight = generate_highlight_insight(picked.title, picked.body, picked.tags)
    HighlightRepository.upsert(user_id, picked.id, insight, highlight_date)
    counter("highlights.generated")
    return {
        "success": True,
        "highlight": {
            "contentId": picked.id,
            "title": picked.title,
            "type": picked.type,
            "insight": insight,
            "tags": picked.tags,
        },
    }
