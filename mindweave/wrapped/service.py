"""
Knowledge Wrapped - a shareable all-time stats card.

Streaks only look back 90 days from today (UTC).
"""

from __future__ import annotations

import secrets
from datetime import date, datetime, timedelta
from typing import Any

from mindweave.ai.generation import generate_knowledge_personality
from mindweave.analytics.repository import AnalyticsRepository
from mindweave.content.models import utc_now
from mindweave.content.repository import ContentRepository
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import log_event
from mindweave.wrapped.repository import WrappedRepository

logger = get_logger(__name__)

STREAK_WINDOW_DAYS = 90
TOP_TAG_COUNT = 5
CONNECTED_MIN_SIMILARITY = 0.3
WRAPPED_PERIOD = "all-time"
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def compute_streaks(active: set[date], today: date, window: int = STREAK_WINDOW_DAYS) -> tuple[int, int]:
    """
    (current, longest) runs of consecutive active days within the window.

    The current streak is the run ending today; it is 0 when today is idle.
    """
    current = 0
    longest = 0
    run = 0
    for offset in range(window):
        if today - timedelta(days=offset) in active:
            run += 1
            if run == offset + 1:
                current = run
        else:
            longest = max(longest, run)
            run = 0
    return current, max(longest, run)


def most_active_day(active: set[date]) -> str:
    """Weekday with the most active days; ties go to the earliest from Sunday."""
    counts = [0] * 7
    for day in active:
        counts[(day.weekday() + 1) % 7] += 1
    return DAY_NAMES[counts.index(max(counts))]


def month_over_month(this_month: int, last_month: int) -> int:
    if last_month <= 0:
        return 0
    return round((this_month - last_month) / last_month * 100)


def _month_starts(now: datetime) -> tuple[datetime, datetime]:
    this_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    last_start = (this_start - timedelta(days=1)).replace(day=1)
    return this_start, last_start


def build_wrapped_stats(user_id: str, now: datetime | None = None) -> dict[str, Any]:
    now = now or utc_now()
    today = now.date()

    recent_days = set(
        WrappedRepository.active_days(user_id, now - timedelta(days=STREAK_WINDOW_DAYS))
    )
    current_streak, longest_streak = compute_streaks(recent_days, today)

    type_counts = ContentRepository.type_counts(user_id)
    split = {
        "notes": type_counts.get("note", 0),
        "links": type_counts.get("link", 0),
        "files": type_counts.get("file", 0),
    }
    top_tags = WrappedRepository.top_tags(user_id, TOP_TAG_COUNT)
    total_items = sum(type_counts.values())

    this_start, last_start = _month_starts(now)
    growth = month_over_month(
        WrappedRepository.count_between(user_id, this_start),
        WrappedRepository.count_between(user_id, last_start, this_start),
    )

    personality = generate_knowledge_personality({
        "top_tags": top_tags,
        "total_items": total_items,
        "content_type_split": split,
        "longest_streak": longest_streak,
    })

    return {
        "totalItems": total_items,
        "topTags": top_tags,
        "longestStreak": longest_streak,
        "currentStreak": current_streak,
        "mostActiveDay": most_active_day(recent_days),
        "contentTypeSplit": split,
        "monthOverMonthGrowth": growth,
        "mostConnectedContent": WrappedRepository.most_connected(user_id, CONNECTED_MIN_SIMILARITY),
        "knowledgePersonality": personality["personality"],
        "personalityDescription": personality["description"],
        "totalActiveDays": len(WrappedRepository.active_days(user_id)),
        "uniqueTagCount": AnalyticsRepository.count_distinct_tags(user_id),
    }


def generate_wrapped(user_id: str) -> dict[str, Any]:
    try:
        stats = build_wrapped_stats(user_id)
        share_id = secrets.token_hex(16)
        WrappedRepository.create(user_id, share_id, stats, WRAPPED_PERIOD)
    except Exception as e:
        logger.error("Error generating wrapped for %s: %s", user_id, e)
        return {"success": False, "message": "Failed to generate your Knowledge Wrapped"}

    log_event("wrapped.generated", total_items=stats["totalItems"])
    return {"success": True, "data": {"shareId": share_id, "stats": stats}}


def get_wrapped_by_share_id(share_id: str) -> dict[str, Any]:
    snapshot = WrappedRepository.get_by_share_id(share_id)
    if snapshot is None:
        return {"success": False, "message": "Wrapped not found"}
    return {
        "success": True,
        "data": {
            "stats": snapshot["stats"],
            "createdAt": snapshot["createdAt"],
            "period": snapshot["period"],
        },
    }


def get_latest_wrapped(user_id: str) -> dict[str, Any]:
    snapshot = WrappedRepository.get_latest(user_id)
    if snapshot is None:
        return {"success": True}
    return {"success": True, "data": {"shareId": snapshot["shareId"], "stats": snapshot["stats"]}}
