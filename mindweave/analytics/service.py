"""
Analytics service.

Dashboard numbers (overview, growth, tags, collections), rule-based
knowledge insights, and cross-domain "connections": pairs of items that are
semantically related but share no tags, each explained by the LLM and cached
for a day.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from mindweave.ai.embeddings import similar_pairs
from mindweave.ai.generation import ContextItem, generate_connection_insight
from mindweave.analytics.repository import AnalyticsRepository, ConnectionRepository
from mindweave.collections.repository import CollectionRepository
from mindweave.content.models import ContentItem, utc_now
from mindweave.content.repository import ContentRepository
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter

logger = get_logger(__name__)

GROWTH_PERIODS = ("week", "month", "year")
TAG_DISTRIBUTION_LIMIT = 10
INSIGHTS_LIMIT = 5

CONNECTION_MIN_SIMILARITY = 0.3
CONNECTION_MAX_SIMILARITY = 0.6
CONNECTION_CACHE_HOURS = 24
CONNECTION_CANDIDATE_POOL = 200


# ============================================================================
# Dashboard numbers
# ============================================================================


def _start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def get_overview(user_id: str) -> dict[str, Any]:
    now = utc_now()
    return {
        "success": True,
        "data": {
            "totalItems": AnalyticsRepository.count_items(user_id),
            "itemsThisMonth": AnalyticsRepository.count_items(user_id, _start_of_month(now)),
            "totalCollections": CollectionRepository.count_by_user(user_id),
            "totalTags": AnalyticsRepository.count_distinct_tags(user_id),
        },
    }


def _add_month(moment: datetime) -> datetime:
    if moment.month == 12:
        return moment.replace(year=moment.year + 1, month=1, day=1)
    return moment.replace(month=moment.month + 1, day=1)


def growth_buckets(period: str, now: datetime) -> tuple[datetime, list[str]]:
    """
    Start of the window and every bucket label in it, oldest first.

    week and month are daily (8 and 31 labels, both ends included); year is
    monthly (13 labels).
    """
    if period == "year":
        # Feb 29 has no counterpart a year earlier
        start = now.replace(year=now.year - 1, day=min(now.day, 28) if now.month == 2 else now.day)
        labels = []
        cursor = start.replace(day=1)
        while cursor.strftime("%Y-%m") <= now.strftime("%Y-%m"):
            labels.append(cursor.strftime("%Y-%m"))
            cursor = _add_month(cursor)
        return start, labels

    days = 7 if period == "week" else 30
    start = now - timedelta(days=days)
    labels = [(start + timedelta(days=offset)).date().isoformat() for offset in range(days + 1)]
    return start, labels


def get_content_growth(user_id: str, period: str = "month", now: datetime | None = None) -> dict[str, Any]:
    """Zero-filled counts of notes, links and files per day (per month for year)."""
    if period not in GROWTH_PERIODS:
        return {"success": False, "message": "Invalid period"}

    now = now or utc_now()
    start, labels = growth_buckets(period, now)
    series = {label: {"date": label, "notes": 0, "links": 0, "files": 0, "total": 0} for label in labels}

    bucket_chars = 7 if period == "year" else 10
    for bucket, content_type, count in AnalyticsRepository.growth_counts(
        user_id, start, now, bucket_chars
    ):
        entry = series.get(bucket)
        if entry is None:
            continue
        entry[f"{content_type}s"] = count
        entry["total"] = entry["notes"] + entry["links"] + entry["files"]

    return {"success": True, "data": list(series.values())}


def get_tag_distribution(user_id: str) -> dict[str, Any]:
    rows = [
        (tag, count)
        for tag, count in ContentRepository.tag_counts(user_id, limit=TAG_DISTRIBUTION_LIMIT)
        if tag
    ]
    total = sum(count for _, count in rows)
    return {
        "success": True,
        "data": [
            {"tag": tag, "count": count, "percentage": round(count / total * 100) if total else 0}
            for tag, count in rows
        ],
    }


def get_collection_usage(user_id: str) -> dict[str, Any]:
    collections = sorted(
        CollectionRepository.list_by_user(user_id), key=lambda c: c.content_count, reverse=True
    )
    return {
        "success": True,
        "data": [
            {"id": c.id, "name": c.name, "color": c.color, "itemCount": c.content_count}
            for c in collections
        ],
    }


def get_knowledge_insights(user_id: str) -> dict[str, Any]:
    """Up to five rule-based observations about the user's library."""
    overview = get_overview(user_id)["data"]
    tags = get_tag_distribution(user_id)["data"]
    growth = get_content_growth(user_id, "month")["data"]
    insights: list[dict[str, str]] = []

    total = overview["totalItems"]
    if total >= 100:
        insights.append({
            "type": "achievement",
            "title": "Knowledge Champion",
            "description": f"You've captured {total} items in your knowledge base. Keep building!",
            "icon": "trophy",
        })
    elif total >= 50:
        insights.append({
            "type": "achievement",
            "title": "Growing Library",
            "description": f"{total} items saved. You're building a valuable knowledge base!",
            "icon": "trophy",
        })

    this_month = overview["itemsThisMonth"]
    if this_month > 0:
        insights.append({
            "type": "pattern",
            "title": "Active This Month",
            "description": f"You've added {this_month} item{'' if this_month == 1 else 's'} "
            "this month. Great progress!",
            "icon": "calendar",
        })

    if tags:
        top = tags[0]
        insights.append({
            "type": "pattern",
            "title": "Top Focus Area",
            "description": f'"{top["tag"]}" is your most common topic with {top["count"]} items tagged.',
            "icon": "tag",
        })

    if len(growth) >= 14:
        recent = sum(day["total"] for day in growth[-7:])
        previous = sum(day["total"] for day in growth[-14:-7])
        if recent > previous:
            insights.append({
                "type": "pattern",
                "title": "Momentum Building",
                "description": "Your activity is increasing! You added more content this week "
                "than last week.",
                "icon": "trending-up",
            })

    if overview["totalCollections"] == 0 and total >= 5:
        insights.append({
            "type": "suggestion",
            "title": "Organize with Collections",
            "description": "Create collections to group related items together and find them faster.",
            "icon": "lightbulb",
        })

    if not insights:
        insights.append({
            "type": "suggestion",
            "title": "Start Capturing Knowledge",
            "description": "Add notes, links, and files to build your personal knowledge base.",
            "icon": "zap",
        })

    return {"success": True, "data": insights[:INSIGHTS_LIMIT]}


# ============================================================================
# Connections
# ============================================================================


def _summary(item: ContentItem) -> dict[str, Any]:
    return {"id": item.id, "title": item.title, "type": item.type, "tags": item.all_tags}


def _cached_connections(user_id: str, limit: int) -> list[dict[str, Any]] | None:
    since = utc_now() - timedelta(hours=CONNECTION_CACHE_HOURS)
    cached = ConnectionRepository.list_recent(user_id, since, limit)
    if len(cached) < limit:
        return None

    ids = [row["content_id_a"] for row in cached] + [row["content_id_b"] for row in cached]
    items = {item.id: item for item in ContentRepository.get_many_owned(user_id, ids)}
    results = []
    for row in cached:
        a, b = items.get(row["content_id_a"]), items.get(row["content_id_b"])
        if a is None or b is None:
            continue
        results.append({
            "id": row["id"],
            "contentA": _summary(a),
            "contentB": _summary(b),
            "insight": row["insight"],
            "similarity": row["similarity"],
            "tagGroupA": row["tag_group_a"],
            "tagGroupB": row["tag_group_b"],
        })
    return results


def get_connections(user_id: str, limit: int = 5) -> dict[str, Any]:
    """
    Cross-domain pairs: similarity within [0.3, 0.6] and no tag in common.

    Served from the last 24h of cached connections when there are enough of
    them; otherwise fresh pairs are found, explained and cached.
    """
    limit = max(1, int(limit))
    cached = _cached_connections(user_id, limit)
    if cached is not None:
        counter("connections.cache_hit")
        return {"success": True, "data": cached}

    pairs = similar_pairs(
        user_id,
        CONNECTION_MIN_SIMILARITY,
        CONNECTION_CANDIDATE_POOL,
        max_similarity=CONNECTION_MAX_SIMILARITY,
    )
    if not pairs:
        return {"success": True, "data": []}

    ids = list({pid for source, target, _ in pairs for pid in (source, target)})
    items = {item.id: item for item in ContentRepository.get_many_owned(user_id, ids)}

    results = []
    for source, target, similarity in pairs:
        if len(results) >= limit:
            break
        a, b = items.get(source), items.get(target)
        if a is None or b is None or set(a.all_tags) & set(b.all_tags):
            continue

        insight = generate_connection_insight(
            ContextItem(title=a.title, body=a.body, tags=a.all_tags),
            ContextItem(title=b.title, body=b.body, tags=b.all_tags),
            similarity,
        )
        percent = round(similarity * 100)
        connection_id = ConnectionRepository.create(
            user_id, a.id, b.id, insight, percent, a.all_tags, b.all_tags
        )
        results.append({
            "id": connection_id,
            "contentA": _summary(a),
            "contentB": _summary(b),
            "insight": insight,
            "similarity": percent,
            "tagGroupA": a.all_tags,
            "tagGroupB": b.all_tags,
        })

    counter("connections.generated", len(results))
    return {"success": True, "data": results}
