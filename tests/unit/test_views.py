"""Unit tests for content view tracking"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from mindweave.content.service import delete_content
from mindweave.content.views import (
    get_recently_viewed,
    get_viewed_content_ids,
    track_content_view,
)

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def test_repeat_views_are_debounced(user, make_content):
    item = make_content(user.id, "Essay")

    track_content_view(user.id, item.id, now=NOW)
    track_content_view(user.id, item.id, now=NOW + timedelta(seconds=10))
    track_content_view(user.id, item.id, now=NOW + timedelta(seconds=45))

    recent = get_recently_viewed(user.id)["items"]
    assert len(recent) == 1
    assert recent[0]["lastViewedAt"] == (NOW + timedelta(seconds=45)).isoformat(
        timespec="microseconds"
    )


def test_invalid_and_foreign_ids(user, other_user, make_content):
    theirs = make_content(other_user.id, "Theirs")

    invalid = track_content_view(user.id, "  ")
    assert invalid == {"success": False, "message": "Invalid content ID."}
    assert track_content_view(user.id, theirs.id)["success"] is False
    assert get_viewed_content_ids(user.id)["contentIds"] == []


def test_recently_viewed_order_and_limit(user, make_content):
    items = [make_content(user.id, f"Item {i}") for i in range(3)]
    for offset, item in enumerate(items):
        track_content_view(user.id, item.id, now=NOW + timedelta(minutes=offset))

    recent = get_recently_viewed(user.id, limit=2)["items"]
    assert [r["title"] for r in recent] == ["Item 2", "Item 1"]
    assert recent[0].keys() == {"id", "title", "type", "lastViewedAt"}
    # limits are clamped to 1..50
    assert len(get_recently_viewed(user.id, limit=0)["items"]) == 1
    assert len(get_recently_viewed(user.id, limit=500)["items"]) == 3


def test_viewed_ids_since(user, make_content):
    old = make_content(user.id, "Old")
    new = make_content(user.id, "New")
    track_content_view(user.id, old.id, now=NOW - timedelta(days=10))
    track_content_view(user.id, new.id, now=NOW)

    assert set(get_viewed_content_ids(user.id)["contentIds"]) == {old.id, new.id}
    since = get_viewed_content_ids(user.id, since=NOW - timedelta(days=1))
    assert since["contentIds"] == [new.id]


def test_deleted_content_drops_its_views(user, make_content):
    item = make_content(user.id, "Gone")
    track_content_view(user.id, item.id, now=NOW)

    delete_content(user.id, item.id)

    assert get_recently_viewed(user.id)["items"] == []
