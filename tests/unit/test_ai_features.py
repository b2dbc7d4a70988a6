"""Unit tests for LLM-backed features

Tests cover:
- Daily highlight: candidate rules, per-day cache, fallback insight
- LinkedIn post generation: validation, ownership, prompt contents, history
- Weekly briefing: minimum items, themes, storage, cron
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from mindweave.briefing.service import (
    NOT_ENOUGH_CONTENT,
    extract_themes,
    generate_user_briefing,
    get_latest_briefing,
    run_briefing_cron,
)
from mindweave.content.service import delete_content
from mindweave.digest.service import save_digest_settings
from mindweave.highlights.service import get_daily_highlight
from mindweave.posts.service import (
    delete_post,
    generate_post,
    get_content_for_selection,
    get_post_history,
)


class TestDailyHighlight:
    def test_no_candidates(self, user, make_content):
        make_content(user.id, "Bare title only")
        assert get_daily_highlight(user.id, "2024-06-12") == {"success": True, "highlight": None}

    def test_fallback_insight_and_cache(self, user, make_content):
        item = make_content(user.id, "Stoicism", body="Notes on Seneca", tags=["philosophy"])

        first = get_daily_highlight(user.id, "2024-06-12")["highlight"]
        assert first == {
            "contentId": item.id,
            "title": "Stoicism",
            "type": "note",
            "insight": '"Stoicism" — a great piece to revisit today.',
            "tags": ["philosophy"],
        }

        make_content(user.id, "Another", body="more")
        assert get_daily_highlight(user.id, "2024-06-12")["highlight"] == first

    def test_llm_insight(self, user, make_content, fake_llm):
        fake_llm.responses["highlight"] = "Virtue travels well. "
        make_content(user.id, "Stoicism", body="Notes on Seneca")

        highlight = get_daily_highlight(user.id, "2024-06-12")["highlight"]
        assert highlight["insight"] == "Virtue travels well."
        assert "Notes on Seneca" in fake_llm.prompts("highlight")[0]

    def test_deleted_content_is_repicked(self, user, make_content):
        first = make_content(user.id, "First", body="a")
        get_daily_highlight(user.id, "2024-06-12")
        delete_content(user.id, first.id)
        second = make_content(user.id, "Second", body="b")

        assert get_daily_highlight(user.id, "2024-06-12")["highlight"]["contentId"] == second.id


class TestPosts:
    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"content_ids": []}, "Select at least one content item"),
            ({"content_ids": [f"id{i}" for i in range(11)]}, "Select at most 10 content items"),
            ({"content_ids": ["a"], "tone": "angry"}, "Invalid tone"),
            ({"content_ids": ["a"], "length": "epic"}, "Invalid length"),
            ({"content_ids": ["a"]}, "No content found. Make sure you own the selected items."),
        ],
    )
    def test_validation(self, user, kwargs, message):
        assert generate_post(user.id, **kwargs) == {"success": False, "message": message}

    def test_requires_llm(self, user, make_content):
        item = make_content(user.id, "Idea")
        assert generate_post(user.id, [item.id])["message"] == "AI features are not configured"

    def test_generates_and_records_post(self, user, other_user, make_content, fake_llm):
        fake_llm.responses["linkedin_post"] = "  Here is what I learned.  "
        mine = make_content(user.id, "Idea", body="Ship small", url=None, tags=["product"])
        theirs = make_content(other_user.id, "Secret", body="do not leak")

        result = generate_post(user.id, [mine.id, theirs.id], "casual", "short", False)

        assert result["success"] is True
        post = result["post"]
        assert post["postContent"] == "Here is what I learned."
        assert post["sourceContentTitles"] == ["Idea"]
        assert post["tone"] == "casual"
        prompt = fake_llm.prompts("linkedin_post")[0]
        assert "Ship small" in prompt
        assert "do not leak" not in prompt
        assert "Do NOT include any hashtags." in prompt

        history = get_post_history(user.id)["posts"]
        assert [p["id"] for p in history] == [post["id"]]
        assert delete_post(other_user.id, post["id"])["success"] is False
        assert delete_post(user.id, post["id"]) == {"success": True}
        assert get_post_history(user.id)["posts"] == []

    def test_empty_model_output_fails(self, user, make_content, fake_llm):
        item = make_content(user.id, "Idea")
        result = generate_post(user.id, [item.id])
        assert result == {"success": False, "message": "Failed to generate post. Please try again."}

    def test_content_picker(self, user, make_content):
        make_content(user.id, "Rust ownership")
        make_content(user.id, "Gardening", body="rusty tools")
        make_content(user.id, "Cooking")

        everything = get_content_for_selection(user.id)["items"]
        assert len(everything) == 3
        found = get_content_for_selection(user.id, "rust")["items"]
        assert {i["title"] for i in found} == {"Rust ownership", "Gardening"}


class TestBriefing:
    def test_theme_extraction(self, user, make_content):
        a = make_content(user.id, "a", tags=["AI", "ml"], auto_tags=["ai"])
        b = make_content(user.id, "b", tags=["ml"], auto_tags=["ai"])
        assert extract_themes([a, b], limit=2) == ["ai", "ml"]

    def test_needs_two_recent_items(self, user, make_content, fake_llm):
        make_content(user.id, "this week")
        make_content(user.id, "old", created_at=datetime.now(UTC) - timedelta(days=10))

        assert generate_user_briefing(user.id) == {"success": False, "message": NOT_ENOUGH_CONTENT}

    def test_generate_and_fetch_latest(self, user, make_content, fake_llm):
        fake_llm.responses["weekly_briefing"] = "This week I learned..."
        make_content(user.id, "One", tags=["focus"])
        make_content(user.id, "Two", tags=["focus"])

        result = generate_user_briefing(user.id)
        assert result["success"] is True
        assert result["data"]["themes"] == ["focus"]
        assert set(result["data"]["sourceContentTitles"]) == {"One", "Two"}

        latest = get_latest_briefing(user.id)["data"]
        assert latest["postContent"] == "This week I learned..."
        assert latest["themes"] == []

    def test_unconfigured_llm(self, user, make_content):
        make_content(user.id, "One")
        make_content(user.id, "Two")
        assert generate_user_briefing(user.id)["message"] == "AI features are not configured"
        assert get_latest_briefing(user.id) == {"success": True}

    def test_cron_covers_digest_users(self, user, other_user, make_content, fake_llm):
        fake_llm.responses["weekly_briefing"] = "Recap"
        save_digest_settings(user.id, True, "weekly", 0, 9)
        save_digest_settings(other_user.id, True, "weekly", 0, 9)
        make_content(user.id, "One")
        make_content(user.id, "Two")

        assert run_briefing_cron() == {"success": True, "generated": 1, "skipped": 1, "total": 2}
        assert get_latest_briefing(user.id)["data"]["postContent"] == "Recap"
