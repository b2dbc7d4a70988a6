"""Unit tests for the content service

Tests cover:
- Creation with validation and inline enrichment
- Listing filters, sorting and pagination totals
- Updates, favorites, sharing and deletion with ownership checks
- Bulk delete and bulk tagging limits
- Summaries with and without the LLM
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from mindweave.ai.embeddings import get_embedding
from mindweave.content import service
from mindweave.content.repository import ContentRepository


class TestCreateContent:
    def test_creates_note_and_stores_zero_embedding_when_llm_off(self, user):
        result = service.create_content(user.id, "note", "  Meeting notes ", body="Agenda")

        assert result["success"] is True
        item = ContentRepository.get_by_id(result["data"]["id"])
        assert item.title == "Meeting notes"
        assert item.auto_tags == []
        vector = get_embedding(item.id)
        assert vector is not None and not any(vector)

    def test_enrichment_uses_llm_tags_and_embedding(self, user, fake_llm):
        fake_llm.responses["tags"] = "Python, Testing , "

        result = service.create_content(user.id, "note", "Pytest fixtures", body="scoping")

        item = ContentRepository.get_by_id(result["data"]["id"])
        assert item.auto_tags == ["python", "testing"]
        assert any(get_embedding(item.id))

    def test_link_requires_valid_url(self, user):
        result = service.create_content(user.id, "link", "Bad", url="javascript:alert(1)")
        assert result["success"] is False
        assert result["errors"] == ["Invalid URL"]

    def test_rejects_unknown_type_and_blank_title(self, user):
        assert service.create_content(user.id, "video", "x")["success"] is False
        assert service.create_content(user.id, "note", "   ")["success"] is False

    def test_tags_are_cleaned(self, user):
        result = service.create_content(user.id, "note", "t", tags=[" a ", "a", "", "b"])
        assert ContentRepository.get_by_id(result["data"]["id"]).tags == ["a", "b"]


class TestListContent:
    def test_filters_and_totals(self, user, other_user, make_content):
        make_content(user.id, "Alpha note", tags=["ml"])
        make_content(user.id, "Beta link", "link", url="https://example.com", auto_tags=["ml"])
        make_content(user.id, "Gamma", body="contains ALPHA inside")
        make_content(other_user.id, "Alpha elsewhere")

        assert service.list_content(user.id)["data"]["total"] == 3
        assert service.list_content(user.id, content_type="link")["data"]["total"] == 1
        tagged = service.list_content(user.id, tag="ml")["data"]
        assert tagged["total"] == 2
        searched = service.list_content(user.id, query="alpha")["data"]
        assert {i["title"] for i in searched["items"]} == {"Alpha note", "Gamma"}

    def test_sort_by_title_and_paging(self, user, make_content):
        for title in ("b", "c", "a"):
            make_content(user.id, title)

        page = service.list_content(user.id, sort="title", order="asc", limit=2, offset=1)
        assert [i["title"] for i in page["data"]["items"]] == ["b", "c"]
        assert page["data"]["total"] == 3

    def test_like_wildcards_are_literal(self, user, make_content):
        make_content(user.id, "100% done")
        make_content(user.id, "1000 things")
        found = service.list_content(user.id, query="100%")["data"]["items"]
        assert [i["title"] for i in found] == ["100% done"]

    def test_invalid_sort_raises(self, user):
        with pytest.raises(ValueError):
            service.list_content(user.id, sort="updated_at")


class TestSingleItemActions:
    def test_update_validates_and_clears(self, user, make_content):
        item = make_content(user.id, "Old", body="text")

        result = service.update_content(user.id, item.id, {"title": " New ", "body": ""})
        assert result["success"] is True
        assert result["data"]["title"] == "New"
        assert result["data"]["body"] is None

        bad = service.update_content(user.id, item.id, {"title": ""})
        assert bad == {"success": False, "message": "Title is required"}

    def test_update_checks_url_only_for_links(self, user, make_content):
        note = make_content(user.id, "Note", url="https://example.com")
        result = service.update_content(user.id, note.id, {"url": "see page 4"})
        assert result["success"] is True
        assert result["data"]["url"] == "see page 4"

        link = make_content(user.id, "Link", "link", url="https://example.com")
        bad = service.update_content(user.id, link.id, {"url": "javascript:alert(1)"})
        assert bad == {"success": False, "message": "Invalid URL"}
        assert ContentRepository.get_by_id(link.id).url == "https://example.com"

    def test_update_of_foreign_item_is_not_found(self, user, other_user, make_content):
        item = make_content(other_user.id, "Theirs")
        assert service.update_content(user.id, item.id, {"title": "Mine"}) == service.NOT_FOUND
        assert ContentRepository.get_by_id(item.id).title == "Theirs"

    def test_toggle_favorite(self, user, make_content):
        item = make_content(user.id, "Fav")
        assert service.toggle_favorite(user.id, item.id)["data"] == {"isFavorite": True}
        assert service.toggle_favorite(user.id, item.id)["data"] == {"isFavorite": False}

    def test_share_reuses_id_and_unshare_hides(self, user, make_content):
        item = make_content(user.id, "Public")

        first = service.share_content(user.id, item.id)["data"]
        second = service.share_content(user.id, item.id)["data"]
        assert first["shareId"] == second["shareId"]
        assert first["shareUrl"].endswith(f"/share/{first['shareId']}")

        shared = service.get_shared_content(first["shareId"])
        assert shared["title"] == "Public"
        assert "isFavorite" not in shared and "metadata" not in shared

        service.unshare_content(user.id, item.id)
        assert service.get_shared_content(first["shareId"]) is None

    def test_delete_only_own(self, user, other_user, make_content):
        mine = make_content(user.id, "Mine")
        theirs = make_content(other_user.id, "Theirs")

        assert service.delete_content(user.id, theirs.id)["success"] is False
        assert service.delete_content(user.id, mine.id)["success"] is True
        assert ContentRepository.get_by_id(mine.id) is None
        assert ContentRepository.get_by_id(theirs.id) is not None


class TestBulk:
    def test_bulk_delete_counts_only_owned(self, user, other_user, make_content):
        mine = [make_content(user.id, f"m{i}").id for i in range(3)]
        theirs = make_content(other_user.id, "t").id

        result = service.bulk_delete(user.id, [*mine, theirs, mine[0]])
        assert result["data"] == {"deleted": 3}
        assert ContentRepository.get_by_id(theirs) is not None

    def test_bulk_limits(self, user):
        assert service.bulk_delete(user.id, [])["message"] == "No items selected"
        too_many = [f"id-{i}" for i in range(101)]
        assert "more than 100" in service.bulk_delete(user.id, too_many)["message"]

    def test_bulk_tags_merge_without_duplicates(self, user, make_content):
        a = make_content(user.id, "a", tags=["x"])
        b = make_content(user.id, "b", tags=["y", "z"])

        result = service.bulk_add_tags(user.id, [a.id, b.id], ["z", " new "])
        assert result["data"] == {"updated": 2}
        assert ContentRepository.get_by_id(a.id).tags == ["x", "z", "new"]
        assert ContentRepository.get_by_id(b.id).tags == ["y", "z", "new"]

        assert service.bulk_add_tags(user.id, [a.id], [" "])["message"] == "No tags provided"


class TestSummary:
    def test_unconfigured_llm(self, user, make_content):
        item = make_content(user.id, "Doc", body="long text")
        result = service.generate_summary(user.id, item.id)
        assert result == {"success": False, "message": "AI features are not configured"}

    def test_summary_is_saved(self, user, make_content, fake_llm):
        fake_llm.responses["summary"] = "  A short summary.  "
        item = make_content(user.id, "Doc", body="long text")

        result = service.generate_summary(user.id, item.id)
        assert result == {"success": True, "data": {"summary": "A short summary."}}
        assert ContentRepository.get_by_id(item.id).summary == "A short summary."
        assert "long text" in fake_llm.prompts("summary")[0]


def test_created_at_is_kept_for_backdated_items(user, make_content):
    when = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
    item = make_content(user.id, "Old", created_at=when)
    assert ContentRepository.get_by_id(item.id).created_at == when
