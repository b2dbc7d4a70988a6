"""Unit tests for dashboard analytics and cross-domain connections"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from mindweave.analytics import service
from mindweave.analytics.service import (
    get_connections,
    get_content_growth,
    get_knowledge_insights,
    get_overview,
    get_tag_distribution,
    growth_buckets,
)
from mindweave.collections.service import create_collection

NOW = datetime(2024, 6, 12, 15, 30, tzinfo=UTC)


class TestGrowthBuckets:
    @pytest.mark.parametrize(("period", "count"), [("week", 8), ("month", 31), ("year", 13)])
    def test_label_counts(self, period, count):
        _, labels = growth_buckets(period, NOW)
        assert len(labels) == count

    def test_daily_labels_span_both_ends(self):
        start, labels = growth_buckets("week", NOW)
        assert start == NOW - timedelta(days=7)
        assert labels[0] == "2024-06-05"
        assert labels[-1] == "2024-06-12"

    def test_year_labels_are_months(self):
        _, labels = growth_buckets("year", NOW)
        assert labels[0] == "2023-06"
        assert labels[-1] == "2024-06"

    def test_leap_day(self):
        start, _ = growth_buckets("year", datetime(2024, 2, 29, tzinfo=UTC))
        assert start == datetime(2023, 2, 28, tzinfo=UTC)


def test_content_growth_is_zero_filled(user, make_content):
    make_content(user.id, "n1", created_at=NOW - timedelta(days=1))
    make_content(user.id, "l1", "link", url="https://a.example.com", created_at=NOW - timedelta(days=1))
    make_content(user.id, "old", created_at=NOW - timedelta(days=40))

    data = get_content_growth(user.id, "week", NOW)["data"]

    assert len(data) == 8
    day = next(entry for entry in data if entry["date"] == "2024-06-11")
    assert day == {"date": "2024-06-11", "notes": 1, "links": 1, "files": 0, "total": 2}
    assert sum(entry["total"] for entry in data) == 2
    assert get_content_growth(user.id, "decade") == {"success": False, "message": "Invalid period"}


def test_overview_and_tag_distribution(user, other_user, make_content):
    make_content(user.id, "a", tags=["python"], auto_tags=["code"])
    make_content(user.id, "b", tags=["python"])
    make_content(user.id, "old", created_at=datetime(2023, 1, 1, tzinfo=UTC))
    make_content(other_user.id, "x", tags=["other"])
    create_collection(user.id, "Reading")

    overview = get_overview(user.id)["data"]
    assert overview == {
        "totalItems": 3,
        "itemsThisMonth": 2,
        "totalCollections": 1,
        "totalTags": 2,
    }

    distribution = get_tag_distribution(user.id)["data"]
    assert distribution[0] == {"tag": "python", "count": 2, "percentage": 67}


def test_insights_for_empty_and_small_libraries(user, make_content):
    assert get_knowledge_insights(user.id)["data"][0]["title"] == "Start Capturing Knowledge"

    for i in range(5):
        make_content(user.id, f"item {i}", tags=["focus"])
    titles = [i["title"] for i in get_knowledge_insights(user.id)["data"]]
    assert "Active This Month" in titles
    assert "Top Focus Area" in titles
    assert "Organize with Collections" in titles
    assert len(titles) <= 5


class TestConnections:
    @pytest.fixture
    def pairs(self, user, make_content, monkeypatch):
        cooking = make_content(user.id, "Fermentation basics", tags=["cooking"])
        biology = make_content(user.id, "Microbiome research", tags=["biology"])
        baking = make_content(user.id, "Sourdough", tags=["cooking"])
        candidates = [(cooking.id, baking.id, 0.58), (cooking.id, biology.id, 0.45)]
        monkeypatch.setattr(service, "similar_pairs", lambda *args, **kwargs: candidates)
        return cooking, biology

    def test_pairs_sharing_tags_are_skipped(self, user, pairs):
        cooking, biology = pairs

        result = get_connections(user.id, limit=5)["data"]

        assert len(result) == 1
        connection = result[0]
        assert connection["contentA"]["id"] == cooking.id
        assert connection["contentB"]["id"] == biology.id
        assert connection["similarity"] == 45
        assert connection["tagGroupA"] == ["cooking"]
        assert "Fermentation basics" in connection["insight"]

    def test_recent_connections_are_cached(self, user, pairs, monkeypatch):
        first = get_connections(user.id, limit=1)["data"]

        monkeypatch.setattr(service, "similar_pairs", lambda *args, **kwargs: [])
        cached = get_connections(user.id, limit=1)["data"]
        assert cached == first

    def test_llm_insight(self, user, pairs, fake_llm):
        fake_llm.responses["connection"] = " Both rely on living cultures. "
        result = get_connections(user.id)["data"]
        assert result[0]["insight"] == "Both rely on living cultures."


def test_no_embeddings_means_no_connections(user, make_content):
    make_content(user.id, "lonely")
    assert get_connections(user.id) == {"success": True, "data": []}
