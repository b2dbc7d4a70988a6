"""Unit tests for content export"""

from __future__ import annotations

import csv
import io
import json
from datetime import UTC, datetime

import pytest

from mindweave.export.service import CSV_HEADERS, NothingToExportError, export_content


@pytest.fixture
def exported_items(user, other_user, make_content):
    older = make_content(
        user.id,
        "Reading list",
        "link",
        url="https://example.com",
        tags=["books", "later"],
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
    )
    newer = make_content(user.id, "Thoughts, \"quoted\"", body="line one\nline two")
    make_content(other_user.id, "Not mine")
    return older, newer


def test_json_export_is_newest_first(user, exported_items):
    older, newer = exported_items
    export = export_content(user.id, "json")

    records = json.loads(export.content)
    assert export.media_type == "application/json"
    assert export.filename == "mindweave-export.json"
    assert [r["id"] for r in records] == [newer.id, older.id]
    assert records[1]["tags"] == ["books", "later"]
    assert records[1]["createdAt"].startswith("2024-01-01T00:00:00")


def test_markdown_export(user, exported_items):
    export = export_content(user.id, "markdown")

    assert export.content.startswith("# Mindweave Export")
    assert "Total items: 2" in export.content
    assert "**URL:** [https://example.com](https://example.com)" in export.content
    assert "**Tags:** books, later" in export.content
    assert "**Created:** 2024-01-01 00:00:00 UTC" in export.content
    assert "Not mine" not in export.content


def test_csv_export_quotes_fields(user, exported_items):
    export = export_content(user.id, "csv")

    rows = list(csv.reader(io.StringIO(export.content)))
    assert rows[0] == CSV_HEADERS
    assert rows[1][2] == 'Thoughts, "quoted"'
    assert rows[1][3] == "line one\nline two"
    assert rows[2][5] == "books; later"


def test_subset_export_ignores_foreign_ids(user, other_user, exported_items, make_content):
    older, _ = exported_items
    foreign = make_content(other_user.id, "Theirs")

    export = export_content(user.id, "json", [older.id, foreign.id])
    assert [r["id"] for r in json.loads(export.content)] == [older.id]


def test_errors(user):
    with pytest.raises(ValueError, match="Invalid export format"):
        export_content(user.id, "xml")
    with pytest.raises(NothingToExportError):
        export_content(user.id, "json")
