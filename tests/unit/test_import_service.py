"""Unit tests for the import service

Tests cover:
- File validation before parsing (source, extension, size, sniffing)
- Duplicate skipping against stored content and within one import
- Additional tags and the importedAt stamp
- Summary messages
"""

from __future__ import annotations

import pytest

from mindweave.content.repository import ContentRepository
from mindweave.imports.models import ImportItem, ImportOptions
from mindweave.imports.service import import_content, parse_import_file
from mindweave.utils.validators import ValidationError

TWITTER_JS = b'window.YTD.bookmarks.part0 = [{"bookmark": {"tweetId": "42", "fullText": "hi"}}]'


class TestParseImportFile:
    def test_unknown_source(self):
        with pytest.raises(ValidationError, match="Invalid import source"):
            parse_import_file("delicious", "x.html", b"")

    def test_wrong_extension(self):
        with pytest.raises(ValidationError, match="Expected: .zip"):
            parse_import_file("notion", "export.html", b"<html></html>")

    def test_oversized_file(self, monkeypatch):
        monkeypatch.setattr("mindweave.imports.service.IMPORT_MAX_FILE_BYTES", 10)
        with pytest.raises(ValidationError, match="File too large"):
            parse_import_file("twitter", "bookmarks.js", TWITTER_JS)

    def test_content_must_match_source(self):
        with pytest.raises(ValidationError, match="bookmarks.js"):
            parse_import_file("twitter", "bookmarks.js", b"console.log('hello')")

    def test_parses_matching_file(self):
        result = parse_import_file("twitter", "Bookmarks.JS", TWITTER_JS)
        assert result.success
        assert result.to_api_dict()["stats"] == {"total": 1, "parsed": 1, "skipped": 0}


class TestImportContent:
    def test_imports_and_reports(self, user):
        items = [
            ImportItem(title="A", url="https://a.example.com", tags=["x"]),
            ImportItem(title="Note", type="note", body="text"),
        ]
        result = import_content(
            user.id,
            items,
            ImportOptions(additionalTags=["Imported Stuff"], generateAutoTags=False),
        )

        assert result["success"] is True
        assert result["imported"] == 2
        assert result["message"] == "Successfully imported 2 items"
        link = ContentRepository.get_by_id(result["createdIds"][0])
        assert link.tags == ["x", "imported-stuff"]
        assert "importedAt" in link.metadata

    def test_duplicates_are_skipped(self, user, make_content):
        make_content(user.id, "Existing", "link", url="https://Dup.example.com")
        make_content(user.id, "My Note")
        items = [
            ImportItem(title="dup", url="https://dup.example.com"),
            ImportItem(title="  my note ", type="note"),
            ImportItem(title="New", url="https://new.example.com"),
            ImportItem(title="New again", url="https://NEW.example.com"),
        ]

        result = import_content(user.id, items)

        assert result["imported"] == 1
        assert result["skipped"] == 3
        assert result["message"] == "Successfully imported 1 item. 3 duplicates skipped."

    def test_duplicates_kept_when_disabled(self, user, make_content):
        make_content(user.id, "Existing", "link", url="https://dup.example.com")
        items = [ImportItem(title="dup", url="https://dup.example.com")]

        result = import_content(user.id, items, ImportOptions(skipDuplicates=False))
        assert result["imported"] == 1

    def test_only_duplicates(self, user, make_content):
        make_content(user.id, "Existing", "link", url="https://dup.example.com")
        result = import_content(user.id, [ImportItem(title="d", url="https://dup.example.com")])

        assert result["success"] is False
        assert result["message"] == "No new items imported. 1 duplicate skipped."

    def test_empty_and_oversized_imports(self, user, monkeypatch):
        assert import_content(user.id, [])["message"] == (
            "Validation failed: At least one item is required"
        )
        monkeypatch.setattr("mindweave.imports.service.IMPORT_MAX_ITEMS", 1)
        items = [ImportItem(title="a", type="note"), ImportItem(title="b", type="note")]
        assert "Maximum 1 items" in import_content(user.id, items)["message"]

    def test_enrichment_runs_for_new_rows(self, user, fake_llm):
        fake_llm.responses["tags"] = "reading"
        result = import_content(user.id, [ImportItem(title="A", url="https://a.example.com")])

        item = ContentRepository.get_by_id(result["createdIds"][0])
        assert item.auto_tags == ["reading"]
