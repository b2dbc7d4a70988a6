"""Unit tests for import parsers and their shared helpers

Tests cover:
- Browser bookmarks (folders to tags, skipped schemes, bare domains)
- Pocket HTML and CSV
- Evernote ENEX (ENML checkboxes, encrypted blocks, dates, empty notes)
- Notion ZIP (Markdown and HTML pages, folder tags, inline hashtags)
- Raindrop.io CSV
- X/Twitter bookmarks.js
- Title, tag, URL and date normalization
- HTML to plain text (script/style/head removal, list bullets)
"""

from __future__ import annotations

import io
import zipfile
from datetime import UTC, datetime, timedelta

import pytest

from mindweave.imports.parsers.bookmarks import is_bookmarks_file, parse_bookmarks
from mindweave.imports.parsers.evernote import enml_to_text, parse_evernote, parse_evernote_date
from mindweave.imports.parsers.notion import (
    extract_title_from_filename,
    parse_notion,
    parse_notion_html,
)
from mindweave.imports.parsers.pocket import parse_pocket, parse_pocket_csv
from mindweave.imports.parsers.raindrop import INVALID_FORMAT, is_raindrop_file, parse_raindrop
from mindweave.imports.parsers.twitter import parse_twitter, tweet_title
from mindweave.imports.utils import (
    folder_path_to_tags,
    normalize_tag,
    normalize_tags,
    normalize_url,
    parse_date,
    sanitize_title,
    strip_html,
    truncate_text,
)

BOOKMARKS_HTML = """<!DOCTYPE NETSCAPE-Bookmark-file-1>
<META HTTP-EQUIV="Content-Type" CONTENT="text/html; charset=UTF-8">
<TITLE>Bookmarks</TITLE>
<H1>Bookmarks</H1>
<DL><p>
    <DT><H3 ADD_DATE="1700000000">Bookmarks Bar</H3>
    <DL><p>
        <DT><H3>Development</H3>
        <DL><p>
            <DT><A HREF="https://docs.python.org/3/" ADD_DATE="1700000000">Python &amp; Docs</A>
        </DL><p>
        <DT><A HREF="javascript:void(0)">Bookmarklet</A>
        <DT><A HREF="example.org/page">Bare domain</A>
    </DL><p>
</DL><p>
"""

POCKET_HTML = """<!DOCTYPE html>
<html><head><title>Pocket Export</title></head><body>
<h1>Unread</h1>
<ul>
<li><a href="https://example.com/a" time_added="1700000000" tags="Reading,Tech Stuff">Article A</a></li>
</ul>
<h1>Read</h1>
<ul>
<li><a href="https://example.com/b" time_added="1690000000" tags="">Article B</a></li>
</ul>
</body></html>
"""

ENEX = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE en-export SYSTEM "http://xml.evernote.com/pub/evernote-export3.dtd">
<en-export>
<note><title>Groceries</title><content><![CDATA[<?xml version="1.0"?><en-note><div>Milk</div><en-todo checked="true"/>Eggs<br/><en-todo/>Bread</en-note>]]></content><created>20240115T143022Z</created><tag>Home</tag><tag>Lists</tag><note-attributes><source-url>https://example.com/list</source-url></note-attributes></note>
<note><title></title><content><![CDATA[<en-note></en-note>]]></content></note>
</en-export>
"""

RAINDROP_CSV = (
    "id,title,note,excerpt,url,folder,tags,created,cover,highlights,favorite\n"
    '1,Great Post,My note,An excerpt,https://r.example.com/p,Dev/Python,"a, b",'
    "2024-01-15T10:00:00Z,,,false\n"
    "2,Broken,,,,Dev,,,,,false\n"
)

PAGE_ID = "0123456789abcdef0123456789abcdef"


def _notion_zip(files: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, text in files.items():
            archive.writestr(name, text)
    return buffer.getvalue()


class TestBookmarks:
    def test_parses_links_with_folder_tags(self):
        result = parse_bookmarks(BOOKMARKS_HTML)

        assert result.success
        assert result.total == 3
        assert result.skipped == 1
        docs, bare = result.items
        assert docs.title == "Python & Docs"
        assert docs.url == "https://docs.python.org/3/"
        assert docs.tags == ["development"]
        assert docs.metadata["folderPath"] == "Bookmarks Bar/Development"
        assert docs.created_at == datetime.fromtimestamp(1700000000, tz=UTC)
        assert bare.url == "https://example.org/page"

    def test_empty_file_warns(self):
        result = parse_bookmarks("<html><body>nothing</body></html>")
        assert result.items == []
        assert result.warnings

    def test_detection(self):
        assert is_bookmarks_file(BOOKMARKS_HTML)
        assert not is_bookmarks_file("<html><body><p>hi</p></body></html>")


class TestPocket:
    def test_html_sections_and_tags(self):
        result = parse_pocket(POCKET_HTML)

        a, b = result.items
        assert a.tags == ["reading", "tech-stuff"]
        assert a.metadata == {"source": "pocket", "section": "unread"}
        assert b.tags == []
        assert b.metadata["section"] == "read"

    def test_csv_export(self):
        text = "title,url,time_added,tags\nA,https://a.example.com,1700000000,x|y\nB,,1700000000,\n"
        result = parse_pocket_csv(text)

        assert result.total == 2
        assert [i.title for i in result.items] == ["A"]
        assert result.items[0].tags == ["x", "y"]
        assert result.errors[0].item == "B"

    def test_csv_without_url_column_fails(self):
        result = parse_pocket_csv("title,tags\nA,x\n")
        assert not result.success
        assert result.errors[0].message == "CSV must have a URL column"


class TestEvernote:
    def test_notes_with_todos_tags_and_dates(self):
        result = parse_evernote(ENEX)

        assert result.total == 2
        assert result.skipped == 1
        note = result.items[0]
        assert note.title == "Groceries"
        assert note.type == "note"
        assert "[x] Eggs" in note.body
        assert "[ ] Bread" in note.body
        assert note.tags == ["home", "lists"]
        assert note.created_at == datetime(2024, 1, 15, 14, 30, 22, tzinfo=UTC)
        assert note.metadata["sourceUrl"] == "https://example.com/list"

    def test_rejects_non_enex(self):
        result = parse_evernote("<html></html>")
        assert not result.success

    def test_date_formats(self):
        assert parse_evernote_date("20240115T143022Z") == datetime(
            2024, 1, 15, 14, 30, 22, tzinfo=UTC
        )
        assert parse_evernote_date("20241345T000000Z") is None
        assert parse_evernote_date("") is None

    def test_encrypted_and_media_blocks_are_marked(self):
        enml = (
            "<en-note><div>Login details</div>"
            '<en-crypt hint="pin" cipher="AES">U2FsdGVkX1+abc</en-crypt>'
            '<en-media type="image/png" hash="abc123"/></en-note>'
        )
        text = enml_to_text(enml)

        assert "Login details" in text
        assert "[encrypted content]" in text
        assert "U2FsdGVkX1" not in text
        assert "[attachment]" in text


class TestNotion:
    def test_markdown_and_html_pages(self):
        data = _notion_zip(
            {
                f"Export/Work/Project Plan {PAGE_ID}.md": "# Project Plan\n\nShip it #roadmap\n",
                f"Export/Work/Meeting {PAGE_ID}.html": (
                    "<html><head><title>Meeting</title></head><body><article>"
                    '<header><h1 class="page-title">Weekly Meeting</h1></header>'
                    '<div class="page-body"><p>Discussed &amp; decided</p></div>'
                    "</article></body></html>"
                ),
                "__MACOSX/._junk.md": "junk",
            }
        )
        result = parse_notion(data)

        assert result.total == 2
        plan, meeting = result.items
        assert plan.title == "Project Plan"
        assert plan.body == "Ship it #roadmap"
        assert plan.tags == ["work", "roadmap"]
        assert plan.metadata["folderPath"] == "Export/Work"
        assert meeting.title == "Weekly Meeting"
        assert meeting.body == "Discussed & decided"

    def test_html_page_head_and_style_are_not_body_text(self):
        item = parse_notion_html(
            "<html><head><title>Doc</title><style>body{margin:0}</style></head>"
            "<body><p>Body text</p></body></html>",
            f"Doc {PAGE_ID}.html",
            "",
        )

        assert item.title == "Doc"
        assert item.body == "Body text"

    def test_bad_zip(self):
        result = parse_notion(b"not a zip")
        assert not result.success
        assert result.errors[0].message.startswith("Failed to parse Notion export")

    def test_title_from_filename(self):
        assert extract_title_from_filename(f"Project%20Plan {PAGE_ID}.md") == "Project Plan"
        assert extract_title_from_filename(".md") == "Untitled"


class TestRaindrop:
    def test_rows_become_links(self):
        result = parse_raindrop(RAINDROP_CSV)

        assert result.total == 2
        assert result.skipped == 1
        item = result.items[0]
        assert item.title == "Great Post"
        assert item.body == "My note\n\nAn excerpt"
        assert item.tags == ["a", "b", "dev", "python"]
        assert item.created_at == datetime(2024, 1, 15, 10, 0, tzinfo=UTC)
        assert result.errors[0].message == "Invalid URL: empty"

    def test_other_csv_is_rejected(self):
        result = parse_raindrop("name,link\nA,https://a.example.com\n")
        assert not result.success
        assert result.errors[0].message == INVALID_FORMAT
        assert is_raindrop_file(RAINDROP_CSV)
        assert not is_raindrop_file("name,link\n")


class TestTwitter:
    def test_bookmarks_js(self):
        text = (
            "window.YTD.bookmarks.part0 = "
            '[{"bookmark": {"tweetId": "123", "fullText": "Hello world"}}, {"bookmark": {}}]'
        )
        result = parse_twitter(text)

        assert result.total == 2
        tweet = result.items[0]
        assert tweet.title == "Hello world"
        assert tweet.url == "https://x.com/i/status/123"
        assert tweet.tags == ["twitter-bookmark"]
        assert result.errors[0].message == "Missing tweetId"

    def test_plain_json_array_and_bad_json(self):
        assert parse_twitter('[{"tweetId": "9"}]').items[0].title == "Tweet 9"
        assert not parse_twitter("window.YTD.bookmarks.part0 = [oops").success

    def test_long_text_title_is_truncated(self):
        title = tweet_title("1", "x" * 150)
        assert title == "x" * 100 + "…"


class TestUtils:
    def test_normalize_tag(self):
        assert normalize_tag("Machine Learning!") == "machine-learning"
        assert normalize_tags(["A", "a", None, "  ", "b c"]) == ["a", "b-c"]

    def test_folder_path_drops_root_folders(self):
        assert folder_path_to_tags("Bookmarks Bar/Development/JavaScript") == [
            "development",
            "javascript",
        ]
        assert folder_path_to_tags(None) == []

    def test_normalize_url(self):
        assert normalize_url(" example.com/x ") == "https://example.com/x"
        assert normalize_url("http://a.example.com") == "http://a.example.com"
        assert normalize_url("") is None

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (1700000000, datetime.fromtimestamp(1700000000, tz=UTC)),
            ("1700000000000", datetime.fromtimestamp(1700000000, tz=UTC)),
            ("2024-01-15T10:00:00Z", datetime(2024, 1, 15, 10, 0, tzinfo=UTC)),
            ("1980-01-01", None),
            ("not a date", None),
            (0, None),
        ],
    )
    def test_parse_date(self, value, expected):
        assert parse_date(value) == expected

    def test_future_dates_are_dropped(self):
        future = (datetime.now(UTC) + timedelta(days=10)).isoformat()
        assert parse_date(future) is None

    def test_titles(self):
        assert sanitize_title("  a \n b ") == "a b"
        assert sanitize_title("") == "Untitled"
        assert len(sanitize_title("x" * 600)) == 500
        assert truncate_text("one two three four", 14) == "one two three..."


class TestStripHtml:
    def test_script_and_style_contents_are_dropped(self):
        markup = "<p>Hello</p><script>var secret = 1;</script><style>.a{color:red}</style>"
        assert strip_html(markup) == "Hello"

    def test_angle_bracket_inside_attribute(self):
        assert strip_html('<p title="a > b">text</p>') == "text"

    def test_list_items_and_blocks(self):
        text = strip_html("<h2>Plan</h2><ul><li>One</li><li>Two</li></ul><p>Done &amp; dusted</p>")

        assert text.startswith("Plan")
        assert "• One" in text
        assert "• Two" in text
        assert text.endswith("Done & dusted")

    def test_comments_and_empty_input(self):
        assert strip_html("<p>Kept<!-- hidden --></p>") == "Kept"
        assert strip_html("") == ""
        assert strip_html(None) == ""
