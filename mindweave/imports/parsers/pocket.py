"""
Pocket export parser.

The HTML export has an "Unread" and a "Read" <h1>, each followed by a <ul> of
links carrying `time_added` and comma-separated `tags` attributes. The CSV
export (url, title, tags, time_added) is handled too.
"""

from __future__ import annotations

import csv
import io
import re

from bs4 import BeautifulSoup

from mindweave.imports.models import ImportItem, ParseResult
from mindweave.imports.utils import (
    decode_html_entities,
    normalize_tags,
    normalize_url,
    parse_date,
    sanitize_title,
)


def _section(link) -> str:
    heading = link.find_previous("h1")
    if heading is None:
        return "unknown"
    text = heading.get_text().strip().lower()
    return text if text in ("read", "unread") else "unknown"


def parse_pocket(markup: str) -> ParseResult:
    result = ParseResult()
    try:
        links = BeautifulSoup(markup, "html.parser").find_all("a")
    except Exception as e:
        return ParseResult.failure(f"Failed to parse Pocket export: {e}")

    result.total = len(links)
    if not links:
        result.warnings.append(
            "No items found in Pocket export."
            if is_pocket_file(markup)
            else "This does not appear to be a Pocket export file. "
            "Please export from Pocket settings."
        )

    for link in links:
        title = link.get_text()
        href = link.get("href")
        if not href:
            result.skipped += 1
            continue

        url = normalize_url(href)
        if url is None:
            result.add_error(f"Invalid URL: {href}", item=title or "Unknown")
            result.skipped += 1
            continue

        tags_attr = link.get("tags")
        result.items.append(
            ImportItem(
                title=sanitize_title(decode_html_entities(title)),
                url=url,
                type="link",
                tags=normalize_tags(tags_attr.split(",")) if tags_attr else [],
                created_at=parse_date(link.get("time_added")),
                metadata={"source": "pocket", "section": _section(link)},
            )
        )

    return result


def is_pocket_file(markup: str) -> bool:
    lower = markup.lower()
    return "pocket" in lower or "<h1>unread</h1>" in lower or "<h1>read</h1>" in lower


def _column(header: list[str], *names: str) -> int | None:
    for idx, column in enumerate(header):
        if column in names:
            return idx
    return None


def parse_pocket_csv(text: str) -> ParseResult:
    """Pocket CSV export: needs a url (or link) column."""
    rows = list(csv.reader(io.StringIO(text)))
    if not rows:
        return ParseResult.failure("Invalid CSV format. Expected columns: url, title, tags")

    header = [c.strip().lower() for c in rows[0]]
    url_idx = _column(header, "url", "link")
    if url_idx is None:
        return ParseResult.failure("CSV must have a URL column")
    title_idx = _column(header, "title", "name")
    tags_idx = _column(header, "tags", "tag")
    date_idx = _column(header, "date", "time_added", "added")

    result = ParseResult()
    for line_no, row in enumerate(rows[1:], start=2):
        if not any(cell.strip() for cell in row):
            continue
        result.total += 1

        def cell(idx: int | None, row: list[str] = row) -> str | None:
            return row[idx].strip() if idx is not None and idx < len(row) else None

        raw_url, title = cell(url_idx), cell(title_idx)
        url = normalize_url(raw_url)
        if url is None:
            result.add_error(f"Invalid URL: {raw_url}", item=title or raw_url or f"Row {line_no}")
            result.skipped += 1
            continue

        tags = cell(tags_idx)
        result.items.append(
            ImportItem(
                title=sanitize_title(title or url),
                url=url,
                type="link",
                tags=normalize_tags(re.split(r"[,|;]", tags)) if tags else [],
                created_at=parse_date(cell(date_idx)),
                metadata={"source": "pocket"},
            )
        )

    return result
