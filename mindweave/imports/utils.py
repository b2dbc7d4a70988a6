"""
Helpers shared by the import parsers: titles, tags, URLs, HTML text and dates.
"""

from __future__ import annotations

import html
import re
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import TypeVar
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

T = TypeVar("T")

TITLE_MAX = 500
TAG_MAX = 50

ROOT_FOLDER_NAMES = frozenset(
    {
        "bookmarks",
        "bookmarks bar",
        "bookmarks menu",
        "bookmarks toolbar",
        "other bookmarks",
        "mobile bookmarks",
        "favorites",
        "favorites bar",
        "unfiled bookmarks",
        "root",
        "export",
        "exported",
    }
)

BLOCK_TAGS = ["br", "p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "tr"]
NON_TEXT_NODES = (Comment, Declaration, Doctype, ProcessingInstruction)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_EARLIEST_DATE = datetime(1990, 1, 1, tzinfo=UTC)


def sanitize_title(title: str | None) -> str:
    """Collapse whitespace, drop control characters, cap at 500 chars."""
    if not title:
        return "Untitled"
    sanitized = re.sub(r"\s+", " ", title).strip()
    sanitized = _CONTROL_CHARS.sub("", sanitized)
    if len(sanitized) > TITLE_MAX:
        sanitized = sanitized[: TITLE_MAX - 3] + "..."
    return sanitized or "Untitled"


def normalize_tag(tag: str) -> str:
    """
    "Machine Learning!" -> "machine-learning"
    """
    normalized = tag.lower().strip()
    normalized = re.sub(r"[^a-z0-9\-_]", "-", normalized)
    normalized = re.sub(r"-+", "-", normalized)
    normalized = re.sub(r"^-|-$", "", normalized)
    return normalized[:TAG_MAX]


def normalize_tags(tags: Iterable[str | None]) -> list[str]:
    """Normalize, drop empties and duplicates, keep first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        if not tag:
            continue
        normalized = normalize_tag(tag)
        if normalized:
            seen.setdefault(normalized, None)
    return list(seen)


def folder_path_to_tags(folder_path: str | None) -> list[str]:
    """
    "Bookmarks Bar/Development/JavaScript" -> ["development", "javascript"]
    """
    if not folder_path:
        return []
    parts = re.split(r"[/\\>]+", folder_path)
    return normalize_tags(
        part.strip().lower()
        for part in parts
        if part.strip() and part.strip().lower() not in ROOT_FOLDER_NAMES
    )


def extract_domain(url: str | None) -> str | None:
    if not url:
        return None
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    return re.sub(r"^www\.", "", hostname)


def normalize_url(url: str | None) -> str | None:
    """Trim, default to https://, and reject anything without a host."""
    if not url:
        return None
    normalized = url.strip()
    if not re.match(r"^https?://", normalized, re.IGNORECASE):
        normalized = "https://" + normalized
    try:
        parsed = urlparse(normalized)
    except ValueError:
        return None
    if not parsed.netloc or " " in parsed.netloc:
        return None
    return normalized


def decode_html_entities(text: str) -> str:
    return html.unescape(text).replace("\xa0", " ")


def html_to_text(soup: BeautifulSoup) -> str:
    """
    Plain text from parsed HTML.

    Script, style and head elements are dropped. List items start a "• "
    line and block elements start a new line.
    """
    for tag in soup(["script", "style", "head"]):
        tag.decompose()
    for node in soup.find_all(string=lambda s: isinstance(s, NON_TEXT_NODES)):
        node.extract()

    for item in soup.find_all("li"):
        item.insert_before("\n• ")
    for block in soup.find_all(BLOCK_TAGS):
        block.insert_before("\n")

    text = soup.get_text().replace("\xa0", " ")
    text = re.sub(r"\n\s*\n", "\n\n", text)
    return text.strip()


def strip_html(markup: str | None) -> str:
    """Plain text from an HTML fragment, keeping line breaks for block elements."""
    if not markup:
        return ""
    return html_to_text(BeautifulSoup(markup, "html.parser"))


def generate_dedup_key(title: str, url: str | None = None) -> str:
    if url:
        return f"url:{normalize_url(url)}"
    return f"title:{title.lower().strip()}"


def truncate_text(text: str, max_length: int) -> str:
    """Truncate with "...", preferring a word boundary near the end."""
    if len(text) <= max_length:
        return text
    truncated = text[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.8:
        return truncated[:last_space] + "..."
    return truncated + "..."


def _valid_date(value: datetime) -> datetime | None:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    latest = datetime.now(UTC) + timedelta(days=1)
    return value if _EARLIEST_DATE <= value <= latest else None


def _from_timestamp(number: float) -> datetime | None:
    # values above 1e12 are milliseconds
    seconds = number / 1000 if number > 1e12 else number
    try:
        return _valid_date(datetime.fromtimestamp(seconds, tz=UTC))
    except (OverflowError, OSError, ValueError):
        return None


def parse_date(value: str | float | None) -> datetime | None:
    """
    Parse export dates: epoch seconds/millis or ISO-like strings.

    Dates before 1990 or after tomorrow are treated as missing.
    """
    if value is None or value == "" or value == 0:
        return None
    if isinstance(value, int | float):
        return _from_timestamp(float(value))

    text = value.strip()
    if text.isdigit():
        return _from_timestamp(float(text))
    try:
        return _valid_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass
    for fmt in ("%a %b %d %H:%M:%S %z %Y", "%Y/%m/%d %H:%M:%S", "%Y/%m/%d"):
        try:
            return _valid_date(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return None


def batch_array(items: list[T], batch_size: int) -> list[list[T]]:
    return [items[i : i + batch_size] for i in range(0, len(items), batch_size)]
