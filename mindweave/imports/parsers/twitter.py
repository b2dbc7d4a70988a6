"""
X/Twitter bookmarks parser.

The archive ships bookmarks as JavaScript:

    window.YTD.bookmarks.part0 = [{"bookmark": {"tweetId": "...", "fullText": "..."}}]
"""

from __future__ import annotations

import json
from typing import Any

from mindweave.imports.models import ImportItem, ParseResult
from mindweave.imports.utils import parse_date, sanitize_title

TITLE_LENGTH = 100


def tweet_title(tweet_id: str, full_text: str | None) -> str:
    if not full_text:
        return f"Tweet {tweet_id}"
    if len(full_text) > TITLE_LENGTH:
        return full_text[:TITLE_LENGTH] + "…"
    return full_text


def _parse_entry(entry: Any) -> ImportItem:
    bookmark = entry.get("bookmark", entry) if isinstance(entry, dict) else None
    if not isinstance(bookmark, dict):
        raise ValueError("Invalid bookmark entry")

    tweet_id = bookmark.get("tweetId")
    if not tweet_id:
        raise ValueError("Missing tweetId")
    tweet_id = str(tweet_id)
    full_text = bookmark.get("fullText") or None

    return ImportItem(
        title=sanitize_title(tweet_title(tweet_id, full_text)),
        body=full_text,
        url=f"https://x.com/i/status/{tweet_id}",
        type="link",
        tags=["twitter-bookmark"],
        created_at=parse_date(bookmark.get("createdAt")),
        metadata={"source": "twitter", "originalId": tweet_id},
    )


def parse_twitter(text: str) -> ParseResult:
    stripped = text.strip()
    if stripped.startswith("["):
        payload = stripped
    else:
        _, equals, payload = stripped.partition("=")
        if not equals:
            return ParseResult.failure("Invalid Twitter bookmarks file format.")

    try:
        entries = json.loads(payload.strip().rstrip(";"))
    except ValueError:
        return ParseResult.failure("Failed to parse JSON from bookmarks file.")
    if not isinstance(entries, list):
        return ParseResult.failure("Expected an array of bookmark entries.")

    result = ParseResult(total=len(entries))
    for idx, entry in enumerate(entries):
        try:
            result.items.append(_parse_entry(entry))
        except ValueError as e:
            result.add_error(str(e), item=f"Entry {idx}")
            result.skipped += 1

    if not entries:
        result.warnings.append("No bookmarks found in file.")
    return result


def is_twitter_file(text: str) -> bool:
    head = text[:500]
    return "window.YTD.bookmarks" in head or ('"tweetId"' in head and '"bookmark"' in head)
