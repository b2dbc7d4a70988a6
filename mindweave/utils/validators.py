"""
Input validation utilities.

Shared checks for user-supplied fields (URLs, colors, titles, tags, ids).
Each validator returns the normalized value or raises ValidationError.
"""

from __future__ import annotations

import re
import uuid
from urllib.parse import urlparse

from mindweave.config import CONTENT_BODY_MAX, CONTENT_TITLE_MAX, CONTENT_TYPES

HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

ALLOWED_URL_SCHEMES = ("http", "https")
MAX_URL_LENGTH = 2048


class ValidationError(ValueError):
    """Raised when input validation fails."""


def validate_content_type(value: str) -> str:
    if value not in CONTENT_TYPES:
        raise ValidationError(f"Invalid content type. Must be one of: {', '.join(CONTENT_TYPES)}")
    return value


def validate_title(title: str | None, max_length: int = CONTENT_TITLE_MAX) -> str:
    """
    Validate a content title.

    Raises:
        ValidationError: If empty or longer than max_length
    """
    if title is None or not title.strip():
        raise ValidationError("Title is required")
    title = title.strip()
    if len(title) > max_length:
        raise ValidationError("Title is too long")
    return title


def validate_body(body: str | None) -> str | None:
    if body is None or body == "":
        return None
    if len(body) > CONTENT_BODY_MAX:
        raise ValidationError("Content is too long")
    return body


def validate_url(url: str | None) -> str | None:
    """
    Validate an absolute http(s) URL.

    Args:
        url: The URL to validate (empty string treated as missing)

    Returns:
        The stripped URL, or None if no URL was given

    Raises:
        ValidationError: If the URL is malformed or uses another scheme
    """
    if url is None:
        return None
    url = url.strip()
    if not url:
        return None

    if len(url) > MAX_URL_LENGTH:
        raise ValidationError("URL is too long")

    parsed = urlparse(url)
    if parsed.scheme.lower() not in ALLOWED_URL_SCHEMES or not parsed.netloc:
        raise ValidationError("Invalid URL")

    return url


def validate_hex_color(color: str | None) -> str | None:
    if color is None or color == "":
        return None
    if not HEX_COLOR_PATTERN.match(color):
        raise ValidationError("Invalid color format. Use #RRGGBB")
    return color


def validate_uuid(value: str, field: str = "id") -> str:
    """Reject ids that are not UUIDs before they reach SQL."""
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, AttributeError, TypeError):
        raise ValidationError(f"Invalid {field}") from None


def clean_tags(tags: list[str] | None) -> list[str]:
    """Strip tags, drop empties, keep first occurrence order."""
    if not tags:
        return []
    seen: set[str] = set()
    cleaned: list[str] = []
    for tag in tags:
        tag = str(tag).strip()
        if tag and tag not in seen:
            seen.add(tag)
            cleaned.append(tag)
    return cleaned
