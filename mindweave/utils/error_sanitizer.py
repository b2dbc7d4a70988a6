"""
Error message sanitization.

Keeps internal details (paths, SQL, stack traces, secrets) out of client
responses while letting short validation messages through.
"""

from __future__ import annotations

import re

from mindweave.observability.logging import get_logger

logger = get_logger(__name__)

SENSITIVE_PATTERNS = [
    # File paths
    r"/[^\s]+\.py",
    r"[A-Za-z]:\\[^\s]+",
    # Stack traces
    r"Traceback \(most recent call last\)",
    r"File \".*\"",
    # Database errors
    r"sqlite3?\.",
    r"UNIQUE constraint",
    r"FOREIGN KEY constraint",
    r"no such (table|column)",
    # Secrets
    r"mw_[A-Za-z0-9_-]{8,}",
    r"Bearer [A-Za-z0-9._-]+",
    r"[A-Za-z0-9_-]{32,}",
    # Internal module names
    r"mindweave\.[a-z_.]+",
]
_SENSITIVE_REGEX = re.compile("|".join(f"(?:{p})" for p in SENSITIVE_PATTERNS), re.IGNORECASE)

GENERIC_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    401: "Authentication required.",
    403: "Access denied.",
    404: "Resource not found.",
    422: "Invalid data format.",
    429: "Too many requests. Please try again later.",
    500: "An internal error occurred. Please try again later.",
    503: "Service temporarily unavailable.",
}

_MAX_CLIENT_MESSAGE_LENGTH = 120


def sanitize_error_message(
    message: str,
    status_code: int = 500,
    allow_field_names: bool = True,
) -> str:
    """
    Make an error message safe to return to a client.

    4xx messages that are short, single-line and free of sensitive patterns
    pass through unchanged; everything else becomes the generic message for
    the status code.
    """
    generic = GENERIC_MESSAGES.get(status_code, "An error occurred.")
    if not message:
        return generic

    if _SENSITIVE_REGEX.search(message):
        logger.warning("Sanitized sensitive error message (status=%d)", status_code)
        return generic

    if (
        400 <= status_code < 500
        and allow_field_names
        and len(message) <= _MAX_CLIENT_MESSAGE_LENGTH
        and not any(c in message for c in "{}[]\n")
    ):
        return message

    return generic


def get_safe_error_detail(
    error: Exception,
    status_code: int = 500,
    context: str | None = None,
) -> str:
    """
    Log the full error and return a client-safe detail string.

    For 5xx errors with a context ("Failed to create collection") the context
    is returned as-is.
    """
    logger.error("Error (status=%d): %s - %s", status_code, type(error).__name__, error)

    if context and status_code >= 500:
        return context
    return sanitize_error_message(str(error), status_code)
