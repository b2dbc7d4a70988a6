"""
Redaction helpers for logs and LLM prompts.

- redact(): stable short hash for correlating values without exposing them
- redact_email(): keep the domain, hide the local part
- sanitize_for_prompt(): neutralize prompt-injection phrases in user content
"""

from __future__ import annotations

import re
from hashlib import sha256

INJECTION_PATTERNS = [
    r"ignore\s+(previous|above|all)\s+instructions?",
    r"disregard\s+(previous|above|all)\s+instructions?",
    r"forget\s+(previous|above|all)\s+instructions?",
    r"new\s+instructions?:",
    r"^\s*system\s*:",
    r"^\s*assistant\s*:",
    r"\[INST\]",
    r"\[/INST\]",
    r"<\|im_start\|>",
    r"<\|im_end\|>",
]
INJECTION_REGEX = re.compile("|".join(INJECTION_PATTERNS), re.IGNORECASE | re.MULTILINE)


def redact(value: str | None) -> str:
    """Return a stable hash representation of a sensitive string."""
    if not value:
        return "hash:missing"
    digest = sha256(value.encode("utf-8")).hexdigest()[:12]
    return f"hash:{digest}"


def redact_email(email: str | None) -> str:
    """
    "alice@example.com" -> "hash:1a2b3c4d5e6f@example.com"
    """
    if not email or "@" not in email:
        return redact(email)
    local, _, domain = email.rpartition("@")
    return f"{redact(local)}@{domain}"


def sanitize_for_prompt(text: str | None, max_length: int | None = None) -> str:
    """
    Prepare user content for inclusion in an LLM prompt.

    Known injection phrases are replaced with "[filtered]" and the result is
    optionally truncated.
    """
    if not text:
        return ""
    cleaned = INJECTION_REGEX.sub("[filtered]", text)
    if max_length is not None:
        cleaned = cleaned[:max_length]
    return cleaned
