"""Email digest: per-user settings, eligibility windows and the hourly sender."""

from __future__ import annotations

import html
from collections import Counter
from datetime import datetime, timedelta
from typing import Any

from mindweave.config import (
    APP_URL,
    DIGEST_ITEM_LIMIT,
    DIGEST_LOOKBACK_DAYS,
    DIGEST_RESEND_HOURS,
)
from mindweave.content.models import utc_now
from mindweave.content.repository import ContentRepository
from mindweave.digest.delivery import get_delivery
from mindweave.digest.repository import DigestSettings, DigestSettingsRepository
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter, log_event

logger = get_logger(__name__)

DIGEST_FREQUENCIES = ("daily", "weekly")
DIGEST_TOP_TAGS = 8


# ============================================================================
# Settings
# ============================================================================


def get_digest_settings(user_id: str) -> dict[str, Any]:
    settings = DigestSettingsRepository.get(user_id) or DigestSettings()
    return {"success": True, "settings": settings.to_api_dict()}


def save_digest_settings(
    user_id: str, enabled: bool, frequency: str, preferred_day: int, preferred_hour: int
) -> dict[str, Any]:
    if frequency not in DIGEST_FREQUENCIES:
        return {"success": False, "message": "Invalid frequency."}
    if not 0 <= preferred_day <= 6:
        return {"success": False, "message": "Invalid day of week."}
    if not 0 <= preferred_hour <= 23:
        return {"success": False, "message": "Invalid hour."}

    DigestSettingsRepository.upsert(
        user_id,
        DigestSettings(
            enabled=bool(enabled),
            frequency=frequency,
            preferred_day=preferred_day,
            preferred_hour=preferred_hour,
        ),
    )
    return {"success": True, "message": "Digest settings saved."}


# ============================================================================
# Eligibility
# ============================================================================


def sunday_first_weekday(moment: datetime) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (moment.weekday() + 1) % 7


def is_eligible(settings: DigestSettings, now: datetime) -> bool:
    """
    Whether a digest is due at `now` (UTC).

    Due when enabled, the hour matches, the day matches for weekly digests,
    and nothing was sent in the last 23 hours.
    """
    if not settings.enabled or settings.preferred_hour != now.hour:
        return False
    if settings.frequency == "weekly":
        if settings.preferred_day != sunday_first_weekday(now):
            return False
    elif settings.frequency != "daily":
        return False
    if settings.last_sent_at is None:
        return True
    return settings.last_sent_at < now - timedelta(hours=DIGEST_RESEND_HOURS)


# ============================================================================
# Rendering and sending
# ============================================================================


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def render_digest_html(items: list[Any], type_counts: dict[str, int], top_tags: list[str]) -> str:
    total = sum(type_counts.values())
    breakdown = "".join(
        f" ({_plural(type_counts[t], t)})" for t in ("note", "link", "file") if type_counts.get(t)
    )
    items_html = "".join(
        f'<li style="margin-bottom:8px;"><strong>{html.escape(item.title)}</strong> '
        f'<span style="color:#6b7280;font-size:12px;">({item.type})</span></li>'
        for item in items
    )
    tags_html = ""
    if top_tags:
        chips = " ".join(
            f'<span style="display:inline-block;background:#eff6ff;color:#2563eb;'
            f'padding:2px 8px;border-radius:12px;font-size:12px;margin:2px;">'
            f"{html.escape(tag)}</span>"
            for tag in top_tags
        )
        tags_html = f'<p style="margin-top:16px;"><strong>AI-discovered topics:</strong> {chips}</p>'

    return f"""
    <div style="font-family:system-ui,-apple-system,sans-serif;max-width:560px;margin:0 auto;">
      <h2 style="color:#1f2937;">Your Mindweave Digest</h2>
      <p>You added <strong>{_plural(total, "item")}</strong> this week{breakdown}.</p>
      <h3 style="color:#374151;margin-top:20px;">Recent items</h3>
      <ul style="padding-left:20px;">{items_html}</ul>
      {tags_html}
      <p style="margin-top:24px;">
        <a href="{APP_URL}/dashboard/library">Open Mindweave</a>
      </p>
      <p style="margin-top:24px;font-size:12px;color:#9ca3af;">
        You can change your digest preferences in
        <a href="{APP_URL}/dashboard/profile">Profile Settings</a>.
      </p>
    </div>
    """


def send_digest_email(user_id: str, email: str) -> bool:
    """
    Email the user a summary of their last week.

    Returns:
        False when there is nothing new or delivery failed
    """
    since = utc_now() - timedelta(days=DIGEST_LOOKBACK_DAYS)
    items = ContentRepository.list_since(user_id, since, limit=DIGEST_ITEM_LIMIT)
    if not items:
        return False

    type_counts = Counter(item.type for item in ContentRepository.list_since(user_id, since))
    top_tags = list(dict.fromkeys(tag for item in items for tag in item.auto_tags))[
        :DIGEST_TOP_TAGS
    ]
    total = sum(type_counts.values())
    subject = f"Your Mindweave Weekly Digest - {_plural(total, 'new item')}"
    return get_delivery().send_html(
        email, subject, render_digest_html(items, dict(type_counts), top_tags)
    )


def run_digest_cron(now: datetime | None = None) -> dict[str, Any]:
    now = now or utc_now()
    eligible = [
        r for r in DigestSettingsRepository.list_enabled() if is_eligible(r.settings, now)
    ]
    sent = 0
    skipped = 0

    for recipient in eligible:
        try:
            if send_digest_email(recipient.user_id, recipient.email):
                DigestSettingsRepository.mark_sent(recipient.user_id, now)
                sent += 1
            else:
                skipped += 1
        except Exception as e:
            logger.error("Digest failed for user %s: %s", recipient.user_id, e)
            counter("digest.failed")

    log_event("digest.cron", eligible=len(eligible), sent=sent, skipped=skipped)
    return {"success": True, "eligible": len(eligible), "sent": sent, "skipped": skipped}
