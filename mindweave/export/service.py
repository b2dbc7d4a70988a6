"""
Content export as JSON, Markdown or CSV.
"""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass
from typing import Any

from mindweave.content.models import ContentItem, to_iso, utc_now
from mindweave.content.repository import ContentRepository
from mindweave.observability.telemetry import log_event

EXPORT_FORMATS = ("json", "markdown", "csv")

CSV_HEADERS = ["ID", "Type", "Title", "Body", "URL", "Tags", "Auto Tags", "Created At", "Updated At"]


@dataclass
class ExportFile:
    content: str
    media_type: str
    filename: str


class NothingToExportError(LookupError):
    """No content matched the export request."""


def _export_record(item: ContentItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "type": item.type,
        "title": item.title,
        "body": item.body,
        "url": item.url,
        "tags": item.tags,
        "autoTags": item.auto_tags,
        "metadata": item.metadata,
        "createdAt": to_iso(item.created_at),
        "updatedAt": to_iso(item.updated_at),
    }


def render_markdown(items: list[ContentItem]) -> str:
    lines = [
        "# Mindweave Export",
        "",
        f"Exported on: {to_iso(utc_now())}",
        f"Total items: {len(items)}",
        "",
        "---",
        "",
    ]
    for item in items:
        lines += [f"## {item.title}", "", f"**Type:** {item.type}"]
        lines.append(f"**Created:** {item.created_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        if item.url:
            lines.append(f"**URL:** [{item.url}]({item.url})")
        if item.tags:
            lines.append(f"**Tags:** {', '.join(item.tags)}")
        if item.auto_tags:
            lines.append(f"**Auto Tags:** {', '.join(item.auto_tags)}")
        if item.body:
            lines += ["", "### Content", "", item.body]
        lines += ["", "---", ""]
    return "\n".join(lines)


def render_csv(items: list[ContentItem]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for item in items:
        writer.writerow(
            [
                item.id,
                item.type,
                item.title,
                item.body or "",
                item.url or "",
                "; ".join(item.tags),
                "; ".join(item.auto_tags),
                to_iso(item.created_at),
                to_iso(item.updated_at),
            ]
        )
    return buffer.getvalue()


def export_content(
    user_id: str, export_format: str = "json", content_ids: list[str] | None = None
) -> ExportFile:
    """
    Render a user's content (optionally a subset) for download.

    Raises:
        ValueError: Unknown format
        NothingToExportError: No matching content
    """
    if export_format not in EXPORT_FORMATS:
        raise ValueError(f"Invalid export format. Must be one of: {', '.join(EXPORT_FORMATS)}")

    if content_ids:
        items = ContentRepository.get_many_owned(user_id, content_ids)
    else:
        items = ContentRepository.list_all(user_id)
    if not items:
        raise NothingToExportError("No content found to export")

    log_event("content.exported", format=export_format, count=len(items))

    if export_format == "markdown":
        return ExportFile(render_markdown(items), "text/markdown", "mindweave-export.md")
    if export_format == "csv":
        return ExportFile(render_csv(items), "text/csv", "mindweave-export.csv")
    return ExportFile(
        json.dumps([_export_record(item) for item in items], indent=2),
        "application/json",
        "mindweave-export.json",
    )
