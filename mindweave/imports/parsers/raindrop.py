"""
Raindrop.io CSV export parser.

Columns: id, title, note, excerpt, url, folder, tags, created, cover,
highlights, favorite.
"""

from __future__ import annotations

import csv
import io

from mindweave.imports.models import ImportItem, ParseResult
from mindweave.imports.utils import (
    folder_path_to_tags,
    normalize_tags,
    normalize_url,
    parse_date,
    sanitize_title,
)

INVALID_FORMAT = "Invalid CSV format. This does not appear to be a Raindrop.io export."


def _is_raindrop_header(header: list[str]) -> bool:
    return "url" in header and "folder" in header and ("excerpt" in header or "highlights" in header)


def _body(row: dict[str, str]) -> str | None:
    parts = []
    if note := row.get("note", "").strip():
        parts.append(note)
    if excerpt := row.get("excerpt", "").strip():
        parts.append(excerpt)
    if highlights := row.get("highlights", "").strip():
        parts.append(f"**Highlights:**\n{highlights}")
    return "\n\n".join(parts) or None


def parse_raindrop(text: str) -> ParseResult:
    reader = csv.reader(io.StringIO(text.lstrip("﻿")))
    rows = list(reader)
    if not rows:
        return ParseResult.failure(INVALID_FORMAT)

    header = [column.strip().lower() for column in rows[0]]
    if not _is_raindrop_header(header):
        return ParseResult.failure(INVALID_FORMAT)

    result = ParseResult()
    for values in rows[1:]:
        if not any(value.strip() for value in values):
            continue
        result.total += 1
        row = {column: values[idx] if idx < len(values) else "" for idx, column in enumerate(header)}

        raw_url = row.get("url", "").strip()
        title = row.get("title", "").strip()
        url = normalize_url(raw_url)
        if url is None:
            result.add_error(f"Invalid URL: {raw_url or 'empty'}", item=title or "Unknown")
            result.skipped += 1
            continue

        folder = row.get("folder", "").strip()
        tags = [tag.strip() for tag in row.get("tags", "").split(",")]
        metadata: dict[str, str] = {"source": "raindrop"}
        if folder:
            metadata["folderPath"] = folder

        result.items.append(
            ImportItem(
                title=sanitize_title(title or url),
                url=url,
                body=_body(row),
                type="link",
                tags=normalize_tags([*tags, *folder_path_to_tags(folder)]),
                created_at=parse_date(row.get("created", "").strip() or None),
                metadata=metadata,
            )
        )

    if result.total == 0:
        result.warnings.append("No items found in Raindrop.io export.")
    return result


def is_raindrop_file(text: str) -> bool:
    first_line = text.lstrip("﻿").split("\n", 1)[0].lower()
    return _is_raindrop_header([column.strip().strip('"') for column in first_line.split(",")])
