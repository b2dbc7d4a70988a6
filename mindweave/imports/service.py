"""Import service - parse export files and bulk-insert their items.

Parsing is a preview step: parse_import_file returns the ParseResult the UI
shows. import_content then writes the (possibly edited) items in batches,
skipping duplicates, and queues enrichment for every new row.
"""

from __future__ import annotations

from pathlib import PurePath
from typing import Any

from fastapi import BackgroundTasks
from pydantic import ValidationError as PydanticValidationError

from mindweave.config import IMPORT_BATCH_SIZE, IMPORT_MAX_FILE_BYTES, IMPORT_MAX_ITEMS
from mindweave.content.models import ContentCreate, to_iso, utc_now
from mindweave.content.repository import ContentRepository
from mindweave.content.service import schedule_enrichment
from mindweave.imports.models import (
    ACCEPTED_EXTENSIONS,
    IMPORT_SOURCES,
    ImportItem,
    ImportOptions,
    ParseResult,
)
from mindweave.imports.parsers.bookmarks import is_bookmarks_file, parse_bookmarks
from mindweave.imports.parsers.evernote import is_evernote_file, parse_evernote
from mindweave.imports.parsers.notion import parse_notion
from mindweave.imports.parsers.pocket import is_pocket_file, parse_pocket, parse_pocket_csv
from mindweave.imports.parsers.raindrop import parse_raindrop
from mindweave.imports.parsers.twitter import is_twitter_file, parse_twitter
from mindweave.imports.utils import batch_array, normalize_tags
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter, log_event, time_block
from mindweave.utils.validators import ValidationError

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _decode(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")


def parse_import_file(source: str, filename: str, data: bytes) -> ParseResult:
    """
    Parse an uploaded export file for preview.

    Raises:
        ValidationError: Unknown source, wrong extension, oversized file, or
            content that does not look like the chosen source
    """
    if source not in IMPORT_SOURCES:
        raise ValidationError(f"Invalid import source: {source}")
    if len(data) > IMPORT_MAX_FILE_BYTES:
        raise ValidationError(
            f"File too large. Maximum size is {IMPORT_MAX_FILE_BYTES // (1024 * 1024)}MB."
        )

    extension = PurePath(filename.lower()).suffix
    if extension not in ACCEPTED_EXTENSIONS[source]:
        raise ValidationError(
            f"Invalid file type for {source}. Expected: {', '.join(ACCEPTED_EXTENSIONS[source])}"
        )

    with time_block(f"import.parse.{source}"):
        if source == "notion":
            result = parse_notion(data)
        elif source == "raindrop":
            result = parse_raindrop(_decode(data))
        elif source == "pocket" and extension == ".csv":
            result = parse_pocket_csv(_decode(data))
        else:
            text = _decode(data)
            if source == "bookmarks":
                if not is_bookmarks_file(text):
                    raise ValidationError("This does not appear to be a valid bookmarks HTML file.")
                result = parse_bookmarks(text)
            elif source == "pocket":
                if not is_pocket_file(text):
                    raise ValidationError("This does not appear to be a valid Pocket export file.")
                result = parse_pocket(text)
            elif source == "evernote":
                if not is_evernote_file(text):
                    raise ValidationError("This does not appear to be a valid Evernote ENEX file.")
                result = parse_evernote(text)
            else:
                if not is_twitter_file(text):
                    raise ValidationError(
                        "This does not appear to be a valid X/Twitter bookmarks.js file."
                    )
                result = parse_twitter(text)

    log_event(
        "import.parsed",
        source=source,
        parsed=len(result.items),
        skipped=result.skipped,
        errors=len(result.errors),
    )
    return result


# ---------------------------------------------------------------------------
# Importing
# ---------------------------------------------------------------------------


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def _summary_message(imported: int, skipped: int) -> str:
    if imported > 0:
        message = f"Successfully imported {_plural(imported, 'item')}"
        if skipped > 0:
            message += f". {_plural(skipped, 'duplicate')} skipped."
        return message
    if skipped > 0:
        return f"No new items imported. {_plural(skipped, 'duplicate')} skipped."
    return "No items to import."


def _dedup_key(item: ImportItem) -> str | None:
    """Lowercased URL for links, normalized title for notes."""
    if item.type == "link" and item.url:
        return f"url:{item.url.lower()}"
    if item.type == "note":
        return f"title:{item.title.lower().strip()}"
    return None


def _existing_keys(user_id: str) -> set[str]:
    keys = set()
    for content_type, url, title in ContentRepository.dedup_candidates(user_id):
        if content_type == "link" and url:
            keys.add(f"url:{url.lower()}")
        elif content_type == "note":
            keys.add(f"title:{title.lower().strip()}")
    return keys


def _failure(message: str, failed: int = 0) -> dict[str, Any]:
    return {
        "success": False,
        "message": message,
        "imported": 0,
        "skipped": 0,
        "failed": failed,
        "errors": [],
        "createdIds": [],
    }


def import_content(
    user_id: str,
    items: list[ImportItem],
    options: ImportOptions | None = None,
    background_tasks: BackgroundTasks | None = None,
) -> dict[str, Any]:
    """
    Insert parsed items for a user.

    Items are written in batches of IMPORT_BATCH_SIZE; a failed batch marks
    its items as failed and the import continues with the next batch.
    """
    options = options or ImportOptions()
    if not items:
        return _failure("Validation failed: At least one item is required")
    if len(items) > IMPORT_MAX_ITEMS:
        return _failure(f"Validation failed: Maximum {IMPORT_MAX_ITEMS} items per import")

    seen = _existing_keys(user_id) if options.skip_duplicates else set()
    imported_at = to_iso(utc_now())
    errors: list[dict[str, str]] = []
    created_ids: list[str] = []
    skipped = 0

    with time_block("import.content"):
        for batch in batch_array(items, IMPORT_BATCH_SIZE):
            pending: list[ContentCreate] = []
            for item in batch:
                key = _dedup_key(item)
                if options.skip_duplicates and key in seen:
                    skipped += 1
                    continue
                try:
                    pending.append(
                        ContentCreate(
                            user_id=user_id,
                            type=item.type,
                            title=item.title,
                            body=item.body,
                            url=item.url,
                            tags=normalize_tags([*item.tags, *options.additional_tags]),
                            metadata={**item.metadata, "importedAt": imported_at},
                            created_at=item.created_at,
                        )
                    )
                except (PydanticValidationError, ValueError) as e:
                    errors.append({"item": item.title, "reason": _first_error(e)})
                    continue
                if key:
                    seen.add(key)

            if not pending:
                continue
            try:
                created = ContentRepository.create_many(pending)
            except Exception as e:
                logger.error("Import batch insert failed: %s", e)
                errors.extend({"item": data.title, "reason": "Database error"} for data in pending)
                continue

            for content in created:
                created_ids.append(content.id)
                if options.generate_auto_tags or options.generate_embeddings:
                    schedule_enrichment(
                        background_tasks,
                        content.id,
                        with_tags=options.generate_auto_tags,
                        with_embedding=options.generate_embeddings,
                    )

    imported = len(created_ids)
    counter("import.items_imported", imported)
    log_event("import.completed", imported=imported, skipped=skipped, failed=len(errors))

    return {
        "success": imported > 0,
        "message": _summary_message(imported, skipped),
        "imported": imported,
        "skipped": skipped,
        "failed": len(errors),
        "errors": errors,
        "createdIds": created_ids,
    }


def _first_error(error: Exception) -> str:
    if isinstance(error, PydanticValidationError):
        first = error.errors()[0]
        return first.get("msg", "Invalid item")
    return str(error)
