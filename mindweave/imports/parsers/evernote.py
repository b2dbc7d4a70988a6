"""
Evernote ENEX parser.

Each <note> holds a title, ENML content (usually in CDATA), tags, created /
updated stamps in YYYYMMDDTHHMMSSZ form and optional note-attributes.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from xml.etree import ElementTree

from bs4 import BeautifulSoup

from mindweave.imports.models import ImportItem, ParseResult
from mindweave.imports.utils import html_to_text, normalize_tags, parse_date, sanitize_title

EVERNOTE_DATE = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})Z?$")


def enml_to_text(enml: str) -> str:
    """Plain text from ENML with checkboxes, attachments and encrypted blocks marked."""
    if not enml:
        return ""
    soup = BeautifulSoup(enml, "html.parser")
    for todo in soup.find_all("en-todo"):
        todo.replace_with("[x] " if todo.get("checked") == "true" else "[ ] ")
    for media in soup.find_all("en-media"):
        media.replace_with("[attachment]")
    for crypt in soup.find_all("en-crypt"):
        crypt.replace_with("[encrypted content]")
    return html_to_text(soup)


def parse_evernote_date(value: str | None) -> datetime | None:
    """20240115T143022Z -> 2024-01-15 14:30:22 UTC; other forms via parse_date."""
    if not value:
        return None
    match = EVERNOTE_DATE.match(value)
    if not match:
        return parse_date(value)
    try:
        return datetime(*(int(part) for part in match.groups()), tzinfo=UTC)
    except ValueError:
        return None


def _text(note: ElementTree.Element, path: str) -> str:
    return (note.findtext(path) or "").strip()


def _parse_note(note: ElementTree.Element) -> ImportItem | None:
    title = sanitize_title(_text(note, "title"))
    body = enml_to_text(note.findtext("content") or "")
    if not body and title == "Untitled":
        return None

    tags = [tag.text.strip() for tag in note.findall("tag") if tag.text]
    created_at = parse_evernote_date(_text(note, "created")) or parse_evernote_date(
        _text(note, "updated")
    )

    metadata: dict[str, str] = {"source": "evernote"}
    if source_url := _text(note, "note-attributes/source-url"):
        metadata["sourceUrl"] = source_url
    if notebook := note.get("notebook"):
        metadata["notebook"] = notebook

    return ImportItem(
        title=title,
        body=body,
        type="note",
        tags=normalize_tags(tags),
        created_at=created_at,
        metadata=metadata,
    )


def parse_evernote(xml: str) -> ParseResult:
    if "<en-export" not in xml and "<note>" not in xml:
        return ParseResult.failure(
            "Invalid ENEX format. File does not contain Evernote export data."
        )

    try:
        root = ElementTree.fromstring(xml.strip())
    except ElementTree.ParseError as e:
        return ParseResult.failure(f"Failed to parse ENEX file: {e}")

    result = ParseResult()
    notes = [root] if root.tag == "note" else root.findall("note")
    for note in notes:
        result.total += 1
        try:
            item = _parse_note(note)
        except Exception as e:
            result.add_error(str(e), item=_text(note, "title") or f"Note {result.total}")
            result.skipped += 1
            continue
        if item is None:
            result.skipped += 1
        else:
            result.items.append(item)

    if result.total == 0:
        result.warnings.append(
            "No notes found in ENEX file. Make sure this is a valid Evernote export."
        )
    return result


def is_evernote_file(text: str) -> bool:
    lower = text.lower()
    return (
        "<en-export" in lower
        or "evernote" in lower
        or ("<note>" in lower and "<content>" in lower)
    )
