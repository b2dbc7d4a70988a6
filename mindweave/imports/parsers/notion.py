"""
Notion export parser.

A Notion export is a ZIP of HTML or Markdown pages; folders inside the archive
become tags. Page file names carry a 32-hex page id that is dropped from
derived titles.
"""

from __future__ import annotations

import io
import re
import zipfile
from typing import Any
from urllib.parse import unquote

from bs4 import BeautifulSoup

from mindweave.imports.models import ImportItem, ParseResult
from mindweave.imports.utils import (
    decode_html_entities,
    folder_path_to_tags,
    html_to_text,
    normalize_tags,
    sanitize_title,
)

INLINE_TAG = re.compile(r"#([a-zA-Z][a-zA-Z0-9_-]*)")


def extract_title_from_filename(filename: str) -> str:
    """
    "Project Plan 0123456789abcdef0123456789abcdef.md" -> "Project Plan"
    """
    name = re.sub(r"\.(html|md)$", "", filename, flags=re.IGNORECASE)
    name = re.sub(r"\s+[a-f0-9]{32}$", "", name, flags=re.IGNORECASE)
    name = re.sub(r"\s+\([a-f0-9-]+\)$", "", name, flags=re.IGNORECASE)
    name = unquote(name)
    return name.strip() or "Untitled"


def extract_inline_tags(text: str) -> list[str]:
    """#hashtags of 2-30 characters."""
    return [tag for tag in INLINE_TAG.findall(text) if 1 < len(tag) <= 30]


def _metadata(folder_path: str, filename: str) -> dict[str, Any]:
    metadata: dict[str, Any] = {"source": "notion", "originalFileName": filename}
    if folder_path:
        metadata["folderPath"] = folder_path
    return metadata


def parse_notion_html(markup: str, filename: str, folder_path: str) -> ImportItem | None:
    soup = BeautifulSoup(markup, "html.parser")

    heading = soup.select_one("h1.page-title") or soup.find("title") or soup.find("h1")
    raw_title = heading.get_text() if heading else ""
    title = sanitize_title(decode_html_entities(raw_title or extract_title_from_filename(filename)))

    article = soup.find("article") or soup.select_one(".page-body") or soup
    title_element = (
        article.select_one("h1.page-title") or article.find("header") or article.find("h1")
    )
    if title_element is not None:
        title_element.decompose()

    body = html_to_text(article)
    if not body and title == "Untitled":
        return None

    return ImportItem(
        title=title,
        body=body,
        type="note",
        tags=normalize_tags([*folder_path_to_tags(folder_path), *extract_inline_tags(body)]),
        metadata=_metadata(folder_path, filename),
    )


def parse_notion_markdown(text: str, filename: str, folder_path: str) -> ImportItem | None:
    lines = text.split("\n")
    title = ""
    body_start = 0
    for idx, line in enumerate(lines):
        stripped = line.strip()
        if stripped.startswith("# "):
            title = stripped[2:].strip()
            body_start = idx + 1
            break
        if stripped:
            # first content line is not a heading
            break

    title = sanitize_title(title or extract_title_from_filename(filename))
    body = "\n".join(lines[body_start:]).strip()
    if not body and title == "Untitled":
        return None

    return ImportItem(
        title=title,
        body=body,
        type="note",
        tags=normalize_tags([*folder_path_to_tags(folder_path), *extract_inline_tags(body)]),
        metadata=_metadata(folder_path, filename),
    )


def _is_content_file(info: zipfile.ZipInfo) -> bool:
    name = info.filename
    return (
        not info.is_dir()
        and name.endswith((".html", ".md"))
        and not name.startswith("__MACOSX")
        and ".DS_Store" not in name
    )


def parse_notion(data: bytes) -> ParseResult:
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, ValueError) as e:
        return ParseResult.failure(f"Failed to parse Notion export: {e}")

    result = ParseResult()
    with archive:
        content_files = [info for info in archive.infolist() if _is_content_file(info)]
        result.total = len(content_files)
        if not content_files:
            result.warnings.append(
                "No content files found in ZIP. Make sure this is a Notion export with "
                "HTML or Markdown format."
            )

        for info in content_files:
            folder_path, _, filename = info.filename.rpartition("/")
            try:
                text = archive.read(info).decode("utf-8", errors="replace")
                if filename.endswith(".html"):
                    item = parse_notion_html(text, filename, folder_path)
                else:
                    item = parse_notion_markdown(text, filename, folder_path)
            except Exception as e:
                result.add_error(str(e), item=info.filename)
                result.skipped += 1
                continue

            if item is None:
                result.skipped += 1
            else:
                result.items.append(item)

    return result
