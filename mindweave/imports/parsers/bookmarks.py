"""
Browser bookmarks parser (Netscape Bookmark File format).

Chrome, Firefox, Safari and Edge all export this format: nested <DL> lists
where each folder is an <H3> followed by its own <DL>.
"""

from __future__ import annotations

from bs4 import BeautifulSoup, Tag

from mindweave.imports.models import ImportItem, ParseResult
from mindweave.imports.utils import (
    decode_html_entities,
    folder_path_to_tags,
    normalize_url,
    parse_date,
    sanitize_title,
)

SKIPPED_SCHEMES = ("javascript:", "data:")


def _folder_name(dl: Tag) -> str | None:
    """Name of the folder a <DL> belongs to: the <H3> just before it."""
    heading = dl.find_previous_sibling("h3")
    if heading is None:
        # parsers that close <DT> leave the heading inside the preceding <DT>
        dt = dl.find_previous_sibling("dt")
        heading = dt.find("h3", recursive=False) if dt else None
    if heading is None:
        return None
    name = heading.get_text().strip()
    return decode_html_entities(name) if name else None


def get_folder_path(link: Tag) -> str:
    """Slash-joined folder names from the outermost folder to the link's own."""
    names = [name for dl in link.find_parents("dl") if (name := _folder_name(dl))]
    return "/".join(reversed(names))


def parse_bookmarks(markup: str) -> ParseResult:
    result = ParseResult()
    try:
        soup = BeautifulSoup(markup, "html.parser")
        links = soup.find_all("a")
    except Exception as e:
        return ParseResult.failure(f"Failed to parse bookmarks file: {e}")

    result.total = len(links)
    if not links:
        result.warnings.append(
            "No bookmarks found in file. Make sure this is a valid bookmarks HTML export."
        )

    for link in links:
        title = link.get_text()
        href = link.get("href")
        if not href or href.startswith(SKIPPED_SCHEMES):
            result.skipped += 1
            continue

        url = normalize_url(href)
        if url is None:
            result.add_error(f"Invalid URL: {href}", item=title or "Unknown")
            result.skipped += 1
            continue

        folder_path = get_folder_path(link)
        metadata: dict[str, str] = {"source": "bookmarks"}
        if folder_path:
            metadata["folderPath"] = folder_path
        if icon := link.get("icon"):
            metadata["icon"] = icon

        result.items.append(
            ImportItem(
                title=sanitize_title(decode_html_entities(title)),
                url=url,
                type="link",
                tags=folder_path_to_tags(folder_path),
                created_at=parse_date(link.get("add_date")),
                metadata=metadata,
            )
        )

    return result


def is_bookmarks_file(markup: str) -> bool:
    lower = markup.lower()
    return (
        "<!doctype netscape-bookmark-file" in lower
        or "netscape-bookmark-file-1" in lower
        or ("<dl>" in lower and "<dt>" in lower and "href=" in lower)
    )
