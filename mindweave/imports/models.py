"""
Import data types shared by the parsers and the import service.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

IMPORT_SOURCES = ("bookmarks", "pocket", "notion", "evernote", "raindrop", "twitter")

# source -> accepted file extensions
ACCEPTED_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "bookmarks": (".html", ".htm"),
    "pocket": (".html", ".htm", ".csv"),
    "notion": (".zip",),
    "evernote": (".enex",),
    "raindrop": (".csv",),
    "twitter": (".js", ".json"),
}


@dataclass
class ImportItem:
    """One parsed item, ready to become a content row."""

    title: str
    type: str = "link"
    body: str | None = None
    url: str | None = None
    tags: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "type": self.type,
            "body": self.body,
            "url": self.url,
            "tags": self.tags,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "metadata": self.metadata,
        }


@dataclass
class ParseError:
    message: str
    item: str | None = None


@dataclass
class ParseResult:
    """Outcome of parsing one export file."""

    success: bool = True
    items: list[ImportItem] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    total: int = 0
    skipped: int = 0

    @property
    def stats(self) -> dict[str, int]:
        return {"total": self.total, "parsed": len(self.items), "skipped": self.skipped}

    def add_error(self, message: str, item: str | None = None) -> None:
        self.errors.append(ParseError(message=message, item=item))

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "items": [item.to_api_dict() for item in self.items],
            "errors": [
                {"item": e.item, "message": e.message} if e.item else {"message": e.message}
                for e in self.errors
            ],
            "warnings": self.warnings,
            "stats": self.stats,
        }

    @classmethod
    def failure(cls, message: str) -> ParseResult:
        result = cls(success=False)
        result.add_error(message)
        return result


class ImportOptions(BaseModel):
    """Options accepted by import_content (camelCase on the wire)."""

    skip_duplicates: bool = Field(default=True, alias="skipDuplicates")
    generate_auto_tags: bool = Field(default=True, alias="generateAutoTags")
    generate_embeddings: bool = Field(default=True, alias="generateEmbeddings")
    additional_tags: list[str] = Field(default_factory=list, alias="additionalTags")

    model_config = {"populate_by_name": True}

