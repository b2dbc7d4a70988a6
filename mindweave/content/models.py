"""
Content domain models for Mindweave.

A content item is a note, link or file a user captured. Tags are user-given;
auto_tags come from the LLM. List/object fields are stored as JSON text.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from mindweave.config import CONTENT_BODY_MAX, CONTENT_TITLE_MAX
from mindweave.utils.validators import clean_tags, validate_url


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def to_iso(value: datetime | None) -> str | None:
    """Serialize a datetime as UTC ISO-8601 (naive values are taken as UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class ContentType(str, Enum):
    """Kind of captured item."""

    NOTE = "note"
    LINK = "link"
    FILE = "file"


class ContentItem(BaseModel):
    """A stored knowledge item."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(..., description="Unique identifier (UUID)")
    user_id: str = Field(..., description="Owner")
    type: ContentType
    title: str
    body: str | None = None
    url: str | None = None
    tags: list[str] = Field(default_factory=list, description="User-provided tags")
    auto_tags: list[str] = Field(default_factory=list, description="LLM-generated tags")
    summary: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_favorite: bool = False
    is_shared: bool = False
    share_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def all_tags(self) -> list[str]:
        return [*self.tags, *self.auto_tags]

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dict for database storage."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type if isinstance(self.type, str) else self.type.value,
            "title": self.title,
            "body": self.body,
            "url": self.url,
            "tags": json.dumps(self.tags),
            "auto_tags": json.dumps(self.auto_tags),
            "summary": self.summary,
            "metadata": json.dumps(self.metadata),
            "is_favorite": int(self.is_favorite),
            "is_shared": int(self.is_shared),
            "share_id": self.share_id,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> ContentItem:
        """Create a ContentItem from a database row."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            type=row["type"],
            title=row["title"],
            body=row.get("body"),
            url=row.get("url"),
            tags=json.loads(row.get("tags") or "[]"),
            auto_tags=json.loads(row.get("auto_tags") or "[]"),
            summary=row.get("summary"),
            metadata=json.loads(row.get("metadata") or "{}"),
            is_favorite=bool(row.get("is_favorite", 0)),
            is_shared=bool(row.get("is_shared", 0)),
            share_id=row.get("share_id"),
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )

    def to_api_dict(self) -> dict[str, Any]:
        """JSON shape returned by the API."""
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "body": self.body,
            "url": self.url,
            "tags": self.tags,
            "autoTags": self.auto_tags,
            "summary": self.summary,
            "metadata": self.metadata,
            "isFavorite": self.is_favorite,
            "isShared": self.is_shared,
            "shareId": self.share_id,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }


class ContentCreate(BaseModel):
    """Validated input for a new content item."""

    model_config = ConfigDict(use_enum_values=True)

    user_id: str
    type: ContentType
    title: str = Field(..., min_length=1, max_length=CONTENT_TITLE_MAX)
    body: str | None = Field(default=None, max_length=CONTENT_BODY_MAX)
    url: str | None = None
    tags: list[str] = Field(default_factory=list)
    auto_tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None

    @field_validator("title", mode="before")
    @classmethod
    def title_stripped(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("body", "url", mode="before")
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:
        return None if v == "" else v

    @field_validator("tags")
    @classmethod
    def tags_cleaned(cls, v: list[str]) -> list[str]:
        return clean_tags(v)

    @model_validator(mode="after")
    def link_url_valid(self) -> ContentCreate:
        # URL format is only enforced for links
        if self.type == ContentType.LINK.value and self.url:
            validate_url(self.url)
        return self
