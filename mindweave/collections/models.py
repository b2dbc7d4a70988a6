"""Collection and collection-invitation models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from mindweave.content.models import parse_dt, to_iso, utc_now

COLLECTION_NAME_MAX = 100


class Collection(BaseModel):
    """A named, user-owned group of content items."""

    id: str
    user_id: str
    name: str = Field(..., min_length=1, max_length=COLLECTION_NAME_MAX)
    description: str | None = None
    color: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    content_count: int = 0

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Collection:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            description=row.get("description"),
            color=row.get("color"),
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
            content_count=row.get("content_count") or 0,
        )

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "color": self.color,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
            "contentCount": self.content_count,
        }


class CollectionInvitation(BaseModel):
    """An emailed invitation to join a collection as editor or viewer."""

    id: str
    collection_id: str
    email: str
    role: Literal["editor", "viewer"]
    token: str
    status: Literal["pending", "accepted", "declined"] = "pending"
    invited_by: str
    expires_at: datetime
    created_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "collection_id": self.collection_id,
            "email": self.email,
            "role": self.role,
            "token": self.token,
            "status": self.status,
            "invited_by": self.invited_by,
            "expires_at": to_iso(self.expires_at),
            "created_at": to_iso(self.created_at),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> CollectionInvitation:
        return cls(
            id=row["id"],
            collection_id=row["collection_id"],
            email=row["email"],
            role=row["role"],
            token=row["token"],
            status=row["status"],
            invited_by=row["invited_by"],
            expires_at=parse_dt(row["expires_at"]),
            created_at=parse_dt(row["created_at"]),
        )

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "status": self.status,
            "createdAt": to_iso(self.created_at),
        }
