"""Webhook configuration models."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mindweave.config import CONTENT_BODY_MAX, CONTENT_TITLE_MAX
from mindweave.content.models import parse_dt, to_iso, utc_now
from mindweave.utils.validators import clean_tags, validate_url

WEBHOOK_NAME_MAX = 100


class WebhookSettings(BaseModel):
    """Per-webhook options stored in the config JSON column."""

    model_config = ConfigDict(populate_by_name=True)

    channel_filter: list[str] = Field(default_factory=list, alias="channelFilter")
    default_tags: list[str] = Field(default_factory=list, alias="defaultTags")
    content_type: Literal["note", "link"] = Field(default="note", alias="contentType")

    @field_validator("default_tags")
    @classmethod
    def tags_cleaned(cls, v: list[str]) -> list[str]:
        return clean_tags(v)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class WebhookConfig(BaseModel):
    id: str
    user_id: str
    name: str = Field(..., min_length=1, max_length=WEBHOOK_NAME_MAX)
    type: Literal["slack", "discord", "generic"]
    secret: str
    is_active: bool = True
    config: WebhookSettings = Field(default_factory=WebhookSettings)
    last_received_at: datetime | None = None
    total_received: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "type": self.type,
            "secret": self.secret,
            "is_active": int(self.is_active),
            "config": json.dumps(self.config.to_json_dict()),
            "last_received_at": to_iso(self.last_received_at),
            "total_received": self.total_received,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> WebhookConfig:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            type=row["type"],
            secret=row["secret"],
            is_active=bool(row["is_active"]),
            config=WebhookSettings.model_validate(json.loads(row.get("config") or "{}")),
            last_received_at=parse_dt(row.get("last_received_at")),
            total_received=row.get("total_received") or 0,
            created_at=parse_dt(row["created_at"]),
            updated_at=parse_dt(row["updated_at"]),
        )

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "secret": self.secret,
            "isActive": self.is_active,
            "config": self.config.to_json_dict(),
            "lastReceivedAt": to_iso(self.last_received_at),
            "totalReceived": self.total_received,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }


class CapturePayload(BaseModel):
    """Body accepted by the generic capture webhook."""

    title: str = Field(..., min_length=1, max_length=CONTENT_TITLE_MAX)
    body: str | None = Field(default=None, max_length=CONTENT_BODY_MAX)
    url: str | None = None
    tags: list[str] = Field(default_factory=list)
    type: Literal["note", "link"] | None = None

    @field_validator("title", mode="before")
    @classmethod
    def title_stripped(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("url")
    @classmethod
    def url_valid(cls, v: str | None) -> str | None:
        return validate_url(v) if v else None

    @field_validator("tags")
    @classmethod
    def tags_cleaned(cls, v: list[str]) -> list[str]:
        return clean_tags(v)
