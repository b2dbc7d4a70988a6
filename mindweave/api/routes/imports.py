"""
Import API endpoints.

Two steps: POST /api/import/parse turns an uploaded export file into a
preview, then POST /api/import writes the (possibly edited) items.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field

from mindweave.api.middleware.rate_limit import rate_limited
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.imports.models import ImportItem, ImportOptions
from mindweave.imports.service import import_content, parse_import_file
from mindweave.observability.logging import get_logger
from mindweave.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/import", tags=["import"])
logger = get_logger(__name__)


# ============================================================================
# Request Models
# ============================================================================


class ImportItemRequest(BaseModel):
    title: str
    type: str = "link"
    body: str | None = None
    url: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = Field(default=None, alias="createdAt")
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    def to_item(self) -> ImportItem:
        return ImportItem(
            title=self.title,
            type=self.type,
            body=self.body,
            url=self.url,
            tags=self.tags,
            created_at=self.created_at,
            metadata=self.metadata,
        )


class ImportRequest(BaseModel):
    items: list[ImportItemRequest]
    options: ImportOptions = Field(default_factory=ImportOptions)


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/parse", dependencies=[Depends(rate_limited("import", "import"))])
async def parse_file(
    file: UploadFile | None = File(None),
    source: str | None = Form(None),
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    """Parse an export file and return the preview items."""
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided.")
    if not source:
        raise HTTPException(status_code=400, detail="No import source type specified.")

    try:
        data = await file.read()
        result = parse_import_file(source, file.filename or "", data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Import parse failed for user %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Failed to parse import file.") from None

    return result.to_api_dict()


@router.post("")
async def import_items(
    request: ImportRequest,
    background_tasks: BackgroundTasks,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    try:
        return import_content(
            user.id,
            [item.to_item() for item in request.items],
            request.options,
            background_tasks,
        )
    except Exception as e:
        logger.error("Import failed for user %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Failed to import content") from None
