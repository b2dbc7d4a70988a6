"""Export API endpoint - download a library as JSON, Markdown or CSV."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

from mindweave.api.middleware.rate_limit import rate_limited
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.export.service import NothingToExportError, export_content
from mindweave.observability.logging import get_logger
from mindweave.utils.error_sanitizer import sanitize_error_message

router = APIRouter(prefix="/api/export", tags=["export"])
logger = get_logger(__name__)


class ExportRequest(BaseModel):
    format: str = "json"
    content_ids: list[str] | None = Field(default=None, alias="contentIds")

    model_config = {"populate_by_name": True}


@router.post("", dependencies=[Depends(rate_limited("export", "export"))])
async def export(
    request: ExportRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
    try:
        exported = export_content(user.id, request.format, request.content_ids)
    except NothingToExportError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(str(e), 400)) from None
    except Exception as e:
        logger.error("Export failed for user %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Failed to export content") from None

    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
