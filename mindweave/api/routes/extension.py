"""Browser extension capture endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from mindweave.api.middleware.api_key_auth import get_key_or_session_user
from mindweave.api.middleware.rate_limit import rate_limited
from mindweave.api.middleware.user_auth import AuthenticatedUser
from mindweave.content import service
from mindweave.observability.logging import get_logger

router = APIRouter(prefix="/api/extension", tags=["extension"])
logger = get_logger(__name__)


class ExtensionCaptureRequest(BaseModel):
    type: str
    title: str
    url: str | None = None
    body: str | None = None
    tags: list[str] = Field(default_factory=list)


@router.post("/capture", dependencies=[Depends(rate_limited("extension-capture", "api"))])
async def capture(
    request: ExtensionCaptureRequest,
    background_tasks: BackgroundTasks,
    user: AuthenticatedUser = Depends(get_key_or_session_user),
) -> JSONResponse:
    try:
        result = service.create_content(
            user.id,
            request.type,
            request.title,
            request.body,
            request.url or None,
            request.tags,
            {"source": "extension"},
            background_tasks,
        )
    except Exception as e:
        logger.error("Extension capture error: %s", e)
        return JSONResponse(
            status_code=500, content={"success": False, "message": "Failed to save content"}
        )

    if not result["success"]:
        content: dict[str, Any] = {
            "success": False,
            "message": "Validation failed",
            "errors": result.get("errors", []),
        }
        return JSONResponse(status_code=400, content=content)
    return JSONResponse(status_code=201, content=result)
