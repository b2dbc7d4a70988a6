"""
File upload and per-user file serving.

Stored files live under uploads/{user_id}/ and are only served to their
owner.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse

from mindweave.api.middleware.rate_limit import rate_limited
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.observability.logging import get_logger
from mindweave.storage.files import FileAccessError, mime_type_for, resolve_user_file, save_upload

router = APIRouter(prefix="/api", tags=["files"])
logger = get_logger(__name__)


@router.post("/upload", dependencies=[Depends(rate_limited("upload", "upload"))])
async def upload_file(
    file: UploadFile | None = File(None),
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")
    try:
        data = await file.read()
        stored = save_upload(user.id, file.filename or "", data, file.content_type)
    except FileAccessError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from None
    except Exception as e:
        logger.error("Upload failed for user %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Failed to upload file") from None

    return {"success": True, "data": stored.to_api_dict()}


@router.get("/files/{file_path:path}", dependencies=[Depends(rate_limited("files", "fileServing"))])
async def serve_file(
    file_path: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> FileResponse:
    try:
        path = resolve_user_file(user.id, [part for part in file_path.split("/") if part])
    except FileAccessError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from None

    return FileResponse(
        path,
        media_type=mime_type_for(path.name),
        headers={"Cache-Control": "private, max-age=3600"},
    )
