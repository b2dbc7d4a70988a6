"""Knowledge Wrapped endpoints; snapshots are publicly readable by share id."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from mindweave.api.middleware.rate_limit import enforce_action_limit, rate_limited
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.wrapped import service

router = APIRouter(prefix="/api/wrapped", tags=["wrapped"])


@router.post("")
async def generate_wrapped(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    enforce_action_limit(user.id, "generateWrapped", "wrappedGeneration")
    return service.generate_wrapped(user.id)


@router.get("/latest")
async def latest_wrapped(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    return service.get_latest_wrapped(user.id)


@router.get("/share/{share_id}", dependencies=[Depends(rate_limited("wrapped-share"))])
async def shared_wrapped(share_id: str) -> dict[str, Any]:
    result = service.get_wrapped_by_share_id(share_id)
    if not result["success"]:
        raise HTTPException(status_code=404, detail=result["message"])
    return result
