"""Personal API key management."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from mindweave.api.middleware.rate_limit import enforce_action_limit
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.api_keys import service

router = APIRouter(prefix="/api/keys", tags=["api-keys"])


class CreateApiKeyRequest(BaseModel):
    name: str
    expires_in_days: int | None = Field(default=None, alias="expiresInDays")

    model_config = {"populate_by_name": True}


@router.get("")
async def list_keys(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    return service.list_api_keys(user.id)


@router.post("")
async def create_key(
    request: CreateApiKeyRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    """The raw key is only ever returned here."""
    enforce_action_limit(user.id, "createApiKey")
    return service.create_api_key(user.id, request.name, request.expires_in_days)


@router.delete("/{key_id}")
async def revoke_key(
    key_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "revokeApiKey")
    return service.revoke_api_key(user.id, key_id)
