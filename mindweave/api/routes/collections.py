"""Collections API endpoints, with members and invitations for sharing."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from mindweave.api.middleware.rate_limit import enforce_action_limit
from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user
from mindweave.collections import service, sharing

router = APIRouter(prefix="/api/collections", tags=["collections"])
invitations_router = APIRouter(prefix="/api/invitations", tags=["collections"])


class CreateCollectionRequest(BaseModel):
    name: str
    description: str | None = None
    color: str | None = None


class UpdateCollectionRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    color: str | None = None


class AddItemRequest(BaseModel):
    content_id: str = Field(..., alias="contentId")

    model_config = {"populate_by_name": True}


class BulkAddRequest(BaseModel):
    content_ids: list[str] = Field(..., alias="contentIds")

    model_config = {"populate_by_name": True}


class InviteRequest(BaseModel):
    email: str
    role: str = "viewer"


class RoleRequest(BaseModel):
    role: str


class AcceptInvitationRequest(BaseModel):
    token: str


@router.get("")
async def list_collections(user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, Any]:
    return service.list_collections(user.id)


@router.post("")
async def create_collection(
    request: CreateCollectionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "createCollection")
    return service.create_collection(user.id, request.name, request.description, request.color)


@router.patch("/{collection_id}")
async def update_collection(
    collection_id: str,
    request: UpdateCollectionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "updateCollection")
    return service.update_collection(
        user.id, collection_id, request.model_dump(exclude_unset=True)
    )


@router.delete("/{collection_id}")
async def delete_collection(
    collection_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "deleteCollection")
    return service.delete_collection(user.id, collection_id)


@router.post("/{collection_id}/items")
async def add_item(
    collection_id: str,
    request: AddItemRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "addToCollection")
    return service.add_to_collection(user.id, request.content_id, collection_id)


@router.post("/{collection_id}/items/bulk")
async def bulk_add_items(
    collection_id: str,
    request: BulkAddRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "bulkAddToCollection", "serverActionBulk")
    return service.bulk_add_to_collection(user.id, request.content_ids, collection_id)


@router.delete("/{collection_id}/items/{content_id}")
async def remove_item(
    collection_id: str,
    content_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "removeFromCollection")
    return service.remove_from_collection(user.id, content_id, collection_id)


# ============================================================================
# Sharing
# ============================================================================


@router.get("/{collection_id}/members")
async def list_members(
    collection_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "getCollectionMembers")
    return sharing.get_collection_members(user.id, collection_id)


@router.post("/{collection_id}/invitations")
async def invite_member(
    collection_id: str,
    request: InviteRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "inviteToCollection")
    return sharing.invite_to_collection(
        user.id, user.email, collection_id, request.email, request.role
    )


@router.patch("/{collection_id}/members/{member_id}")
async def update_member_role(
    collection_id: str,
    member_id: str,
    request: RoleRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "updateMemberRole")
    return sharing.update_member_role(user.id, collection_id, member_id, request.role)


@router.delete("/{collection_id}/members/{member_id}")
async def remove_member(
    collection_id: str,
    member_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "removeMember")
    return sharing.remove_member(user.id, collection_id, member_id)


@invitations_router.get("")
async def pending_invitations(
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    return sharing.get_pending_invitations(user.email)


@invitations_router.post("/accept")
async def accept_invitation(
    request: AcceptInvitationRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "acceptInvitation")
    return sharing.accept_invitation(user.id, user.email, request.token)


@invitations_router.delete("/{invitation_id}")
async def revoke_invitation(
    invitation_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, Any]:
    enforce_action_limit(user.id, "revokeInvitation")
    return sharing.revoke_invitation(user.id, invitation_id)
