"""
Collection sharing - invite other users by email as editors or viewers.

The collection's owner is its creator and is never stored in
collection_members. Invitations carry a random token, expire after
COLLECTION_INVITATION_DAYS and can only be accepted by the invited email.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta
from typing import Any

from mindweave.collections.models import CollectionInvitation
from mindweave.collections.repository import CollectionSharingRepository
from mindweave.config import COLLECTION_INVITATION_DAYS
from mindweave.content.models import to_iso, utc_now
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter
from mindweave.users.repository import UserRepository
from mindweave.utils.redaction import redact_email

logger = get_logger(__name__)

MEMBER_ROLES = ("editor", "viewer")
EMAIL_MAX = 254


def check_collection_access(collection_id: str, user_id: str) -> str | None:
    """Return "owner", the member's role, or None when the user has no access."""
    collection = CollectionSharingRepository.get_collection(collection_id)
    if collection is None:
        return None
    if collection.user_id == user_id:
        return "owner"
    return CollectionSharingRepository.member_role(collection_id, user_id)


def _clean_email(email: str | None) -> str | None:
    email = (email or "").strip().lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain or len(email) > EMAIL_MAX:
        return None
    return email


def invite_to_collection(
    user_id: str, user_email: str, collection_id: str, email: str | None, role: str = "viewer"
) -> dict[str, Any]:
    email = _clean_email(email)
    if email is None:
        return {"success": False, "message": "Invalid email address"}
    if role not in MEMBER_ROLES:
        return {"success": False, "message": "Role must be editor or viewer"}
    if check_collection_access(collection_id, user_id) != "owner":
        return {"success": False, "message": "Only the collection owner can invite members"}
    if email == user_email.strip().lower():
        return {"success": False, "message": "You cannot invite yourself"}
    if CollectionSharingRepository.has_pending_invitation(collection_id, email):
        return {"success": False, "message": "An invitation has already been sent to this email"}

    invitee = UserRepository.get_by_email(email)
    if invitee and CollectionSharingRepository.member_role(collection_id, invitee.id):
        return {"success": False, "message": "This user is already a member"}

    invitation = CollectionSharingRepository.create_invitation(
        CollectionInvitation(
            id=str(uuid.uuid4()),
            collection_id=collection_id,
            email=email,
            role=role,
            token=secrets.token_hex(32),
            invited_by=user_id,
            expires_at=utc_now() + timedelta(days=COLLECTION_INVITATION_DAYS),
        )
    )
    logger.info("Invited %s to collection %s", redact_email(email), collection_id)
    counter("collections.invitations.sent")
    return {"success": True, "message": "Invitation sent", "token": invitation.token}


def accept_invitation(
    user_id: str, user_email: str, token: str, now: datetime | None = None
) -> dict[str, Any]:
    invitation = CollectionSharingRepository.get_pending_by_token(token or "")
    if invitation is None:
        return {"success": False, "message": "Invitation not found or already used"}
    if invitation.expires_at < (now or utc_now()):
        return {"success": False, "message": "Invitation has expired"}
    if invitation.email != user_email.strip().lower():
        return {
            "success": False,
            "message": "This invitation was sent to a different email address",
        }

    CollectionSharingRepository.accept_invitation(invitation, user_id)
    counter("collections.invitations.accepted")
    return {
        "success": True,
        "message": "You have joined the collection",
        "collectionId": invitation.collection_id,
    }


def get_collection_members(user_id: str, collection_id: str) -> dict[str, Any]:
    """Members (owner first) and pending invitations; owners and editors only."""
    access = check_collection_access(collection_id, user_id)
    if access not in ("owner", "editor"):
        return {"success": False, "members": [], "invitations": [], "message": "Access denied"}

    members = [
        {
            "userId": row["user_id"],
            "name": row["name"],
            "email": row["email"],
            "role": row["role"],
            "joinedAt": row["joined_at"],
        }
        for row in CollectionSharingRepository.list_members(collection_id)
    ]
    collection = CollectionSharingRepository.get_collection(collection_id)
    owner = UserRepository.get_by_id(collection.user_id)
    if owner is not None:
        members.insert(
            0,
            {
                "userId": owner.id,
                "name": owner.name,
                "email": owner.email,
                "role": "owner",
                "joinedAt": to_iso(collection.created_at),
            },
        )

    invitations = CollectionSharingRepository.list_pending_invitations(collection_id)
    return {
        "success": True,
        "members": members,
        "invitations": [i.to_api_dict() for i in invitations],
    }


def remove_member(user_id: str, collection_id: str, member_id: str) -> dict[str, Any]:
    if check_collection_access(collection_id, user_id) != "owner":
        return {"success": False, "message": "Only the collection owner can remove members"}
    if member_id == user_id:
        return {"success": False, "message": "Cannot remove yourself from your own collection"}
    if not CollectionSharingRepository.remove_member(collection_id, member_id):
        return {"success": False, "message": "Member not found"}
    return {"success": True, "message": "Member removed"}


def update_member_role(
    user_id: str, collection_id: str, member_id: str, role: str
) -> dict[str, Any]:
    if role not in MEMBER_ROLES:
        return {"success": False, "message": "Role must be editor or viewer"}
    if check_collection_access(collection_id, user_id) != "owner":
        return {"success": False, "message": "Only the collection owner can change roles"}
    if member_id == user_id:
        return {"success": False, "message": "Cannot change your own role"}
    if not CollectionSharingRepository.update_member_role(collection_id, member_id, role):
        return {"success": False, "message": "Member not found"}
    return {"success": True, "message": "Role updated"}


def revoke_invitation(user_id: str, invitation_id: str) -> dict[str, Any]:
    invitation = CollectionSharingRepository.get_invitation(invitation_id)
    if invitation is None:
        return {"success": False, "message": "Invitation not found"}
    if check_collection_access(invitation.collection_id, user_id) != "owner":
        return {"success": False, "message": "Only the collection owner can revoke invitations"}
    CollectionSharingRepository.set_invitation_status(invitation_id, "declined")
    return {"success": True, "message": "Invitation revoked"}


def get_pending_invitations(user_email: str) -> dict[str, Any]:
    rows = CollectionSharingRepository.list_pending_for_email(user_email.strip().lower())
    return {
        "success": True,
        "invitations": [
            {
                "id": row["id"],
                "collectionName": row["collection_name"],
                "inviterName": row["inviter_name"],
                "role": row["role"],
                "token": row["token"],
                "createdAt": row["created_at"],
            }
            for row in rows
        ],
    }
