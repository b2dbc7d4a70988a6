"""Unit tests for shared collections

Tests cover:
- Access levels (owner, member role, none)
- Invitations: owner only, self-invite, duplicates, existing members
- Accepting: wrong email, expiry, reuse
- Member listing, role changes, removal and revocation
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from mindweave.collections import sharing
from mindweave.collections.repository import CollectionSharingRepository
from mindweave.collections.service import create_collection
from mindweave.content.models import utc_now
from mindweave.users.repository import UserRepository


@pytest.fixture
def shelf(user):
    return create_collection(user.id, "Shared shelf")["collection"]


@pytest.fixture
def invite(user, shelf):
    def _invite(email: str = "grace@example.com", role: str = "viewer") -> dict:
        return sharing.invite_to_collection(user.id, user.email, shelf["id"], email, role)

    return _invite


@pytest.fixture
def grace_member(other_user, shelf, invite):
    token = invite(role="editor")["token"]
    sharing.accept_invitation(other_user.id, other_user.email, token)
    return other_user


class TestAccess:
    def test_levels(self, user, other_user, shelf, grace_member):
        assert sharing.check_collection_access(shelf["id"], user.id) == "owner"
        assert sharing.check_collection_access(shelf["id"], other_user.id) == "editor"
        assert sharing.check_collection_access(shelf["id"], "stranger") is None
        assert sharing.check_collection_access("missing", user.id) is None


class TestInvite:
    def test_invite_returns_token(self, invite):
        result = invite(" Grace@Example.com ")
        assert result["success"] is True
        assert result["message"] == "Invitation sent"
        assert len(result["token"]) == 64

    def test_only_owner_invites(self, other_user, shelf):
        result = sharing.invite_to_collection(
            other_user.id, other_user.email, shelf["id"], "someone@example.com"
        )
        assert result["message"] == "Only the collection owner can invite members"

    @pytest.mark.parametrize(
        ("email", "role", "message"),
        [
            ("ada@example.com", "viewer", "You cannot invite yourself"),
            ("not-an-email", "viewer", "Invalid email address"),
            ("grace@example.com", "owner", "Role must be editor or viewer"),
        ],
    )
    def test_validation(self, invite, email, role, message):
        assert invite(email, role)["message"] == message

    def test_duplicate_pending_invitation(self, invite):
        invite()
        assert invite()["message"] == "An invitation has already been sent to this email"

    def test_existing_member(self, grace_member, invite):
        assert invite()["message"] == "This user is already a member"


class TestAccept:
    def test_accept_joins_with_invited_role(self, other_user, shelf, invite):
        token = invite(role="editor")["token"]

        result = sharing.accept_invitation(other_user.id, "GRACE@example.com", token)

        assert result["success"] is True
        assert result["message"] == "You have joined the collection"
        assert CollectionSharingRepository.member_role(shelf["id"], other_user.id) == "editor"
        again = sharing.accept_invitation(other_user.id, other_user.email, token)
        assert again["message"] == "Invitation not found or already used"

    def test_wrong_email(self, invite):
        token = invite()["token"]
        intruder = UserRepository.upsert("user-3", "mallory@example.com", "Mallory")
        result = sharing.accept_invitation(intruder.id, intruder.email, token)
        assert result["message"] == "This invitation was sent to a different email address"

    def test_expired(self, other_user, invite):
        token = invite()["token"]
        later = utc_now() + timedelta(days=8)
        result = sharing.accept_invitation(other_user.id, other_user.email, token, now=later)
        assert result == {"success": False, "message": "Invitation has expired"}


class TestMembers:
    def test_listing_puts_owner_first(self, user, other_user, shelf, grace_member, invite):
        invite("linus@example.com")

        result = sharing.get_collection_members(other_user.id, shelf["id"])

        assert result["success"] is True
        assert [(m["userId"], m["role"]) for m in result["members"]] == [
            (user.id, "owner"),
            (other_user.id, "editor"),
        ]
        assert [(i["email"], i["status"]) for i in result["invitations"]] == [
            ("linus@example.com", "pending")
        ]

    def test_viewers_and_strangers_are_denied(self, user, other_user, shelf, grace_member):
        sharing.update_member_role(user.id, shelf["id"], other_user.id, "viewer")

        result = sharing.get_collection_members(other_user.id, shelf["id"])
        assert result == {
            "success": False,
            "members": [],
            "invitations": [],
            "message": "Access denied",
        }
        assert sharing.get_collection_members("stranger", shelf["id"])["success"] is False

    def test_role_changes(self, user, other_user, shelf, grace_member):
        shelf_id = shelf["id"]
        results = [
            sharing.update_member_role(user.id, shelf_id, user.id, "viewer"),
            sharing.update_member_role(other_user.id, shelf_id, user.id, "viewer"),
            sharing.update_member_role(user.id, shelf_id, other_user.id, "admin"),
            sharing.update_member_role(user.id, shelf_id, other_user.id, "viewer"),
        ]

        assert [r["message"] for r in results] == [
            "Cannot change your own role",
            "Only the collection owner can change roles",
            "Role must be editor or viewer",
            "Role updated",
        ]
        assert sharing.check_collection_access(shelf_id, other_user.id) == "viewer"

    def test_removal(self, user, other_user, shelf, grace_member):
        shelf_id = shelf["id"]
        results = [
            sharing.remove_member(user.id, shelf_id, user.id),
            sharing.remove_member(other_user.id, shelf_id, other_user.id),
            sharing.remove_member(user.id, shelf_id, other_user.id),
            sharing.remove_member(user.id, shelf_id, other_user.id),
        ]

        assert [r["message"] for r in results] == [
            "Cannot remove yourself from your own collection",
            "Only the collection owner can remove members",
            "Member removed",
            "Member not found",
        ]
        assert sharing.check_collection_access(shelf_id, other_user.id) is None


class TestInvitations:
    def test_pending_for_invitee(self, user, other_user, shelf, invite):
        token = invite(role="editor")["token"]

        invitations = sharing.get_pending_invitations(other_user.email)["invitations"]

        assert len(invitations) == 1
        assert invitations[0]["collectionName"] == "Shared shelf"
        assert invitations[0]["inviterName"] == user.name
        assert invitations[0]["role"] == "editor"
        assert invitations[0]["token"] == token

    def test_revoke(self, user, other_user, shelf, invite):
        invite()
        invitation_id = sharing.get_pending_invitations(other_user.email)["invitations"][0]["id"]

        denied = sharing.revoke_invitation(other_user.id, invitation_id)
        assert denied["message"] == "Only the collection owner can revoke invitations"
        assert sharing.revoke_invitation(user.id, invitation_id)["message"] == "Invitation revoked"
        assert sharing.get_pending_invitations(other_user.email)["invitations"] == []
        assert sharing.revoke_invitation(user.id, "missing")["message"] == "Invitation not found"
