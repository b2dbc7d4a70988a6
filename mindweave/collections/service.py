"""Collection service - validation and ownership checks around the repository."""

from __future__ import annotations

from typing import Any

from mindweave.collections.models import COLLECTION_NAME_MAX
from mindweave.collections.repository import CollectionRepository
from mindweave.config import BULK_ACTION_MAX_IDS
from mindweave.content.repository import ContentRepository
from mindweave.observability.logging import get_logger
from mindweave.utils.validators import ValidationError, validate_hex_color

logger = get_logger(__name__)

COLLECTION_NOT_FOUND = {"success": False, "message": "Collection not found"}
CONTENT_NOT_FOUND = {"success": False, "message": "Content not found"}


def _validate_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required")
    if len(name) > COLLECTION_NAME_MAX:
        raise ValidationError("Name too long")
    return name


def create_collection(
    user_id: str, name: str | None, description: str | None = None, color: str | None = None
) -> dict[str, Any]:
    try:
        name = _validate_name(name)
        color = validate_hex_color(color)
    except ValidationError as e:
        return {"success": False, "message": str(e)}

    collection = CollectionRepository.create(user_id, name, description or None, color)
    return {
        "success": True,
        "message": "Collection created successfully",
        "collection": collection.to_api_dict(),
    }


def list_collections(user_id: str) -> dict[str, Any]:
    collections = CollectionRepository.list_by_user(user_id)
    return {"success": True, "collections": [c.to_api_dict() for c in collections]}


def update_collection(user_id: str, collection_id: str, changes: dict[str, Any]) -> dict[str, Any]:
    """
    Args:
        changes: Subset of name, description, color (color None clears it)
    """
    collection = CollectionRepository.get_owned(collection_id, user_id)
    if collection is None:
        return COLLECTION_NOT_FOUND

    fields: dict[str, Any] = {}
    try:
        if "name" in changes and changes["name"] is not None:
            fields["name"] = _validate_name(changes["name"])
        if "description" in changes:
            fields["description"] = changes["description"] or None
        if "color" in changes:
            fields["color"] = validate_hex_color(changes["color"])
    except ValidationError as e:
        return {"success": False, "message": str(e)}

    if fields:
        CollectionRepository.update(collection_id, fields)
    updated = CollectionRepository.get_owned(collection_id, user_id)
    return {
        "success": True,
        "message": "Collection updated successfully",
        "collection": updated.to_api_dict() if updated else None,
    }


def delete_collection(user_id: str, collection_id: str) -> dict[str, Any]:
    if not CollectionRepository.delete(collection_id, user_id):
        return COLLECTION_NOT_FOUND
    return {"success": True, "message": "Collection deleted successfully"}


def add_to_collection(user_id: str, content_id: str, collection_id: str) -> dict[str, Any]:
    if CollectionRepository.get_owned(collection_id, user_id) is None:
        return COLLECTION_NOT_FOUND
    if ContentRepository.get_owned(content_id, user_id) is None:
        return CONTENT_NOT_FOUND
    if CollectionRepository.member_ids(collection_id, [content_id]):
        return {"success": False, "message": "Content already in collection"}

    CollectionRepository.add_items(collection_id, [content_id])
    return {"success": True, "message": "Added to collection"}


def remove_from_collection(user_id: str, content_id: str, collection_id: str) -> dict[str, Any]:
    if CollectionRepository.get_owned(collection_id, user_id) is None:
        return COLLECTION_NOT_FOUND
    CollectionRepository.remove_item(collection_id, content_id)
    return {"success": True, "message": "Removed from collection"}


def bulk_add_to_collection(
    user_id: str, content_ids: list[str], collection_id: str
) -> dict[str, Any]:
    """Add many owned items; ones already present or not owned are skipped."""
    ids = list(dict.fromkeys(content_ids))
    if not ids:
        return {"success": False, "message": "No items selected"}
    if len(ids) > BULK_ACTION_MAX_IDS:
        return {
            "success": False,
            "message": f"Cannot process more than {BULK_ACTION_MAX_IDS} items at once",
        }
    if CollectionRepository.get_owned(collection_id, user_id) is None:
        return COLLECTION_NOT_FOUND

    owned = {item.id for item in ContentRepository.get_many_owned(user_id, ids)}
    existing = CollectionRepository.member_ids(collection_id, ids)
    new_ids = [cid for cid in ids if cid in owned and cid not in existing]
    if not new_ids:
        return {"success": True, "message": "All items already in collection"}

    CollectionRepository.add_items(collection_id, new_ids)
    count = len(new_ids)
    return {
        "success": True,
        "message": f"Added {count} item{'s' if count != 1 else ''} to collection",
    }


def get_content_collections(user_id: str, content_id: str) -> dict[str, Any]:
    return {
        "success": True,
        "collectionIds": CollectionRepository.collections_for_content(content_id, user_id),
    }
