"""
Uploaded file storage on the local filesystem.

Files live under UPLOADS_DIR/{user_id}/ and are only ever served back to
their owner. Uploads are checked against an extension allow-list and the
file's leading bytes.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from pathlib import Path, PurePath

from mindweave import config
from mindweave.config import UPLOAD_MAX_BYTES
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter

logger = get_logger(__name__)

MIME_TYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

# extension -> accepted leading signatures; empty means text
FILE_SIGNATURES: dict[str, tuple[bytes, ...]] = {
    ".pdf": (b"%PDF",),
    ".jpg": (b"\xff\xd8\xff",),
    ".jpeg": (b"\xff\xd8\xff",),
    ".png": (b"\x89PNG\r\n\x1a\n",),
    ".gif": (b"GIF8",),
    ".webp": (b"RIFF",),
    ".txt": (),
    ".md": (),
    ".doc": (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",),
    ".docx": (b"PK\x03\x04",),
}

ALLOWED_EXTENSIONS = tuple(FILE_SIGNATURES)


class FileAccessError(Exception):
    """Upload rejected or file not servable; carries the HTTP status to return."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass
class StoredFile:
    file_name: str
    file_path: str
    file_type: str
    file_size: int

    def to_api_dict(self) -> dict[str, object]:
        return {
            "fileName": self.file_name,
            "filePath": self.file_path,
            "fileType": self.file_type,
            "fileSize": self.file_size,
        }


def uploads_root() -> Path:
    return Path(config.UPLOADS_DIR)


def mime_type_for(filename: str) -> str:
    return MIME_TYPES.get(PurePath(filename.lower()).suffix, "application/octet-stream")


def verify_file_signature(data: bytes, extension: str) -> bool:
    """True when data's leading bytes match what extension claims."""
    if extension not in FILE_SIGNATURES:
        return False
    signatures = FILE_SIGNATURES[extension]
    if not signatures:
        if b"\x00" in data:
            return False
        try:
            data.decode("utf-8")
        except UnicodeDecodeError:
            return False
        return True
    if extension == ".webp":
        return data[:4] == b"RIFF" and data[8:12] == b"WEBP"
    return any(data.startswith(signature) for signature in signatures)


def sanitize_filename(filename: str) -> str:
    return re.sub(r"[^a-zA-Z0-9.\-]", "_", PurePath(filename).name)


def save_upload(user_id: str, filename: str, data: bytes, declared_type: str | None = None) -> StoredFile:
    """
    Validate and store an upload.

    Raises:
        FileAccessError: 400 for empty, oversized, disallowed or mismatched files
    """
    if not filename:
        raise FileAccessError(400, "No file provided")
    if len(data) > UPLOAD_MAX_BYTES:
        raise FileAccessError(400, "File size exceeds 10MB limit")

    extension = PurePath(filename.lower()).suffix
    if extension not in ALLOWED_EXTENSIONS:
        raise FileAccessError(400, f"File type {extension or filename} is not allowed")
    if declared_type and declared_type not in MIME_TYPES.values():
        raise FileAccessError(400, f"MIME type {declared_type} is not allowed")
    if not verify_file_signature(data, extension):
        counter("storage.signature_mismatch")
        raise FileAccessError(400, "File content does not match file type")

    stored_name = f"{int(time.time() * 1000)}-{sanitize_filename(filename)}"
    user_dir = uploads_root() / user_id
    user_dir.mkdir(parents=True, exist_ok=True)
    (user_dir / stored_name).write_bytes(data)

    logger.info("Stored upload %s (%d bytes) for user %s", stored_name, len(data), user_id)
    return StoredFile(
        file_name=filename,
        file_path=f"/api/files/{user_id}/{stored_name}",
        file_type=declared_type or mime_type_for(filename),
        file_size=len(data),
    )


def _has_traversal(segment: str) -> bool:
    return ".." in segment or "/" in segment or "\\" in segment


def resolve_user_file(user_id: str, segments: list[str]) -> Path:
    """
    Path of a stored file the user may read.

    Args:
        segments: Request path split into parts; must be [owner_id, filename]

    Raises:
        FileAccessError: 400 bad path, 403 not the owner, 404 missing
    """
    if len(segments) != 2:
        raise FileAccessError(400, "Invalid path")
    owner_id, filename = segments
    if owner_id != user_id:
        raise FileAccessError(403, "Forbidden")
    if _has_traversal(owner_id) or _has_traversal(filename):
        raise FileAccessError(400, "Invalid path")

    root = uploads_root().resolve()
    path = (root / owner_id / filename).resolve()
    if not path.is_relative_to(root) or path == root:
        raise FileAccessError(400, "Invalid path")
    if not path.is_file():
        raise FileAccessError(404, "File not found")
    return path
