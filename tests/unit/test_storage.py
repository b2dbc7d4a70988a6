"""Unit tests for upload storage

Tests cover:
- Extension and signature checks
- Stored names and served paths
- Owner-only, traversal-safe file resolution
"""

from __future__ import annotations

import pytest

from mindweave.storage.files import (
    FileAccessError,
    resolve_user_file,
    sanitize_filename,
    save_upload,
    verify_file_signature,
)

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


class TestSignatures:
    @pytest.mark.parametrize(
        ("data", "extension"),
        [
            (b"%PDF-1.7\n", ".pdf"),
            (PNG, ".png"),
            (b"RIFF\x10\x00\x00\x00WEBPVP8 ", ".webp"),
            ("héllo".encode(), ".txt"),
        ],
    )
    def test_matching_content(self, data, extension):
        assert verify_file_signature(data, extension)

    @pytest.mark.parametrize(
        ("data", "extension"),
        [
            (PNG, ".pdf"),
            (b"RIFF\x10\x00\x00\x00WAVEfmt ", ".webp"),
            (b"text\x00with nul", ".txt"),
            (b"\xff\xfe\xfa", ".md"),
            (b"%PDF", ".exe"),
        ],
    )
    def test_mismatched_content(self, data, extension):
        assert not verify_file_signature(data, extension)


def test_sanitize_filename_keeps_basename():
    assert sanitize_filename("../../my report (1).pdf") == "my_report__1_.pdf"


class TestSaveUpload:
    def test_stores_under_user_directory(self, user, tmp_path):
        stored = save_upload(user.id, "Scan 1.pdf", b"%PDF-1.4 body")

        assert stored.file_name == "Scan 1.pdf"
        assert stored.file_type == "application/pdf"
        assert stored.file_size == len(b"%PDF-1.4 body")
        assert stored.file_path.startswith(f"/api/files/{user.id}/")
        assert stored.file_path.endswith("-Scan_1.pdf")
        stored_name = stored.file_path.rsplit("/", 1)[1]
        assert (tmp_path / "uploads" / user.id / stored_name).read_bytes() == b"%PDF-1.4 body"

    @pytest.mark.parametrize(
        ("filename", "data", "declared", "message"),
        [
            ("", b"x", None, "No file provided"),
            ("run.exe", b"MZ", None, "File type .exe is not allowed"),
            ("a.pdf", b"%PDF", "application/x-msdownload", "MIME type"),
            ("a.png", b"%PDF-1.4", "image/png", "does not match"),
        ],
    )
    def test_rejections(self, user, filename, data, declared, message):
        with pytest.raises(FileAccessError, match=message) as exc_info:
            save_upload(user.id, filename, data, declared)
        assert exc_info.value.status_code == 400

    def test_size_limit(self, user, monkeypatch):
        monkeypatch.setattr("mindweave.storage.files.UPLOAD_MAX_BYTES", 4)
        with pytest.raises(FileAccessError, match="10MB"):
            save_upload(user.id, "a.txt", b"hello")


class TestResolveUserFile:
    def test_owner_can_read(self, user):
        stored = save_upload(user.id, "notes.txt", b"hello")
        name = stored.file_path.rsplit("/", 1)[1]

        path = resolve_user_file(user.id, [user.id, name])
        assert path.read_bytes() == b"hello"

    @pytest.mark.parametrize(
        ("segments", "status"),
        [
            (["only-one"], 400),
            (["user-2", "x.txt"], 403),
            (["user-1", "..%2F..", "x"], 400),
            (["user-1", ".."], 400),
            (["user-1", "missing.txt"], 404),
        ],
    )
    def test_denied(self, user, segments, status):
        with pytest.raises(FileAccessError) as exc_info:
            resolve_user_file(user.id, segments)
        assert exc_info.value.status_code == status
