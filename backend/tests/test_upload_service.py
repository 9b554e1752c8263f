"""
Tests for receipt and gallery upload storage.
"""

import io

import pytest
from starlette.datastructures import UploadFile

from easybuy.core.config import settings
from easybuy.core.exceptions import ErrorCode, UploadException
from easybuy.services.upload_service import (
    RECEIPTS_DIR,
    VEHICLES_DIR,
    PendingUpload,
    ensure_upload_dirs,
    has_content,
    read_upload,
    write_uploads,
)


def make_upload(filename: str | None, content: bytes = b"%PDF-1.4 receipt") -> UploadFile:
    return UploadFile(file=io.BytesIO(content), filename=filename)


class TestReadUpload:
    """Tests for read_upload."""

    @pytest.mark.asyncio
    async def test_names_receipt_without_writing(self, upload_dir):
        pending = await read_upload(make_upload("receipt.pdf"), RECEIPTS_DIR)

        assert pending.public_path.startswith("uploads/receipts/")
        assert pending.public_path.endswith("_receipt.pdf")
        assert len(pending.stored_name.split("_", 1)[0]) == 13
        assert pending.content == b"%PDF-1.4 receipt"
        assert not pending.target.exists()

    @pytest.mark.asyncio
    async def test_same_name_never_collides(self, upload_dir):
        first = await read_upload(make_upload("front.jpg", b"a"), VEHICLES_DIR)
        second = await read_upload(make_upload("front.jpg", b"b"), VEHICLES_DIR)

        assert first.public_path != second.public_path

    @pytest.mark.asyncio
    async def test_client_path_is_stripped(self, upload_dir):
        pending = await read_upload(make_upload("C:\\Users\\jane\\My Receipt.PNG"), RECEIPTS_DIR)

        assert pending.public_path.endswith("_My_Receipt.PNG")
        assert "Users" not in pending.public_path

    @pytest.mark.asyncio
    async def test_extension_not_allowed(self, upload_dir):
        with pytest.raises(UploadException) as exc_info:
            await read_upload(make_upload("payload.php"), RECEIPTS_DIR)

        assert exc_info.value.code == ErrorCode.UPLOAD_ERROR
        assert exc_info.value.message == "File type not allowed: .php"

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self, upload_dir):
        with pytest.raises(UploadException):
            await read_upload(make_upload("receipt.pdf", b""), RECEIPTS_DIR)

    @pytest.mark.asyncio
    async def test_oversized_file_rejected(self, upload_dir, monkeypatch):
        monkeypatch.setattr(settings, "UPLOAD_MAX_BYTES", 4)

        with pytest.raises(UploadException) as exc_info:
            await read_upload(make_upload("receipt.pdf", b"12345"), RECEIPTS_DIR)

        assert "File too large" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unknown_subdir_rejected(self, upload_dir):
        with pytest.raises(UploadException):
            await read_upload(make_upload("receipt.pdf"), "../etc")

    @pytest.mark.asyncio
    async def test_missing_filename_rejected(self, upload_dir):
        with pytest.raises(UploadException):
            await read_upload(make_upload(""), RECEIPTS_DIR)


class TestWriteUploads:
    """Tests for write_uploads."""

    @pytest.mark.asyncio
    async def test_writes_every_file(self, upload_dir):
        front = await read_upload(make_upload("front.jpg", b"front"), VEHICLES_DIR)
        rear = await read_upload(make_upload("rear.png", b"rear"), VEHICLES_DIR)

        await write_uploads([front, rear])

        assert (upload_dir / VEHICLES_DIR / front.stored_name).read_bytes() == b"front"
        assert (upload_dir / VEHICLES_DIR / rear.stored_name).read_bytes() == b"rear"

    @pytest.mark.asyncio
    async def test_failed_write_removes_earlier_files(self, upload_dir):
        written = await read_upload(make_upload("front.jpg", b"front"), VEHICLES_DIR)
        # A directory in the way makes the second write fail
        blocked = PendingUpload(VEHICLES_DIR, "blocked.jpg", b"rear")
        blocked.target.mkdir(parents=True)

        with pytest.raises(UploadException) as exc_info:
            await write_uploads([written, blocked])

        assert exc_info.value.message == "Failed to store uploaded file"
        assert not written.target.exists()

    @pytest.mark.asyncio
    async def test_nothing_to_write(self, upload_dir):
        await write_uploads([])

        assert not (upload_dir / VEHICLES_DIR).exists()


class TestHelpers:
    def test_has_content(self):
        assert has_content(make_upload("receipt.pdf"))
        assert not has_content(make_upload(""))
        assert not has_content("receipt.pdf")

    def test_ensure_upload_dirs(self, upload_dir):
        ensure_upload_dirs()

        assert (upload_dir / RECEIPTS_DIR).is_dir()
        assert (upload_dir / VEHICLES_DIR).is_dir()
