"""
File upload storage for payment receipts and vehicle galleries.

Uploads of one action are read and validated before anything is written,
then written together once the action's rows are in place. Files land
under <UPLOAD_DIR>/<subdir>/<token>_<basename> and are referenced
from the database by their public relative path,
"uploads/<subdir>/<token>_<basename>", which the app serves read-only.
"""

import os
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from easybuy.core.config import settings
from easybuy.core.exceptions import UploadException
from easybuy.core.logging import get_logger

logger = get_logger(__name__)

RECEIPTS_DIR = "receipts"
VEHICLES_DIR = "vehicles"
UPLOAD_SUBDIRS = (RECEIPTS_DIR, VEHICLES_DIR)


def ensure_upload_dirs() -> None:
    """Create the upload directories if they do not exist."""
    for subdir in UPLOAD_SUBDIRS:
        Path(settings.UPLOAD_DIR, subdir).mkdir(parents=True, exist_ok=True)


def has_content(upload: object) -> bool:
    """True for a multipart file part that carries a filename."""
    return isinstance(upload, UploadFile) and bool(upload.filename)


def _safe_basename(filename: str) -> str:
    # Browsers on Windows may send the full client path
    name = os.path.basename(filename.replace("\\", "/")).strip()
    return name.replace(" ", "_")


def _write_file(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as handle:
        handle.write(content)


@dataclass(frozen=True)
class PendingUpload:
    """A validated upload whose stored name is already chosen."""

    subdir: str
    stored_name: str
    content: bytes

    @property
    def target(self) -> Path:
        return Path(settings.UPLOAD_DIR, self.subdir, self.stored_name)

    @property
    def public_path(self) -> str:
        return f"{settings.UPLOAD_URL_PREFIX.strip('/')}/{self.subdir}/{self.stored_name}"


async def read_upload(upload: UploadFile, subdir: str) -> PendingUpload:
    """
    Read and validate an uploaded file without writing it.

    Args:
        upload: Multipart file part
        subdir: Target directory, "receipts" or "vehicles"

    Returns:
        PendingUpload whose public_path can be stored before the file exists

    Raises:
        UploadException: Unknown subdir, bad extension, empty or oversized file
    """
    if subdir not in UPLOAD_SUBDIRS:
        raise UploadException(f"Unknown upload directory: {subdir}")

    basename = _safe_basename(upload.filename or "")
    if not basename:
        raise UploadException("Uploaded file has no name")

    extension = basename.rsplit(".", 1)[-1].lower() if "." in basename else ""
    if extension not in settings.UPLOAD_ALLOWED_EXTENSIONS:
        raise UploadException(f"File type not allowed: .{extension or '?'}", filename=basename)

    content = await upload.read()
    if not content:
        raise UploadException("Uploaded file is empty", filename=basename)
    if len(content) > settings.UPLOAD_MAX_BYTES:
        raise UploadException(
            f"File too large: {len(content)} bytes (max {settings.UPLOAD_MAX_BYTES})",
            filename=basename,
        )

    return PendingUpload(subdir, f"{uuid.uuid4().hex[:13]}_{basename}", content)


async def write_uploads(pending: Sequence[PendingUpload]) -> None:
    """
    Write validated uploads to disk, all or none.

    Raises:
        UploadException: A write failed; files already written are removed
    """
    written: list[Path] = []
    for item in pending:
        try:
            await run_in_threadpool(_write_file, item.target, item.content)
        except OSError as e:
            logger.error(
                "Failed to store upload",
                extra={"path": str(item.target), "error_message": str(e)},
            )
            for path in written:
                path.unlink(missing_ok=True)
            raise UploadException("Failed to store uploaded file", filename=item.stored_name) from e
        written.append(item.target)
        logger.info(
            "Stored upload",
            extra={"subdir": item.subdir, "stored_name": item.stored_name, "size_bytes": len(item.content)},
        )
