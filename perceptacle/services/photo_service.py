"""Storage for photos attached to tips.

Uploads are validated by extension and MIME type, read in 64 KB chunks so an
oversized file is rejected as soon as it crosses the limit, and written
under ``<uploads_dir>/tips`` as ``<epoch-ms>-<uuid><ext>``.  The returned
URL is served by the ``/uploads`` static mount.
"""

from __future__ import annotations

import asyncio
import re
import uuid
from pathlib import Path
from typing import Protocol

from perceptacle.models.tip import now_ms
from perceptacle.utils.errors import InvalidInputError
from perceptacle.utils.logging import get_logger

ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp", ".gif", ".heic", ".heif"})
_IMAGE_MIME_RE = re.compile(r"^image/(jpeg|png|webp|gif|heic|heif)$")

MAX_PHOTO_BYTES = 6 * 1024 * 1024
UPLOAD_CHUNK_SIZE = 64 * 1024
PUBLIC_PREFIX = "/uploads/tips"


class UploadedFile(Protocol):
    """The subset of ``fastapi.UploadFile`` the service relies on."""

    filename: str | None
    content_type: str | None

    async def read(self, size: int = -1) -> bytes: ...


class PhotoStorage:
    """Validates and stores tip photos on local disk.

    Parameters
    ----------
    uploads_dir:
        Root of the public uploads tree; photos go to its ``tips`` folder.
    max_bytes:
        Largest accepted upload.
    """

    def __init__(
        self,
        uploads_dir: str | Path,
        max_bytes: int = MAX_PHOTO_BYTES,
        chunk_size: int = UPLOAD_CHUNK_SIZE,
    ) -> None:
        self._tips_dir = Path(uploads_dir) / "tips"
        self._max_bytes = max_bytes
        self._chunk_size = chunk_size
        self._logger = get_logger(__name__)

    def initialize(self) -> None:
        self._tips_dir.mkdir(parents=True, exist_ok=True)

    async def save_tip_photo(self, upload: UploadedFile | None) -> str:
        """Store *upload* and return its public URL, e.g. ``/uploads/tips/1700000000000-<uuid>.jpg``."""
        if upload is None or not upload.filename:
            raise InvalidInputError("No file uploaded")

        ext = Path(upload.filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise InvalidInputError("Unsupported file extension")
        if not _IMAGE_MIME_RE.match(upload.content_type or ""):
            raise InvalidInputError("Only image files are allowed")

        chunks: list[bytes] = []
        total = 0
        while True:
            chunk = await upload.read(self._chunk_size)
            if not chunk:
                break
            total += len(chunk)
            if total > self._max_bytes:
                self._logger.warning("tip_photo_too_large", filename=upload.filename, limit=self._max_bytes)
                raise InvalidInputError(f"File too large: maximum is {self._max_bytes // (1024 * 1024)} MB")
            chunks.append(chunk)
        if total == 0:
            raise InvalidInputError("No file uploaded")

        name = f"{now_ms()}-{uuid.uuid4()}{ext}"
        await asyncio.to_thread(self._write, self._tips_dir / name, b"".join(chunks))
        self._logger.info("tip_photo_saved", name=name, size_bytes=total)
        return f"{PUBLIC_PREFIX}/{name}"

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
