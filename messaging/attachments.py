"""Temporary on-disk storage for uploaded attachments."""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Set

from .models import AttachmentHandle

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


class AttachmentStore:
    """Materializes uploads as temporary files and tracks open handles.

    Every handle returned by `materialize` must be passed to `release`
    exactly once; `release` is idempotent so a second call is harmless.
    """

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self._open: Set[Path] = set()

    @property
    def open_count(self) -> int:
        """Number of handles not yet released."""
        return len(self._open)

    async def materialize(self, data: bytes, media_type: str, filename: str) -> AttachmentHandle:
        """Write the upload to a temporary file and return its handle.

        Raises:
            ValueError: If the data is empty.
        """
        if not data:
            raise ValueError("Attachment data is required.")

        ext = _EXTENSIONS.get((media_type or "").lower(), "bin")
        path = self.directory / f"{uuid.uuid4().hex}.{ext}"

        def _write() -> None:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        # file IO is blocking -> run in thread
        await asyncio.to_thread(_write)
        self._open.add(path)
        return AttachmentHandle(path=path, media_type=media_type, filename=filename)

    async def read(self, handle: AttachmentHandle) -> bytes:
        """Read the attachment content back from disk."""
        return await asyncio.to_thread(handle.path.read_bytes)

    async def release(self, handle: AttachmentHandle) -> None:
        """Delete the temporary file behind a handle.

        Raises:
            OSError: If the file exists but could not be removed.
        """
        if handle.path not in self._open:
            return
        self._open.discard(handle.path)
        await asyncio.to_thread(handle.path.unlink, True)
