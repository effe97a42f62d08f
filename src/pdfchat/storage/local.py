"""Filesystem implementation of the object-storage abstraction."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from urllib.parse import quote

from pdfchat.config import settings
from pdfchat.errors import NotFoundError, UpstreamError
from pdfchat.storage.base import ObjectStorage

logger = logging.getLogger(__name__)


class LocalObjectStorage(ObjectStorage):
    """Stores objects as files under *root*.

    Parameters
    ----------
    root:
        Directory that holds every object.
    public_base_url:
        URL prefix under which *root* is served; ``public_url(path)`` is
        ``<public_base_url>/<path>``.
    """

    def __init__(
        self,
        root: str | Path = settings.storage_root,
        *,
        public_base_url: str = settings.public_base_url,
    ) -> None:
        self._root = Path(root).resolve()
        self._public_base_url = public_base_url.rstrip("/")

    async def start(self) -> None:
        await asyncio.to_thread(self._root.mkdir, parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self._root / path).resolve()
        if not target.is_relative_to(self._root):
            raise ValueError(f"Storage path escapes root: {path!r}")
        return target

    # -- ObjectStorage overrides ----------------------------------------------

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        target = self._resolve(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "xb") as fh:
                fh.write(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            raise UpstreamError("storage", "Failed to upload file to storage") from exc
        logger.info("Stored %s (%d bytes, %s)", path, len(data), content_type)

    async def get(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError as exc:
            raise NotFoundError("File not found in storage") from exc
        except OSError as exc:
            raise UpstreamError("storage", "Failed to fetch document") from exc

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(target.unlink, missing_ok=True)
        except OSError as exc:
            raise UpstreamError("storage", "Failed to delete file from storage") from exc

    def public_url(self, path: str) -> str:
        return f"{self._public_base_url}/{quote(path)}"
