"""Abstract base class for object-storage backends.

A backend stores opaque byte blobs under slash-separated paths and can
hand out a public URL for each.  Backends raise
:class:`~pdfchat.errors.UpstreamError` for service failures and
:class:`~pdfchat.errors.NotFoundError` when a path does not exist.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ObjectStorage(ABC):
    """Backend-agnostic object-storage interface."""

    # -- lifecycle ------------------------------------------------------------

    async def start(self) -> None:
        """Prepare the backend (create buckets, open pools)."""

    async def close(self) -> None:
        """Release any held resources."""

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    async def put(self, path: str, data: bytes, content_type: str) -> None:
        """Store *data* at *path*.  Never overwrites an existing object."""
        ...

    @abstractmethod
    async def get(self, path: str) -> bytes:
        """Return the bytes stored at *path*."""
        ...

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove the object at *path*.  Missing objects are not an error."""
        ...

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Return the public access reference for *path*."""
        ...
