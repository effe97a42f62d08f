"""Upload, list and delete documents.

Upload runs the whole server-side path before responding::

    validate → authenticate → authorize owner → storage write → metadata write → ingest

- A metadata-write failure triggers a best-effort deletion of the stored
  object.
- An ingestion failure after the metadata write leaves the record and the
  stored object in place, marks the record ``embedding_status = failed``,
  and re-raises.  No attempt is made to roll back a partially written
  namespace.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pdfchat.config import settings
from pdfchat.documents.models import DocumentRecord, EmbeddingStatus
from pdfchat.errors import AuthError, ForbiddenError, NotFoundError, PdfChatError, UpstreamError, ValidationError

if TYPE_CHECKING:
    from pdfchat.auth import Identity
    from pdfchat.documents.repository import DocumentRepository
    from pdfchat.ingestion.pipeline import IngestionPipeline
    from pdfchat.storage.base import ObjectStorage

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_UNSAFE_OWNER_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


def sanitize_filename(name: str) -> str:
    """Replace anything outside ``[A-Za-z0-9.-]`` with ``_``."""
    return _UNSAFE_NAME_CHARS.sub("_", name)


def build_storage_path(owner_id: str, filename: str, created_at: datetime) -> str:
    """``<owner>/pdfs/<epoch-ms>_<sanitized-name>``."""
    timestamp = int(created_at.timestamp() * 1000)
    owner = _UNSAFE_OWNER_CHARS.sub("_", owner_id)
    return f"{owner}/pdfs/{timestamp}_{sanitize_filename(filename)}"


class DocumentService:
    """Coordinates storage, metadata and ingestion for uploaded documents."""

    def __init__(
        self,
        *,
        storage: ObjectStorage,
        repository: DocumentRepository,
        pipeline: IngestionPipeline,
        max_file_size: int = settings.max_file_size_bytes,
        accepted_content_type: str = settings.accepted_content_type,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._storage = storage
        self._repository = repository
        self._pipeline = pipeline
        self.max_file_size = max_file_size
        self.accepted_content_type = accepted_content_type
        self._id_factory = id_factory
        self._clock = clock

    # -- validation -----------------------------------------------------------

    def validate_upload(self, *, filename: str | None, content_type: str | None, size: int, owner_id: str | None) -> None:
        """Raise :class:`ValidationError` with a user-facing reason, else return."""
        if not filename:
            raise ValidationError("No file provided")
        if not owner_id:
            raise ValidationError("User ID is required")
        if content_type != self.accepted_content_type:
            raise ValidationError("Only PDF files are allowed")
        if size > self.max_file_size:
            limit_mb = round(self.max_file_size / (1024 * 1024))
            raise ValidationError(f"File size exceeds {limit_mb}MB limit")

    # -- operations -----------------------------------------------------------

    async def upload(
        self,
        *,
        owner_id: str,
        filename: str,
        content_type: str,
        data: bytes,
        identity: Identity | None,
    ) -> DocumentRecord:
        """Store, record and ingest one PDF; return its persisted record."""
        self.validate_upload(filename=filename, content_type=content_type, size=len(data), owner_id=owner_id)
        self._authorize(owner_id, identity)

        created_at = self._clock()
        doc_id = self._id_factory()
        path = build_storage_path(owner_id, filename, created_at)

        await self._storage.put(path, data, content_type)

        record = DocumentRecord(
            id=doc_id,
            owner_id=owner_id,
            original_name=filename,
            storage_path=path,
            size_bytes=len(data),
            content_type=content_type,
            public_url=self._storage.public_url(path),
            created_at=created_at,
        )
        try:
            await self._repository.add(record)
        except UpstreamError:
            logger.error("Metadata insert failed for %s; removing stored object %s", doc_id, path)
            await self._compensate_storage(path)
            raise

        try:
            handle = await self._pipeline.ingest(doc_id, identity)
        except PdfChatError as exc:
            logger.error("Ingestion failed for %s (%s); record kept as %s", doc_id, exc.message, EmbeddingStatus.FAILED.value)
            await self._mark(doc_id, EmbeddingStatus.FAILED)
            raise

        await self._mark(doc_id, EmbeddingStatus.READY)
        logger.info("Uploaded %s as %s (%d chunks, reused=%s)", filename, doc_id, handle.chunk_count, handle.reused)
        return record.model_copy(update={"embedding_status": EmbeddingStatus.READY})

    async def list_documents(self, owner_id: str, *, identity: Identity | None) -> list[DocumentRecord]:
        if not owner_id:
            raise ValidationError("User ID is required")
        self._authorize(owner_id, identity)
        return await self._repository.list_for_owner(owner_id)

    async def delete_document(self, doc_id: str, owner_id: str, *, identity: Identity | None) -> None:
        """Remove the stored object, the metadata record and the namespace.

        Storage and namespace failures are logged and tolerated; only a
        failure to delete the metadata record fails the call.
        """
        if not doc_id or not owner_id:
            raise ValidationError("File ID and User ID are required")
        self._authorize(owner_id, identity)

        record = await self._repository.get(doc_id, owner_id=owner_id)
        if record is None:
            raise NotFoundError("File not found")

        try:
            await self._storage.delete(record.storage_path)
        except UpstreamError:
            logger.exception("Storage deletion failed for %s", record.storage_path)

        if not await self._repository.delete(doc_id, owner_id=owner_id):
            raise NotFoundError("File not found")

        try:
            await self._pipeline.discard(doc_id)
        except UpstreamError:
            logger.exception("Namespace deletion failed for %s", doc_id)

    # -- internals ------------------------------------------------------------

    @staticmethod
    def _authorize(owner_id: str, identity: Identity | None) -> None:
        """Callers may only act on their own documents."""
        if identity is None:
            raise AuthError()
        if identity.user_id != owner_id:
            logger.warning("User %s attempted to act for owner %s", identity.user_id, owner_id)
            raise ForbiddenError()

    async def _compensate_storage(self, path: str) -> None:
        try:
            await self._storage.delete(path)
        except UpstreamError:
            logger.exception("Compensating deletion of %s failed; object is orphaned", path)

    async def _mark(self, doc_id: str, status: EmbeddingStatus) -> None:
        try:
            await self._repository.set_embedding_status(doc_id, status)
        except UpstreamError:
            logger.exception("Could not record embedding_status=%s for %s", status.value, doc_id)
