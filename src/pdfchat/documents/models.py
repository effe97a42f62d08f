"""Domain model for an uploaded document."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EmbeddingStatus(str, Enum):
    """Where a document stands with respect to its vector namespace.

    ``failed`` marks a record whose ingestion aborted after the metadata was
    persisted.  The record and stored file are kept; a partially written
    namespace is not rolled back.
    """

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class DocumentRecord(BaseModel):
    """Persisted metadata for one uploaded document.

    Immutable once created, except for ``embedding_status`` and deletion.
    """

    id: str
    owner_id: str
    original_name: str
    storage_path: str
    size_bytes: int = Field(ge=0)
    content_type: str
    public_url: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    embedding_status: EmbeddingStatus = EmbeddingStatus.PENDING

    model_config = ConfigDict(frozen=True)
