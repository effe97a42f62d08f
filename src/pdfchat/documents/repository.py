"""Metadata persistence for uploaded documents.

:class:`DocumentRepository` is the interface the rest of the code depends
on; :class:`SqlDocumentRepository` implements it on an async SQLAlchemy
engine (SQLite via ``aiosqlite`` by default, PostgreSQL via ``asyncpg``).
Database failures surface as ``UpstreamError("metadata", ...)``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import timezone
from pathlib import Path

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from pdfchat.config import settings
from pdfchat.documents.models import DocumentRecord, EmbeddingStatus
from pdfchat.documents.orm import Base, UploadedFile
from pdfchat.errors import UpstreamError

logger = logging.getLogger(__name__)


class DocumentRepository(ABC):
    """Backend-agnostic store of :class:`DocumentRecord` objects."""

    async def start(self) -> None:
        """Prepare the backend (create schema, open pools)."""

    async def close(self) -> None:
        """Release any held resources."""

    @abstractmethod
    async def add(self, record: DocumentRecord) -> None: ...

    @abstractmethod
    async def get(self, doc_id: str, *, owner_id: str | None = None) -> DocumentRecord | None:
        """Return the record, optionally restricted to *owner_id*."""
        ...

    @abstractmethod
    async def list_for_owner(self, owner_id: str) -> list[DocumentRecord]:
        """Return the owner's records, newest first."""
        ...

    @abstractmethod
    async def delete(self, doc_id: str, *, owner_id: str) -> bool:
        """Delete the record; return ``False`` when nothing matched."""
        ...

    @abstractmethod
    async def set_embedding_status(self, doc_id: str, status: EmbeddingStatus) -> None: ...


def _to_record(row: UploadedFile) -> DocumentRecord:
    created_at = row.created_at
    if created_at.tzinfo is None:
        # SQLite drops the offset; values are always written in UTC.
        created_at = created_at.replace(tzinfo=timezone.utc)
    return DocumentRecord(
        id=row.id,
        owner_id=row.owner_id,
        original_name=row.original_name,
        storage_path=row.file_path,
        size_bytes=row.file_size,
        content_type=row.content_type,
        public_url=row.public_url,
        created_at=created_at,
        embedding_status=EmbeddingStatus(row.embedding_status),
    )


class SqlDocumentRepository(DocumentRepository):
    """SQLAlchemy-backed repository.

    Parameters
    ----------
    engine:
        An existing async engine.  When *None*, one is created from
        ``database_url``.
    database_url:
        SQLAlchemy async URL used when *engine* is not given.
    """

    def __init__(self, engine: AsyncEngine | None = None, *, database_url: str = settings.database_url) -> None:
        self._engine = engine or create_async_engine(database_url, pool_pre_ping=True)
        self._sessions = async_sessionmaker(bind=self._engine, expire_on_commit=False, autoflush=False)

    async def start(self) -> None:
        url = self._engine.url
        if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self._engine.dispose()

    # -- DocumentRepository overrides -----------------------------------------

    async def add(self, record: DocumentRecord) -> None:
        row = UploadedFile(
            id=record.id,
            owner_id=record.owner_id,
            original_name=record.original_name,
            file_path=record.storage_path,
            file_size=record.size_bytes,
            content_type=record.content_type,
            public_url=record.public_url,
            created_at=record.created_at,
            embedding_status=record.embedding_status.value,
        )
        try:
            async with self._sessions.begin() as session:
                session.add(row)
        except SQLAlchemyError as exc:
            raise UpstreamError("metadata", "Failed to save file metadata") from exc

    async def get(self, doc_id: str, *, owner_id: str | None = None) -> DocumentRecord | None:
        stmt = select(UploadedFile).where(UploadedFile.id == doc_id)
        if owner_id is not None:
            stmt = stmt.where(UploadedFile.owner_id == owner_id)
        try:
            async with self._sessions() as session:
                row = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise UpstreamError("metadata", "Failed to retrieve file metadata") from exc
        return _to_record(row) if row is not None else None

    async def list_for_owner(self, owner_id: str) -> list[DocumentRecord]:
        stmt = (
            select(UploadedFile)
            .where(UploadedFile.owner_id == owner_id)
            .order_by(UploadedFile.created_at.desc(), UploadedFile.id.desc())
        )
        try:
            async with self._sessions() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise UpstreamError("metadata", "Failed to retrieve files") from exc
        return [_to_record(row) for row in rows]

    async def delete(self, doc_id: str, *, owner_id: str) -> bool:
        stmt = delete(UploadedFile).where(UploadedFile.id == doc_id, UploadedFile.owner_id == owner_id)
        try:
            async with self._sessions.begin() as session:
                result = await session.execute(stmt)
        except SQLAlchemyError as exc:
            raise UpstreamError("metadata", "Failed to delete file metadata") from exc
        return result.rowcount > 0

    async def set_embedding_status(self, doc_id: str, status: EmbeddingStatus) -> None:
        stmt = update(UploadedFile).where(UploadedFile.id == doc_id).values(embedding_status=status.value)
        try:
            async with self._sessions.begin() as session:
                await session.execute(stmt)
        except SQLAlchemyError as exc:
            raise UpstreamError("metadata", "Failed to update file metadata") from exc
