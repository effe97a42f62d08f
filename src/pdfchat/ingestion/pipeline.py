"""Ingestion pipeline — document id in, populated vector namespace out.

Stages::

    dedup check ─hit─► reuse existing namespace
         │
        miss
         ▼
    fetch (storage) → parse (PyPDF) → chunk → embed (batches) → upsert

Idempotence
-----------
The dedup check and the populate step run under a per-``doc_id`` lock, so
concurrent calls for one document inside this process serialize and the
later ones observe the namespace written by the first.  Across processes
the check is still advisory.

Failure policy
--------------
Any fetch, parse, embed or upsert failure aborts the call with an
:class:`~pdfchat.errors.UpstreamError`.  Chunks already upserted before
the failure are *not* rolled back: a namespace can be left partially
populated, and a later dedup check will then treat it as present.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pdfchat.config import settings
from pdfchat.errors import AuthError, NotFoundError, UpstreamError, ValidationError
from pdfchat.ingestion.chunker import chunk_documents, to_chunks
from pdfchat.ingestion.loader import load_pdf_bytes
from pdfchat.ingestion.locks import KeyedLock

if TYPE_CHECKING:
    from langchain_core.documents import Document
    from langchain_core.embeddings import Embeddings

    from pdfchat.auth import Identity
    from pdfchat.documents.repository import DocumentRepository
    from pdfchat.retrieval.base import VectorIndexBase
    from pdfchat.retrieval.models import Chunk
    from pdfchat.storage.base import ObjectStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamespaceHandle:
    """Reference to a document's namespace in the vector index.

    Attributes
    ----------
    doc_id:
        The document the namespace belongs to.
    namespace:
        Backend namespace name.
    reused:
        ``True`` when the dedup check found an existing namespace and no
        fetch / parse / embed work was done.
    chunk_count:
        Chunks written by this call (0 when ``reused``).
    """

    doc_id: str
    namespace: str
    reused: bool
    chunk_count: int = 0


class IngestionPipeline:
    """Build (or reuse) the vector namespace of one document.

    Parameters
    ----------
    index:
        Namespace-partitioned vector index.
    storage:
        Object storage holding the raw PDF bytes.
    documents:
        Metadata repository used to resolve a document's storage path.
    embeddings:
        LangChain embedding function.
    chunk_size / chunk_overlap:
        Splitting policy.
    batch_size:
        Texts per embedding request.
    """

    def __init__(
        self,
        *,
        index: VectorIndexBase,
        storage: ObjectStorage,
        documents: DocumentRepository,
        embeddings: Embeddings,
        chunk_size: int = settings.chunk_size,
        chunk_overlap: int = settings.chunk_overlap,
        batch_size: int = settings.embed_batch_size,
    ) -> None:
        if chunk_overlap >= chunk_size:
            raise ValueError(f"chunk_overlap ({chunk_overlap}) must be < chunk_size ({chunk_size})")
        self._index = index
        self._storage = storage
        self._documents = documents
        self._embeddings = embeddings
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.batch_size = batch_size
        self._locks = KeyedLock()

    # -- public API -----------------------------------------------------------

    async def ingest(self, doc_id: str, identity: Identity | None) -> NamespaceHandle:
        """Ensure *doc_id* has a populated namespace and return a handle to it.

        Raises
        ------
        AuthError
            *identity* is missing; nothing is read or written.
        NotFoundError
            No metadata record or stored object exists for *doc_id*.
        ValidationError
            The PDF contains no extractable text.
        UpstreamError
            Storage, parsing, embedding or the vector index failed.
        """
        if identity is None:
            raise AuthError()

        namespace = self._index.namespace_for(doc_id)

        async with self._locks.hold(doc_id):
            if await self._index.namespace_exists(namespace):
                logger.info("Namespace %s already exists, reusing existing embeddings", namespace)
                return NamespaceHandle(doc_id=doc_id, namespace=namespace, reused=True)

            logger.info("Creating namespace %s for document %s", namespace, doc_id)
            t0 = time.monotonic()

            chunks = await self._load_chunks(doc_id)
            embedded = await self._embed(chunks)
            written = await self._index.upsert(namespace, embedded)

            logger.info(
                "Stored %d chunks in namespace %s in %.1fs",
                written,
                namespace,
                time.monotonic() - t0,
            )
            return NamespaceHandle(doc_id=doc_id, namespace=namespace, reused=False, chunk_count=written)

    async def discard(self, doc_id: str) -> None:
        """Drop the namespace of *doc_id*, if any."""
        namespace = self._index.namespace_for(doc_id)
        async with self._locks.hold(doc_id):
            await self._index.delete_namespace(namespace)
        logger.info("Dropped namespace %s", namespace)

    # -- stages ---------------------------------------------------------------

    async def _load_chunks(self, doc_id: str) -> list[Chunk]:
        record = await self._documents.get(doc_id)
        if record is None:
            raise NotFoundError("Document not found")

        data = await self._storage.get(record.storage_path)
        pages = await self._parse(data, source=record.original_name)

        split_docs = chunk_documents(pages, chunk_size=self.chunk_size, chunk_overlap=self.chunk_overlap)
        chunks = to_chunks(doc_id, split_docs)
        logger.info("Split %s into %d chunks across %d pages", record.original_name, len(chunks), len(pages))

        if not chunks:
            raise ValidationError("No extractable text found in PDF")
        return chunks

    @staticmethod
    async def _parse(data: bytes, *, source: str) -> list[Document]:
        try:
            return await asyncio.to_thread(load_pdf_bytes, data, source=source)
        except Exception as exc:
            # pypdf raises a wide family of errors for malformed input.
            raise UpstreamError("parser", "Failed to read PDF document") from exc

    async def _embed(self, chunks: list[Chunk]) -> list[Chunk]:
        texts = [c.text for c in chunks]
        vectors: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            try:
                vectors.extend(await self._embeddings.aembed_documents(batch))
            except Exception as exc:
                raise UpstreamError("embedding", "Failed to generate embeddings") from exc
            logger.debug("  embedded %d / %d", len(vectors), len(texts))

        if len(vectors) != len(chunks):
            raise UpstreamError("embedding", "Failed to generate embeddings")
        return [c.model_copy(update={"vector": v}) for c, v in zip(chunks, vectors)]
