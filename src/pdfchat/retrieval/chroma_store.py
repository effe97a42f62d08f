"""Chroma implementation of the vector-index abstraction.

Each namespace is one Chroma collection.  The Chroma client is
synchronous, so every call is pushed onto a worker thread to keep the
event loop responsive.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import chromadb

from pdfchat.config import settings
from pdfchat.errors import NotFoundError, UpstreamError
from pdfchat.retrieval.base import VectorIndexBase, validate_embedded
from pdfchat.retrieval.models import Chunk

logger = logging.getLogger(__name__)


class ChromaVectorIndex(VectorIndexBase):
    """Chroma-backed, collection-per-namespace vector index.

    Parameters
    ----------
    host / port:
        Chroma server address, used when *client* is not given.
    client:
        A ready Chroma client (e.g. ``chromadb.EphemeralClient()`` in tests).
    namespace_prefix:
        Prepended to document ids to form collection names.
    distance_metric:
        ``cosine`` | ``l2`` | ``ip`` for newly created collections.
    upsert_batch_size:
        Max records per upsert call.
    """

    def __init__(
        self,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        client: Any | None = None,
        namespace_prefix: str = settings.namespace_prefix,
        distance_metric: str = "cosine",
        upsert_batch_size: int = 5000,
    ) -> None:
        super().__init__(namespace_prefix)
        self._host = host
        self._port = port
        self._client = client
        self._distance_metric = distance_metric
        self._upsert_batch_size = upsert_batch_size

    async def start(self) -> None:
        if self._client is None:
            try:
                self._client = await asyncio.to_thread(chromadb.HttpClient, host=self._host, port=self._port)
            except Exception as exc:
                raise UpstreamError("vector-index", "Vector index unavailable") from exc
            logger.info("Connected to Chroma at %s:%d", self._host, self._port)

    @property
    def client(self) -> Any:
        if self._client is None:
            raise RuntimeError("ChromaVectorIndex used before start()")
        return self._client

    def _collection_names(self) -> set[str]:
        # Chroma >= 0.6 lists names; older releases list Collection objects.
        return {c if isinstance(c, str) else c.name for c in self.client.list_collections()}

    # -- VectorIndexBase overrides --------------------------------------------

    async def namespace_exists(self, namespace: str) -> bool:
        def _exists() -> bool:
            if namespace not in self._collection_names():
                return False
            return self.client.get_collection(namespace).count() > 0

        try:
            return await asyncio.to_thread(_exists)
        except Exception as exc:
            raise UpstreamError("vector-index", "Failed to query vector index") from exc

    async def upsert(self, namespace: str, chunks: list[Chunk]) -> int:
        validate_embedded(chunks)

        def _upsert() -> int:
            collection = self.client.get_or_create_collection(
                name=namespace,
                metadata={"hnsw:space": self._distance_metric},
            )
            for start in range(0, len(chunks), self._upsert_batch_size):
                batch = chunks[start : start + self._upsert_batch_size]
                collection.upsert(
                    ids=[c.chunk_id for c in batch],
                    embeddings=[c.vector for c in batch],
                    documents=[c.text for c in batch],
                    metadatas=[_chunk_metadata(c) for c in batch],
                )
            return len(chunks)

        try:
            written = await asyncio.to_thread(_upsert)
        except Exception as exc:
            raise UpstreamError("vector-index", "Failed to store embeddings") from exc
        logger.debug("Upserted %d vectors into %s", written, namespace)
        return written

    async def similarity_search(
        self,
        namespace: str,
        query_embedding: list[float],
        *,
        k: int = 4,
    ) -> list[dict[str, Any]]:
        def _query() -> dict[str, Any] | None:
            if namespace not in self._collection_names():
                return None
            return self.client.get_collection(namespace).query(
                query_embeddings=[query_embedding],
                n_results=k,
                include=["documents", "metadatas", "distances"],
            )

        try:
            results = await asyncio.to_thread(_query)
        except Exception as exc:
            raise UpstreamError("vector-index", "Failed to search documents") from exc
        if results is None:
            raise NotFoundError("Document has not been indexed")

        hits: list[dict[str, Any]] = []
        ids = (results.get("ids") or [[]])[0]
        docs = (results.get("documents") or [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        for chunk_id, content, meta, dist in zip(ids, docs, metas, distances):
            # Cosine distance is in [0, 2]; map to a similarity where higher is better.
            hits.append(
                {
                    "id": chunk_id,
                    "content": content or "",
                    "score": 1.0 - dist if self._distance_metric == "cosine" else 1.0 / (1.0 + dist),
                    "metadata": meta or {},
                }
            )
        return hits

    async def delete_namespace(self, namespace: str) -> None:
        def _delete() -> None:
            if namespace in self._collection_names():
                self.client.delete_collection(namespace)

        try:
            await asyncio.to_thread(_delete)
        except Exception as exc:
            raise UpstreamError("vector-index", "Failed to delete document embeddings") from exc


def _chunk_metadata(chunk: Chunk) -> dict[str, Any]:
    # Chroma metadata values must be flat str/int/float/bool.
    meta: dict[str, Any] = {
        "doc_id": chunk.doc_id,
        "chunk_index": chunk.chunk_index,
        "source": chunk.source,
    }
    if chunk.page is not None:
        meta["page"] = chunk.page
    return meta
