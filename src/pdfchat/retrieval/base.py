"""Abstract base class for vector-index backends.

The index is partitioned into *namespaces*, one per document.  Adding a
backend (Pinecone, Qdrant, pgvector …) only requires subclassing
:class:`VectorIndexBase` and implementing the abstract methods; the
ingestion pipeline and retriever are backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pdfchat.retrieval.models import Chunk


class VectorIndexBase(ABC):
    """Backend-agnostic, namespace-partitioned vector index.

    Parameters
    ----------
    namespace_prefix:
        Prepended to a document id to form its namespace name.
    """

    def __init__(self, namespace_prefix: str = "") -> None:
        self.namespace_prefix = namespace_prefix

    def namespace_for(self, doc_id: str) -> str:
        """Return the namespace that holds *doc_id*'s chunks."""
        if not doc_id:
            raise ValueError("Namespace cannot be derived from an empty document id")
        return f"{self.namespace_prefix}{doc_id}"

    # -- lifecycle ------------------------------------------------------------

    async def start(self) -> None:
        """Connect to the backend."""

    async def close(self) -> None:
        """Release any held resources."""

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    async def namespace_exists(self, namespace: str) -> bool:
        """Return ``True`` when *namespace* holds at least one vector."""
        ...

    @abstractmethod
    async def upsert(self, namespace: str, chunks: list[Chunk]) -> int:
        """Write embedded *chunks* into *namespace*; return the count written.

        Every chunk must carry a ``vector`` of the same dimensionality.
        """
        ...

    @abstractmethod
    async def similarity_search(
        self,
        namespace: str,
        query_embedding: list[float],
        *,
        k: int = 4,
    ) -> list[dict[str, Any]]:
        """Return the top-*k* chunks in *namespace* closest to *query_embedding*.

        Each result dict **must** contain at least:

        * ``"id"`` – chunk identifier
        * ``"content"`` – the chunk text
        * ``"score"`` – similarity score (higher = more similar)
        * ``"metadata"`` – associated metadata dict

        Raises ``NotFoundError`` when *namespace* does not exist.
        """
        ...

    @abstractmethod
    async def delete_namespace(self, namespace: str) -> None:
        """Drop *namespace* and every chunk in it.  Missing is not an error."""
        ...


def validate_embedded(chunks: list[Chunk]) -> int:
    """Check that every chunk carries a vector of one shared dimension.

    Returns the dimension.
    """
    if not chunks:
        raise ValueError("Cannot upsert an empty chunk list.")
    dim = len(chunks[0].vector or [])
    if dim == 0:
        raise ValueError("Chunks must carry non-empty vectors before upsert.")
    for chunk in chunks:
        if chunk.vector is None or len(chunk.vector) != dim:
            raise ValueError(f"Inconsistent embedding dimensionality at chunk {chunk.chunk_index}.")
    return dim
