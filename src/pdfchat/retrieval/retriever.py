"""Semantic retriever — per-document similarity search with citations.

Usage::

    from pdfchat.retrieval.retriever import SemanticRetriever

    retriever = SemanticRetriever(index, embeddings)
    results   = await retriever.search("d1", "What is the summary?")
    for r in results:
        print(r.citation.short_ref(), r.content[:80])
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pdfchat.config import settings
from pdfchat.errors import UpstreamError
from pdfchat.retrieval.models import Citation, RetrievalResult

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

    from pdfchat.retrieval.base import VectorIndexBase

logger = logging.getLogger(__name__)


class SemanticRetriever:
    """High-level retriever over a namespace-partitioned :class:`VectorIndexBase`.

    Parameters
    ----------
    index:
        A concrete vector-index backend.
    embeddings:
        The embedding function used at ingestion time.
    default_k:
        Default number of results returned per document.
    score_threshold:
        Minimum similarity score; results below this are discarded.
    """

    def __init__(
        self,
        index: VectorIndexBase,
        embeddings: Embeddings,
        *,
        default_k: int = settings.retrieval_top_k,
        score_threshold: float = 0.0,
    ) -> None:
        self._index = index
        self._embeddings = embeddings
        self.default_k = default_k
        self.score_threshold = score_threshold

    # -- public API -----------------------------------------------------------

    async def embed_query(self, query: str) -> list[float]:
        try:
            return await self._embeddings.aembed_query(query)
        except Exception as exc:
            raise UpstreamError("embedding", "Failed to embed the question") from exc

    async def search(self, doc_id: str, query: str, *, k: int | None = None) -> list[RetrievalResult]:
        """Search *doc_id*'s namespace for *query* and return results with citations."""
        embedding = await self.embed_query(query)
        return await self.search_by_embedding(doc_id, embedding, k=k)

    async def search_by_embedding(
        self,
        doc_id: str,
        embedding: list[float],
        *,
        k: int | None = None,
    ) -> list[RetrievalResult]:
        """Same as :meth:`search` but accepts a pre-computed embedding."""
        k = k or self.default_k
        namespace = self._index.namespace_for(doc_id)
        raw_hits = await self._index.similarity_search(namespace, embedding, k=k)
        results = self._to_results(raw_hits)
        logger.debug("Namespace %s returned %d results", namespace, len(results))
        return results

    # -- internals ------------------------------------------------------------

    def _to_results(self, raw_hits: list[dict[str, Any]]) -> list[RetrievalResult]:
        results: list[RetrievalResult] = []
        for hit in raw_hits:
            score = hit.get("score")
            if score is not None and score < self.score_threshold:
                continue

            meta = hit.get("metadata", {})
            citation = Citation(
                document_id=hit.get("id"),
                source=meta.get("source", "unknown"),
                chunk_index=meta.get("chunk_index"),
                page=meta.get("page"),
                score=score,
                metadata=meta,
            )
            results.append(RetrievalResult(content=hit.get("content", ""), citation=citation))
        return results
