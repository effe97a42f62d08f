"""Assemble one context block from several documents' retrieval results."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from pdfchat.config import settings
from pdfchat.retrieval.models import ContextBlock, ContextSection, DocumentRef

if TYPE_CHECKING:
    from pdfchat.retrieval.retriever import SemanticRetriever

logger = logging.getLogger(__name__)


class RetrievalCoordinator:
    """Query one namespace per document and label the results.

    Sections always appear in the order the caller supplied the documents.
    With ``max_concurrency == 1`` (the default) documents are queried one
    after another; larger values fan out with at most that many searches in
    flight, and the results are put back into caller order.

    A failed search for any document fails the whole call; it is never
    turned into an empty section.
    """

    def __init__(
        self,
        retriever: SemanticRetriever,
        *,
        top_k: int = settings.retrieval_top_k,
        max_concurrency: int = settings.retrieval_max_concurrency,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._retriever = retriever
        self.top_k = top_k
        self.max_concurrency = max_concurrency

    async def retrieve(self, query: str, documents: Sequence[DocumentRef]) -> ContextBlock:
        if not documents:
            return ContextBlock.empty()

        embedding = await self._retriever.embed_query(query)

        if self.max_concurrency == 1:
            sections = [await self._section(doc, embedding) for doc in documents]
        else:
            semaphore = asyncio.Semaphore(self.max_concurrency)

            async def _bounded(doc: DocumentRef) -> ContextSection:
                async with semaphore:
                    return await self._section(doc, embedding)

            # gather returns results in argument order, whatever finishes first.
            sections = list(await asyncio.gather(*(_bounded(doc) for doc in documents)))

        block = ContextBlock(sections=sections)
        logger.info("Retrieved %d chunks from %d documents", block.chunk_count, len(sections))
        return block

    async def _section(self, doc: DocumentRef, embedding: list[float]) -> ContextSection:
        results = await self._retriever.search_by_embedding(doc.id, embedding, k=self.top_k)
        return ContextSection(document=doc, results=results)
