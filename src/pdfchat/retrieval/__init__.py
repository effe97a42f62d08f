"""
Retrieval — vector search, per-document context assembly.

Public surface
--------------
- :class:`RetrievalCoordinator` — query + documents → :class:`ContextBlock`.
- :class:`SemanticRetriever` — per-namespace search with citations.
- :class:`VectorIndexBase` — abstract backend (subclass for Pinecone, etc.).
- :class:`ChromaVectorIndex` — default Chroma backend.
- :class:`Chunk`, :class:`Citation`, :class:`RetrievalResult`,
  :class:`DocumentRef`, :class:`ContextSection`, :class:`ContextBlock` — data models.
"""

from pdfchat.retrieval.base import VectorIndexBase
from pdfchat.retrieval.coordinator import RetrievalCoordinator
from pdfchat.retrieval.models import (
    NO_DOCUMENTS_MARKER,
    Chunk,
    Citation,
    ContextBlock,
    ContextSection,
    DocumentRef,
    RetrievalResult,
)
from pdfchat.retrieval.retriever import SemanticRetriever

__all__ = [
    "NO_DOCUMENTS_MARKER",
    "ChromaVectorIndex",
    "Chunk",
    "Citation",
    "ContextBlock",
    "ContextSection",
    "DocumentRef",
    "RetrievalCoordinator",
    "RetrievalResult",
    "SemanticRetriever",
    "VectorIndexBase",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorIndex to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorIndex":
        from pdfchat.retrieval.chroma_store import ChromaVectorIndex

        return ChromaVectorIndex
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
