"""Domain models for chunks, retrieval results and the assembled context."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

#: Context rendered when a chat names no documents at all.  Distinct from a
#: context whose documents simply matched nothing (see ``ContextSection``).
NO_DOCUMENTS_MARKER = "No relevant documents provided."

#: Body of a section whose document returned zero chunks.
NO_MATCHES_MARKER = "(no matching passages found in this document)"


class Chunk(BaseModel):
    """A bounded span of a parsed document, independently embedded.

    Attributes
    ----------
    text:
        The chunk's text.
    doc_id:
        Identifier of the owning document (and namespace).
    chunk_index:
        Dense ordinal of the chunk within its document, from 0.
    page:
        Zero-based page the chunk was split from, when known.
    source:
        Human-readable origin (the document's original filename).
    vector:
        The embedding; ``None`` until the chunk has been embedded.
    """

    text: str
    doc_id: str
    chunk_index: int = Field(ge=0)
    page: int | None = None
    source: str = "unknown"
    vector: list[float] | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def chunk_id(self) -> str:
        """Deterministic id so a re-upsert overwrites rather than duplicates."""
        return f"{self.doc_id}_{self.chunk_index}"


class DocumentRef(BaseModel):
    """A document attached to a chat, as the client describes it."""

    id: str = Field(..., min_length=1)
    name: str = ""
    url: str = ""
    size: int = 0

    @property
    def display_name(self) -> str:
        return self.name or self.id


class Citation(BaseModel):
    """Provenance record linking a retrieved chunk back to its source document.

    Attributes
    ----------
    citation_id:
        Unique identifier for this citation instance.
    document_id:
        The vector-index ID of the chunk (``None`` when unknown).
    source:
        Human-readable source locator (original filename).
    chunk_index:
        Ordinal position of the chunk within the source document.
    page:
        Page number, when the backend stored one.
    score:
        Similarity score returned by the vector index.
    metadata:
        Arbitrary extra metadata attached to the chunk.
    retrieved_at:
        UTC timestamp of when the retrieval happened.
    """

    citation_id: str = Field(default_factory=lambda: uuid4().hex[:12])
    document_id: str | None = None
    source: str = "unknown"
    chunk_index: int | None = None
    page: int | None = None
    score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    retrieved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def short_ref(self) -> str:
        """Return a compact ``[source§chunk]`` reference string."""
        chunk = self.chunk_index if self.chunk_index is not None else "?"
        return f"[{self.source}§{chunk}]"


class RetrievalResult(BaseModel):
    """A single retrieved passage together with its citation."""

    content: str
    citation: Citation

    def __str__(self) -> str:  # noqa: D105
        return f"{self.citation.short_ref()} {self.content[:120]}…"


class ContextSection(BaseModel):
    """Retrieved passages for one document, labelled with its display name."""

    document: DocumentRef
    results: list[RetrievalResult] = Field(default_factory=list)

    def render(self) -> str:
        body = "\n\n".join(r.content for r in self.results) if self.results else NO_MATCHES_MARKER
        return f"Document: {self.document.display_name}\n{body}"


class ContextBlock(BaseModel):
    """Concatenated, labelled retrieval output injected ahead of the history.

    Sections keep the order in which the caller supplied the documents.  A
    block with no sections is the "no documents provided" sentinel.
    """

    sections: list[ContextSection] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> ContextBlock:
        return cls()

    @property
    def is_empty(self) -> bool:
        """``True`` only when no documents were supplied at all."""
        return not self.sections

    @property
    def chunk_count(self) -> int:
        return sum(len(s.results) for s in self.sections)

    def render(self) -> str:
        if self.is_empty:
            return NO_DOCUMENTS_MARKER
        return "\n\n".join(section.render() for section in self.sections)
