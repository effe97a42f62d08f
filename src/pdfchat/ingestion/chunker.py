"""Text chunking strategies."""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_text_splitters import RecursiveCharacterTextSplitter

from pdfchat.config import settings
from pdfchat.retrieval.models import Chunk

if TYPE_CHECKING:
    from langchain_core.documents import Document


def chunk_documents(
    documents: list[Document],
    chunk_size: int = settings.chunk_size,
    chunk_overlap: int = settings.chunk_overlap,
) -> list[Document]:
    """Split *documents* into smaller chunks for embedding.

    Parameters
    ----------
    documents:
        Source documents produced by a loader (one per PDF page).
    chunk_size:
        Maximum number of characters per chunk.
    chunk_overlap:
        Number of overlapping characters between consecutive chunks.

    Returns
    -------
    list[Document]
        Chunked documents ready for embedding, in page order.
    """
    if chunk_overlap >= chunk_size:
        raise ValueError(f"chunk_overlap ({chunk_overlap}) must be < chunk_size ({chunk_size})")

    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        length_function=len,
        separators=["\n\n", "\n", ". ", " ", ""],
    )
    return splitter.split_documents(documents)


def to_chunks(doc_id: str, documents: list[Document]) -> list[Chunk]:
    """Number split documents and bind them to *doc_id*.

    Whitespace-only pieces are dropped; ``chunk_index`` is dense from 0.
    """
    chunks: list[Chunk] = []
    for doc in documents:
        text = doc.page_content.strip()
        if not text:
            continue
        chunks.append(
            Chunk(
                text=text,
                doc_id=doc_id,
                chunk_index=len(chunks),
                page=doc.metadata.get("page"),
                source=doc.metadata.get("source", "unknown"),
            )
        )
    return chunks
