"""PDF loading — thin wrapper around LangChain's ``PyPDFLoader``."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from langchain_community.document_loaders import PyPDFLoader

if TYPE_CHECKING:
    from langchain_core.documents import Document


def load_pdf(path: str | Path) -> list[Document]:
    """Load a single PDF file, one ``Document`` per page."""
    return PyPDFLoader(str(path)).load()


def load_pdf_bytes(data: bytes, *, source: str) -> list[Document]:
    """Parse in-memory PDF *data* into an ordered list of pages.

    The loader only reads from disk, so the bytes are spilled to a private
    temporary directory for the duration of the parse.  Each page's
    ``source`` metadata is replaced by *source* (the temporary path means
    nothing to callers).
    """
    with tempfile.TemporaryDirectory(prefix="pdfchat-") as tmp:
        path = Path(tmp) / "document.pdf"
        path.write_bytes(data)
        pages = load_pdf(path)

    for page in pages:
        page.metadata["source"] = source
    return pages
