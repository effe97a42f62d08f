"""
Documents — uploaded-file records, their persistence, and the upload /
list / delete workflow that ties storage, metadata and ingestion together.
"""

from pdfchat.documents.models import DocumentRecord, EmbeddingStatus
from pdfchat.documents.repository import DocumentRepository, SqlDocumentRepository
from pdfchat.documents.service import DocumentService

__all__ = [
    "DocumentRecord",
    "DocumentRepository",
    "DocumentService",
    "EmbeddingStatus",
    "SqlDocumentRepository",
]
