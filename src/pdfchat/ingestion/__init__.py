"""
Ingestion — turn a stored PDF into a populated vector namespace.

fetch → parse → chunk → embed → upsert, guarded by a dedup check so a
document is never embedded twice.
"""

from pdfchat.ingestion.pipeline import IngestionPipeline, NamespaceHandle

__all__ = ["IngestionPipeline", "NamespaceHandle"]
