"""
Client — attached-file list and concurrent upload orchestration.

Public surface
--------------
- :class:`UploadOrchestrator` — validate, admit, upload, reconcile, remove.
- :class:`UploadTask`, :class:`UploadStatus`, :func:`reduce` — the list's
  state machine, usable without any network.
"""

from pdfchat.client.orchestrator import (
    BatchReport,
    FileCandidate,
    Notice,
    Rejection,
    UploadOrchestrator,
    create_client,
)
from pdfchat.client.state import InvalidTransitionError, UploadStatus, UploadTask, reduce

__all__ = [
    "BatchReport",
    "FileCandidate",
    "InvalidTransitionError",
    "Notice",
    "Rejection",
    "UploadOrchestrator",
    "UploadStatus",
    "UploadTask",
    "create_client",
    "reduce",
]
