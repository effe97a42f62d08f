"""
Storage — the object-storage collaborator that holds raw uploaded files.

Public surface
--------------
- :class:`ObjectStorage` — abstract backend.
- :class:`LocalObjectStorage` — filesystem backend with public URLs.
"""

from pdfchat.storage.base import ObjectStorage
from pdfchat.storage.local import LocalObjectStorage

__all__ = ["LocalObjectStorage", "ObjectStorage"]
