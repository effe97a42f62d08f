"""
pdfchat — chat with your PDFs.

Upload PDF documents, have them chunked and embedded into one vector
namespace per document, and converse with a language model whose answers
are grounded in chunks retrieved from the documents you attach.
"""

__version__ = "0.1.0"
