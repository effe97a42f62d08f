"""Embedding function factory."""

from __future__ import annotations

from langchain_huggingface import HuggingFaceEmbeddings

from pdfchat.config import settings


def get_embedding_function(
    model_name: str = settings.embedding_model,
    *,
    normalize_embeddings: bool = True,
) -> HuggingFaceEmbeddings:
    """Return the configured sentence-transformer embedding function.

    Vectors are L2-normalised by default so cosine and inner-product
    distances agree.
    """
    return HuggingFaceEmbeddings(
        model_name=model_name,
        encode_kwargs={"normalize_embeddings": normalize_embeddings},
    )
