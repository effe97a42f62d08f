"""Explicit service container with a start / close lifecycle.

Every collaborator handle (storage, metadata repository, vector index,
embedding function, chat model) is constructed once here and passed into
the components that need it.  Nothing else in the package holds a
process-wide connection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pdfchat.chat.gateway import ChatStreamingGateway
from pdfchat.config import Settings, settings
from pdfchat.documents.service import DocumentService
from pdfchat.ingestion.pipeline import IngestionPipeline
from pdfchat.retrieval.coordinator import RetrievalCoordinator
from pdfchat.retrieval.retriever import SemanticRetriever

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings
    from langchain_core.language_models import BaseChatModel

    from pdfchat.documents.repository import DocumentRepository
    from pdfchat.retrieval.base import VectorIndexBase
    from pdfchat.storage.base import ObjectStorage

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Collaborator handles plus the components wired from them."""

    config: Settings
    storage: ObjectStorage
    repository: DocumentRepository
    index: VectorIndexBase
    embeddings: Embeddings
    llm: BaseChatModel

    pipeline: IngestionPipeline = field(init=False)
    documents: DocumentService = field(init=False)
    coordinator: RetrievalCoordinator = field(init=False)
    gateway: ChatStreamingGateway = field(init=False)

    def __post_init__(self) -> None:
        cfg = self.config
        self.pipeline = IngestionPipeline(
            index=self.index,
            storage=self.storage,
            documents=self.repository,
            embeddings=self.embeddings,
            chunk_size=cfg.chunk_size,
            chunk_overlap=cfg.chunk_overlap,
            batch_size=cfg.embed_batch_size,
        )
        self.documents = DocumentService(
            storage=self.storage,
            repository=self.repository,
            pipeline=self.pipeline,
            max_file_size=cfg.max_file_size_bytes,
            accepted_content_type=cfg.accepted_content_type,
        )
        self.coordinator = RetrievalCoordinator(
            SemanticRetriever(self.index, self.embeddings, default_k=cfg.retrieval_top_k),
            top_k=cfg.retrieval_top_k,
            max_concurrency=cfg.retrieval_max_concurrency,
        )
        self.gateway = ChatStreamingGateway(self.llm)

    @classmethod
    def from_settings(cls, config: Settings = settings) -> Services:
        """Build the production stack: local storage, SQL metadata, Chroma,
        sentence-transformers embeddings and an OpenAI-compatible chat model."""
        from pdfchat.chat.llm import get_llm
        from pdfchat.documents.repository import SqlDocumentRepository
        from pdfchat.ingestion.embedder import get_embedding_function
        from pdfchat.retrieval.chroma_store import ChromaVectorIndex
        from pdfchat.storage.local import LocalObjectStorage

        return cls(
            config=config,
            storage=LocalObjectStorage(config.storage_root, public_base_url=config.public_base_url),
            repository=SqlDocumentRepository(database_url=config.database_url),
            index=ChromaVectorIndex(
                host=config.chroma_host,
                port=config.chroma_port,
                namespace_prefix=config.namespace_prefix,
            ),
            embeddings=get_embedding_function(config.embedding_model),
            llm=get_llm(
                temperature=config.llm_temperature,
                max_tokens=config.llm_max_tokens,
                model_name=config.llm_model_name,
                base_url=config.llm_base_url,
                api_key=config.openai_api_key,
            ),
        )

    async def start(self) -> None:
        await self.storage.start()
        await self.repository.start()
        await self.index.start()
        logger.info("Services started")

    async def close(self) -> None:
        """Close in reverse start order; one failing close does not skip the rest."""
        for name, resource in (("index", self.index), ("repository", self.repository), ("storage", self.storage)):
            try:
                await resource.close()
            except Exception:
                logger.exception("Error closing %s", name)
        logger.info("Services closed")
