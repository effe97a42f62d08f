"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import pytest
from fakes import CountingEmbeddings, FakeStorage, FakeVectorIndex, InMemoryDocumentRepository

from pdfchat.auth import Identity
from pdfchat.ingestion.pipeline import IngestionPipeline


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


@pytest.fixture()
def identity() -> Identity:
    return Identity(user_id="user-1", email="user@example.com")


@pytest.fixture()
def embeddings() -> CountingEmbeddings:
    return CountingEmbeddings()


@pytest.fixture()
def index() -> FakeVectorIndex:
    return FakeVectorIndex()


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def repository() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture()
def pipeline(
    index: FakeVectorIndex,
    storage: FakeStorage,
    repository: InMemoryDocumentRepository,
    embeddings: CountingEmbeddings,
) -> IngestionPipeline:
    return IngestionPipeline(
        index=index,
        storage=storage,
        documents=repository,
        embeddings=embeddings,
        chunk_size=200,
        chunk_overlap=20,
        batch_size=8,
    )
