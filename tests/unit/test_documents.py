"""Unit tests for document metadata, storage and the upload / delete service."""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fakes import CountingEmbeddings, FakeStorage, FakeVectorIndex, InMemoryDocumentRepository, make_pdf

from pdfchat.auth import Identity
from pdfchat.documents.models import DocumentRecord, EmbeddingStatus
from pdfchat.documents.repository import SqlDocumentRepository
from pdfchat.documents.service import DocumentService, build_storage_path, sanitize_filename
from pdfchat.errors import AuthError, ForbiddenError, NotFoundError, UpstreamError, ValidationError
from pdfchat.ingestion.pipeline import IngestionPipeline
from pdfchat.storage.local import LocalObjectStorage

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
PDF = "application/pdf"


def _record(doc_id: str, owner: str = "user-1", *, minutes: int = 0, name: str = "report.pdf") -> DocumentRecord:
    return DocumentRecord(
        id=doc_id,
        owner_id=owner,
        original_name=name,
        storage_path=f"{owner}/pdfs/{doc_id}_{name}",
        size_bytes=12345,
        content_type=PDF,
        public_url=f"https://files.example/{doc_id}",
        created_at=T0 + timedelta(minutes=minutes),
    )


# ── Path helpers ────────────────────────────────────────────────────────


class TestPaths:
    def test_sanitize_filename(self) -> None:
        assert sanitize_filename("Q1 report (final).pdf") == "Q1_report__final_.pdf"
        assert sanitize_filename("ok-name.v2.pdf") == "ok-name.v2.pdf"

    def test_storage_path_layout(self) -> None:
        path = build_storage_path("user-1", "my file.pdf", T0)
        assert path == f"user-1/pdfs/{int(T0.timestamp() * 1000)}_my_file.pdf"

    def test_owner_cannot_escape_prefix(self) -> None:
        assert build_storage_path("../evil", "a.pdf", T0).startswith("___evil/pdfs/")


# ── SQL repository ──────────────────────────────────────────────────────


@pytest_asyncio.fixture()
async def sql_repo(tmp_path) -> SqlDocumentRepository:
    repo = SqlDocumentRepository(database_url=f"sqlite+aiosqlite:///{tmp_path / 'db' / 'meta.db'}")
    await repo.start()
    yield repo
    await repo.close()


class TestSqlDocumentRepository:
    @pytest.mark.asyncio
    async def test_round_trip_metadata(self, sql_repo: SqlDocumentRepository) -> None:
        await sql_repo.add(_record("d1"))

        [listed] = await sql_repo.list_for_owner("user-1")

        assert listed.original_name == "report.pdf"
        assert listed.size_bytes == 12345
        assert listed.content_type == PDF
        assert listed.id == "d1"
        assert listed.created_at == T0
        assert listed.embedding_status is EmbeddingStatus.PENDING

    @pytest.mark.asyncio
    async def test_list_is_newest_first_and_owner_scoped(self, sql_repo: SqlDocumentRepository) -> None:
        await sql_repo.add(_record("old", minutes=0))
        await sql_repo.add(_record("new", minutes=5))
        await sql_repo.add(_record("other", owner="user-2"))

        assert [r.id for r in await sql_repo.list_for_owner("user-1")] == ["new", "old"]

    @pytest.mark.asyncio
    async def test_get_respects_owner(self, sql_repo: SqlDocumentRepository) -> None:
        await sql_repo.add(_record("d1"))
        assert (await sql_repo.get("d1")) is not None
        assert (await sql_repo.get("d1", owner_id="user-1")) is not None
        assert (await sql_repo.get("d1", owner_id="user-2")) is None

    @pytest.mark.asyncio
    async def test_delete(self, sql_repo: SqlDocumentRepository) -> None:
        await sql_repo.add(_record("d1"))
        assert await sql_repo.delete("d1", owner_id="user-2") is False
        assert await sql_repo.delete("d1", owner_id="user-1") is True
        assert await sql_repo.get("d1") is None

    @pytest.mark.asyncio
    async def test_set_embedding_status(self, sql_repo: SqlDocumentRepository) -> None:
        await sql_repo.add(_record("d1"))
        await sql_repo.set_embedding_status("d1", EmbeddingStatus.FAILED)
        record = await sql_repo.get("d1")
        assert record is not None and record.embedding_status is EmbeddingStatus.FAILED

    @pytest.mark.asyncio
    async def test_duplicate_id_is_upstream_error(self, sql_repo: SqlDocumentRepository) -> None:
        await sql_repo.add(_record("d1"))
        with pytest.raises(UpstreamError, match="Failed to save file metadata") as exc_info:
            await sql_repo.add(_record("d1"))
        assert exc_info.value.service == "metadata"


# ── Local storage ───────────────────────────────────────────────────────


class TestLocalObjectStorage:
    @pytest.mark.asyncio
    async def test_put_get_delete(self, tmp_path) -> None:
        storage = LocalObjectStorage(tmp_path, public_base_url="http://localhost:8000/storage/")
        await storage.start()

        await storage.put("user-1/pdfs/1_a.pdf", b"%PDF", PDF)
        assert await storage.get("user-1/pdfs/1_a.pdf") == b"%PDF"
        assert storage.public_url("user-1/pdfs/1_a.pdf") == "http://localhost:8000/storage/user-1/pdfs/1_a.pdf"

        await storage.delete("user-1/pdfs/1_a.pdf")
        with pytest.raises(NotFoundError):
            await storage.get("user-1/pdfs/1_a.pdf")
        # Missing objects delete quietly.
        await storage.delete("user-1/pdfs/1_a.pdf")

    @pytest.mark.asyncio
    async def test_existing_object_is_not_overwritten(self, tmp_path) -> None:
        storage = LocalObjectStorage(tmp_path)
        await storage.put("a.pdf", b"one", PDF)
        with pytest.raises(UpstreamError, match="Failed to upload file to storage"):
            await storage.put("a.pdf", b"two", PDF)
        assert await storage.get("a.pdf") == b"one"

    @pytest.mark.asyncio
    async def test_paths_cannot_escape_root(self, tmp_path) -> None:
        storage = LocalObjectStorage(tmp_path / "root")
        with pytest.raises(ValueError):
            await storage.put("../outside.pdf", b"x", PDF)


# ── DocumentService ─────────────────────────────────────────────────────


def _service(
    *,
    storage: FakeStorage | None = None,
    repository: InMemoryDocumentRepository | None = None,
    embeddings: CountingEmbeddings | None = None,
    index: FakeVectorIndex | None = None,
) -> tuple[DocumentService, FakeStorage, InMemoryDocumentRepository, FakeVectorIndex]:
    storage = storage or FakeStorage()
    repository = repository or InMemoryDocumentRepository()
    index = index or FakeVectorIndex()
    pipeline = IngestionPipeline(
        index=index,
        storage=storage,
        documents=repository,
        embeddings=embeddings or CountingEmbeddings(),
    )
    ids = (f"doc{i}" for i in itertools.count(1))
    service = DocumentService(
        storage=storage,
        repository=repository,
        pipeline=pipeline,
        max_file_size=1024 * 1024,
        id_factory=lambda: next(ids),
        clock=lambda: T0,
    )
    return service, storage, repository, index


PAGES = make_pdf(["Quarterly summary: revenue grew.", "Outlook remains stable."])


class TestValidation:
    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"filename": "", "content_type": PDF, "size": 1, "owner_id": "u"}, "No file provided"),
            ({"filename": "a.pdf", "content_type": PDF, "size": 1, "owner_id": ""}, "User ID is required"),
            ({"filename": "a.txt", "content_type": "text/plain", "size": 1, "owner_id": "u"}, "Only PDF files are allowed"),
            ({"filename": "a.pdf", "content_type": PDF, "size": 2 * 1024 * 1024, "owner_id": "u"}, "File size exceeds 1MB limit"),
        ],
    )
    def test_rejections(self, kwargs: dict, message: str) -> None:
        service, *_ = _service()
        with pytest.raises(ValidationError) as exc_info:
            service.validate_upload(**kwargs)
        assert exc_info.value.message == message

    def test_size_at_limit_is_accepted(self) -> None:
        service, *_ = _service()
        service.validate_upload(filename="a.pdf", content_type=PDF, size=1024 * 1024, owner_id="u")


class TestUpload:
    @pytest.mark.asyncio
    async def test_upload_stores_records_and_ingests(self, identity: Identity) -> None:
        service, storage, repository, index = _service()

        record = await service.upload(owner_id="user-1", filename="report.pdf", content_type=PDF, data=PAGES, identity=identity)

        assert record.id == "doc1"
        assert record.embedding_status is EmbeddingStatus.READY
        assert record.storage_path in storage.objects
        assert record.public_url == f"memory://{record.storage_path}"
        assert repository.records["doc1"].embedding_status is EmbeddingStatus.READY
        assert len(index.namespaces["doc-doc1"]) >= 2

    @pytest.mark.asyncio
    async def test_validation_happens_before_any_write(self, identity: Identity) -> None:
        service, storage, repository, _ = _service()
        with pytest.raises(ValidationError):
            await service.upload(owner_id="user-1", filename="a.txt", content_type="text/plain", data=b"x", identity=identity)
        assert storage.objects == {}
        assert repository.records == {}

    @pytest.mark.asyncio
    async def test_unauthenticated_upload_writes_nothing(self) -> None:
        service, storage, repository, _ = _service()
        with pytest.raises(AuthError):
            await service.upload(owner_id="user-1", filename="a.pdf", content_type=PDF, data=PAGES, identity=None)
        assert storage.objects == {}
        assert repository.records == {}

    @pytest.mark.asyncio
    async def test_upload_for_another_owner_writes_nothing(self, identity: Identity) -> None:
        service, storage, repository, _ = _service()
        with pytest.raises(ForbiddenError):
            await service.upload(owner_id="user-2", filename="a.pdf", content_type=PDF, data=PAGES, identity=identity)
        assert storage.objects == {}
        assert repository.records == {}

    @pytest.mark.asyncio
    async def test_storage_failure(self, identity: Identity) -> None:
        service, _, repository, _ = _service(storage=FakeStorage(fail_put=True))
        with pytest.raises(UpstreamError, match="Failed to upload file to storage"):
            await service.upload(owner_id="user-1", filename="a.pdf", content_type=PDF, data=PAGES, identity=identity)
        assert repository.records == {}

    @pytest.mark.asyncio
    async def test_metadata_failure_removes_stored_object(self, identity: Identity) -> None:
        service, storage, _, index = _service(repository=InMemoryDocumentRepository(fail_add=True))

        with pytest.raises(UpstreamError, match="Failed to save file metadata"):
            await service.upload(owner_id="user-1", filename="a.pdf", content_type=PDF, data=PAGES, identity=identity)

        assert storage.objects == {}
        assert len(storage.deleted) == 1
        assert index.namespaces == {}

    @pytest.mark.asyncio
    async def test_embedding_failure_keeps_record_marked_failed(self, identity: Identity) -> None:
        service, storage, repository, index = _service(embeddings=CountingEmbeddings(fail=True))

        with pytest.raises(UpstreamError, match="Failed to generate embeddings"):
            await service.upload(owner_id="user-1", filename="a.pdf", content_type=PDF, data=PAGES, identity=identity)

        record = repository.records["doc1"]
        assert record.embedding_status is EmbeddingStatus.FAILED
        assert record.storage_path in storage.objects
        assert storage.deleted == []
        assert "doc-doc1" not in index.namespaces

    @pytest.mark.asyncio
    async def test_listing_round_trips_upload_fields(self, identity: Identity) -> None:
        service, *_ = _service()
        await service.upload(owner_id="user-1", filename="report.pdf", content_type=PDF, data=PAGES, identity=identity)

        [listed] = await service.list_documents("user-1", identity=identity)

        assert (listed.original_name, listed.size_bytes, listed.content_type) == ("report.pdf", len(PAGES), PDF)

    @pytest.mark.asyncio
    async def test_listing_requires_owner(self, identity: Identity) -> None:
        service, *_ = _service()
        with pytest.raises(ValidationError):
            await service.list_documents("", identity=identity)

    @pytest.mark.asyncio
    async def test_listing_is_limited_to_the_caller(self, identity: Identity) -> None:
        service, *_ = _service()
        await service.upload(owner_id="user-1", filename="a.pdf", content_type=PDF, data=PAGES, identity=identity)

        with pytest.raises(AuthError):
            await service.list_documents("user-1", identity=None)
        with pytest.raises(ForbiddenError):
            await service.list_documents("user-1", identity=Identity(user_id="user-2"))


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_removes_everything(self, identity: Identity) -> None:
        service, storage, repository, index = _service()
        record = await service.upload(owner_id="user-1", filename="a.pdf", content_type=PDF, data=PAGES, identity=identity)

        await service.delete_document(record.id, "user-1", identity=identity)

        assert repository.records == {}
        assert storage.objects == {}
        assert index.namespaces == {}

    @pytest.mark.asyncio
    async def test_delete_for_other_owner_is_not_found(self, identity: Identity) -> None:
        service, _, repository, _ = _service()
        record = await service.upload(owner_id="user-1", filename="a.pdf", content_type=PDF, data=PAGES, identity=identity)

        with pytest.raises(NotFoundError, match="File not found"):
            await service.delete_document(record.id, "user-2", identity=Identity(user_id="user-2"))
        assert record.id in repository.records

    @pytest.mark.asyncio
    async def test_delete_for_another_owner_is_forbidden(self, identity: Identity) -> None:
        service, storage, repository, _ = _service()
        record = await service.upload(owner_id="user-1", filename="a.pdf", content_type=PDF, data=PAGES, identity=identity)

        with pytest.raises(ForbiddenError):
            await service.delete_document(record.id, "user-1", identity=Identity(user_id="user-2"))
        with pytest.raises(AuthError):
            await service.delete_document(record.id, "user-1", identity=None)
        assert record.id in repository.records
        assert record.storage_path in storage.objects

    @pytest.mark.asyncio
    async def test_delete_requires_both_ids(self, identity: Identity) -> None:
        service, *_ = _service()
        with pytest.raises(ValidationError, match="File ID and User ID are required"):
            await service.delete_document("d1", "", identity=identity)

    @pytest.mark.asyncio
    async def test_storage_delete_failure_is_tolerated(self, identity: Identity) -> None:
        storage = FakeStorage()
        service, _, repository, _ = _service(storage=storage)
        record = await service.upload(owner_id="user-1", filename="a.pdf", content_type=PDF, data=PAGES, identity=identity)
        storage.fail_delete = True

        await service.delete_document(record.id, "user-1", identity=identity)

        assert repository.records == {}
