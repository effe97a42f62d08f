"""HTTP routes."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import StreamingResponse

from pdfchat.auth import Identity
from pdfchat.chat.stream import ERROR_MARKER, StreamState, TokenStream
from pdfchat.errors import ValidationError
from pdfchat.serving.container import Services
from pdfchat.serving.dependencies import get_optional_identity, get_services, require_identity
from pdfchat.serving.schemas import ChatRequest, DeleteResponse, FileListResponse, UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Health ────────────────────────────────────────────────────────────
@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


# ── Documents ─────────────────────────────────────────────────────────
@router.post("/upload", response_model=UploadResponse)
async def upload(
    file: UploadFile | None = File(None),
    owner_id: str | None = Form(None, alias="ownerId"),
    identity: Identity | None = Depends(get_optional_identity),
    services: Services = Depends(get_services),
) -> UploadResponse:
    """Store a PDF, record it and build its vector namespace before responding."""
    if file is None:
        raise ValidationError("No file provided")
    # One byte past the limit is enough to reject an oversized file.
    data = await file.read(services.documents.max_file_size + 1)
    record = await services.documents.upload(
        owner_id=owner_id or "",
        filename=file.filename or "",
        content_type=file.content_type or "",
        data=data,
        identity=identity,
    )
    return UploadResponse.from_record(record)


@router.get("/files", response_model=FileListResponse)
async def list_files(
    owner_id: str | None = Query(None, alias="ownerId"),
    identity: Identity | None = Depends(get_optional_identity),
    services: Services = Depends(get_services),
) -> FileListResponse:
    files = await services.documents.list_documents(owner_id or "", identity=identity)
    return FileListResponse(files=files)


@router.delete("/files", response_model=DeleteResponse)
async def delete_file(
    file_id: str | None = Query(None, alias="fileId"),
    owner_id: str | None = Query(None, alias="ownerId"),
    identity: Identity | None = Depends(get_optional_identity),
    services: Services = Depends(get_services),
) -> DeleteResponse:
    await services.documents.delete_document(file_id or "", owner_id or "", identity=identity)
    return DeleteResponse()


# ── Chat ──────────────────────────────────────────────────────────────
async def _relay(stream: TokenStream) -> AsyncIterator[str]:
    """Forward tokens; append the inline error marker if the upstream failed.

    Client disconnects cancel this generator, which closes the upstream.
    """
    try:
        async for token in stream:
            yield token
        if stream.state is StreamState.FAILED:
            yield ERROR_MARKER
    finally:
        await stream.cancel()


@router.post("/chat")
async def chat(
    request: ChatRequest,
    identity: Identity = Depends(require_identity),
    services: Services = Depends(get_services),
) -> StreamingResponse:
    """Retrieve context from the attached documents and stream the answer.

    Every error that can be detected before the first token (auth,
    validation, missing namespace, retrieval failure) is returned as a JSON
    envelope instead of a stream.
    """
    if not request.messages or not request.messages[-1].content.strip():
        raise ValidationError("No message provided")

    files = request.data.files
    limit = services.config.max_attached_files
    if len(files) > limit:
        raise ValidationError(f"Maximum {limit} files allowed")

    query = request.messages[-1].content
    logger.info("Chat from %s over %d documents", identity.user_id, len(files))
    context = await services.coordinator.retrieve(query, files)

    history = [m.model_dump() for m in request.messages]
    stream = services.gateway.stream(history, context)
    return StreamingResponse(_relay(stream), media_type="text/plain; charset=utf-8")
