"""Request / response schemas of the HTTP surface."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from pdfchat.documents.models import DocumentRecord
from pdfchat.retrieval.models import DocumentRef


class UploadResponse(BaseModel):
    """Body returned by ``POST /upload``; keys are camelCase on the wire."""

    id: str
    url: str
    path: str
    original_name: str = Field(serialization_alias="originalName")
    size: int
    success: bool = True
    message: str = "File uploaded successfully"

    @classmethod
    def from_record(cls, record: DocumentRecord) -> UploadResponse:
        return cls(
            id=record.id,
            url=record.public_url,
            path=record.storage_path,
            original_name=record.original_name,
            size=record.size_bytes,
        )


class FileListResponse(BaseModel):
    files: list[DocumentRecord]


class DeleteResponse(BaseModel):
    success: bool = True
    message: str = "File deleted successfully"


class ChatMessage(BaseModel):
    """One turn of the conversation history."""

    role: Literal["system", "user", "assistant"]
    content: str

    model_config = ConfigDict(extra="ignore")


class ChatData(BaseModel):
    files: list[DocumentRef] = Field(default_factory=list)


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)
    data: ChatData = Field(default_factory=ChatData)

    model_config = ConfigDict(extra="ignore")
