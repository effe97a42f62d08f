"""Client-side orchestration of concurrent PDF uploads.

:class:`UploadOrchestrator` owns the attached-file list of one
conversation.  For each batch it validates every file independently,
shows the admitted ones immediately as *uploading*, uploads them all in
parallel, and reconciles each result as soon as it lands.  One failed
upload never cancels, delays or hides the others.

Usage::

    async with create_client(token=token) as http:
        uploads = UploadOrchestrator(http, owner_id="user-1")
        report  = await uploads.upload_files([FileCandidate.from_path("report.pdf")])
        print([f.name for f in uploads.files])
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import httpx

from pdfchat.client.state import (
    Admitted,
    Cleared,
    Event,
    Failed,
    Removed,
    State,
    Succeeded,
    Synced,
    UploadStatus,
    UploadTask,
    reduce,
)
from pdfchat.config import settings
from pdfchat.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FileCandidate:
    """A local file offered for upload."""

    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: str | Path, content_type: str | None = None) -> FileCandidate:
        path = Path(path)
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            content_type=content_type or guessed or "application/octet-stream",
            data=path.read_bytes(),
        )


@dataclass(frozen=True)
class Notice:
    """A short, user-facing message (the toast of a UI)."""

    level: Literal["error", "success"]
    message: str


@dataclass(frozen=True)
class Rejection:
    name: str
    error: ValidationError


@dataclass
class BatchReport:
    """What happened to each file of one :meth:`UploadOrchestrator.upload_files` call."""

    rejected: list[Rejection] = field(default_factory=list)
    admitted: list[UploadTask] = field(default_factory=list)
    succeeded: list[UploadTask] = field(default_factory=list)
    failed: list[UploadTask] = field(default_factory=list)
    withdrawn: list[UploadTask] = field(default_factory=list)


def create_client(
    base_url: str = settings.api_base_url,
    *,
    token: str | None = None,
    timeout: float = settings.client_timeout_seconds,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Return an ``httpx.AsyncClient`` for the pdfchat API.

    The timeout is generous because an upload only returns once the
    document has been embedded.
    """
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout, transport=transport)


def _json(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class UploadOrchestrator:
    """Manage the attached-file list and its concurrent uploads.

    Parameters
    ----------
    client:
        HTTP client bound to the API base URL (see :func:`create_client`).
    owner_id:
        Identifier of the user owning uploaded files.
    max_files:
        Maximum number of files attached at once.
    max_file_size:
        Per-file size limit in bytes.
    accepted_content_type:
        The only MIME type accepted.
    on_files_change:
        Called with the new list after every change.
    on_notice:
        Called with every user-facing :class:`Notice`.
    id_factory:
        Generates temporary client ids.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        owner_id: str | None,
        max_files: int = settings.max_attached_files,
        max_file_size: int = settings.max_file_size_bytes,
        accepted_content_type: str = settings.accepted_content_type,
        on_files_change: Callable[[list[UploadTask]], None] | None = None,
        on_notice: Callable[[Notice], None] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._client = client
        self.owner_id = owner_id
        self.max_files = max_files
        self.max_file_size = max_file_size
        self.accepted_content_type = accepted_content_type
        self._on_files_change = on_files_change
        self._on_notice = on_notice
        self._id_factory = id_factory or (lambda: f"temp-{uuid.uuid4().hex}")
        self._state: State = ()

    # -- state ----------------------------------------------------------------

    @property
    def files(self) -> list[UploadTask]:
        return list(self._state)

    @property
    def uploading_ids(self) -> set[str]:
        return {t.client_id for t in self._state if t.uploading}

    @property
    def is_uploading(self) -> bool:
        return bool(self.uploading_ids)

    def _find(self, file_id: str) -> UploadTask | None:
        for task in self._state:
            if task.id == file_id or task.client_id == file_id:
                return task
        return None

    def _dispatch(self, event: Event) -> None:
        new_state = reduce(self._state, event)
        if new_state == self._state:
            return
        self._state = new_state
        if self._on_files_change is not None:
            self._on_files_change(list(new_state))

    def _notify(self, level: Literal["error", "success"], message: str) -> None:
        if self._on_notice is not None:
            self._on_notice(Notice(level=level, message=message))

    # -- validation -----------------------------------------------------------

    def validate(self, candidates: Sequence[FileCandidate]) -> tuple[list[FileCandidate], list[Rejection]]:
        """Split *candidates* into acceptable files and per-file rejections."""
        valid: list[FileCandidate] = []
        rejected: list[Rejection] = []
        limit_mb = round(self.max_file_size / (1024 * 1024))
        for candidate in candidates:
            if candidate.content_type != self.accepted_content_type:
                rejected.append(Rejection(candidate.name, ValidationError(f"{candidate.name} is not a PDF file")))
            elif candidate.size > self.max_file_size:
                rejected.append(
                    Rejection(candidate.name, ValidationError(f"{candidate.name} exceeds {limit_mb}MB size limit"))
                )
            else:
                valid.append(candidate)
        return valid, rejected

    # -- operations -----------------------------------------------------------

    async def upload_files(self, candidates: Sequence[FileCandidate]) -> BatchReport:
        """Validate, admit and upload *candidates* concurrently."""
        report = BatchReport()

        batch_error: ValidationError | None = None
        if not self.owner_id:
            batch_error = ValidationError("User ID is required for file upload")
        elif len(self._state) + len(candidates) > self.max_files:
            batch_error = ValidationError(f"Maximum {self.max_files} files allowed")
        if batch_error is not None:
            self._notify("error", batch_error.message)
            report.rejected = [Rejection(c.name, batch_error) for c in candidates]
            return report

        valid, report.rejected = self.validate(candidates)
        for rejection in report.rejected:
            self._notify("error", rejection.error.message)
        if not valid:
            return report

        tasks = tuple(UploadTask(client_id=self._id_factory(), name=c.name, size=c.size) for c in valid)
        self._dispatch(Admitted(tasks))
        report.admitted = [t for t in self._state if t.client_id in {task.client_id for task in tasks}]

        results = await asyncio.gather(
            *(self._upload_one(task, candidate) for task, candidate in zip(tasks, valid)),
            return_exceptions=True,
        )

        for task, result in zip(tasks, results):
            if isinstance(result, BaseException):
                logger.error("Unexpected error uploading %s", task.name, exc_info=result)
                current = self._find(task.client_id)
                if current is not None and current.status is UploadStatus.UPLOADING:
                    self._dispatch(Failed(task.client_id, "Unknown error"))
                    self._notify("error", f"Failed to upload {task.name}: Unknown error")
                report.failed.append(task)
            elif result is None:
                report.failed.append(task)
            elif result.status is UploadStatus.SUCCEEDED:
                report.succeeded.append(result)
            else:
                report.withdrawn.append(result)

        if report.succeeded:
            self._notify("success", f"Successfully uploaded {len(report.succeeded)} file(s)")
        return report

    async def _upload_one(self, task: UploadTask, candidate: FileCandidate) -> UploadTask | None:
        """Upload one file and reconcile the list with the outcome.

        Returns the settled task, the task unchanged when the user removed
        it meanwhile, or ``None`` when the upload failed.
        """
        try:
            response = await self._client.post(
                "/upload",
                files={"file": (candidate.name, candidate.data, candidate.content_type)},
                data={"ownerId": self.owner_id or ""},
            )
            payload = _json(response)
            if response.is_error:
                raise UpstreamError("upload", payload.get("error") or f"Upload failed: {response.reason_phrase}")
            server_id = payload.get("id")
            if not server_id:
                raise UpstreamError("upload", "Upload failed: no file id returned")
        except (httpx.HTTPError, UpstreamError) as exc:
            reason = exc.message if isinstance(exc, UpstreamError) else "Network error"
            logger.error("Error uploading %s: %s", candidate.name, exc)
            self._dispatch(Failed(task.client_id, reason))
            self._notify("error", f"Failed to upload {candidate.name}: {reason}")
            return None

        if self._find(task.client_id) is None:
            # Removed while in flight; do not resurrect it, and drop the server copy.
            logger.info("%s was removed during upload; deleting server copy %s", candidate.name, server_id)
            await self._delete_remote(server_id)
            return task

        self._dispatch(Succeeded(task.client_id, server_id=server_id, url=payload.get("url", "")))
        return self._find(task.client_id)

    async def remove_file(self, file_id: str) -> None:
        """Drop *file_id* from the list now; delete it server-side if it was uploaded.

        A failed server delete is logged and the file stays removed.
        """
        task = self._find(file_id)
        if task is None:
            return
        self._dispatch(Removed(file_id))
        if task.settled and task.server_id:
            await self._delete_remote(task.server_id)

    def clear(self) -> None:
        self._dispatch(Cleared())

    async def refresh(self) -> list[UploadTask]:
        """Replace the settled entries with the owner's files on the server."""
        if not self.owner_id:
            raise ValidationError("User ID is required")
        try:
            response = await self._client.get("/files", params={"ownerId": self.owner_id})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise UpstreamError("files", "Failed to retrieve files") from exc

        files = tuple(
            UploadTask(
                client_id=item["id"],
                name=item["original_name"],
                size=item["size_bytes"],
                status=UploadStatus.SUCCEEDED,
                server_id=item["id"],
                url=item.get("public_url", ""),
            )
            for item in _json(response).get("files", [])
        )
        self._dispatch(Synced(files))
        return self.files

    async def _delete_remote(self, server_id: str) -> None:
        try:
            response = await self._client.delete(
                "/files",
                params={"fileId": server_id, "ownerId": self.owner_id or ""},
            )
        except httpx.HTTPError:
            logger.exception("Error deleting file %s from server", server_id)
            return
        if response.is_error:
            logger.error("Failed to delete file %s from server (HTTP %d)", server_id, response.status_code)
