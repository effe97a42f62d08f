"""Attached-file list as an explicit state machine.

Every change to the visible list is an event run through :func:`reduce`.
Per-task transitions::

    QUEUED ──Admitted──► UPLOADING ──Succeeded──► SUCCEEDED
                             │
                             └──────Failed──────► (removed from the list)

``Removed`` drops any entry by id, ``Cleared`` empties the list and
``Synced`` replaces the settled entries with a server listing while
keeping in-flight uploads.  Illegal transitions raise
:class:`InvalidTransitionError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum


class UploadStatus(str, Enum):
    QUEUED = "queued"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class InvalidTransitionError(ValueError):
    """An event does not apply to the current state of its task."""


@dataclass(frozen=True)
class UploadTask:
    """One entry of the attached-file list.

    ``client_id`` is generated locally when the file is accepted; a
    ``server_id`` only exists once the upload succeeded.  Entries loaded
    from the server use the server id for both.
    """

    client_id: str
    name: str
    size: int
    status: UploadStatus = UploadStatus.QUEUED
    server_id: str | None = None
    url: str = ""

    @property
    def id(self) -> str:
        return self.server_id or self.client_id

    @property
    def uploading(self) -> bool:
        return self.status in (UploadStatus.QUEUED, UploadStatus.UPLOADING)

    @property
    def settled(self) -> bool:
        return self.status is UploadStatus.SUCCEEDED


# -- events -------------------------------------------------------------------


@dataclass(frozen=True)
class Admitted:
    tasks: tuple[UploadTask, ...]


@dataclass(frozen=True)
class Succeeded:
    client_id: str
    server_id: str
    url: str


@dataclass(frozen=True)
class Failed:
    client_id: str
    reason: str = ""


@dataclass(frozen=True)
class Removed:
    file_id: str


@dataclass(frozen=True)
class Cleared:
    pass


@dataclass(frozen=True)
class Synced:
    files: tuple[UploadTask, ...] = field(default_factory=tuple)


Event = Admitted | Succeeded | Failed | Removed | Cleared | Synced

State = tuple[UploadTask, ...]


# -- reducer ------------------------------------------------------------------


def _index_of(state: State, client_id: str) -> int | None:
    for i, task in enumerate(state):
        if task.client_id == client_id:
            return i
    return None


def reduce(state: State, event: Event) -> State:
    """Return the list that results from applying *event* to *state*."""
    if isinstance(event, Admitted):
        known = {t.client_id for t in state}
        for task in event.tasks:
            if task.status is not UploadStatus.QUEUED:
                raise InvalidTransitionError(f"Only queued tasks can be admitted, got {task.status.value}")
            if task.client_id in known:
                raise InvalidTransitionError(f"Duplicate client id {task.client_id!r}")
        return state + tuple(replace(t, status=UploadStatus.UPLOADING) for t in event.tasks)

    if isinstance(event, Succeeded):
        i = _index_of(state, event.client_id)
        if i is None:
            # Removed by the user while its upload was in flight.
            return state
        task = state[i]
        if task.status is not UploadStatus.UPLOADING:
            raise InvalidTransitionError(f"Cannot succeed a task that is {task.status.value}")
        done = replace(task, status=UploadStatus.SUCCEEDED, server_id=event.server_id, url=event.url)
        return state[:i] + (done,) + state[i + 1 :]

    if isinstance(event, Failed):
        i = _index_of(state, event.client_id)
        if i is None:
            return state
        if state[i].status is not UploadStatus.UPLOADING:
            raise InvalidTransitionError(f"Cannot fail a task that is {state[i].status.value}")
        return state[:i] + state[i + 1 :]

    if isinstance(event, Removed):
        return tuple(t for t in state if t.id != event.file_id and t.client_id != event.file_id)

    if isinstance(event, Cleared):
        return ()

    if isinstance(event, Synced):
        in_flight = tuple(t for t in state if t.uploading)
        return event.files + in_flight

    raise TypeError(f"Unknown event: {event!r}")
