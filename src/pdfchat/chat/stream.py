"""A single-use, cancellable stream of answer tokens.

Lifecycle::

    PENDING ──iterate──► STREAMING ──► COMPLETED
                            │
                            ├──upstream error──► FAILED   (error: UpstreamError)
                            └──cancel()/abort──► CANCELLED

Tokens already handed to the consumer are never retracted: a FAILED or
CANCELLED stream keeps everything it emitted.  A stream can be iterated
once; issuing the request again starts a new stream.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator, AsyncIterator
from enum import Enum

from pdfchat.errors import UpstreamError

logger = logging.getLogger(__name__)

#: Appended to the visible answer when the upstream fails mid-stream.
ERROR_MARKER = "\n\n[error] The answer was interrupted. Please try again."


class StreamState(str, Enum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


_TERMINAL = frozenset({StreamState.COMPLETED, StreamState.FAILED, StreamState.CANCELLED})
_EXHAUSTED = object()


class TokenStream:
    """Relay tokens from an upstream async iterator to one consumer.

    Upstream exceptions do not propagate out of iteration; they end the
    stream with ``state == FAILED`` and a typed :attr:`error`, so the
    consumer can decide how to render the partial answer.
    """

    def __init__(self, source: AsyncIterator[str]) -> None:
        self._source = source
        self._relay_gen: AsyncGenerator[str, None] | None = None
        self._pull: asyncio.Task | None = None
        self._abort = asyncio.Event()
        self._state = StreamState.PENDING
        self._error: UpstreamError | None = None
        self.tokens_emitted = 0

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def error(self) -> UpstreamError | None:
        return self._error

    @property
    def done(self) -> bool:
        return self._state in _TERMINAL

    def __aiter__(self) -> AsyncIterator[str]:
        if self._relay_gen is not None or self._state is not StreamState.PENDING:
            raise RuntimeError("TokenStream can only be consumed once; issue a new request for a new stream")
        self._relay_gen = self._relay()
        return self._relay_gen

    async def _next_token(self) -> str | object:
        try:
            return await self._source.__anext__()
        except StopAsyncIteration:
            return _EXHAUSTED

    async def _relay(self) -> AsyncGenerator[str, None]:
        self._state = StreamState.STREAMING
        try:
            while not self._abort.is_set():
                # Each read runs as its own task so cancel() can interrupt it from any task.
                self._pull = asyncio.create_task(self._next_token())
                try:
                    token = await self._pull
                except asyncio.CancelledError:
                    if not self._abort.is_set():
                        raise
                    break
                if token is _EXHAUSTED or self._abort.is_set():
                    break
                if not token:
                    continue
                self.tokens_emitted += 1
                yield token
        except (asyncio.CancelledError, GeneratorExit):
            self._mark_cancelled()
            raise
        except Exception as exc:
            logger.error("Completion stream failed after %d tokens: %s", self.tokens_emitted, exc, exc_info=exc)
            error = UpstreamError("completion", "The answer was interrupted")
            error.__cause__ = exc
            self._error = error
            self._state = StreamState.FAILED
        else:
            if self._abort.is_set():
                self._mark_cancelled()
            else:
                self._state = StreamState.COMPLETED
                logger.info("Stream completed with %d tokens", self.tokens_emitted)
        finally:
            await self._settle_pull()
            await self._close_source()

    async def cancel(self) -> None:
        """Stop the stream and close the upstream connection.  Idempotent.

        Safe to call from the consuming task or from any other task; a
        consumer waiting on the upstream sees the iteration end normally.
        """
        if self.done:
            return
        self._abort.set()
        pull = self._pull
        if pull is not None and not pull.done():
            await self._settle_pull()
        elif self._relay_gen is not None and not self._relay_gen.ag_running:
            await self._relay_gen.aclose()
        if not self.done:
            self._mark_cancelled()
            await self._close_source()

    def _mark_cancelled(self) -> None:
        if self._state is not StreamState.CANCELLED:
            self._state = StreamState.CANCELLED
            logger.info("Stream cancelled after %d tokens", self.tokens_emitted)

    async def _settle_pull(self) -> None:
        pull = self._pull
        if pull is not None and not pull.done():
            pull.cancel()
            await asyncio.wait({pull})

    async def _close_source(self) -> None:
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()
