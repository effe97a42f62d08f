"""
Error taxonomy and HTTP error envelopes.

Every failure that can reach a caller is one of five kinds:

- :class:`AuthError` — no authenticated identity (401)
- :class:`ValidationError` — wrong type, oversized, missing field (400)
- :class:`ForbiddenError` — authenticated, but acting for another owner (403)
- :class:`NotFoundError` — referenced document / namespace absent (404)
- :class:`UpstreamError` — storage, metadata, parser, embedding,
  vector-index or completion service failure (500)

Each carries a short, human-readable ``message`` that is safe to show to an
end user.  Internal detail travels on ``__cause__`` and is only logged.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PdfChatError(Exception):
    """Base class for all errors surfaced to callers."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthError(PdfChatError):
    status_code = 401
    default_message = "User not authenticated"


class ValidationError(PdfChatError):
    status_code = 400
    default_message = "Invalid request"


class ForbiddenError(PdfChatError):
    status_code = 403
    default_message = "Not allowed to access another user's files"


class NotFoundError(PdfChatError):
    status_code = 404
    default_message = "Not found"


class UpstreamError(PdfChatError):
    """A collaborating service failed.

    Parameters
    ----------
    service:
        Which collaborator failed (``"storage"``, ``"metadata"``,
        ``"parser"``, ``"embedding"``, ``"vector-index"``, ``"completion"``).
    message:
        Public message; defaults to a generic one.
    """

    status_code = 500
    default_message = "Upstream service failure"

    def __init__(self, service: str, message: str | None = None) -> None:
        self.service = service
        super().__init__(message)


# ---------------------------------------------------------------------------
# FastAPI handlers
# ---------------------------------------------------------------------------


async def pdfchat_error_handler(request: Request, exc: PdfChatError) -> JSONResponse:
    """Translate a :class:`PdfChatError` into the ``{"error": ...}`` envelope."""
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc.__cause__ or exc,
        )
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log the traceback, return a generic 500."""
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


async def request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    """Malformed request bodies get the same ``{"error": ...}`` envelope as other 400s."""
    logger.info("%s %s rejected (400): %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"error": ValidationError.default_message})
