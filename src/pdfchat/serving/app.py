"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from pdfchat import __version__
from pdfchat.config import settings
from pdfchat.errors import (
    PdfChatError,
    pdfchat_error_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from pdfchat.serving.container import Services
from pdfchat.serving.routes import router

logger = logging.getLogger(__name__)


def create_app(services: Services | None = None) -> FastAPI:
    """Return the API application.

    Parameters
    ----------
    services:
        Pre-built container (tests pass one wired with fakes).  When
        omitted, :meth:`Services.from_settings` builds the production
        stack at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logging.basicConfig(
            level=settings.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        container = services or Services.from_settings(settings)
        await container.start()
        app.state.services = container
        try:
            yield
        finally:
            await container.close()

    app = FastAPI(
        title="PDF Chat API",
        version=__version__,
        description="Upload PDFs and chat with answers grounded in their content.",
        lifespan=lifespan,
    )
    app.add_exception_handler(PdfChatError, pdfchat_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.include_router(router)
    return app


app = create_app()
