"""FastAPI application exposing the attachment engine over HTTP.

This module provides the main FastAPI application with:
- Request logging
- Exception handlers mapping domain errors to status codes
- Health, version and attachment routes
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request

from attachkeeper import __version__
from attachkeeper.api.exceptions import (
    attachkeeper_exception_handler,
    unhandled_exception_handler,
)
from attachkeeper.core.config import AppConfig, load_config
from attachkeeper.core.errors import AttachKeeperError
from attachkeeper.core.service import AttachmentService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the attachment service on startup and close it on shutdown."""
    config: AppConfig = app.state.config
    logger.info(f"attachkeeper API starting up for vault {config.vault.root}")

    service = AttachmentService(config, transport=app.state.transport)
    app.state.service = service

    yield

    logger.info("attachkeeper API shutting down...")
    await service.close()


def create_app(
    config: AppConfig | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Configuration to serve, loaded from the default location if omitted
        transport: Optional HTTP transport override for remote downloads

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title="attachkeeper API",
        description="Attachment folder validation, repair and remote image download",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )
    app.state.config = config or load_config()
    app.state.transport = transport

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all incoming requests."""
        logger.debug(f"{request.method} {request.url.path}")
        response = await call_next(request)
        logger.debug(f"{request.method} {request.url.path} - {response.status_code}")
        return response

    # Exception handlers
    app.add_exception_handler(AttachKeeperError, attachkeeper_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Register API routes
    from attachkeeper.api.routes import attachments, health

    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(attachments.router, prefix="/api/attachments", tags=["Attachments"])

    @app.get("/")
    async def root():
        """Root endpoint - returns API information."""
        return {
            "name": "attachkeeper API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/api/health",
        }

    logger.info("FastAPI application created")
    return app
