"""Mapping of attachkeeper errors to HTTP responses."""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from attachkeeper.core.errors import (
    AttachKeeperError,
    DocumentReadError,
    DownloadError,
    VaultConflictError,
    VaultError,
)

logger = logging.getLogger(__name__)


def status_for(exc: AttachKeeperError) -> int:
    if isinstance(exc, VaultConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, DocumentReadError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, VaultError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, DownloadError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def attachkeeper_exception_handler(request: Request, exc: AttachKeeperError) -> JSONResponse:
    """Turn domain errors into JSON error bodies."""
    status_code = status_for(exc)
    logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error in {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "InternalServerError", "detail": str(exc)},
    )
