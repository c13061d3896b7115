"""Dependency injection for FastAPI endpoints."""

import logging
from typing import Annotated

from fastapi import Depends, Request

from attachkeeper.core.config import AppConfig
from attachkeeper.core.service import AttachmentService

logger = logging.getLogger(__name__)


def get_config(request: Request) -> AppConfig:
    """Get the configuration the application was created with."""
    return request.app.state.config


def get_service(request: Request) -> AttachmentService:
    """Get the attachment service opened by the application lifespan."""
    return request.app.state.service


ConfigDep = Annotated[AppConfig, Depends(get_config)]
ServiceDep = Annotated[AttachmentService, Depends(get_service)]
