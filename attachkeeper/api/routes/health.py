"""Health check and version endpoints."""

from datetime import datetime

from fastapi import APIRouter

from attachkeeper.api.dependencies import ConfigDep
from attachkeeper.api.models import HealthResponse, VersionResponse
from attachkeeper.version import runtime_info

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(config: ConfigDep):
    """Report that the server is up and which vault it serves."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now().isoformat(),
        vault=str(config.vault.root) if config.vault.root else None,
    )


@router.get("/version", response_model=VersionResponse)
async def get_version():
    info = runtime_info()
    return VersionResponse(version=info["Version"], python_version=info["Python"])
