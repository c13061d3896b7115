"""Shared pytest configuration and fixtures for all tests."""

from datetime import datetime
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from attachkeeper.core.config import (
    AppConfig,
    AttachmentsConfig,
    DownloadsConfig,
    GeneralConfig,
    VaultConfig,
)
from attachkeeper.core.service import AttachmentService

FIXED_NOW = datetime(2024, 1, 1, 0, 0, 0)
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"


def fixed_clock() -> datetime:
    return FIXED_NOW


def write_file(root: Path, relative: str, content: str | bytes = "") -> Path:
    """Create a file (and its parents) inside the vault."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


def png_handler(request: httpx.Request) -> httpx.Response:
    """Serve a PNG for every URL except those containing ``missing``."""
    if "missing" in request.url.path:
        return httpx.Response(404, text="not found")
    return httpx.Response(200, headers={"content-type": "image/png"}, content=PNG_BYTES)


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def config(tmp_path: Path, vault_root: Path) -> AppConfig:
    return AppConfig(
        general=GeneralConfig(data_dir=tmp_path / "data"),
        vault=VaultConfig(root=vault_root),
        attachments=AttachmentsConfig(prompt_rename_image=False),
        downloads=DownloadsConfig(settle_delay=0),
    )


@pytest.fixture
def transport() -> httpx.MockTransport:
    return httpx.MockTransport(png_handler)


@pytest_asyncio.fixture
async def service(config: AppConfig, transport: httpx.MockTransport):
    async with AttachmentService(config, clock=fixed_clock, transport=transport) as svc:
        yield svc
