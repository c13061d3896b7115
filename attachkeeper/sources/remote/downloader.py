"""HTTP client for fetching remote images."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

import httpx

from attachkeeper.core.errors import DownloadError
from attachkeeper.sources.remote.constants import (
    EXTENSION_ALIASES,
    IMAGE_CONTENT_TYPES,
    URL_IMAGE_EXTENSIONS,
)

logger = logging.getLogger(__name__)

_URL_EXTENSION_RE = re.compile(rf"\.({'|'.join(URL_IMAGE_EXTENSIONS)})$", re.IGNORECASE)


@dataclass
class DownloadedImage:
    url: str
    content: bytes
    extension: str
    content_type: str = ""


def extension_for(content_type: str | None, url: str) -> str | None:
    """Pick a file extension from the content type, falling back to the URL path."""
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    extension = IMAGE_CONTENT_TYPES.get(mime)
    if extension:
        return extension

    try:
        path = urlsplit(url).path
    except ValueError:
        return None
    match = _URL_EXTENSION_RE.search(path)
    if not match:
        return None
    extension = match.group(1).lower()
    return EXTENSION_ALIASES.get(extension, extension)


class RemoteImageDownloader:
    """Download images over HTTP(S).

    The underlying ``httpx.AsyncClient`` is shared by all downloads of one
    downloader, so many requests can run concurrently on it.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        connect_timeout: float = 10.0,
        follow_redirects: bool = True,
        user_agent: str = "attachkeeper",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the downloader.

        Args:
            timeout: Overall timeout per request in seconds
            connect_timeout: Connection timeout in seconds
            follow_redirects: Follow HTTP redirects
            user_agent: User-Agent header sent with every request
            transport: Optional transport override (used by tests)
        """
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            follow_redirects=follow_redirects,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    async def close(self) -> None:
        """Close HTTP client connections."""
        await self._client.aclose()

    async def __aenter__(self) -> "RemoteImageDownloader":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def download(self, url: str) -> DownloadedImage:
        """
        Fetch ``url`` and work out its image extension.

        Raises:
            DownloadError: On transport errors, non-200 responses, or when no
                           image type can be determined
        """
        logger.debug(f"Requesting {url}")
        try:
            response = await self._client.get(url)
        except (httpx.HTTPError, ValueError) as e:
            raise DownloadError(url, str(e)) from e

        if response.status_code != 200:
            raise DownloadError(url, f"status {response.status_code}")

        content_type = response.headers.get("content-type", "")
        extension = extension_for(content_type, url)
        if not extension:
            raise DownloadError(url, f"unsupported content type '{content_type}'")

        logger.debug(f"Downloaded {len(response.content)} bytes from {url} ({content_type})")
        return DownloadedImage(
            url=url,
            content=response.content,
            extension=extension,
            content_type=content_type,
        )
