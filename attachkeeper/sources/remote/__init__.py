"""Remote resource access (HTTP image downloads)."""

from .constants import IMAGE_CONTENT_TYPES, URL_IMAGE_EXTENSIONS
from .downloader import DownloadedImage, RemoteImageDownloader, extension_for

__all__ = [
    "IMAGE_CONTENT_TYPES",
    "URL_IMAGE_EXTENSIONS",
    "DownloadedImage",
    "RemoteImageDownloader",
    "extension_for",
]
