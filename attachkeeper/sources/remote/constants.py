"""Image type tables used when naming downloaded files."""

IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/apng": "apng",
    "image/avif": "avif",
    "image/bmp": "bmp",
    "image/gif": "gif",
    "image/x-icon": "ico",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/svg+xml": "svg",
    "image/tiff": "tif",
    "image/webp": "webp",
}

# Extensions recognised at the end of a URL path when the server sends no
# usable content type.
URL_IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "webp", "svg", "bmp")

EXTENSION_ALIASES: dict[str, str] = {"jpeg": "jpg"}
