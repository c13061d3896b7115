"""Exception hierarchy for attachment path operations."""


class AttachKeeperError(Exception):
    """Base class for all attachkeeper errors."""


class VaultError(AttachKeeperError):
    """A document store operation failed."""


class VaultConflictError(VaultError):
    """The destination of a create/rename is already occupied."""

    def __init__(self, path: str):
        super().__init__(f"Destination already exists: {path}")
        self.path = path


class DocumentReadError(VaultError):
    """The document that triggered an operation could not be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to read '{path}': {reason}")
        self.path = path


class DownloadError(AttachKeeperError):
    """A single remote resource could not be downloaded as an image."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to download {url}: {reason}")
        self.url = url
        self.reason = reason
