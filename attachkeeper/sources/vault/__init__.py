"""Local vault adapters (file store + link text generation)."""

from .links import LinkGenerator
from .store import VaultEntry, VaultFile, VaultFolder, VaultStore

__all__ = [
    "LinkGenerator",
    "VaultEntry",
    "VaultFile",
    "VaultFolder",
    "VaultStore",
]
