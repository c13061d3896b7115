"""Wiring of the attachment engine for the CLI and API."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

import httpx

from attachkeeper.core.config import AppConfig
from attachkeeper.core.errors import VaultConflictError, VaultError
from attachkeeper.core.handlers import (
    AttachmentCreatedHandler,
    AttachmentRenameHandler,
    CleanupHandler,
    NoteRenameHandler,
)
from attachkeeper.core.ingest import RemoteImageIngester
from attachkeeper.core.models import (
    FixResult,
    IngestResult,
    ValidationResult,
    document_kind,
)
from attachkeeper.core.references import ReferenceScanner
from attachkeeper.core.rewrite import ReferenceRewriter
from attachkeeper.core.validate import ConsistencyValidator, RenamePrompt
from attachkeeper.sources.remote.downloader import RemoteImageDownloader
from attachkeeper.sources.vault.links import LinkGenerator
from attachkeeper.sources.vault.store import VaultFile, VaultFolder, VaultStore
from attachkeeper.utils.naming import NameResolver
from attachkeeper.utils.paths import PathResolver, normalize_path

logger = logging.getLogger(__name__)


class AttachmentService:
    """
    Brings together the vault store, the reference scanner/rewriter, the
    remote image ingester and the consistency validator for one vault.

    Path and name rules read ``config.attachments`` on every call, so
    settings edited at runtime apply to the next operation.
    """

    def __init__(
        self,
        config: AppConfig,
        vault_root: Path | None = None,
        *,
        rename_prompt: RenamePrompt | None = None,
        clock: Callable[[], datetime] = datetime.now,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            config: Application configuration
            vault_root: Vault folder, defaults to ``config.vault.root``
            rename_prompt: Asked for a name for each image moved while fixing
            clock: Source of the base time for generated names
            transport: Optional HTTP transport override for downloads
        """
        root = vault_root or config.vault.root
        if root is None:
            raise ValueError("Vault root not configured")

        self.config = config
        self.store = VaultStore(root)
        self.links = LinkGenerator(self.store, config.links.link_format, config.links.path_style)
        self.scanner = ReferenceScanner(self.store)
        self.rewriter = ReferenceRewriter(self.store, self.scanner, self.links)
        self.path_resolver = PathResolver(config.attachments)
        self.name_resolver = NameResolver(config.attachments, clock=clock)
        self.downloader = RemoteImageDownloader(
            timeout=config.downloads.timeout,
            connect_timeout=config.downloads.connect_timeout,
            follow_redirects=config.downloads.follow_redirects,
            user_agent=config.downloads.user_agent,
            transport=transport,
        )
        self.ingester = RemoteImageIngester(
            self.store,
            self.scanner,
            self.links,
            self.path_resolver,
            self.name_resolver,
            self.downloader,
            settle_delay=config.downloads.settle_delay,
        )
        self.validator = ConsistencyValidator(
            self.store,
            self.scanner,
            self.rewriter,
            self.path_resolver,
            self.name_resolver,
            config.attachments,
            rename_prompt=rename_prompt,
        )
        self.note_rename_handler = NoteRenameHandler(
            self.store, self.rewriter, self.path_resolver, config.attachments
        )
        self.attachment_created_handler = AttachmentCreatedHandler(
            self.store, self.rewriter, self.path_resolver, self.name_resolver
        )
        self.attachment_rename_handler = AttachmentRenameHandler(self.store, self.rewriter)
        self.cleanup_handler = CleanupHandler(self.store, self.path_resolver)

    async def close(self) -> None:
        await self.downloader.close()

    async def __aenter__(self) -> "AttachmentService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def require_file(self, path: str) -> VaultFile:
        file = await self.store.get_file(path)
        if file is None:
            raise VaultError(f"File not found in vault: {normalize_path(path)}")
        return file

    async def require_document(self, path: str) -> VaultFile:
        file = await self.require_file(path)
        if document_kind(file) is None:
            raise VaultError(f"Not a note or graph document: {file.path}")
        return file

    async def validate(self) -> ValidationResult:
        return await self.validator.validate()

    async def fix_all(self, result: ValidationResult | None = None) -> FixResult:
        if result is None:
            result = await self.validate()
        return await self.validator.fix_all(result.issues)

    async def download_remote_images(self, note_path: str) -> IngestResult:
        note = await self.require_document(note_path)
        return await self.ingester.ingest_file(note)

    async def rename_note(self, old_path: str, new_path: str) -> str | None:
        """
        Move a note, keep references to it current, and let the rename
        handler follow with its attachment folder.

        Returns:
            New attachment folder path if the folder was renamed
        """
        note = await self.require_document(old_path)
        if await self.store.exists(new_path):
            raise VaultConflictError(normalize_path(new_path))
        await self.store.rename(note.path, new_path)
        new_note = VaultFile(normalize_path(new_path))
        await self.rewriter.rewrite_references(note.path, new_note)
        return await self.note_rename_handler.handle(new_note, note.path)

    async def attachment_created(self, attachment_path: str, note_path: str) -> VaultFile | None:
        attachment = await self.require_file(attachment_path)
        note = await self.require_document(note_path)
        return await self.attachment_created_handler.handle(attachment, note)

    async def rename_attachment(self, attachment_path: str, new_base_name: str) -> VaultFile:
        attachment = await self.require_file(attachment_path)
        return await self.attachment_rename_handler.rename_attachment(attachment, new_base_name)

    async def find_empty_attachment_folders(self) -> list[VaultFolder]:
        return await self.cleanup_handler.find_empty_attachment_folders()

    async def delete_empty_attachment_folders(self) -> int:
        folders = await self.find_empty_attachment_folders()
        return await self.cleanup_handler.delete_folders(folders)
