"""Adapters that react to vault events (renames, new attachments, cleanup)."""

import logging

from attachkeeper.core.config import AttachmentsConfig
from attachkeeper.core.errors import VaultConflictError, VaultError
from attachkeeper.core.models import document_kind
from attachkeeper.core.rewrite import ReferenceRewriter
from attachkeeper.sources.vault.store import VaultFile, VaultFolder, VaultStore
from attachkeeper.utils.naming import NameResolver
from attachkeeper.utils.paths import PathResolver, dirname, join, normalize_path
from attachkeeper.utils.sanitize import sanitize_name

logger = logging.getLogger(__name__)

PASTED_IMAGE_PREFIX = "Pasted image "


async def move_with_references(
    store: VaultStore,
    rewriter: ReferenceRewriter,
    path: str,
    new_path: str,
) -> VaultFile:
    """Move one file and point every reference at its new location."""
    await store.rename(path, new_path)
    new_file = VaultFile(normalize_path(new_path))
    await rewriter.rewrite_references(path, new_file)
    return new_file


class NoteRenameHandler:
    """Renames a note's attachment folder after the note itself was renamed."""

    def __init__(
        self,
        store: VaultStore,
        rewriter: ReferenceRewriter,
        path_resolver: PathResolver,
        settings: AttachmentsConfig,
    ):
        self.store = store
        self.rewriter = rewriter
        self.path_resolver = path_resolver
        self.settings = settings

    async def handle(self, file: VaultFile, old_path: str) -> str | None:
        """
        React to ``old_path`` having been renamed to ``file``.

        Returns:
            The new folder path when a folder was renamed, otherwise None
        """
        if document_kind(file) is None:
            return None
        if not self.settings.auto_rename_folder:
            return None

        old_folder = self.path_resolver.attachment_folder_for_path(old_path)
        new_folder = self.path_resolver.attachment_folder_for(file)
        if old_folder == new_folder:
            return None

        if await self.store.get_folder(old_folder) is None:
            return None
        if await self.store.exists(new_folder):
            logger.warning(f"Cannot rename {old_folder}: {new_folder} already exists")
            return None

        moved_files = await self.store.list_files_under(old_folder)
        try:
            await self.store.rename(old_folder, new_folder)
        except VaultError as e:
            logger.error(f"Error renaming attachment folder: {e}")
            return None

        for moved in moved_files:
            new_path = new_folder + moved.path[len(old_folder):]
            await self.rewriter.rewrite_references(moved.path, VaultFile(new_path))

        logger.info(f"Renamed attachment folder {old_folder} -> {new_folder}")
        return new_folder


class AttachmentCreatedHandler:
    """Moves freshly pasted images into the owning note's attachment folder."""

    def __init__(
        self,
        store: VaultStore,
        rewriter: ReferenceRewriter,
        path_resolver: PathResolver,
        name_resolver: NameResolver,
    ):
        self.store = store
        self.rewriter = rewriter
        self.path_resolver = path_resolver
        self.name_resolver = name_resolver

    async def handle(self, attachment: VaultFile, note: VaultFile | None) -> VaultFile | None:
        if not attachment.name.startswith(PASTED_IMAGE_PREFIX):
            return None
        if note is None or document_kind(note) is None:
            return None

        folder = self.path_resolver.attachment_folder_for(note)
        await self.store.ensure_folder(folder)

        base_name = self.name_resolver.base_name_for(note.basename)
        if join(folder, f"{base_name}.{attachment.extension}") == attachment.path:
            return None
        # Two pastes within the same millisecond share a base name.
        new_path = await self.store.free_path(folder, base_name, attachment.extension)

        try:
            return await move_with_references(self.store, self.rewriter, attachment.path, new_path)
        except VaultError as e:
            logger.error(f"Error moving pasted image {attachment.path}: {e}")
            return None


class AttachmentRenameHandler:
    """Renames a single attachment in place and updates every reference to it."""

    def __init__(self, store: VaultStore, rewriter: ReferenceRewriter):
        self.store = store
        self.rewriter = rewriter

    async def rename_attachment(self, attachment: VaultFile, new_base_name: str) -> VaultFile:
        """
        Raises:
            VaultConflictError: If a file with the new name already exists
        """
        file_name = sanitize_name(new_base_name)
        if attachment.extension:
            file_name = f"{file_name}.{attachment.extension}"
        parent = dirname(attachment.path)
        new_path = join("" if parent == "." else parent, file_name)

        if new_path == attachment.path:
            return attachment
        if await self.store.exists(new_path):
            raise VaultConflictError(new_path)

        return await move_with_references(self.store, self.rewriter, attachment.path, new_path)


class CleanupHandler:
    """Finds and removes empty attachment folders."""

    def __init__(self, store: VaultStore, path_resolver: PathResolver):
        self.store = store
        self.path_resolver = path_resolver

    async def find_empty_attachment_folders(self) -> list[VaultFolder]:
        empty = []
        for folder in await self.store.list_folders():
            if not self.path_resolver.is_attachment_folder_name(folder.name):
                continue
            if not await self.store.list_children(folder.path):
                empty.append(folder)
        return empty

    async def delete_folders(self, folders: list[VaultFolder]) -> int:
        deleted = 0
        for folder in folders:
            try:
                # Double check it is still empty
                if await self.store.get_folder(folder.path) is None:
                    continue
                if await self.store.list_children(folder.path):
                    continue
                await self.store.delete(folder.path)
                deleted += 1
            except VaultError as e:
                logger.error(f"Failed to delete {folder.path}: {e}")
        return deleted
