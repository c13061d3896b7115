"""Local folder adapter for the document store.

Every path accepted or returned by :class:`VaultStore` is a store path:
POSIX-style and relative to the vault root (see
:func:`attachkeeper.utils.paths.normalize_path`). The store only performs
file operations; it knows nothing about attachment naming rules.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import aiofiles.os

from attachkeeper.core.errors import VaultConflictError, VaultError
from attachkeeper.utils.paths import basename, dirname, normalize_path, split_extension

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VaultFile:
    """A file inside the vault."""

    path: str

    @property
    def name(self) -> str:
        return basename(self.path)

    @property
    def basename(self) -> str:
        """File name without extension."""
        return split_extension(self.name)[0]

    @property
    def extension(self) -> str:
        return split_extension(self.name)[1].lower()

    @property
    def parent(self) -> str:
        return dirname(self.path)


@dataclass(frozen=True)
class VaultFolder:
    """A folder inside the vault."""

    path: str

    @property
    def name(self) -> str:
        return basename(self.path)

    @property
    def parent(self) -> str:
        return dirname(self.path)


VaultEntry = VaultFile | VaultFolder


class VaultStore:
    """
    Reads and writes vault entries on the local filesystem.

    Hidden entries (names starting with ``.``) are skipped when walking the
    tree, matching how editors treat ``.obsidian``/``.git`` folders.
    """

    def __init__(self, root: Path):
        """
        Args:
            root: Vault root folder
        """
        self.root = Path(root).expanduser().resolve()

    def absolute(self, path: str) -> Path:
        """Filesystem path for a store path, refusing paths outside the root."""
        normalized = normalize_path(path)
        if normalized in ("", "."):
            return self.root
        target = (self.root / normalized).resolve()
        if not target.is_relative_to(self.root):
            raise VaultError(f"Path {path} escapes vault root {self.root}")
        return target

    def store_path(self, absolute: Path) -> str:
        return normalize_path(absolute.resolve().relative_to(self.root).as_posix())

    async def exists(self, path: str) -> bool:
        try:
            return await aiofiles.os.path.exists(self.absolute(path))
        except VaultError:
            return False

    async def free_path(self, folder: str, name: str, extension: str = "") -> str:
        """First of ``name.ext``, ``name_1.ext``, ``name_2.ext``... not yet taken in ``folder``."""
        suffix = f".{extension}" if extension else ""
        base = normalize_path(folder)
        base = "" if base == "." else base
        candidate = normalize_path(f"{base}/{name}{suffix}")
        counter = 1
        while await self.exists(candidate):
            candidate = normalize_path(f"{base}/{name}_{counter}{suffix}")
            counter += 1
        return candidate

    async def get_file(self, path: str) -> VaultFile | None:
        try:
            target = self.absolute(path)
        except VaultError:
            return None
        if await aiofiles.os.path.isfile(target):
            return VaultFile(normalize_path(path))
        return None

    async def get_folder(self, path: str) -> VaultFolder | None:
        try:
            target = self.absolute(path)
        except VaultError:
            return None
        if await aiofiles.os.path.isdir(target):
            return VaultFolder(normalize_path(path))
        return None

    async def read(self, path: str) -> str:
        """
        Read a text file.

        Raises:
            VaultError: If the file cannot be read
        """
        try:
            async with aiofiles.open(self.absolute(path), "r", encoding="utf-8") as f:
                return await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise VaultError(f"Failed to read '{path}': {e}") from e

    async def write(self, path: str, content: str) -> VaultFile:
        target = self.absolute(path)
        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "w", encoding="utf-8") as f:
                await f.write(content)
        except OSError as e:
            raise VaultError(f"Failed to write '{path}': {e}") from e
        logger.debug(f"Wrote {path}")
        return VaultFile(normalize_path(path))

    async def write_binary(self, path: str, data: bytes) -> VaultFile:
        target = self.absolute(path)
        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise VaultError(f"Failed to write '{path}': {e}") from e
        logger.debug(f"Wrote {len(data)} bytes to {path}")
        return VaultFile(normalize_path(path))

    async def create_folder(self, path: str) -> VaultFolder:
        """
        Create a folder (and any missing parents).

        Raises:
            VaultConflictError: If something already exists at ``path``
        """
        target = self.absolute(path)
        if await aiofiles.os.path.exists(target):
            raise VaultConflictError(normalize_path(path))
        try:
            await aiofiles.os.makedirs(target)
        except FileExistsError as e:
            raise VaultConflictError(normalize_path(path)) from e
        except OSError as e:
            raise VaultError(f"Failed to create folder '{path}': {e}") from e
        logger.info(f"Created folder: {normalize_path(path)}")
        return VaultFolder(normalize_path(path))

    async def ensure_folder(self, path: str) -> VaultFolder:
        folder = await self.get_folder(path)
        if folder is not None:
            return folder
        return await self.create_folder(path)

    async def list_children(self, folder: str) -> list[VaultEntry]:
        target = self.absolute(folder)
        if not await aiofiles.os.path.isdir(target):
            return []

        base = normalize_path(folder)
        base = "" if base == "." else base
        entries: list[VaultEntry] = []
        for name in sorted(await aiofiles.os.listdir(target)):
            if name.startswith("."):
                continue
            child_path = f"{base}/{name}" if base else name
            if await aiofiles.os.path.isdir(target / name):
                entries.append(VaultFolder(normalize_path(child_path)))
            else:
                entries.append(VaultFile(normalize_path(child_path)))
        return entries

    async def rename(self, path: str, new_path: str) -> VaultEntry:
        """
        Move a file or folder to ``new_path``.

        Raises:
            VaultConflictError: If ``new_path`` is already occupied
            VaultError: If the source does not exist or the move fails
        """
        source = self.absolute(path)
        destination = self.absolute(new_path)
        if not await aiofiles.os.path.exists(source):
            raise VaultError(f"Cannot rename missing entry '{path}'")
        if await aiofiles.os.path.exists(destination):
            # Allow case-only renames on case-insensitive filesystems
            if not (source != destination and await aiofiles.os.path.samefile(source, destination)):
                raise VaultConflictError(normalize_path(new_path))

        is_folder = await aiofiles.os.path.isdir(source)
        try:
            await aiofiles.os.makedirs(destination.parent, exist_ok=True)
            await aiofiles.os.rename(source, destination)
        except OSError as e:
            raise VaultError(f"Failed to rename '{path}' to '{new_path}': {e}") from e

        logger.info(f"Renamed {normalize_path(path)} -> {normalize_path(new_path)}")
        if is_folder:
            return VaultFolder(normalize_path(new_path))
        return VaultFile(normalize_path(new_path))

    async def delete(self, path: str) -> None:
        target = self.absolute(path)
        try:
            if await aiofiles.os.path.isdir(target):
                shutil.rmtree(target)
            elif await aiofiles.os.path.exists(target):
                await aiofiles.os.remove(target)
            else:
                logger.warning(f"Entry already deleted: {path}")
                return
        except OSError as e:
            raise VaultError(f"Failed to delete '{path}': {e}") from e
        logger.info(f"Deleted {normalize_path(path)}")

    def _walk(self, folder: str = "") -> tuple[list[VaultFolder], list[VaultFile]]:
        start = self.absolute(folder)
        folders: list[VaultFolder] = []
        files: list[VaultFile] = []
        for current, dirnames, filenames in os.walk(start):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            current_path = Path(current)
            for name in dirnames:
                folders.append(VaultFolder(self.store_path(current_path / name)))
            for name in sorted(filenames):
                if name.startswith("."):
                    continue
                files.append(VaultFile(self.store_path(current_path / name)))
        return folders, files

    async def list_files(self) -> list[VaultFile]:
        return self._walk()[1]

    async def list_folders(self) -> list[VaultFolder]:
        return self._walk()[0]

    async def list_files_under(self, folder: str) -> list[VaultFile]:
        if await self.get_folder(folder) is None:
            return []
        return self._walk(folder)[1]

    async def list_documents(self, extensions: frozenset[str]) -> list[VaultFile]:
        """All files whose extension is in ``extensions``, in path order."""
        return [file for file in await self.list_files() if file.extension in extensions]

    async def find_files_by_name(self, name: str) -> list[VaultFile]:
        wanted = normalize_path(name)
        return [file for file in await self.list_files() if file.name == wanted]
