"""Store path helpers and canonical attachment folder derivation.

Store paths are POSIX-style strings relative to the vault root, e.g.
``Projects/Design.md``. They never start with ``./`` or ``/``.
"""

from __future__ import annotations

import posixpath
import re
import unicodedata
from typing import TYPE_CHECKING, Protocol

from attachkeeper.utils.sanitize import sanitize_folder_name

if TYPE_CHECKING:
    from attachkeeper.core.config import AttachmentsConfig

_SLASH_RUN_RE = re.compile(r"/+")


class NoteLike(Protocol):
    path: str

    @property
    def basename(self) -> str: ...


def normalize_path(path: str) -> str:
    """Normalize a store path the way the vault stores it."""
    if not path:
        return ""
    normalized = path.replace("\\", "/")
    normalized = _SLASH_RUN_RE.sub("/", normalized)
    while normalized.startswith("./"):
        normalized = normalized[2:]
    normalized = normalized.strip("/")
    normalized = unicodedata.normalize("NFC", normalized)
    return normalized


def resolve_relative(base_dir: str, target: str) -> str | None:
    """Join ``target`` onto ``base_dir`` and collapse ``.``/``..`` segments.

    Returns None when the result would escape the vault root.
    """
    base_dir = "" if base_dir in ("", ".") else base_dir
    target = target.replace("\\", "/")
    parts: list[str] = []
    for segment in f"{base_dir}/{target}".split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                return None
            parts.pop()
        else:
            parts.append(segment)
    return normalize_path("/".join(parts)) or None


def dirname(path: str) -> str:
    """Parent of a store path, ``.`` for root-level entries."""
    parent, _, _ = normalize_path(path).rpartition("/")
    return parent or "."


def basename(path: str) -> str:
    return normalize_path(path).rpartition("/")[2]


def split_extension(name: str) -> tuple[str, str]:
    """Split ``name`` into (stem, extension) without the leading dot."""
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return name, ""
    return stem, ext


def join(*parts: str) -> str:
    return normalize_path("/".join(part for part in parts if part))


def is_within(path: str, folder: str) -> bool:
    path = normalize_path(path)
    folder = normalize_path(folder)
    if not folder:
        return True
    return path.startswith(folder + "/")


def relative_path(target: str, start_dir: str) -> str:
    """Relative store path from ``start_dir`` to ``target``."""
    start = "/" + ("" if start_dir in ("", ".") else normalize_path(start_dir))
    return posixpath.relpath("/" + normalize_path(target), start)


def folder_owner_stem(folder_name: str, suffix: str) -> str | None:
    """Reverse the folder naming rule: the note stem a folder name belongs to.

    Both the raw and the sanitized suffix are accepted. Returns None when the
    folder name does not end with the suffix.
    """
    if not suffix:
        return None
    for candidate in (sanitize_folder_name(suffix), suffix):
        if folder_name.endswith(candidate) and len(folder_name) > len(candidate):
            return folder_name[: -len(candidate)]
    return None


class PathResolver:
    """Computes canonical attachment folders from the current settings.

    The settings object is read on every call, so changes made at runtime
    are honoured without rebuilding the resolver.
    """

    def __init__(self, settings: "AttachmentsConfig"):
        self.settings = settings

    @property
    def folder_suffix(self) -> str:
        return sanitize_folder_name(self.settings.folder_suffix)

    def folder_name_for(self, note_basename: str) -> str:
        return f"{sanitize_folder_name(note_basename)}{self.folder_suffix}"

    def attachment_folder_for_path(self, note_path: str) -> str:
        """Canonical attachment folder for a note identified only by its path."""
        note_path = normalize_path(note_path)
        stem, _ = split_extension(basename(note_path))
        return self._folder_in(dirname(note_path), stem)

    def attachment_folder_for(self, note: NoteLike) -> str:
        return self._folder_in(dirname(note.path), note.basename)

    def _folder_in(self, note_dir: str, note_basename: str) -> str:
        folder_path = posixpath.join(note_dir, self.folder_name_for(note_basename))
        if folder_path.startswith("./"):
            folder_path = folder_path[2:]
        return normalize_path(folder_path)

    def is_attachment_folder_name(self, folder_name: str) -> bool:
        return folder_owner_stem(folder_name, self.settings.folder_suffix) is not None

    def owns_folder(self, note_basename: str, folder_name: str) -> bool:
        """Whether ``folder_name`` was derived (possibly by an older rule) from ``note_basename``."""
        stem = folder_owner_stem(folder_name, self.settings.folder_suffix)
        if stem is None:
            return False
        if stem == note_basename:
            return True
        return sanitize_folder_name(stem).casefold() == sanitize_folder_name(note_basename).casefold()
