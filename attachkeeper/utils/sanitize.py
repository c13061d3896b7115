"""Cross-platform file and folder name sanitization."""

from __future__ import annotations

import re

FALLBACK_NAME = "unnamed"

# Always replaced with a space, regardless of platform.
SPACE_REPLACE_RE = re.compile(r"#")
# Reserved on Windows.
WINDOWS_INVALID_RE = re.compile(r'[<>:"/\\|?*]')
# Reserved everywhere.
UNIVERSAL_INVALID_RE = re.compile(r"[/\x00]")
WHITESPACE_RE = re.compile(r"\s+")
EDGE_RE = re.compile(r"^[\s.]+|[\s.]+$")
CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
ALL_INVALID_RE = re.compile(r'[<>:"/\\|?*#\x00-\x1f\x7f]')


def _collapse_and_trim(value: str) -> str:
    value = WHITESPACE_RE.sub(" ", value)
    return EDGE_RE.sub("", value)


def sanitize_name(name: str | None) -> str:
    """Return a name fragment that is safe to use on every platform.

    The result never contains reserved or control characters, never starts
    or ends with a space or dot, and is never empty. Sanitizing an already
    sanitized name returns it unchanged.
    """
    if not name:
        return FALLBACK_NAME

    sanitized = SPACE_REPLACE_RE.sub(" ", name)
    sanitized = WINDOWS_INVALID_RE.sub(" ", sanitized)
    sanitized = UNIVERSAL_INVALID_RE.sub(" ", sanitized)
    sanitized = _collapse_and_trim(sanitized)

    stripped = CONTROL_RE.sub("", sanitized)
    if stripped != sanitized:
        # Removing a control character can expose new edge spaces or runs.
        stripped = _collapse_and_trim(stripped)

    return stripped or FALLBACK_NAME


# Folder names follow the same rules as file names.
sanitize_folder_name = sanitize_name


def find_invalid_characters(name: str | None) -> list[str]:
    """List the distinct characters of ``name`` that sanitization would replace or drop."""
    if not name:
        return []

    found: list[str] = []
    for match in ALL_INVALID_RE.finditer(name):
        char = match.group(0)
        if char not in found:
            found.append(char)
    return found


def is_valid_name(name: str | None) -> bool:
    if not name:
        return False
    return not find_invalid_characters(name)
