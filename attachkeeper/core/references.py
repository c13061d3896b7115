"""Locating and resolving attachment references inside documents.

Note documents are scanned with two independent patterns:

- inline links ``![alt](target)``; the target runs to the first unescaped
  closing parenthesis
- wiki links ``[[target]]`` / ``[[target|alt]]``, optionally embedded with ``!``

An inline target may be wrapped in ``<...>`` and followed by a quoted title.
Links inside fenced code blocks and inline code spans are not references.

Graph documents are JSON; ``file`` nodes contribute their ``file`` field and
``link`` nodes their ``url`` field.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable
from urllib.parse import unquote, urlsplit

from attachkeeper.core.errors import VaultError
from attachkeeper.core.models import DocumentKind, NoteDocument, Reference, ReferenceKind
from attachkeeper.sources.vault.store import VaultFile, VaultStore
from attachkeeper.utils.paths import normalize_path, resolve_relative

logger = logging.getLogger(__name__)

INLINE_LINK_RE = re.compile(r"!\[(?P<alt>[^\]\n]*)\]\((?P<target>(?:\\.|[^)\\\n])+)\)")
WIKI_LINK_RE = re.compile(r"(?P<embed>!?)\[\[(?P<body>[^\[\]\n]+)\]\]")
URL_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
_LINK_DESTINATION_RE = re.compile(
    r"""^(?:<(?P<angle>[^<>\n]*)>|(?P<bare>\S+))(?:\s+(?P<title>"[^"]*"|'[^']*'))?$"""
)
FENCED_CODE_RE = re.compile(r"^[ \t]*(?P<fence>`{3,}|~{3,})[^\n]*\n.*?(?:^[ \t]*(?P=fence)[ \t]*$|\Z)", re.M | re.S)
INLINE_CODE_RE = re.compile(r"(?<!`)(?P<ticks>`+)(?!`).+?(?<!`)(?P=ticks)(?!`)")


def is_remote_url(target: str) -> bool:
    """Whether ``target`` is an absolute URI such as ``https://host/a.png``."""
    candidate = (target or "").strip()
    if not URL_SCHEME_RE.match(candidate):
        return False
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return False
    return bool(parts.scheme)


def is_http_url(target: str) -> bool:
    if not is_remote_url(target):
        return False
    parts = urlsplit(target.strip())
    return parts.scheme.lower() in ("http", "https") and bool(parts.netloc)


def split_link_destination(literal: str) -> tuple[str, str]:
    """Split an inline link's parenthesized part into (destination, title).

    ``<my image.png> "Shot"`` gives ``("my image.png", '"Shot"')``. The title
    keeps its quotes; it is empty when the link has none.
    """
    literal = literal.strip()
    match = _LINK_DESTINATION_RE.match(literal)
    if match is None:
        return literal, ""
    destination = match.group("angle") if match.group("angle") is not None else match.group("bare")
    return destination.strip(), match.group("title") or ""


def with_link_title(link_text: str, title: str) -> str:
    """Put ``title`` back into a generated markdown link; wiki links have no title."""
    if not title or not link_text.endswith(")"):
        return link_text
    return f"{link_text[:-1]} {title})"


def code_spans(body: str) -> list[tuple[int, int]]:
    """Offsets of fenced code blocks and inline code spans."""
    fences = [match.span() for match in FENCED_CODE_RE.finditer(body)]
    spans = list(fences)
    for match in INLINE_CODE_RE.finditer(body):
        if not _overlaps(match.span(), fences):
            spans.append(match.span())
    return sorted(spans)


def _overlaps(span: tuple[int, int], spans: list[tuple[int, int]]) -> bool:
    return any(start < span[1] and span[0] < end for start, end in spans)


def clean_target(literal: str) -> str:
    """Strip link decoration so the literal can be looked up in the vault."""
    target, _ = split_link_destination(literal)
    target = target.split("#", 1)[0].split("?", 1)[0]
    target = target.replace("\\(", "(").replace("\\)", ")")
    return unquote(target).strip()


def force_image_link(link_text: str, alt: str = "") -> str:
    """Turn generated link text into an image embed."""
    if link_text.startswith("!"):
        return link_text
    if link_text.startswith("["):
        return "!" + link_text
    return f"![{alt}]({link_text})"


def parse_note_references(body: str) -> list[Reference]:
    """References of a note body in body order; code blocks and spans are skipped."""
    code = code_spans(body)
    inline: list[Reference] = []
    for match in INLINE_LINK_RE.finditer(body):
        if _overlaps(match.span(), code):
            continue
        target, title = split_link_destination(match.group("target"))
        inline.append(
            Reference(
                kind=ReferenceKind.INLINE_LINK,
                raw_match=match.group(0),
                display_text=match.group("alt"),
                target=target,
                title=title,
                start=match.start(),
                end=match.end(),
                embed=True,
                is_remote=is_remote_url(target),
            )
        )

    taken = code + [(ref.start, ref.end) for ref in inline]
    wiki: list[Reference] = []
    for match in WIKI_LINK_RE.finditer(body):
        if _overlaps(match.span(), taken):
            continue
        target, _, alt = match.group("body").partition("|")
        wiki.append(
            Reference(
                kind=ReferenceKind.WIKI_LINK,
                raw_match=match.group(0),
                display_text=alt,
                target=target.strip(),
                start=match.start(),
                end=match.end(),
                embed=bool(match.group("embed")),
                is_remote=is_remote_url(target),
            )
        )

    return sorted(inline + wiki, key=lambda ref: ref.start or 0)


def parse_graph_references(document: NoteDocument) -> list[Reference]:
    references: list[Reference] = []
    for node in document.graph_nodes():
        node_type = node.get("type")
        if node_type == "file" and isinstance(node.get("file"), str) and node["file"]:
            field_name = "file"
        elif node_type == "link" and isinstance(node.get("url"), str) and node["url"]:
            field_name = "url"
        else:
            continue
        target = node[field_name]
        references.append(
            Reference(
                kind=ReferenceKind.GRAPH_NODE,
                raw_match=target,
                display_text=str(node.get("text") or ""),
                target=target,
                embed=True,
                node=node,
                node_field=field_name,
                is_remote=is_remote_url(target),
            )
        )
    return references


def parse_references(document: NoteDocument) -> list[Reference]:
    """Unresolved references of a document, in body order."""
    if document.kind is DocumentKind.GRAPH:
        return parse_graph_references(document)
    return parse_note_references(document.body)


class ReferenceScanner:
    """Parses documents and resolves their references against the vault."""

    def __init__(self, store: VaultStore):
        self.store = store

    async def load(self, file: VaultFile) -> NoteDocument:
        content = await self.store.read(file.path)
        return NoteDocument.from_content(file, content)

    async def scan(
        self,
        document: NoteDocument,
        assume_exists: Iterable[str] = (),
    ) -> list[Reference]:
        """
        Locate every reference in ``document`` and resolve local targets.

        Args:
            document: Document to scan
            assume_exists: Store paths treated as existing files even if they
                           are gone, e.g. the old path of a file just moved

        Returns:
            References in body order; remote and dangling targets have
            ``resolved_path`` None
        """
        assumed = frozenset(normalize_path(path) for path in assume_exists)
        references = parse_references(document)
        for reference in references:
            if reference.is_remote:
                continue
            reference.resolved_path = await self.resolve(
                reference.target,
                document,
                wiki=reference.kind is ReferenceKind.WIKI_LINK,
                assume_exists=assumed,
            )
        return references

    async def resolve(
        self,
        literal: str,
        document: NoteDocument,
        *,
        wiki: bool = False,
        assume_exists: frozenset[str] = frozenset(),
    ) -> str | None:
        if is_remote_url(literal):
            return None
        target = clean_target(literal)
        if not target:
            return None

        candidates: list[str] = []
        for candidate in (
            normalize_path(target),
            resolve_relative(document.directory, target),
            normalize_path(f"./{target}"),
        ):
            if candidate and candidate not in candidates:
                candidates.append(candidate)
        if wiki:
            candidates += [f"{c}.md" for c in list(candidates) if not c.endswith(".md")]

        for candidate in candidates:
            if await self._file_exists(candidate, assume_exists):
                return candidate

        if "/" not in target:
            return await self._resolve_by_name(target, document, wiki=wiki, assume_exists=assume_exists)
        return None

    async def _file_exists(self, path: str, assume_exists: frozenset[str]) -> bool:
        if path in assume_exists:
            return True
        try:
            return await self.store.get_file(path) is not None
        except VaultError:
            return False

    async def _resolve_by_name(
        self,
        name: str,
        document: NoteDocument,
        *,
        wiki: bool,
        assume_exists: frozenset[str],
    ) -> str | None:
        names = [normalize_path(name)]
        if wiki and not names[0].endswith(".md"):
            names.append(f"{names[0]}.md")

        matches: list[str] = []
        for wanted in names:
            matches += [file.path for file in await self.store.find_files_by_name(wanted)]
            matches += [path for path in sorted(assume_exists) if path.rsplit("/", 1)[-1] == wanted]
        if not matches:
            return None

        # Prefer the candidate closest to the document.
        doc_dir = "" if document.directory == "." else document.directory
        local = [path for path in matches if path.rpartition("/")[0] == doc_dir]
        return (local or matches)[0]
