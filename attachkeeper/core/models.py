"""Domain models shared by the scanner, rewriter, ingester and validator."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from attachkeeper.sources.vault.store import VaultFile
from attachkeeper.utils.paths import dirname, split_extension

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset(
    {"png", "jpg", "jpeg", "gif", "webp", "svg", "bmp", "apng", "avif", "ico", "tif", "tiff"}
)


class DocumentKind(str, Enum):
    """Source format of a text-bearing document."""

    NOTE = "note"
    GRAPH = "graph"


DOCUMENT_EXTENSIONS: dict[str, DocumentKind] = {
    "md": DocumentKind.NOTE,
    "canvas": DocumentKind.GRAPH,
}


def document_kind(file: VaultFile) -> DocumentKind | None:
    return DOCUMENT_EXTENSIONS.get(file.extension)


class ReferenceKind(str, Enum):
    INLINE_LINK = "inline-link"
    WIKI_LINK = "wiki-link"
    GRAPH_NODE = "graph-node"


class IssueKind(str, Enum):
    MISSING = "missing"
    NAME_MISMATCH = "name_mismatch"
    INVALID_CHARS = "invalid_chars"


@dataclass
class NoteDocument:
    """A note or graph document together with its current body.

    Graph documents carry the parsed JSON structure in ``graph``; it is None
    when the body is not valid graph JSON, in which case the document is
    treated as having no references and is never rewritten.
    """

    file: VaultFile
    kind: DocumentKind
    body: str
    graph: dict[str, Any] | None = None

    @classmethod
    def from_content(cls, file: VaultFile, content: str) -> "NoteDocument":
        kind = document_kind(file)
        if kind is None:
            raise ValueError(f"Not a note or graph document: {file.path}")
        graph = parse_graph(content, file.path) if kind is DocumentKind.GRAPH else None
        return cls(file=file, kind=kind, body=content, graph=graph)

    @property
    def path(self) -> str:
        return self.file.path

    @property
    def basename(self) -> str:
        return self.file.basename

    @property
    def directory(self) -> str:
        return dirname(self.file.path)

    @property
    def is_graph(self) -> bool:
        return self.kind is DocumentKind.GRAPH

    def graph_nodes(self) -> list[dict[str, Any]]:
        if not self.graph:
            return []
        nodes = self.graph.get("nodes")
        if not isinstance(nodes, list):
            return []
        return [node for node in nodes if isinstance(node, dict)]

    def serialize_graph(self) -> str:
        return serialize_graph(self.graph or {})


def parse_graph(content: str, path: str = "") -> dict[str, Any] | None:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.warning(f"Unparsable graph document {path}: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Graph document {path} is not a JSON object")
        return None
    return data


def serialize_graph(data: dict[str, Any]) -> str:
    return json.dumps(data, indent="\t", ensure_ascii=False)


@dataclass
class Reference:
    """A located link occurrence inside a document body.

    ``start``/``end`` are character offsets into the body for note documents
    and None for graph nodes, which are rewritten through ``node``.
    """

    kind: ReferenceKind
    raw_match: str
    display_text: str
    target: str
    resolved_path: str | None = None
    start: int | None = None
    end: int | None = None
    embed: bool = False
    node: dict[str, Any] | None = field(default=None, repr=False, compare=False)
    node_field: str | None = None
    is_remote: bool = False
    title: str = ""

    @property
    def is_resolved(self) -> bool:
        return self.resolved_path is not None

    @property
    def is_image(self) -> bool:
        candidate = self.resolved_path or self.target
        _, ext = split_extension(candidate.rsplit("/", 1)[-1].split("?", 1)[0])
        return ext.lower() in IMAGE_EXTENSIONS


@dataclass
class ValidationIssue:
    note: VaultFile
    expected_folder_path: str
    actual_folder_path: str | None
    kind: IssueKind
    invalid_chars: list[str] = field(default_factory=list)
    image_references: list[Reference] = field(default_factory=list)


@dataclass
class ValidationSummary:
    missing: int = 0
    name_mismatch: int = 0
    invalid_chars: int = 0

    @property
    def total(self) -> int:
        return self.missing + self.name_mismatch + self.invalid_chars


@dataclass
class FileStatistics:
    total: int = 0
    with_image_references: int = 0
    without_image_references: int = 0
    with_attachments: int = 0
    without_attachments: int = 0


@dataclass
class ReferenceStatistics:
    total: int = 0
    resolved: int = 0
    unresolved: int = 0
    inline: int = 0
    wiki: int = 0
    graph: int = 0


@dataclass
class FolderStatistics:
    expected: int = 0
    existing: int = 0
    missing: int = 0
    correctly_named: int = 0
    incorrectly_named: int = 0


@dataclass
class ValidationStatistics:
    files: FileStatistics = field(default_factory=FileStatistics)
    image_references: ReferenceStatistics = field(default_factory=ReferenceStatistics)
    attachment_folders: FolderStatistics = field(default_factory=FolderStatistics)
    issues: ValidationSummary = field(default_factory=ValidationSummary)


@dataclass
class ValidationResult:
    """Snapshot of the vault's attachment layout. Re-validate after fixing."""

    total_files: int
    issues: list[ValidationIssue]
    summary: ValidationSummary
    statistics: ValidationStatistics = field(default_factory=ValidationStatistics)

    def issues_of(self, kind: IssueKind) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.kind is kind]


@dataclass
class FixResult:
    fixed: int = 0
    failed: int = 0
    skipped: int = 0
    moved_images: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class RewriteResult:
    references: int = 0
    documents: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


@dataclass
class IngestResult:
    new_body: str
    replaced_count: int = 0
    failed_count: int = 0
    files: list[str] = field(default_factory=list)
    skipped: bool = False

    @property
    def attempted(self) -> int:
        return self.replaced_count + self.failed_count
