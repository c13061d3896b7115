"""Keeps references in every document pointing at an attachment after it moves."""

import logging

from attachkeeper.core.models import (
    DOCUMENT_EXTENSIONS,
    NoteDocument,
    Reference,
    ReferenceKind,
    RewriteResult,
)
from attachkeeper.core.references import ReferenceScanner, force_image_link, with_link_title
from attachkeeper.sources.vault.links import LinkGenerator
from attachkeeper.sources.vault.store import VaultFile, VaultStore
from attachkeeper.utils.paths import normalize_path

logger = logging.getLogger(__name__)


def apply_substitutions(body: str, substitutions: list[tuple[int, int, str]]) -> str:
    """Replace ``body[start:end]`` spans in one pass; spans must not overlap."""
    if not substitutions:
        return body
    pieces: list[str] = []
    cursor = 0
    for start, end, text in sorted(substitutions, key=lambda item: item[0]):
        pieces.append(body[cursor:start])
        pieces.append(text)
        cursor = end
    pieces.append(body[cursor:])
    return "".join(pieces)


class ReferenceRewriter:
    """
    Rewrites references to a moved file across the whole vault.

    Documents are processed one after another. The operation is not
    transactional: a document that fails is logged and skipped, documents
    before it stay rewritten. A document is only written when at least one
    of its references changed.
    """

    def __init__(self, store: VaultStore, scanner: ReferenceScanner, links: LinkGenerator):
        self.store = store
        self.scanner = scanner
        self.links = links

    async def rewrite_references_to(self, old_path: str, new_file: VaultFile) -> int:
        """Rewrite every reference resolving to ``old_path``; returns how many changed."""
        result = await self.rewrite_references(old_path, new_file)
        return result.references

    async def rewrite_references(self, old_path: str, new_file: VaultFile) -> RewriteResult:
        old_path = normalize_path(old_path)
        result = RewriteResult()
        if old_path == new_file.path:
            return result

        documents = await self.store.list_documents(frozenset(DOCUMENT_EXTENSIONS))
        for file in documents:
            try:
                document = await self.scanner.load(file)
                new_body, count = await self.rewrite_document(document, old_path, new_file)
                if new_body is None:
                    continue
                await self.store.write(file.path, new_body)
                result.references += count
                result.documents.append(file.path)
                logger.info(f"Updated {count} reference(s) in {file.path}")
            except Exception as e:
                logger.error(f"Failed to update references in {file.path}: {e}")
                result.failed.append(file.path)

        return result

    async def rewrite_document(
        self,
        document: NoteDocument,
        old_path: str,
        new_file: VaultFile,
    ) -> tuple[str | None, int]:
        """
        Compute the rewritten body of one document.

        Returns:
            (new body, number of references rewritten); the body is None when
            nothing referenced ``old_path``
        """
        if document.is_graph and document.graph is None:
            # Unparsable graph JSON is left untouched.
            return None, 0

        references = await self.scanner.scan(document, assume_exists=[old_path])
        matching = [ref for ref in references if ref.resolved_path == old_path]
        if not matching:
            return None, 0

        if document.is_graph:
            for reference in matching:
                reference.node[reference.node_field] = new_file.path
            return document.serialize_graph(), len(matching)

        substitutions: list[tuple[int, int, str]] = []
        for reference in matching:
            replacement = await self._replacement_for(reference, document, new_file)
            substitutions.append((reference.start, reference.end, replacement))
        return apply_substitutions(document.body, substitutions), len(matching)

    async def _replacement_for(self, reference: Reference, document: NoteDocument, new_file: VaultFile) -> str:
        if reference.kind is ReferenceKind.INLINE_LINK:
            link = await self.links.generate_link_text(
                new_file, document.path, display_text=reference.display_text
            )
            return with_link_title(force_image_link(link, reference.display_text), reference.title)

        target = await self.links.link_path(new_file, document.path, wiki=True)
        _, hash_mark, subpath = reference.target.partition("#")
        if hash_mark:
            target = f"{target}#{subpath}"
        prefix = "!" if reference.embed else ""
        if "|" in reference.raw_match:
            return f"{prefix}[[{target}|{reference.display_text}]]"
        return f"{prefix}[[{target}]]"
