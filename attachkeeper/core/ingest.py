"""Download remote images referenced by a document into its attachment folder."""

import asyncio
import logging
from contextlib import contextmanager
from typing import Iterator

from attachkeeper.core.errors import DocumentReadError, VaultError
from attachkeeper.core.models import IngestResult, NoteDocument, Reference, ReferenceKind
from attachkeeper.core.references import (
    ReferenceScanner,
    force_image_link,
    is_remote_url,
    parse_references,
    with_link_title,
)
from attachkeeper.core.rewrite import apply_substitutions
from attachkeeper.sources.remote.downloader import RemoteImageDownloader
from attachkeeper.sources.vault.links import LinkGenerator
from attachkeeper.sources.vault.store import VaultFile, VaultStore
from attachkeeper.utils.naming import NameResolver
from attachkeeper.utils.paths import PathResolver, join

logger = logging.getLogger(__name__)


class InFlightGuard:
    """Tracks which notes currently have an operation running.

    A second request for the same note while the first is still running is
    skipped rather than queued.
    """

    def __init__(self):
        self._active: set[str] = set()

    def is_active(self, key: str) -> bool:
        return key in self._active

    @contextmanager
    def claim(self, key: str) -> Iterator[bool]:
        if key in self._active:
            yield False
            return
        self._active.add(key)
        try:
            yield True
        finally:
            self._active.discard(key)


def remote_image_references(document: NoteDocument) -> list[Reference]:
    """References the ingester would try to download, in body order."""
    candidates = []
    for reference in parse_references(document):
        if not reference.is_remote:
            continue
        if reference.kind is ReferenceKind.WIKI_LINK:
            continue
        if reference.kind is ReferenceKind.GRAPH_NODE and reference.node_field != "url":
            continue
        candidates.append(reference)
    return candidates


class RemoteImageIngester:
    """
    Replaces remote image links in a document with local copies.

    All downloads of one document run concurrently. Each download gets its
    own virtual timestamp (one minute apart) before any request starts, so
    file names are unique and ordered no matter which response arrives first.
    Results are applied in scan order.
    """

    def __init__(
        self,
        store: VaultStore,
        scanner: ReferenceScanner,
        links: LinkGenerator,
        path_resolver: PathResolver,
        name_resolver: NameResolver,
        downloader: RemoteImageDownloader,
        settle_delay: float = 0.1,
    ):
        self.store = store
        self.scanner = scanner
        self.links = links
        self.path_resolver = path_resolver
        self.name_resolver = name_resolver
        self.downloader = downloader
        self.settle_delay = settle_delay
        self.guard = InFlightGuard()

    async def ingest_file(self, file: VaultFile) -> IngestResult:
        """
        Download remote images for a stored document and write it back.

        Raises:
            DocumentReadError: If the document cannot be read at all
        """
        with self.guard.claim(file.path) as acquired:
            if not acquired:
                logger.info(f"Remote image download already running for {file.path}, skipping")
                return IngestResult(new_body="", skipped=True)

            try:
                document = await self.scanner.load(file)
            except VaultError as e:
                raise DocumentReadError(file.path, str(e)) from e

            result = await self.ingest(document)
            if result.new_body != document.body:
                await self.store.write(file.path, result.new_body)
                logger.info(f"Replaced {result.replaced_count} remote image(s) in {file.path}")
            elif result.attempted == 0:
                logger.info(f"No remote images found in {file.path}")
            return result

    async def ingest(self, document: NoteDocument) -> IngestResult:
        """Download every remote image of ``document`` and return the rewritten body."""
        if document.is_graph and document.graph is None:
            return IngestResult(new_body=document.body)

        references = remote_image_references(document)
        if not references:
            return IngestResult(new_body=document.body)

        folder = self.path_resolver.attachment_folder_for(document.file)
        await self.store.ensure_folder(folder)

        timestamps = self.name_resolver.batch_timestamps()
        targets = [
            join(folder, self.name_resolver.base_name_for(document.basename, next(timestamps)))
            for _ in references
        ]
        logger.info(f"Found {len(references)} remote image(s) in {document.path}")

        downloaded = await asyncio.gather(
            *(
                self._download_to(reference.target.strip(), target)
                for reference, target in zip(references, targets)
            )
        )

        result = IngestResult(new_body=document.body)
        substitutions: list[tuple[int, int, str]] = []
        for reference, file in zip(references, downloaded):
            if file is None:
                result.failed_count += 1
                continue
            result.replaced_count += 1
            result.files.append(file.path)
            if document.is_graph:
                node = reference.node
                node["type"] = "file"
                node.pop("url", None)
                node["file"] = file.path
            else:
                link = await self.links.generate_link_text(
                    file, document.path, display_text=reference.display_text
                )
                link = with_link_title(force_image_link(link, reference.display_text), reference.title)
                substitutions.append((reference.start, reference.end, link))

        if result.replaced_count:
            if document.is_graph:
                result.new_body = document.serialize_graph()
            else:
                result.new_body = apply_substitutions(document.body, substitutions)

        logger.info(
            f"Replaced {result.replaced_count} of {len(references)} remote image(s) in {document.path}"
        )
        return result

    async def _download_to(self, url: str, image_path: str) -> VaultFile | None:
        """Download one image to ``image_path`` + extension; None on any failure."""
        if not is_remote_url(url):
            logger.warning(f"Skipping non-URL link: {url}")
            return None
        try:
            image = await self.downloader.download(url)
            full_path = f"{image_path}.{image.extension}"

            if await self.store.get_file(full_path) is not None:
                logger.debug(f"File already exists, replacing: {full_path}")
                await self.store.delete(full_path)
                await asyncio.sleep(self.settle_delay)

            file = await self.store.write_binary(full_path, image.content)
            logger.debug(f"Downloaded {url} -> {file.path}")
            return file
        except Exception as e:
            logger.warning(f"Failed to download {url}: {e}")
            return None
