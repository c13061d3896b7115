"""Vault-wide attachment folder validation and repair."""

import asyncio
import logging
from typing import Awaitable, Callable

from attachkeeper.core.config import AttachmentsConfig
from attachkeeper.core.errors import VaultConflictError, VaultError
from attachkeeper.core.models import (
    DOCUMENT_EXTENSIONS,
    FixResult,
    IssueKind,
    Reference,
    ReferenceKind,
    ValidationIssue,
    ValidationResult,
    ValidationStatistics,
    ValidationSummary,
    document_kind,
)
from attachkeeper.core.references import ReferenceScanner
from attachkeeper.core.rewrite import ReferenceRewriter
from attachkeeper.sources.vault.store import VaultFile, VaultFolder, VaultStore
from attachkeeper.utils.naming import NameResolver
from attachkeeper.utils.paths import PathResolver, basename, dirname, is_within
from attachkeeper.utils.sanitize import find_invalid_characters, sanitize_name

logger = logging.getLogger(__name__)

# Called with (image, default base name); returns the chosen base name, or
# None to keep the default.
RenamePrompt = Callable[[VaultFile, str], Awaitable[str | None]]


def image_references(references: list[Reference]) -> list[Reference]:
    return [ref for ref in references if not ref.is_remote and ref.is_image]


class ConsistencyValidator:
    """
    Checks every note/graph document against its canonical attachment folder
    and repairs what can be repaired.

    Issue kinds:

    - ``missing``: neither the canonical folder nor a stray folder exists
    - ``name_mismatch``: the note's attachments live in a folder with a
      different (stray) name, e.g. left over from before a rename
    - ``invalid_chars``: the note name itself contains characters the
      sanitizer replaces; informational only
    """

    def __init__(
        self,
        store: VaultStore,
        scanner: ReferenceScanner,
        rewriter: ReferenceRewriter,
        path_resolver: PathResolver,
        name_resolver: NameResolver,
        settings: AttachmentsConfig,
        rename_prompt: RenamePrompt | None = None,
    ):
        self.store = store
        self.scanner = scanner
        self.rewriter = rewriter
        self.path_resolver = path_resolver
        self.name_resolver = name_resolver
        self.settings = settings
        self.rename_prompt = rename_prompt
        # Serializes repair batches; collision checks are check-then-act.
        self._fix_lock = asyncio.Lock()

    async def validate(self) -> ValidationResult:
        documents = await self.store.list_documents(frozenset(DOCUMENT_EXTENSIONS))
        issues: list[ValidationIssue] = []
        stats = ValidationStatistics()
        stats.files.total = len(documents)

        for file in documents:
            try:
                document = await self.scanner.load(file)
            except VaultError as e:
                logger.warning(f"Failed to read file {file.path}: {e}")
                continue

            references = await self.scanner.scan(document)
            images = image_references(references)
            self._count_references(stats, images)

            expected = self.path_resolver.attachment_folder_for(file)
            actual = expected if await self.store.get_folder(expected) is not None else None
            stray = None
            if actual is None:
                stray = await self.find_stray_folder(file, images, expected)

            if images:
                stats.files.with_image_references += 1
                stats.attachment_folders.expected += 1
                if actual or stray:
                    stats.attachment_folders.existing += 1
                    stats.files.with_attachments += 1
                    if actual:
                        stats.attachment_folders.correctly_named += 1
                    else:
                        stats.attachment_folders.incorrectly_named += 1
                else:
                    stats.attachment_folders.missing += 1
            else:
                stats.files.without_image_references += 1

            if images or self.settings.validate_notes_without_images:
                if stray is not None:
                    issues.append(
                        ValidationIssue(
                            note=file,
                            expected_folder_path=expected,
                            actual_folder_path=stray,
                            kind=IssueKind.NAME_MISMATCH,
                            image_references=images,
                        )
                    )
                elif actual is None:
                    issues.append(
                        ValidationIssue(
                            note=file,
                            expected_folder_path=expected,
                            actual_folder_path=None,
                            kind=IssueKind.MISSING,
                            image_references=images,
                        )
                    )

            invalid_chars = find_invalid_characters(file.basename)
            if invalid_chars:
                issues.append(
                    ValidationIssue(
                        note=file,
                        expected_folder_path=expected,
                        actual_folder_path=actual or stray,
                        kind=IssueKind.INVALID_CHARS,
                        invalid_chars=invalid_chars,
                        image_references=images,
                    )
                )

        stats.files.without_attachments = stats.files.with_image_references - stats.files.with_attachments

        summary = ValidationSummary(
            missing=sum(1 for issue in issues if issue.kind is IssueKind.MISSING),
            name_mismatch=sum(1 for issue in issues if issue.kind is IssueKind.NAME_MISMATCH),
            invalid_chars=sum(1 for issue in issues if issue.kind is IssueKind.INVALID_CHARS),
        )
        stats.issues = summary

        logger.info(
            f"Checked {len(documents)} file(s): {summary.missing} missing, "
            f"{summary.name_mismatch} mismatched, {summary.invalid_chars} with invalid characters"
        )
        return ValidationResult(
            total_files=len(documents),
            issues=issues,
            summary=summary,
            statistics=stats,
        )

    @staticmethod
    def _count_references(stats: ValidationStatistics, images: list[Reference]) -> None:
        counts = stats.image_references
        counts.total += len(images)
        for ref in images:
            if ref.is_resolved:
                counts.resolved += 1
            else:
                counts.unresolved += 1
            if ref.kind is ReferenceKind.INLINE_LINK:
                counts.inline += 1
            elif ref.kind is ReferenceKind.WIKI_LINK:
                counts.wiki += 1
            else:
                counts.graph += 1

    async def find_stray_folder(
        self,
        note: VaultFile,
        images: list[Reference],
        expected: str,
    ) -> str | None:
        """
        Locate an attachment folder next to ``note`` that belongs to it but
        does not have the canonical name.

        A folder belongs to the note when reversing the naming rule on its
        name yields the note's name, or when it holds images the note
        references. Either way no other document in the folder may claim it.
        """
        note_dir = dirname(note.path)
        children = await self.store.list_children("" if note_dir == "." else note_dir)
        folders = [child for child in children if isinstance(child, VaultFolder) and child.path != expected]

        for folder in folders:
            if not self.path_resolver.owns_folder(note.basename, folder.name):
                continue
            if await self._claimed_by_other_document(folder.path, note, children):
                continue
            return folder.path

        for ref in images:
            if not ref.resolved_path:
                continue
            parent = dirname(ref.resolved_path)
            if parent == expected or dirname(parent) != note_dir:
                continue
            if not self.path_resolver.is_attachment_folder_name(basename(parent)):
                continue
            if await self._claimed_by_other_document(parent, note, children):
                continue
            return parent

        return None

    async def _claimed_by_other_document(self, folder_path: str, note: VaultFile, siblings) -> bool:
        folder_name = basename(folder_path)
        for entry in siblings:
            if not isinstance(entry, VaultFile) or entry.path == note.path:
                continue
            if document_kind(entry) is None:
                continue
            if self.path_resolver.attachment_folder_for(entry) == folder_path:
                return True
            if self.path_resolver.owns_folder(entry.basename, folder_name):
                return True
        return False

    async def fix_all(self, issues: list[ValidationIssue]) -> FixResult:
        """
        Repair ``missing`` and ``name_mismatch`` issues one at a time.

        A failing issue is counted and logged; the remaining issues are still
        processed. ``invalid_chars`` issues are skipped. Run :meth:`validate`
        again to see the resulting state.
        """
        result = FixResult()
        async with self._fix_lock:
            for issue in issues:
                if issue.kind is IssueKind.INVALID_CHARS:
                    result.skipped += 1
                    continue
                try:
                    if issue.kind is IssueKind.MISSING:
                        result.moved_images += await self._fix_missing(issue)
                    else:
                        result.moved_images += await self._fix_name_mismatch(issue)
                    result.fixed += 1
                except Exception as e:
                    logger.error(f"Failed to fix issue for {issue.note.path}: {e}")
                    result.failed += 1
                    result.errors.append(f"{issue.note.path}: {e}")

        logger.info(f"Fixed {result.fixed} issue(s), {result.failed} failed")
        return result

    async def _fix_missing(self, issue: ValidationIssue) -> int:
        folder = issue.expected_folder_path
        await self.store.ensure_folder(folder)
        return await self.migrate_images(issue.note, folder)

    async def _fix_name_mismatch(self, issue: ValidationIssue) -> int:
        actual = issue.actual_folder_path
        expected = issue.expected_folder_path
        if not actual:
            raise VaultError(f"No actual folder recorded for {issue.note.path}")
        if await self.store.exists(expected):
            raise VaultConflictError(expected)

        moved_files = await self.store.list_files_under(actual)
        await self.store.rename(actual, expected)
        for file in moved_files:
            new_path = expected + file.path[len(actual):]
            await self.rewriter.rewrite_references(file.path, VaultFile(new_path))

        return await self.migrate_images(issue.note, expected)

    async def migrate_images(self, note: VaultFile, folder: str) -> int:
        """
        Move every image ``note`` references into ``folder`` under a fresh
        canonical name and rewrite references to it.

        Returns:
            Number of images moved
        """
        document = await self.scanner.load(note)
        references = image_references(await self.scanner.scan(document))

        pending: list[str] = []
        for ref in references:
            path = ref.resolved_path
            if path and not is_within(path, folder) and path not in pending:
                pending.append(path)

        timestamps = self.name_resolver.batch_timestamps()
        moved = 0
        for path in pending:
            image = VaultFile(path)
            name = self.name_resolver.base_name_for(note.basename, next(timestamps))
            if self.settings.prompt_rename_image and self.rename_prompt is not None:
                chosen = await self.rename_prompt(image, name)
                if chosen and chosen.strip():
                    name = sanitize_name(chosen.strip())

            target = await self.store.free_path(folder, name, image.extension)
            await self.store.rename(image.path, target)
            await self.rewriter.rewrite_references(image.path, VaultFile(target))
            moved += 1
            logger.info(f"Moved {image.path} -> {target}")
        return moved
