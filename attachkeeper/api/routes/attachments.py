"""Attachment folder validation, repair and download endpoints."""

import dataclasses
import logging

from fastapi import APIRouter

from attachkeeper.api.dependencies import ServiceDep
from attachkeeper.api.models import (
    DownloadRequest,
    DownloadResponse,
    EmptyFoldersResponse,
    FixResponse,
    RenameNoteRequest,
    RenameNoteResponse,
    ValidationIssueResponse,
    ValidationResponse,
    ValidationSummaryResponse,
)
from attachkeeper.core.models import ValidationSummary
from attachkeeper.utils.paths import normalize_path

logger = logging.getLogger(__name__)

router = APIRouter()


def _summary(summary: ValidationSummary) -> ValidationSummaryResponse:
    return ValidationSummaryResponse(
        missing=summary.missing,
        name_mismatch=summary.name_mismatch,
        invalid_chars=summary.invalid_chars,
        total=summary.total,
    )


@router.get("/validate", response_model=ValidationResponse)
async def validate(service: ServiceDep):
    """Check every note and graph document against its attachment folder."""
    result = await service.validate()
    return ValidationResponse(
        total_files=result.total_files,
        summary=_summary(result.summary),
        issues=[ValidationIssueResponse.from_issue(issue) for issue in result.issues],
        statistics=dataclasses.asdict(result.statistics),
    )


@router.post("/fix", response_model=FixResponse)
async def fix(service: ServiceDep):
    """Validate, repair what can be repaired, and report what is left."""
    result = await service.validate()
    fix_result = await service.fix_all(result)
    remaining = await service.validate()
    return FixResponse(
        fixed=fix_result.fixed,
        failed=fix_result.failed,
        skipped=fix_result.skipped,
        moved_images=fix_result.moved_images,
        errors=fix_result.errors,
        remaining=_summary(remaining.summary),
    )


@router.post("/download", response_model=DownloadResponse)
async def download(request: DownloadRequest, service: ServiceDep):
    """Download remote images of one document into its attachment folder."""
    result = await service.download_remote_images(request.note)
    return DownloadResponse(
        replaced_count=result.replaced_count,
        failed_count=result.failed_count,
        files=result.files,
        skipped=result.skipped,
    )


@router.post("/rename-note", response_model=RenameNoteResponse)
async def rename_note(request: RenameNoteRequest, service: ServiceDep):
    """Rename a note; its attachment folder and references follow."""
    folder = await service.rename_note(request.old_path, request.new_path)
    return RenameNoteResponse(path=normalize_path(request.new_path), attachment_folder=folder)


@router.get("/empty-folders", response_model=EmptyFoldersResponse)
async def empty_folders(service: ServiceDep):
    """List attachment folders that contain nothing."""
    folders = await service.find_empty_attachment_folders()
    return EmptyFoldersResponse(folders=[folder.path for folder in folders])
