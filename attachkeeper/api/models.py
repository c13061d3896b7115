"""Pydantic models for API request/response validation."""

from typing import Any

from pydantic import BaseModel, Field

from attachkeeper.core.models import IssueKind, ValidationIssue


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = "healthy"
    timestamp: str
    vault: str | None = None


class VersionResponse(BaseModel):
    """Response model for version information."""

    version: str
    python_version: str


class ValidationIssueResponse(BaseModel):
    note: str
    kind: IssueKind
    expected_folder_path: str
    actual_folder_path: str | None = None
    invalid_chars: list[str] = Field(default_factory=list)
    image_references: int = 0

    @classmethod
    def from_issue(cls, issue: ValidationIssue) -> "ValidationIssueResponse":
        return cls(
            note=issue.note.path,
            kind=issue.kind,
            expected_folder_path=issue.expected_folder_path,
            actual_folder_path=issue.actual_folder_path,
            invalid_chars=issue.invalid_chars,
            image_references=len(issue.image_references),
        )


class ValidationSummaryResponse(BaseModel):
    missing: int = 0
    name_mismatch: int = 0
    invalid_chars: int = 0
    total: int = 0


class ValidationResponse(BaseModel):
    """Result of a vault-wide attachment folder check."""

    total_files: int
    summary: ValidationSummaryResponse
    issues: list[ValidationIssueResponse] = Field(default_factory=list)
    statistics: dict[str, Any] = Field(default_factory=dict)


class FixResponse(BaseModel):
    """Result of repairing the issues found by a check."""

    fixed: int = 0
    failed: int = 0
    skipped: int = 0
    moved_images: int = 0
    errors: list[str] = Field(default_factory=list)
    remaining: ValidationSummaryResponse | None = None


class DownloadRequest(BaseModel):
    note: str = Field(..., description="Vault-relative path of the note or graph document")


class DownloadResponse(BaseModel):
    replaced_count: int = 0
    failed_count: int = 0
    files: list[str] = Field(default_factory=list)
    skipped: bool = False


class RenameNoteRequest(BaseModel):
    old_path: str
    new_path: str


class RenameNoteResponse(BaseModel):
    path: str
    attachment_folder: str | None = None


class EmptyFoldersResponse(BaseModel):
    folders: list[str] = Field(default_factory=list)
