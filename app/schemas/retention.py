"""
Schemas for admin retention endpoints.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models import RetentionMode

# -----------------------------------------------------------------------------
# Policy
# -----------------------------------------------------------------------------


class RetentionPolicySchema(BaseModel):
    """Retention policy as read and written by the admin surface."""

    enabled: bool = Field(False, description="Master switch for the retention job")
    retention_days: int = Field(0, ge=0, description="Datasets older than this are eligible (0 = not configured)")
    mode: RetentionMode = Field(RetentionMode.DELETE, description="delete: remove; archive: copy to *_archive first")
    delete_files: bool = Field(True, description="Also remove uploaded files from disk")
    interval_hours: int = Field(24, ge=1, description="Advisory cadence for the external scheduler")


class RetentionPolicyResponse(BaseModel):
    """Wrapper returned by GET/PUT policy."""

    config: RetentionPolicySchema


# -----------------------------------------------------------------------------
# Run
# -----------------------------------------------------------------------------


class RetentionRunRequest(BaseModel):
    """Request to trigger a retention run."""

    dry_run: bool = Field(False, description="Preview only, don't archive or delete")
    confirm: bool = Field(False, description="Required confirmation for non-dry-run")


class RetentionRunResponse(BaseModel):
    """Retention run summary."""

    enabled: bool
    dry_run: bool
    mode: RetentionMode
    cutoff: datetime | None = None
    skipped_reason: str | None = None
    files_found: int = 0
    files_archived: int = 0
    files_deleted: int = 0
    rows_archived: int = 0
    columns_archived: int = 0
    quality_archived: int = 0
    profiles_archived: int = 0
    disk_files_deleted: int = 0
    related_records_deleted: dict[str, int] = Field(default_factory=dict)
