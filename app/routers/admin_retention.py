# app/routers/admin_retention.py
"""
Admin endpoints for dataset retention.

GET  /v1/admin/retention/policy  - Current retention policy
PUT  /v1/admin/retention/policy  - Save retention policy
POST /v1/admin/retention/run     - Trigger a retention run (or a dry run)
POST /v1/admin/retention/dry-run - Preview what a run would affect
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.auth import require_admin_key
from app.database import get_db
from app.schemas.retention import (
    RetentionPolicyResponse,
    RetentionPolicySchema,
    RetentionRunRequest,
    RetentionRunResponse,
)
from app.services.retention import (
    RetentionAlreadyRunningError,
    RetentionPolicy,
    RetentionRunResult,
    load_policy,
    run_retention,
    save_policy,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin/retention", tags=["admin-retention"])


def _policy_response(policy: RetentionPolicy) -> RetentionPolicyResponse:
    return RetentionPolicyResponse(config=RetentionPolicySchema(**policy.to_dict()))


def _run_response(result: RetentionRunResult) -> RetentionRunResponse:
    return RetentionRunResponse(
        enabled=result.enabled,
        dry_run=result.dry_run,
        mode=result.mode,
        cutoff=result.cutoff,
        skipped_reason=result.skipped_reason,
        files_found=result.files_found,
        files_archived=result.files_archived,
        files_deleted=result.files_deleted,
        rows_archived=result.rows_archived,
        columns_archived=result.columns_archived,
        quality_archived=result.quality_archived,
        profiles_archived=result.profiles_archived,
        disk_files_deleted=result.disk_files_deleted,
        related_records_deleted=result.related_records_deleted,
    )


def _run(db: Session, dry_run: bool) -> RetentionRunResponse:
    try:
        result = run_retention(db, dry_run=dry_run)
    except RetentionAlreadyRunningError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Retention run failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Retention run failed: {e}")

    logger.info(f"Admin retention run: {result.to_dict()}")
    return _run_response(result)


@router.get("/policy", response_model=RetentionPolicyResponse)
def get_policy(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> RetentionPolicyResponse:
    """
    Get the retention policy (seeded from environment defaults on first read).
    """
    return _policy_response(load_policy(db))


@router.put("/policy", response_model=RetentionPolicyResponse)
def update_policy(
    request: RetentionPolicySchema,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> RetentionPolicyResponse:
    """
    Replace the retention policy.

    Takes effect on the next run; the scheduler reads interval_hours itself.
    """
    policy = save_policy(
        db,
        RetentionPolicy(
            enabled=request.enabled,
            retention_days=request.retention_days,
            mode=request.mode,
            delete_files=request.delete_files,
            interval_hours=request.interval_hours,
        ),
    )
    return _policy_response(policy)


@router.post("/run", response_model=RetentionRunResponse)
def trigger_run(
    request: RetentionRunRequest,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> RetentionRunResponse:
    """
    Trigger a retention run.

    **WARNING**: A non-dry run permanently deletes datasets (archive mode
    copies them to the *_archive tables first). Requires `confirm: true`
    unless `dry_run` is set.
    """
    if not request.dry_run and not request.confirm:
        raise HTTPException(
            status_code=400,
            detail="Retention run requires 'confirm: true' for non-dry-run operations",
        )

    return _run(db, dry_run=request.dry_run)


@router.post("/dry-run", response_model=RetentionRunResponse)
def preview_run(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> RetentionRunResponse:
    """
    Preview what a retention run would affect without making changes.
    """
    return _run(db, dry_run=True)
