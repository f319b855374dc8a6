# app/services/retention/runner.py
"""
Retention runner: removes (or archives, then removes) datasets older than
the configured retention window.

Flow of one run:
1. Load the policy; a disabled or unconfigured policy is a no-op.
2. Select datasets uploaded before the cutoff (one read, fixed scope).
3. Dry run stops here: nothing is written, no schema is touched.
4. In one transaction: archive mode copies the dataset, rows, columns and
   the optional quality score / profile into the *_archive mirrors, then
   the dataset and every dependent are deleted. Any failure rolls back
   the whole run.
5. After commit, stored files of deleted datasets are removed from disk
   (best effort).
"""

import logging
import math
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime, timedelta

from sqlalchemy import DateTime, delete, literal, select, text
from sqlalchemy.orm import Session

from app.database import insert_ignore, utc_now
from app.logging_config import log_stage
from app.models import (
    DataQualityScore,
    DataQualityScoreArchive,
    Dataset,
    DatasetArchive,
    DatasetColumn,
    DatasetColumnArchive,
    DatasetProfile,
    DatasetProfileArchive,
    DatasetRow,
    DatasetRowArchive,
    RetentionMode,
)
from app.services.retention.archive_schema import (
    OptionalTables,
    ensure_archive_schema,
    probe_optional_tables,
)
from app.services.retention.disk_reconciler import DiskReconciler, get_disk_reconciler
from app.services.retention.policy_service import RetentionPolicy, load_policy

logger = logging.getLogger(__name__)

SKIPPED_DISABLED = "disabled"
SKIPPED_NOT_CONFIGURED = "not configured"

# Keeps IN (...) lists under SQLite's bound-parameter limit
ID_CHUNK_SIZE = 500

# pg_advisory_xact_lock key reserved for the retention job
RETENTION_LOCK_KEY = 730_240_011

# (result counter, source model, archive mirror, dataset key column, optional table flag)
ARCHIVE_STEPS = [
    ("files_archived", Dataset, DatasetArchive, "id", None),
    ("rows_archived", DatasetRow, DatasetRowArchive, "file_id", None),
    ("columns_archived", DatasetColumn, DatasetColumnArchive, "file_id", None),
    ("quality_archived", DataQualityScore, DataQualityScoreArchive, "file_id", "quality_scores"),
    ("profiles_archived", DatasetProfile, DatasetProfileArchive, "file_id", "profiles"),
]

# Dependents, deleted leaf-first before their dataset
DEPENDENT_MODELS = [
    (DatasetRow, None),
    (DatasetColumn, None),
    (DataQualityScore, "quality_scores"),
    (DatasetProfile, "profiles"),
]

# Process-wide guard against overlapping non-dry runs
_run_lock = threading.Lock()


class RetentionAlreadyRunningError(RuntimeError):
    """Raised when a non-dry run starts while another one holds the lock."""


@dataclass
class RetentionRunResult:
    """Result of a retention run."""
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
    related_records_deleted: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["mode"] = self.mode.value
        data["cutoff"] = self.cutoff.isoformat() if self.cutoff else None
        return data


@dataclass(frozen=True)
class EligibleDataset:
    id: int
    storage_path: str | None


def _utc_naive(now: datetime | None) -> datetime:
    """Timestamps are stored as naive UTC."""
    if now is None:
        return utc_now()
    if now.tzinfo is not None:
        return now.astimezone(UTC).replace(tzinfo=None)
    return now


def _cutoff(now: datetime, days) -> datetime:
    """now minus days; a window reaching past year 1 selects nothing."""
    try:
        return now - timedelta(days=days)
    except OverflowError:
        return datetime.min


def _is_configured(days) -> bool:
    return isinstance(days, (int, float)) and math.isfinite(days) and days > 0


def _chunks(ids: list[int], size: int = ID_CHUNK_SIZE):
    for start in range(0, len(ids), size):
        yield ids[start:start + size]


def _is_available(optional: OptionalTables, flag: str | None) -> bool:
    return flag is None or getattr(optional, flag)


def find_eligible_datasets(db: Session, cutoff: datetime) -> list[EligibleDataset]:
    """Datasets uploaded strictly before cutoff, oldest first."""
    rows = db.execute(
        select(Dataset.id, Dataset.storage_path)
        .where(Dataset.uploaded_at < cutoff)
        .order_by(Dataset.uploaded_at.asc(), Dataset.id.asc())
    ).all()
    return [EligibleDataset(id=row.id, storage_path=row.storage_path) for row in rows]


def _copy_to_archive(
    db: Session,
    source_model,
    archive_model,
    key_column: str,
    ids: list[int],
    archived_at: datetime,
) -> int:
    """
    Copy every source record whose key is in ids into its archive mirror.

    Records already present in the mirror (from an earlier interrupted run)
    are skipped. Returns the number of rows actually inserted.
    """
    source = source_model.__table__
    archive = archive_model.__table__
    columns = [c.name for c in archive.columns if c.name != "archived_at"]

    inserted = 0
    for chunk in _chunks(ids):
        query = select(
            *[source.c[name] for name in columns],
            literal(archived_at, DateTime()).label("archived_at"),
        ).where(source.c[key_column].in_(chunk))

        stmt = insert_ignore(db.get_bind(), archive).from_select(columns + ["archived_at"], query)
        inserted += max(db.execute(stmt).rowcount or 0, 0)

    return inserted


def _archive_datasets(
    db: Session,
    ids: list[int],
    archived_at: datetime,
    optional: OptionalTables,
    result: RetentionRunResult,
) -> None:
    """Copy datasets and their dependents into cold storage, dataset first."""
    ensure_archive_schema(db.connection())

    for counter, source_model, archive_model, key_column, flag in ARCHIVE_STEPS:
        if not _is_available(optional, flag):
            continue
        copied = _copy_to_archive(db, source_model, archive_model, key_column, ids, archived_at)
        setattr(result, counter, copied)

    logger.info(
        f"Archived {result.files_archived} datasets, {result.rows_archived} rows, "
        f"{result.columns_archived} columns"
    )


def _delete_datasets(
    db: Session,
    ids: list[int],
    optional: OptionalTables,
    result: RetentionRunResult,
) -> set[int]:
    """
    Delete datasets and all dependent records (leaf-to-root).

    Returns the IDs of datasets that were actually deleted.
    """
    deleted_ids: set[int] = set()
    counts: dict[str, int] = {}

    for chunk in _chunks(ids):
        present = set(db.execute(select(Dataset.id).where(Dataset.id.in_(chunk))).scalars())
        if not present:
            continue

        for model, flag in DEPENDENT_MODELS:
            if not _is_available(optional, flag):
                continue
            deleted = db.execute(
                delete(model)
                .where(model.file_id.in_(present))
                .execution_options(synchronize_session=False)
            ).rowcount
            counts[model.__tablename__] = counts.get(model.__tablename__, 0) + max(deleted or 0, 0)

        result.files_deleted += db.execute(
            delete(Dataset)
            .where(Dataset.id.in_(present))
            .execution_options(synchronize_session=False)
        ).rowcount or 0
        deleted_ids |= present

    result.related_records_deleted = counts
    return deleted_ids


def _acquire_advisory_lock(db: Session) -> None:
    """Take the transaction-scoped retention lock on PostgreSQL."""
    if db.get_bind().dialect.name != "postgresql":
        return

    acquired = db.execute(
        text("SELECT pg_try_advisory_xact_lock(:key)"),
        {"key": RETENTION_LOCK_KEY},
    ).scalar()
    if not acquired:
        raise RetentionAlreadyRunningError("Another retention run holds the database lock")


def _apply_retention(
    db: Session,
    policy: RetentionPolicy,
    eligible: list[EligibleDataset],
    now: datetime,
    result: RetentionRunResult,
) -> set[int]:
    """Archive (optionally) and delete the eligible datasets in one transaction."""
    ids = [d.id for d in eligible]

    with db.begin():
        _acquire_advisory_lock(db)
        optional = probe_optional_tables(db.connection())

        if policy.mode == RetentionMode.ARCHIVE:
            _archive_datasets(db, ids, now, optional, result)

        return _delete_datasets(db, ids, optional, result)


def run_retention(
    db: Session,
    dry_run: bool = False,
    now: datetime | None = None,
    reconciler: DiskReconciler | None = None,
) -> RetentionRunResult:
    """
    Run dataset retention once.

    Args:
        db: Database session (must not have a write transaction in progress)
        dry_run: Report what would be affected without changing anything
        now: Reference time for the cutoff (default: current UTC time)
        reconciler: Disk reconciler for stored files (default: STORAGE_ROOT)

    Returns:
        RetentionRunResult summarizing the run

    Raises:
        RetentionAlreadyRunningError: another non-dry run is in progress
        Exception: any database error; the transaction has been rolled back
            and no dataset was affected
    """
    policy = load_policy(db)
    result = RetentionRunResult(enabled=policy.enabled, dry_run=dry_run, mode=policy.mode)

    if not policy.enabled:
        result.skipped_reason = SKIPPED_DISABLED
        return result

    if not _is_configured(policy.retention_days):
        result.skipped_reason = SKIPPED_NOT_CONFIGURED
        return result

    now = _utc_naive(now)
    result.cutoff = _cutoff(now, policy.retention_days)

    eligible = find_eligible_datasets(db, result.cutoff)
    result.files_found = len(eligible)

    if not eligible or dry_run:
        logger.info(
            f"Retention found {result.files_found} datasets before {result.cutoff.isoformat()} "
            f"(dry_run={dry_run})",
            extra={"event": "retention_scan", "files_found": result.files_found, "dry_run": dry_run},
        )
        return result

    # End the selection read; the transaction in _apply_retention is the only one that writes.
    db.commit()

    if not _run_lock.acquire(blocking=False):
        raise RetentionAlreadyRunningError("A retention run is already in progress")

    try:
        with log_stage("retention", run_id=str(uuid.uuid4())):
            deleted_ids = _apply_retention(db, policy, eligible, now, result)

            if policy.delete_files:
                paths = [d.storage_path for d in eligible if d.id in deleted_ids and d.storage_path]
                result.disk_files_deleted = (reconciler or get_disk_reconciler()).remove_all(paths)

            logger.info(
                f"[retention] mode={result.mode.value} found={result.files_found} "
                f"deleted={result.files_deleted} archived={result.files_archived} "
                f"disk_deleted={result.disk_files_deleted}",
                extra={
                    "event": "retention_complete",
                    "mode": result.mode.value,
                    "files_found": result.files_found,
                    "files_deleted": result.files_deleted,
                    "files_archived": result.files_archived,
                    "disk_files_deleted": result.disk_files_deleted,
                },
            )
    finally:
        _run_lock.release()

    return result
