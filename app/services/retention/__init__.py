# app/services/retention/__init__.py
"""
Dataset retention and archival services.

Services:
- policy_service: Singleton retention policy (load/save)
- archive_schema: Idempotent creation of the *_archive mirror tables
- runner: Select, archive and delete expired datasets in one transaction
- disk_reconciler: Best-effort removal of uploaded files after deletion
"""

from app.services.retention.archive_schema import (
    OptionalTables,
    ensure_archive_schema,
    probe_optional_tables,
)
from app.services.retention.disk_reconciler import DiskReconciler, get_disk_reconciler
from app.services.retention.policy_service import (
    RetentionPolicy,
    load_policy,
    save_policy,
)
from app.services.retention.runner import (
    RetentionAlreadyRunningError,
    RetentionRunResult,
    run_retention,
)

__all__ = [
    # Policy
    "RetentionPolicy",
    "load_policy",
    "save_policy",
    # Archive schema
    "OptionalTables",
    "ensure_archive_schema",
    "probe_optional_tables",
    # Runner
    "RetentionRunResult",
    "RetentionAlreadyRunningError",
    "run_retention",
    # Disk
    "DiskReconciler",
    "get_disk_reconciler",
]
