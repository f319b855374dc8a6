# app/services/retention/archive_schema.py
"""
Cold-storage schema for archive-mode retention.

ensure_archive_schema() creates the five archive mirror tables (and their
file_id indexes) only if they are missing. It runs on the connection of the
retention transaction so a failure aborts the run. Engines that auto-commit
DDL (MySQL, SQLite without an open write) commit the CREATE immediately;
set RETENTION_PRECREATE_ARCHIVE=true to create the mirrors at startup instead.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import inspect
from sqlalchemy.engine import Connection

from app.models import (
    ArchiveBase,
    DataQualityScore,
    DataQualityScoreArchive,
    DatasetArchive,
    DatasetColumnArchive,
    DatasetProfile,
    DatasetProfileArchive,
    DatasetRowArchive,
)

logger = logging.getLogger(__name__)

# Copy order: the dataset first, then its children, so a partial copy can
# only ever leave a dataset without children, never orphaned children.
ARCHIVE_TABLES = [
    DatasetArchive.__table__,
    DatasetRowArchive.__table__,
    DatasetColumnArchive.__table__,
    DataQualityScoreArchive.__table__,
    DatasetProfileArchive.__table__,
]


@dataclass(frozen=True)
class OptionalTables:
    """Which optional dependent tables exist in this deployment."""
    quality_scores: bool = False
    profiles: bool = False


def probe_optional_tables(connection: Connection) -> OptionalTables:
    """Check once per run whether the optional dependent tables exist."""
    inspector = inspect(connection)
    return OptionalTables(
        quality_scores=inspector.has_table(DataQualityScore.__tablename__),
        profiles=inspector.has_table(DatasetProfile.__tablename__),
    )


def ensure_archive_schema(connection: Connection) -> None:
    """
    Create any missing archive mirror tables. Safe to call on every run.

    Errors propagate: archive mode cannot honor "archive before delete"
    without its target tables.
    """
    inspector = inspect(connection)
    missing = [t.name for t in ARCHIVE_TABLES if not inspector.has_table(t.name)]

    ArchiveBase.metadata.create_all(bind=connection, tables=ARCHIVE_TABLES, checkfirst=True)

    if missing:
        logger.info(f"Created archive tables: {', '.join(missing)}")
