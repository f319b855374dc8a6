# app/models.py
"""
Operations dashboard database models (retention-relevant subset).

Tables:
- Project: Groups uploaded datasets
- Dataset: An uploaded tabular file ("files")
- DatasetRow: One parsed data row per ingested line
- DatasetColumn: Column definitions, ordered by position
- DataQualityScore: Optional quality score (0..1 per dataset)
- DatasetProfile: Optional column profile (0..1 per dataset)
- RetentionSettings: Singleton retention configuration row

Archive mirrors (cold storage, created on demand by the retention job):
- files_archive, file_rows_archive, file_columns_archive,
  data_quality_scores_archive, file_profiles_archive
"""

from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

from app.database import Base, utc_now

# Archive mirrors are kept out of Base.metadata so init_db() and migrations
# never create them implicitly.
ArchiveBase = declarative_base()


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class RetentionMode(str, Enum):
    DELETE = "delete"
    ARCHIVE = "archive"


# -----------------------------------------------------------------------------
# Project
# -----------------------------------------------------------------------------

class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    datasets = relationship("Dataset", back_populates="project")


# -----------------------------------------------------------------------------
# Dataset
# -----------------------------------------------------------------------------

class Dataset(Base):
    """
    An uploaded tabular file.

    Parsed content lives in file_rows / file_columns; the original upload
    stays on disk at storage_path (relative to STORAGE_ROOT unless absolute).
    """
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    file_type = Column(String(16), nullable=False)  # e.g., "csv", "xlsx"
    storage_path = Column(String(512), nullable=True)
    uploaded_at = Column(DateTime, default=utc_now, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="datasets")
    rows = relationship("DatasetRow", back_populates="dataset", passive_deletes=True)
    columns = relationship(
        "DatasetColumn",
        back_populates="dataset",
        order_by="DatasetColumn.position",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_files_project_uploaded", "project_id", "uploaded_at"),
        Index("ix_files_uploaded_at", "uploaded_at"),
    )


class DatasetRow(Base):
    __tablename__ = "file_rows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_id = Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False)
    row_index = Column(Integer, nullable=False)
    data_json = Column(LargeBinary, nullable=False)

    dataset = relationship("Dataset", back_populates="rows")

    __table_args__ = (
        Index("ix_file_rows_file_id", "file_id"),
        Index("ix_file_rows_file_row_index", "file_id", "row_index"),
    )


class DatasetColumn(Base):
    __tablename__ = "file_columns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_id = Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    position = Column(Integer, nullable=False)

    dataset = relationship("Dataset", back_populates="columns")

    __table_args__ = (
        Index("ix_file_columns_file_id", "file_id"),
    )


class DataQualityScore(Base):
    """Quality score for a dataset. Not every deployment has this table."""
    __tablename__ = "data_quality_scores"

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_id = Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False, unique=True)
    score = Column(Numeric(5, 2), nullable=False)
    trust_level = Column(String(16), nullable=False)
    missing_rate = Column(Numeric(6, 4), nullable=False, default=0)
    duplicate_rate = Column(Numeric(6, 4), nullable=False, default=0)
    invalid_rate = Column(Numeric(6, 4), nullable=False, default=0)
    schema_inconsistency_rate = Column(Numeric(6, 4), nullable=False, default=0)
    total_rows = Column(Integer, nullable=False, default=0)
    total_columns = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)


class DatasetProfile(Base):
    """Column profile for a dataset. Not every deployment has this table."""
    __tablename__ = "file_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_id = Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False, unique=True)
    profile_json = Column(Text, nullable=False)
    row_count = Column(Integer, nullable=False, default=0)
    column_count = Column(Integer, nullable=False, default=0)
    generated_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)


# -----------------------------------------------------------------------------
# RetentionSettings
# -----------------------------------------------------------------------------

class RetentionSettings(Base):
    """
    Singleton retention configuration (always id = 1).

    Seeded from DATA_RETENTION_* environment variables on first read.
    """
    __tablename__ = "data_retention_settings"

    id = Column(Integer, primary_key=True, autoincrement=False)
    enabled = Column(Boolean, nullable=False, default=False)
    retention_days = Column(Integer, nullable=False, default=0)
    mode = Column(String(16), nullable=False, default=RetentionMode.DELETE.value)
    delete_files = Column(Boolean, nullable=False, default=True)
    interval_hours = Column(Integer, nullable=False, default=24)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)


# -----------------------------------------------------------------------------
# Archive mirrors
# -----------------------------------------------------------------------------
# Primary keys are the original ids (no autoincrement) so that copying the
# same record twice conflicts and is skipped.

class DatasetArchive(ArchiveBase):
    __tablename__ = "files_archive"

    id = Column(Integer, primary_key=True, autoincrement=False)
    project_id = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    file_type = Column(String(16), nullable=False)
    storage_path = Column(String(512), nullable=True)
    uploaded_at = Column(DateTime, nullable=True)
    archived_at = Column(DateTime, nullable=False)


class DatasetRowArchive(ArchiveBase):
    __tablename__ = "file_rows_archive"

    id = Column(Integer, primary_key=True, autoincrement=False)
    file_id = Column(Integer, nullable=False)
    row_index = Column(Integer, nullable=False)
    data_json = Column(LargeBinary, nullable=False)
    archived_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_file_rows_archive_file_id", "file_id"),
    )


class DatasetColumnArchive(ArchiveBase):
    __tablename__ = "file_columns_archive"

    id = Column(Integer, primary_key=True, autoincrement=False)
    file_id = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    position = Column(Integer, nullable=False)
    archived_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_file_columns_archive_file_id", "file_id"),
    )


class DataQualityScoreArchive(ArchiveBase):
    __tablename__ = "data_quality_scores_archive"

    id = Column(Integer, primary_key=True, autoincrement=False)
    file_id = Column(Integer, nullable=False)
    score = Column(Numeric(5, 2), nullable=False)
    trust_level = Column(String(16), nullable=False)
    missing_rate = Column(Numeric(6, 4), nullable=False)
    duplicate_rate = Column(Numeric(6, 4), nullable=False)
    invalid_rate = Column(Numeric(6, 4), nullable=False)
    schema_inconsistency_rate = Column(Numeric(6, 4), nullable=False)
    total_rows = Column(Integer, nullable=False)
    total_columns = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=True)
    archived_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_data_quality_scores_archive_file_id", "file_id"),
    )


class DatasetProfileArchive(ArchiveBase):
    __tablename__ = "file_profiles_archive"

    id = Column(Integer, primary_key=True, autoincrement=False)
    file_id = Column(Integer, nullable=False)
    profile_json = Column(Text, nullable=False)
    row_count = Column(Integer, nullable=False)
    column_count = Column(Integer, nullable=False)
    generated_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, nullable=True)
    archived_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_file_profiles_archive_file_id", "file_id"),
    )
