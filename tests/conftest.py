# tests/conftest.py
"""
Pytest configuration and fixtures.
"""

import os
from datetime import datetime

import pytest

# Set test environment before any app import
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("LOG_JSON", "false")


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite engine with the primary schema created."""
    from sqlalchemy import create_engine

    from app.database import Base
    from app import models  # noqa: F401

    engine = create_engine(
        f"sqlite:///{tmp_path / 'retention.db'}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Session bound to the test engine."""
    from sqlalchemy.orm import sessionmaker

    SessionTest = sessionmaker(autoflush=False, bind=engine, future=True)
    db = SessionTest()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fresh_settings():
    """Clear the cached settings around a test that changes the environment."""
    from app.config import get_settings

    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()


@pytest.fixture
def storage_root(tmp_path):
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest.fixture
def make_dataset(db_session):
    """
    Factory that inserts a dataset with rows and columns.

    Returns the new dataset id.
    """
    from app.models import Dataset, DatasetColumn, DatasetRow, Project

    project = Project(name="Operations")
    db_session.add(project)
    db_session.commit()

    def _make(
        uploaded_at: datetime,
        storage_path: str | None = None,
        rows: int = 0,
        columns: int = 0,
        name: str = "upload.csv",
    ) -> int:
        dataset = Dataset(
            project_id=project.id,
            name=name,
            file_type="csv",
            storage_path=storage_path,
            uploaded_at=uploaded_at,
        )
        db_session.add(dataset)
        db_session.flush()

        for i in range(rows):
            db_session.add(DatasetRow(file_id=dataset.id, row_index=i, data_json=b'{"v": %d}' % i))
        for i in range(columns):
            db_session.add(DatasetColumn(file_id=dataset.id, name=f"col_{i}", position=i))

        db_session.commit()
        return dataset.id

    return _make


@pytest.fixture
def set_policy(db_session):
    """Store a retention policy for the test database."""
    from app.models import RetentionMode
    from app.services.retention.policy_service import RetentionPolicy, save_policy

    def _set(
        enabled: bool = True,
        retention_days: int = 30,
        mode: RetentionMode = RetentionMode.DELETE,
        delete_files: bool = True,
    ):
        return save_policy(
            db_session,
            RetentionPolicy(
                enabled=enabled,
                retention_days=retention_days,
                mode=mode,
                delete_files=delete_files,
            ),
        )

    return _set
