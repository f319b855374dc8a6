from datetime import UTC, datetime

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from app.config import get_settings

# SQLAlchemy engine & session factory
engine = create_engine(
    get_settings().DATABASE_URL,
    future=True,
    echo=False,  # set True if you want to see SQL in terminal
)

SessionLocal = sessionmaker(
    autoflush=False,
    bind=engine,
    future=True,
)

Base = declarative_base()


def utc_now() -> datetime:
    """Current time as naive UTC, the form every timestamp column stores."""
    return datetime.now(UTC).replace(tzinfo=None)


def init_db() -> None:
    """
    Import models and create tables if they don't exist.
    Alembic is the real migration tool, but this keeps local dev sane.
    """
    from app import models  # noqa: F401

    Base.metadata.create_all(bind=engine)

    if get_settings().RETENTION_PRECREATE_ARCHIVE:
        from app.services.retention.archive_schema import ensure_archive_schema

        with engine.begin() as connection:
            ensure_archive_schema(connection)


def get_db():
    """
    FastAPI dependency that gives you a DB session and cleans it up after.
    """
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _dialect_insert(bind, table):
    """Return the dialect-specific insert construct (supports conflict clauses)."""
    name = bind.dialect.name
    if name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    elif name in ("mysql", "mariadb"):
        from sqlalchemy.dialects.mysql import insert
    else:
        raise NotImplementedError(f"Upserts are not supported on dialect '{name}'")
    return insert(table)


def upsert(bind, table, values: dict, key_columns: list[str]):
    """
    Build an insert-or-update statement keyed on key_columns.

    Non-key columns in values are overwritten on conflict.
    """
    stmt = _dialect_insert(bind, table).values(**values)
    updates = {k: v for k, v in values.items() if k not in key_columns}

    if bind.dialect.name in ("mysql", "mariadb"):
        return stmt.on_duplicate_key_update(**updates)
    return stmt.on_conflict_do_update(index_elements=key_columns, set_=updates)


def insert_ignore(bind, table, values: dict | None = None):
    """
    Build an insert that silently skips rows whose key already exists.

    Combine with .from_select() for bulk copies; the result's rowcount is the
    number of rows actually inserted.
    """
    stmt = _dialect_insert(bind, table)
    if values is not None:
        stmt = stmt.values(**values)

    if bind.dialect.name in ("mysql", "mariadb"):
        return stmt.prefix_with("IGNORE")
    return stmt.on_conflict_do_nothing()
