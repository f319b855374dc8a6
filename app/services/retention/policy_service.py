# app/services/retention/policy_service.py
"""
Retention policy store.

The retention configuration is a single row (id = 1) in
data_retention_settings. It is created lazily from DATA_RETENTION_*
environment defaults on first read and only changed by save_policy().
Reads are never cached so a run always sees the latest settings.
"""

import logging
import math
from dataclasses import asdict, dataclass
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import insert_ignore, upsert, utc_now
from app.models import RetentionMode, RetentionSettings

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1
DEFAULT_INTERVAL_HOURS = 24


@dataclass
class RetentionPolicy:
    """Retention configuration as seen by the runner and the admin surface."""
    enabled: bool = False
    retention_days: int = 0
    mode: RetentionMode = RetentionMode.DELETE
    delete_files: bool = True
    interval_hours: int = DEFAULT_INTERVAL_HOURS

    def to_dict(self) -> dict:
        data = asdict(self)
        data["mode"] = self.mode.value
        return data


def coerce_mode(value) -> RetentionMode:
    """Map stored/raw mode strings to RetentionMode; unknown values mean delete."""
    if isinstance(value, RetentionMode):
        return value
    if str(value or "").strip().lower() == RetentionMode.ARCHIVE.value:
        return RetentionMode.ARCHIVE
    return RetentionMode.DELETE


def _clamp_interval(value, fallback: int = DEFAULT_INTERVAL_HOURS) -> int:
    """Missing or zero falls back; anything else is clamped to >= 1."""
    try:
        hours = int(value)
    except (TypeError, ValueError):
        return fallback
    return max(1, hours) if hours else fallback


def _clamp_days(value) -> int:
    try:
        days = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(days):
        return 0
    return max(0, math.floor(days))


def default_policy() -> RetentionPolicy:
    """Build the seed policy from environment settings (disabled unless configured)."""
    settings = get_settings()
    return RetentionPolicy(
        enabled=settings.DATA_RETENTION_ENABLED,
        retention_days=settings.DATA_RETENTION_DAYS,
        mode=coerce_mode(settings.DATA_RETENTION_MODE),
        delete_files=settings.DATA_RETENTION_DELETE_FILES,
        interval_hours=max(1, settings.DATA_RETENTION_CHECK_HOURS),
    )


def _to_policy(row: RetentionSettings) -> RetentionPolicy:
    return RetentionPolicy(
        enabled=bool(row.enabled),
        retention_days=int(row.retention_days or 0),
        mode=coerce_mode(row.mode),
        delete_files=bool(row.delete_files),
        interval_hours=_clamp_interval(row.interval_hours),
    )


def _row_values(policy: RetentionPolicy) -> dict:
    return {
        "id": SETTINGS_ROW_ID,
        "enabled": bool(policy.enabled),
        "retention_days": _clamp_days(policy.retention_days),
        "mode": coerce_mode(policy.mode).value,
        "delete_files": bool(policy.delete_files),
        "interval_hours": _clamp_interval(policy.interval_hours, fallback=1),
        "updated_at": utc_now(),
    }


def _get_settings_row(db: Session) -> RetentionSettings | None:
    return db.execute(
        select(RetentionSettings).where(RetentionSettings.id == SETTINGS_ROW_ID)
    ).scalar_one_or_none()


def load_policy(db: Session) -> RetentionPolicy:
    """
    Load the retention policy, seeding it from environment defaults if absent.

    Seeding uses an insert-or-ignore on the fixed key, so concurrent first
    reads cannot create duplicate rows; whichever insert wins is returned.
    """
    row = _get_settings_row(db)
    if row is not None:
        return _to_policy(row)

    seed = default_policy()
    db.execute(insert_ignore(db.get_bind(), RetentionSettings.__table__, _row_values(seed)))
    db.commit()
    logger.info(
        f"Seeded retention settings from environment "
        f"(enabled={seed.enabled}, days={seed.retention_days}, mode={seed.mode.value})"
    )

    row = _get_settings_row(db)
    return _to_policy(row) if row is not None else seed


def save_policy(db: Session, policy: RetentionPolicy) -> RetentionPolicy:
    """
    Upsert the singleton retention policy.

    retention_days is clamped to >= 0 and interval_hours to >= 1; nothing
    else is validated. Returns the policy as stored.
    """
    values = _row_values(policy)
    db.execute(upsert(db.get_bind(), RetentionSettings.__table__, values, key_columns=["id"]))
    db.commit()

    saved = RetentionPolicy(
        enabled=values["enabled"],
        retention_days=values["retention_days"],
        mode=RetentionMode(values["mode"]),
        delete_files=values["delete_files"],
        interval_hours=values["interval_hours"],
    )
    logger.info(f"Saved retention policy: {saved.to_dict()}")
    return saved
