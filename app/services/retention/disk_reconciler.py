# app/services/retention/disk_reconciler.py
"""
Best-effort removal of uploaded dataset files after their records are gone.

The database is the source of truth for whether a dataset exists; a file
left on disk is a housekeeping issue, so failures here are logged and
counted, never raised.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from app.config import get_settings

logger = logging.getLogger(__name__)


class DiskReconciler:
    """
    Removes dataset files from local disk.

    Relative paths resolve against storage_root (STORAGE_ROOT by default) and
    may not escape it; absolute paths are used as-is.
    """

    def __init__(self, storage_root: str | Path | None = None, max_workers: int | None = None):
        settings = get_settings()
        self._storage_root = Path(storage_root or settings.STORAGE_ROOT)
        self._max_workers = max_workers or settings.DISK_RECONCILE_WORKERS

    @property
    def storage_root(self) -> Path:
        return self._storage_root

    def resolve(self, path: str) -> Path:
        """Get filesystem path for a stored path, with path traversal protection."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate

        root = self._storage_root.resolve()
        resolved = (root / candidate).resolve()
        if not resolved.is_relative_to(root):
            raise ValueError("Path traversal detected")
        return resolved

    def remove(self, path: str) -> bool:
        """Delete one file. Returns True only if a file was actually removed."""
        try:
            file_path = self.resolve(path)
            file_path.unlink()
        except FileNotFoundError:
            logger.debug(f"Dataset file already gone: {path}", extra={"path": path})
            return False
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to remove dataset file {path}: {e}", extra={"path": path})
            return False

        logger.debug(f"Removed dataset file: {file_path}", extra={"path": path})
        return True

    def remove_all(self, paths: list[str | None]) -> int:
        """
        Delete every path independently and return the number removed.

        Empty paths (datasets without a stored file) are skipped.
        """
        targets = [p for p in paths if p]
        if not targets:
            return 0

        workers = min(self._max_workers, len(targets))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(self.remove, targets))

        removed = sum(1 for ok in results if ok)
        if removed < len(targets):
            logger.info(f"Removed {removed}/{len(targets)} dataset files from disk")
        return removed


def get_disk_reconciler() -> DiskReconciler:
    """Reconciler rooted at the configured STORAGE_ROOT."""
    return DiskReconciler()
