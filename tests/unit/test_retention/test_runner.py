# tests/unit/test_retention/test_runner.py
"""Unit tests for the retention runner."""

from datetime import UTC, datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest


def _policy(**overrides):
    from app.models import RetentionMode
    from app.services.retention.policy_service import RetentionPolicy

    values = {
        "enabled": True,
        "retention_days": 30,
        "mode": RetentionMode.DELETE,
        "delete_files": True,
        "interval_hours": 24,
    }
    values.update(overrides)
    return RetentionPolicy(**values)


class TestSkippedRuns:
    """A disabled or unconfigured policy never touches the datasets."""

    def test_disabled_policy_is_noop(self):
        from app.services.retention.runner import SKIPPED_DISABLED, run_retention

        mock_db = MagicMock()

        with patch("app.services.retention.runner.load_policy") as mock_load:
            mock_load.return_value = _policy(enabled=False)
            result = run_retention(mock_db)

        assert result.enabled is False
        assert result.skipped_reason == SKIPPED_DISABLED
        assert result.cutoff is None
        assert result.files_found == 0
        mock_db.execute.assert_not_called()
        mock_db.begin.assert_not_called()

    @pytest.mark.parametrize("days", [0, -1, float("nan"), float("inf"), None])
    def test_unconfigured_days_is_noop(self, days):
        from app.services.retention.runner import SKIPPED_NOT_CONFIGURED, run_retention

        mock_db = MagicMock()

        with patch("app.services.retention.runner.load_policy") as mock_load:
            mock_load.return_value = _policy(retention_days=days)
            result = run_retention(mock_db)

        assert result.enabled is True
        assert result.skipped_reason == SKIPPED_NOT_CONFIGURED
        mock_db.execute.assert_not_called()
        mock_db.begin.assert_not_called()


class TestDryRun:
    """Dry runs report counts without writing anything."""

    def test_dry_run_reports_and_writes_nothing(self):
        from app.models import RetentionMode
        from app.services.retention.runner import EligibleDataset, run_retention

        mock_db = MagicMock()
        reconciler = MagicMock()
        eligible = [EligibleDataset(id=1, storage_path="a.csv"), EligibleDataset(id=2, storage_path=None)]

        with patch("app.services.retention.runner.load_policy") as mock_load, \
             patch("app.services.retention.runner.find_eligible_datasets") as mock_find, \
             patch("app.services.retention.runner.ensure_archive_schema") as mock_ensure:
            mock_load.return_value = _policy(mode=RetentionMode.ARCHIVE)
            mock_find.return_value = eligible
            result = run_retention(mock_db, dry_run=True, reconciler=reconciler)

        assert result.dry_run is True
        assert result.files_found == 2
        assert result.files_deleted == 0
        assert result.files_archived == 0
        mock_db.commit.assert_not_called()
        mock_db.begin.assert_not_called()
        mock_ensure.assert_not_called()
        reconciler.remove_all.assert_not_called()

    def test_cutoff_is_now_minus_retention_days(self):
        from app.services.retention.runner import run_retention

        now = datetime(2024, 6, 1, 12, 0, 0)

        with patch("app.services.retention.runner.load_policy") as mock_load, \
             patch("app.services.retention.runner.find_eligible_datasets") as mock_find:
            mock_load.return_value = _policy(retention_days=30)
            mock_find.return_value = []
            result = run_retention(MagicMock(), dry_run=True, now=now)

        assert result.cutoff == now - timedelta(days=30)
        mock_find.assert_called_once()
        assert mock_find.call_args.args[1] == now - timedelta(days=30)

    def test_aware_now_is_normalized_to_naive_utc(self):
        from app.services.retention.runner import run_retention

        now = datetime(2024, 6, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))

        with patch("app.services.retention.runner.load_policy") as mock_load, \
             patch("app.services.retention.runner.find_eligible_datasets") as mock_find:
            mock_load.return_value = _policy(retention_days=1)
            mock_find.return_value = []
            result = run_retention(MagicMock(), dry_run=True, now=now)

        assert result.cutoff == datetime(2024, 5, 31, 12, 0, 0)
        assert result.cutoff.tzinfo is None


class TestNothingEligible:
    """With no eligible datasets no transaction is opened."""

    def test_no_transaction_when_nothing_eligible(self):
        from app.services.retention.runner import run_retention

        mock_db = MagicMock()
        reconciler = MagicMock()

        with patch("app.services.retention.runner.load_policy") as mock_load, \
             patch("app.services.retention.runner.find_eligible_datasets") as mock_find:
            mock_load.return_value = _policy()
            mock_find.return_value = []
            result = run_retention(mock_db, reconciler=reconciler)

        assert result.files_found == 0
        assert result.skipped_reason is None
        mock_db.begin.assert_not_called()
        reconciler.remove_all.assert_not_called()


class TestDiskReconciliation:
    """Stored files are only removed for datasets that were deleted."""

    def test_only_deleted_datasets_are_reconciled(self):
        from app.services.retention.runner import EligibleDataset, run_retention

        eligible = [
            EligibleDataset(id=1, storage_path="a.csv"),
            EligibleDataset(id=2, storage_path="b.csv"),
            EligibleDataset(id=3, storage_path=None),
        ]
        reconciler = MagicMock()
        reconciler.remove_all.return_value = 1

        with patch("app.services.retention.runner.load_policy") as mock_load, \
             patch("app.services.retention.runner.find_eligible_datasets") as mock_find, \
             patch("app.services.retention.runner._apply_retention") as mock_apply:
            mock_load.return_value = _policy()
            mock_find.return_value = eligible
            mock_apply.return_value = {1, 3}
            result = run_retention(MagicMock(), reconciler=reconciler)

        reconciler.remove_all.assert_called_once_with(["a.csv"])
        assert result.disk_files_deleted == 1

    def test_keep_files_skips_reconciler(self):
        from app.services.retention.runner import EligibleDataset, run_retention

        reconciler = MagicMock()

        with patch("app.services.retention.runner.load_policy") as mock_load, \
             patch("app.services.retention.runner.find_eligible_datasets") as mock_find, \
             patch("app.services.retention.runner._apply_retention") as mock_apply:
            mock_load.return_value = _policy(delete_files=False)
            mock_find.return_value = [EligibleDataset(id=1, storage_path="a.csv")]
            mock_apply.return_value = {1}
            result = run_retention(MagicMock(), reconciler=reconciler)

        reconciler.remove_all.assert_not_called()
        assert result.disk_files_deleted == 0

    def test_failed_transaction_leaves_disk_alone(self):
        from app.services.retention.runner import EligibleDataset, run_retention

        reconciler = MagicMock()

        with patch("app.services.retention.runner.load_policy") as mock_load, \
             patch("app.services.retention.runner.find_eligible_datasets") as mock_find, \
             patch("app.services.retention.runner._apply_retention") as mock_apply:
            mock_load.return_value = _policy()
            mock_find.return_value = [EligibleDataset(id=1, storage_path="a.csv")]
            mock_apply.side_effect = RuntimeError("disk full")

            with pytest.raises(RuntimeError, match="disk full"):
                run_retention(MagicMock(), reconciler=reconciler)

        reconciler.remove_all.assert_not_called()


class TestConcurrency:
    """Overlapping non-dry runs are rejected."""

    def test_second_run_is_rejected_while_lock_held(self):
        from app.services.retention import runner
        from app.services.retention.runner import (
            EligibleDataset,
            RetentionAlreadyRunningError,
            run_retention,
        )

        with patch("app.services.retention.runner.load_policy") as mock_load, \
             patch("app.services.retention.runner.find_eligible_datasets") as mock_find, \
             patch("app.services.retention.runner._apply_retention") as mock_apply:
            mock_load.return_value = _policy()
            mock_find.return_value = [EligibleDataset(id=1, storage_path=None)]

            assert runner._run_lock.acquire(blocking=False)
            try:
                with pytest.raises(RetentionAlreadyRunningError):
                    run_retention(MagicMock(), reconciler=MagicMock())
            finally:
                runner._run_lock.release()

        mock_apply.assert_not_called()

    def test_lock_released_after_failure(self):
        from app.services.retention import runner
        from app.services.retention.runner import EligibleDataset, run_retention

        with patch("app.services.retention.runner.load_policy") as mock_load, \
             patch("app.services.retention.runner.find_eligible_datasets") as mock_find, \
             patch("app.services.retention.runner._apply_retention") as mock_apply:
            mock_load.return_value = _policy()
            mock_find.return_value = [EligibleDataset(id=1, storage_path=None)]
            mock_apply.side_effect = RuntimeError("boom")

            with pytest.raises(RuntimeError):
                run_retention(MagicMock(), reconciler=MagicMock())

        assert not runner._run_lock.locked()

    def test_dry_run_ignores_lock(self):
        from app.services.retention import runner
        from app.services.retention.runner import EligibleDataset, run_retention

        with patch("app.services.retention.runner.load_policy") as mock_load, \
             patch("app.services.retention.runner.find_eligible_datasets") as mock_find:
            mock_load.return_value = _policy()
            mock_find.return_value = [EligibleDataset(id=1, storage_path=None)]

            assert runner._run_lock.acquire(blocking=False)
            try:
                result = run_retention(MagicMock(), dry_run=True)
            finally:
                runner._run_lock.release()

        assert result.files_found == 1

    def test_postgres_advisory_lock_contention(self):
        from app.services.retention.runner import RetentionAlreadyRunningError, _acquire_advisory_lock

        mock_db = MagicMock()
        mock_db.get_bind.return_value.dialect.name = "postgresql"
        mock_db.execute.return_value.scalar.return_value = False

        with pytest.raises(RetentionAlreadyRunningError):
            _acquire_advisory_lock(mock_db)

    def test_advisory_lock_skipped_on_sqlite(self):
        from app.services.retention.runner import _acquire_advisory_lock

        mock_db = MagicMock()
        mock_db.get_bind.return_value.dialect.name = "sqlite"

        _acquire_advisory_lock(mock_db)

        mock_db.execute.assert_not_called()


class TestRunResult:
    """Tests for RetentionRunResult.to_dict()."""

    def test_serializes_mode_and_cutoff(self):
        from app.models import RetentionMode
        from app.services.retention.runner import RetentionRunResult

        result = RetentionRunResult(
            enabled=True,
            dry_run=False,
            mode=RetentionMode.ARCHIVE,
            cutoff=datetime(2024, 5, 2, tzinfo=UTC).replace(tzinfo=None),
        )

        data = result.to_dict()
        assert data["mode"] == "archive"
        assert data["cutoff"] == "2024-05-02T00:00:00"
        assert data["related_records_deleted"] == {}
