# tests/unit/test_config.py
"""Unit tests for settings parsing."""

import pytest


class TestDatabaseUrl:
    def test_postgres_url_uses_psycopg2(self, monkeypatch, fresh_settings):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/ops")
        fresh_settings.cache_clear()

        assert fresh_settings().DATABASE_URL == "postgresql+psycopg2://u:p@db:5432/ops"


class TestRetentionSettings:
    @pytest.mark.parametrize(
        "raw, expected",
        [("30", 30), ("30.9", 30), ("-4", -4), ("abc", 0), ("nan", 0), ("inf", 0)],
    )
    def test_retention_days(self, monkeypatch, fresh_settings, raw, expected):
        monkeypatch.setenv("DATA_RETENTION_DAYS", raw)
        fresh_settings.cache_clear()

        assert fresh_settings().DATA_RETENTION_DAYS == expected

    @pytest.mark.parametrize("raw, expected", [("12", 12), ("0", 1), ("x", 24)])
    def test_check_hours(self, monkeypatch, fresh_settings, raw, expected):
        monkeypatch.setenv("DATA_RETENTION_CHECK_HOURS", raw)
        fresh_settings.cache_clear()

        assert fresh_settings().DATA_RETENTION_CHECK_HOURS == expected

    @pytest.mark.parametrize("raw, expected", [("ARCHIVE", "archive"), ("move", "delete")])
    def test_mode(self, monkeypatch, fresh_settings, raw, expected):
        monkeypatch.setenv("DATA_RETENTION_MODE", raw)
        fresh_settings.cache_clear()

        assert fresh_settings().DATA_RETENTION_MODE == expected
