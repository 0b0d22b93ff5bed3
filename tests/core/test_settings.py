"""Tests for CronSpineSettings."""

from __future__ import annotations

from pathlib import Path

from cronspine.core.settings import DEFAULT_SOURCE, CronSpineSettings


class TestCronSpineSettings:
    def test_defaults(self, monkeypatch):
        for var in ("CRONSPINE_SANDBOX", "CRONSPINE_MAINTENANCE", "CRONSPINE_DATABASE_URL"):
            monkeypatch.delenv(var, raising=False)
        s = CronSpineSettings()
        assert s.sandbox is False
        assert s.maintenance is False
        assert s.enabled_default is True
        assert s.default_source == DEFAULT_SOURCE
        assert Path(DEFAULT_SOURCE).name == "scheduled_jobs.yaml"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("CRONSPINE_SANDBOX", "true")
        monkeypatch.setenv("CRONSPINE_ENABLED_DEFAULT", "false")
        s = CronSpineSettings()
        assert s.sandbox is True
        assert s.enabled_default is False

    def test_resolved_database_url_defaults_to_data_dir(self, tmp_path):
        s = CronSpineSettings(data_dir=tmp_path, database_url="")
        assert s.resolved_database_url() == str(tmp_path / "cronspine.db")

    def test_resolved_database_url_explicit(self, tmp_path):
        s = CronSpineSettings(data_dir=tmp_path, database_url="postgresql://u@h/db")
        assert s.resolved_database_url() == "postgresql://u@h/db"

    def test_plugins_from_env(self, monkeypatch):
        monkeypatch.setenv("CRONSPINE_PLUGINS", '["billing.cron", "reports.cron"]')
        assert CronSpineSettings().plugins == ["billing.cron", "reports.cron"]
