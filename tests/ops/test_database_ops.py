"""Tests for database operations."""

from __future__ import annotations

from cronspine.core.schema import LAST_RUNS_TABLE, SETTINGS_TABLE
from cronspine.core.sqlite_conn import SqliteConnection
from cronspine.ops.context import OperationContext
from cronspine.ops.database import initialize_database
from cronspine.scheduling.store import SettingsStore


class TestInitializeDatabase:
    def test_creates_tables_and_loads_crontab(self, settings, contributors, write_source):
        write_source("default.yaml", [{"job": "test.a"}])
        conn = SqliteConnection(":memory:")
        ctx = OperationContext(conn=conn, settings=settings, scheduler_options={"contributors": contributors})

        result = initialize_database(ctx)

        assert result.success
        assert result.data.tables_created == [SETTINGS_TABLE, LAST_RUNS_TABLE]
        assert result.data.jobs == 1
        assert SettingsStore(conn).get_crontab().identifiers == ["test.a"]

    def test_idempotent(self, ctx):
        assert initialize_database(ctx).success
        assert initialize_database(ctx).success

    def test_dry_run(self, settings):
        conn = SqliteConnection(":memory:")
        result = initialize_database(OperationContext(conn=conn, settings=settings, dry_run=True))
        assert result.data.dry_run is True
        conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        assert conn.fetchall() == []

    def test_bad_source_fails(self, ctx, write_source):
        write_source("default.yaml", raw="jobs: [")
        result = initialize_database(ctx)
        assert result.error.code == "VALIDATION_FAILED"
