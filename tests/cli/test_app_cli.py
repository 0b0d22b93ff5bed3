"""Tests for the root CLI, ``db`` and ``serve``."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
import typer

from cronspine import __version__
from cronspine.cli.app import app
from cronspine.cli.utils import make_context
from cronspine.core.connection import ConnectionInfo


class TestRoot:
    def test_version(self, runner):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_args_shows_help(self, runner):
        result = runner.invoke(app, [])
        assert "crontab" in result.output


@pytest.mark.usefixtures("patched_context")
class TestDbInit:
    def test_init(self, runner, write_source):
        write_source("default.yaml", [{"job": "test.a"}])
        result = runner.invoke(app, ["db", "init", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["jobs"] == 1
        assert data["tables_created"] == ["cron_settings", "cron_last_runs"]


class TestMakeContext:
    def test_uses_database_option(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CRONSPINE_DATA_DIR", str(tmp_path))
        with make_context(str(tmp_path / "cli.db"), dry_run=True) as ctx:
            assert ctx.caller == "cli"
            assert ctx.dry_run is True
            assert ctx.backend == "sqlite"
        assert (tmp_path / "cli.db").exists()

    def test_connection_closed_on_exit(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CRONSPINE_DATA_DIR", str(tmp_path))
        conn = MagicMock()
        info = ConnectionInfo(backend="sqlite", persistent=True, url="cli.db")
        with patch("cronspine.cli.utils.create_connection", return_value=(conn, info)):
            with pytest.raises(typer.Exit):
                with make_context("cli.db"):
                    raise typer.Exit(code=1)
        conn.close.assert_called_once()


class TestServe:
    def test_start(self, runner, monkeypatch):
        monkeypatch.setenv("CRONSPINE_PORT", "9100")
        with (
            patch("cronspine.cli.serve.uvicorn.run") as run,
            patch("cronspine.core.logging.configure_logging"),
        ):
            result = runner.invoke(app, ["serve", "start", "--host", "127.0.0.1"])
        assert result.exit_code == 0, result.output
        args, kwargs = run.call_args
        assert args == ("cronspine.api:create_app",)
        assert kwargs["factory"] is True
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9100
