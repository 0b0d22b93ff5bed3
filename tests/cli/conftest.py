"""Fixtures for CLI tests: commands run against the in-memory store."""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import replace
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from cronspine.ops.context import OperationContext


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging() -> Generator[None, None, None]:
    with patch("cronspine.cli.app.configure_logging"):
        yield


@pytest.fixture
def cli_context(conn, settings, contributors, recording_jobs, clock):
    """Replacement for ``make_context`` bound to the test store and registries."""
    base = OperationContext(
        conn=conn,
        settings=settings,
        caller="cli",
        scheduler_options={"contributors": contributors, "jobs": recording_jobs, "clock": clock},
    )

    @contextmanager
    def _make(database=None, *, dry_run=False):
        yield replace(base, dry_run=dry_run)

    return _make


@pytest.fixture
def patched_context(cli_context) -> Generator[None, None, None]:
    with (
        patch("cronspine.cli.crontab.make_context", side_effect=cli_context),
        patch("cronspine.cli.db.make_context", side_effect=cli_context),
    ):
        yield
