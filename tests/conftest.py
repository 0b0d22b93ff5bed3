"""
Shared pytest fixtures for cronspine tests.

This module provides:
- An in-memory SQLite connection with the scheduler tables
- A controllable clock
- Isolated job and contributor registries
- A writer for temporary YAML job sources

Usage:
    Fixtures are auto-discovered by pytest.

    def test_due(scheduler, clock):
        clock.advance(hours=2)
        ...
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
import yaml

from cronspine.core.events import set_event_bus
from cronspine.core.schema import create_tables
from cronspine.core.settings import CronSpineSettings
from cronspine.core.sqlite_conn import SqliteConnection
from cronspine.scheduling.runner import BaseScheduledJob, JobRegistry
from cronspine.scheduling.service import CronScheduler
from cronspine.scheduling.sources import ContributorRegistry

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingJob(BaseScheduledJob):
    """Appends ``(name, args)`` to a shared list when executed."""

    calls: list[tuple[str, dict[str, str]]]

    def __init__(self, args=None, *, name: str = "", calls: list | None = None) -> None:
        super().__init__(args)
        self.name = name
        self.calls = calls if calls is not None else []

    def execute(self) -> None:
        self.calls.append((self.name, dict(self.args)))


class FailingJob(BaseScheduledJob):
    def execute(self) -> None:
        raise RuntimeError("job exploded")


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def conn() -> Generator[SqliteConnection, None, None]:
    """In-memory SQLite connection with the scheduler tables."""
    c = SqliteConnection(":memory:")
    create_tables(c)
    yield c
    c.close()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """File-backed SQLite path, shared by every connection a test opens."""
    return str(tmp_path / "cronspine.db")


# =============================================================================
# Clock and registries
# =============================================================================


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def jobs() -> JobRegistry:
    """Job registry without the built-in jobs."""
    return JobRegistry(builtins=False)


@pytest.fixture
def contributors() -> ContributorRegistry:
    return ContributorRegistry()


@pytest.fixture
def calls() -> list[tuple[str, dict[str, str]]]:
    """Executions recorded by jobs from :func:`recording_jobs`."""
    return []


@pytest.fixture
def recording_jobs(jobs: JobRegistry, calls: list) -> JobRegistry:
    """Registry where ``test.a``, ``test.b`` and ``test.c`` record their runs
    and ``test.boom`` always raises."""
    for name in ("test.a", "test.b", "test.c"):
        jobs.register(name, lambda args, _name=name: RecordingJob(args, name=_name, calls=calls))
    jobs.register("test.boom", FailingJob)
    return jobs


@pytest.fixture(autouse=True)
def reset_event_bus() -> Generator[None, None, None]:
    set_event_bus(None)
    yield
    set_event_bus(None)


# =============================================================================
# Sources and settings
# =============================================================================


@pytest.fixture
def write_source(tmp_path: Path) -> Callable[..., str]:
    """Write a YAML job source and return its path.

        path = write_source("billing.yaml", [{"job": "test.a", "frequency": {"hour": 1}}])
        path = write_source("broken.yaml", raw="jobs: [")
    """

    def _write(name: str, entries: list[dict[str, Any]] | None = None, *, raw: str | None = None) -> str:
        path = tmp_path / name
        if raw is None:
            raw = yaml.safe_dump({"apiVersion": "cronspine.io/v1", "kind": "Crontab", "jobs": entries or []})
        path.write_text(raw, encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def empty_source(write_source) -> str:
    return write_source("default.yaml", [])


@pytest.fixture
def settings(tmp_path: Path, empty_source: str, db_path: str) -> CronSpineSettings:
    """Settings pointing at a temp database and an empty default source."""
    return CronSpineSettings(
        data_dir=tmp_path,
        database_url=db_path,
        default_source=empty_source,
    )


@pytest.fixture
def scheduler(conn, settings, contributors, recording_jobs, clock) -> CronScheduler:
    """Scheduler over the in-memory connection with isolated registries."""
    return CronScheduler(conn, settings, contributors=contributors, jobs=recording_jobs, clock=clock)
