"""
Typed response objects for operations.

Responses carry only domain data: no HTTP status codes, no CLI formatting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

RELOAD_NOTIFICATION = "Scheduled jobs reloaded."


@dataclass(frozen=True, slots=True)
class JobSummary:
    """One crontab entry with its run state."""

    identifier: str
    frequency: dict[str, int]
    interval_seconds: int
    args: dict[str, str] = field(default_factory=dict)
    last_run: str | None = None
    next_due_at: str | None = None
    due: bool = False


@dataclass(frozen=True, slots=True)
class CrontabView:
    """Result payload for :func:`cronspine.ops.crontab.get_crontab`."""

    enabled: bool
    sandbox: bool
    maintenance: bool
    jobs: list[JobSummary] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ReloadSummary:
    """Result payload for :func:`cronspine.ops.crontab.reload_crontab`."""

    sources: list[str]
    jobs: int
    data_changed: bool = True
    notification: str = RELOAD_NOTIFICATION
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class EnabledState:
    """Result payload for :func:`cronspine.ops.crontab.set_scheduler_enabled`."""

    enabled: bool
    changed: bool
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Result payload for :func:`cronspine.ops.crontab.run_pending_jobs`."""

    claimed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    succeeded: list[str] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)
    sandbox: bool = False
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class DatabaseInitResult:
    """Result payload for :func:`cronspine.ops.database.initialize_database`."""

    tables_created: list[str]
    jobs: int = 0
    dry_run: bool = False
