"""Scheduler service: wires the scheduling components for one connection.

Manifesto:
    Every entry point (the request middleware, the REST router, the CLI,
    an event handler) needs the same five collaborators built the same way
    over one storage connection. ``CronScheduler`` is that wiring and
    nothing more; the decisions live in the components.

Tags:
    cronspine, scheduling, service, facade

Doc-Types:
    api-reference, architecture-diagram


┌──────────────────────────────────────────────────────────────────────────┐
│  CRONSCHEDULER                                                            │
│                                                                           │
│   conn ──► SettingsStore ──┐                                              │
│        └─► LastRunRepository ─┐                                           │
│                           │   │                                           │
│   JobDefinitionLoader ◄───┘   │      reload()      build + persist        │
│   DueJobSelector ◄────────────┤      select_due()  read-only              │
│   RaceSafeClaimer ◄───────────┘      try_claim()   compare-and-set        │
│   JobRunner                          run()         registry lookup        │
│                                                                           │
│   run_pending() = capture due set ─► execute_batch()                      │
│                                                                           │
│   Entry points:                                                           │
│   ├── DeferredCronMiddleware   select before, run_batch after response   │
│   ├── ops.crontab              management operations (API + CLI)          │
│   └── component toggles        event bus → component_toggled()            │
└──────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import anyio

from cronspine.core.connection import create_connection
from cronspine.core.dialect import get_dialect
from cronspine.core.events import COMPONENT_SETTING_CHANGED, Event, EventBus
from cronspine.core.logging import get_logger
from cronspine.core.protocols import Connection
from cronspine.core.settings import CronSpineSettings
from cronspine.scheduling.claimer import RaceSafeClaimer
from cronspine.scheduling.deferred import BatchReport, DeferredBatch, execute_batch
from cronspine.scheduling.loader import JobDefinitionLoader
from cronspine.scheduling.models import Crontab, JobDefinition
from cronspine.scheduling.plugins import load_plugins
from cronspine.scheduling.runner import JobRegistry, JobRunner, job_registry
from cronspine.scheduling.selector import Clock, DueJobSelector, utcnow
from cronspine.scheduling.sources import ContributorRegistry, contributors as default_contributors
from cronspine.scheduling.store import LastRunRepository, SettingsStore

logger = get_logger(__name__)


@dataclass
class SchedulerStatus:
    """Snapshot for health checks and ``crontab show``."""

    enabled: bool
    sandbox: bool
    maintenance: bool
    jobs: int
    due: int

    @property
    def active(self) -> bool:
        return self.enabled and not self.sandbox and not self.maintenance

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "sandbox": self.sandbox,
            "maintenance": self.maintenance,
            "active": self.active,
            "jobs": self.jobs,
            "due": self.due,
        }


class CronScheduler:
    """Scheduler components bound to one storage connection."""

    def __init__(
        self,
        conn: Connection,
        settings: CronSpineSettings | None = None,
        *,
        contributors: ContributorRegistry | None = None,
        jobs: JobRegistry | None = None,
        clock: Clock = utcnow,
        backend: str = "sqlite",
    ) -> None:
        self.conn = conn
        self.settings = settings or CronSpineSettings()
        load_plugins(self.settings.plugins)
        self.contributors = contributors if contributors is not None else default_contributors
        self.clock = clock

        dialect = get_dialect(backend)
        self.store = SettingsStore(conn, dialect)
        self.last_runs = LastRunRepository(conn, dialect)
        self.loader = JobDefinitionLoader(self.store, self.contributors, self.settings.default_source)
        self.selector = DueJobSelector(
            self.store,
            self.last_runs,
            self.loader,
            clock=clock,
            enabled_default=self.settings.enabled_default,
        )
        self.claimer = RaceSafeClaimer(self.selector, self.last_runs, clock=clock)
        self.runner = JobRunner(jobs if jobs is not None else job_registry, conn=conn)

    # -- crontab -----------------------------------------------------------

    def reload(self) -> Crontab:
        """Rebuild the crontab from all sources (raises ``ParseError``)."""
        return self.loader.reload()

    def crontab(self) -> Crontab:
        return self.selector.crontab()

    def last_run_map(self) -> dict[str, datetime]:
        return self.last_runs.all()

    # -- enabled flag ------------------------------------------------------

    def is_enabled(self) -> bool:
        return self.store.is_enabled(self.settings.enabled_default)

    def set_enabled(self, enabled: bool) -> None:
        self.store.set_enabled(enabled)
        logger.info("scheduler_enabled_changed", enabled=enabled)

    # -- selection / execution ---------------------------------------------

    def select_due(self) -> list[JobDefinition]:
        return self.selector.select_due()

    def try_claim(self, job: JobDefinition) -> bool:
        return self.claimer.try_claim(job)

    def run(self, job: JobDefinition) -> Any:
        return self.runner.run(job)

    def run_batch(self, batch: DeferredBatch) -> BatchReport:
        return execute_batch(batch, self.claimer, self.runner)

    def run_pending(self) -> BatchReport:
        """Select, claim and run due jobs outside any request.

        Honours the sandbox gate; maintenance only concerns web requests.
        """
        if self.settings.sandbox:
            logger.warning(
                "sandbox_mode_active",
                message="Application is set to sandbox mode and will not run any scheduled jobs",
            )
            return BatchReport()
        batch = DeferredBatch.capture(self.select_due(), registered_at=self.clock())
        return self.run_batch(batch)

    # -- contributors ------------------------------------------------------

    def component_toggled(self, name: str, enabled: bool) -> bool:
        """React to a component being enabled or disabled.

        Reloads only when ``name`` is a registered contributor. Returns
        whether a reload happened.
        """
        if not self.contributors.is_registered(name):
            logger.debug("component_toggle_ignored", component=name)
            return False
        self.contributors.set_enabled(name, enabled)
        self.reload()
        logger.info("contributor_toggled", component=name, enabled=enabled)
        return True

    def status(self) -> SchedulerStatus:
        enabled = self.is_enabled()
        crontab = self.store.get_crontab()
        return SchedulerStatus(
            enabled=enabled,
            sandbox=self.settings.sandbox,
            maintenance=self.settings.maintenance,
            jobs=len(crontab) if crontab is not None else 0,
            due=len(self.select_due()) if enabled and crontab is not None else 0,
        )


@contextmanager
def open_scheduler(
    settings: CronSpineSettings | None = None,
    **kwargs: Any,
) -> Iterator[CronScheduler]:
    """Open a fresh connection, yield a scheduler on it, close it afterwards."""
    settings = settings or CronSpineSettings()
    conn, info = create_connection(
        settings.resolved_database_url(),
        init_schema=True,
        data_dir=settings.data_dir,
    )
    try:
        yield CronScheduler(conn, settings, backend=info.backend, **kwargs)
    finally:
        close = getattr(conn, "close", None)
        if callable(close):
            close()


async def subscribe_component_toggles(
    bus: EventBus,
    settings: CronSpineSettings,
    **kwargs: Any,
) -> str:
    """Reload the crontab when a registered contributor is toggled.

    Listens for ``component.setting_changed`` events whose payload is
    ``{"setting": "enabled", "value": <bool>}`` and whose source is the
    component name. Returns the subscription id.
    """
    registry: ContributorRegistry = kwargs.get("contributors") or default_contributors

    def _toggle(name: str, enabled: bool) -> bool:
        with open_scheduler(settings, **kwargs) as scheduler:
            return scheduler.component_toggled(name, enabled)

    async def handler(event: Event) -> None:
        if event.payload.get("setting") != "enabled":
            return
        if not registry.is_registered(event.source):
            return
        await anyio.to_thread.run_sync(_toggle, event.source, bool(event.payload.get("value")))

    return await bus.subscribe(COMPONENT_SETTING_CHANGED, handler)


__all__ = [
    "SchedulerStatus",
    "CronScheduler",
    "open_scheduler",
    "subscribe_component_toggles",
]
