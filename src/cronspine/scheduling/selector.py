"""Due-job selection.

A job is due when the time since its last recorded run is at least its
frequency interval. A job that has never run is always due. Selection is
read-only: it never touches last-run records.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from cronspine.core.logging import get_logger
from cronspine.scheduling.loader import JobDefinitionLoader
from cronspine.scheduling.models import Crontab, JobDefinition
from cronspine.scheduling.store import LastRunRepository, SettingsStore

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


def is_due(job: JobDefinition, last_run: datetime | None, now: datetime) -> bool:
    """Due iff never run, or ``now - last_run >= job.interval``."""
    if last_run is None:
        return True
    return now - last_run >= job.interval


class DueJobSelector:
    """Computes the due set from the crontab, the enabled flag and last runs."""

    def __init__(
        self,
        store: SettingsStore,
        last_runs: LastRunRepository,
        loader: JobDefinitionLoader,
        clock: Clock = utcnow,
        enabled_default: bool = True,
    ) -> None:
        self.store = store
        self.last_runs = last_runs
        self.loader = loader
        self.clock = clock
        self.enabled_default = enabled_default

    def crontab(self) -> Crontab:
        """Persisted crontab, reloading once when it is absent."""
        crontab = self.store.get_crontab()
        if crontab is None:
            logger.info("crontab_missing_reloading")
            self.loader.reload()
            crontab = self.store.get_crontab() or Crontab()
        return crontab

    def due_entries(self) -> list[tuple[JobDefinition, datetime | None]]:
        """Due jobs in crontab order, each with the last-run value observed."""
        if not self.store.is_enabled(self.enabled_default):
            return []

        crontab = self.crontab()
        if not len(crontab):
            return []

        now = self.clock()
        last_runs = self.last_runs.all()
        due = []
        for job in crontab:
            observed = last_runs.get(job.identifier)
            if is_due(job, observed, now):
                due.append((job, observed))
        return due

    def select_due(self) -> list[JobDefinition]:
        """Due jobs in crontab order; empty when the scheduler is disabled."""
        return [job for job, _ in self.due_entries()]


__all__ = ["Clock", "utcnow", "is_due", "DueJobSelector"]
