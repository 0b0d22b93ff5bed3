"""Built-in jobs listed in the bundled default source."""

from __future__ import annotations

from typing import Any

from cronspine.core.logging import get_logger
from cronspine.scheduling.runner import BaseScheduledJob, JobRegistry
from cronspine.scheduling.store import LastRunRepository, SettingsStore

logger = get_logger(__name__)


class HeartbeatJob(BaseScheduledJob):
    """Logs a heartbeat so operators can see the scheduler is alive."""

    description = "Log a scheduler heartbeat"

    def execute(self) -> dict[str, Any]:
        logger.info("scheduler_heartbeat", args=self.args)
        return {"heartbeat": True, **self.args}


class PruneLastRunsJob(BaseScheduledJob):
    """Deletes last-run records of jobs that left the crontab."""

    description = "Delete last-run records for jobs no longer in the crontab"

    def execute(self) -> int:
        if self.context is None:
            raise RuntimeError("PruneLastRunsJob needs a storage connection")
        crontab = SettingsStore(self.context.conn).get_crontab()
        if crontab is None:
            # Nothing to compare against; keep every record
            return 0
        deleted = LastRunRepository(self.context.conn).delete_except(set(crontab.identifiers))
        logger.info("last_runs_pruned", deleted=deleted)
        return deleted


BUILTIN_JOBS = {
    "cronspine.heartbeat": HeartbeatJob,
    "cronspine.prune_last_runs": PruneLastRunsJob,
}


def register_builtin_jobs(registry: JobRegistry) -> None:
    """Register the built-in jobs unless an app already claimed their names."""
    for name, cls in BUILTIN_JOBS.items():
        if name not in registry:
            registry.register(name, cls)
