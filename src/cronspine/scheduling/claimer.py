"""Race-safe claiming of due jobs.

Several requests can select the same due job at nearly the same moment.
Before running a job each of them calls :meth:`RaceSafeClaimer.try_claim`,
which re-selects and then writes the new last-run instant with a
compare-and-set against the value it just observed. Only one writer can
match the old value, so only one request runs the job.

This is best effort, not exactly-once: when the driver does not report an
affected-row count the claim errs toward running the job.
"""

from __future__ import annotations

from datetime import datetime

from cronspine.core.logging import get_logger
from cronspine.scheduling.models import JobDefinition
from cronspine.scheduling.selector import Clock, DueJobSelector, utcnow
from cronspine.scheduling.store import LastRunRepository

logger = get_logger(__name__)


class RaceSafeClaimer:
    """Claims a due job by conditionally recording its run time."""

    def __init__(
        self,
        selector: DueJobSelector,
        last_runs: LastRunRepository,
        clock: Clock = utcnow,
    ) -> None:
        self.selector = selector
        self.last_runs = last_runs
        self.clock = clock

    def try_claim(self, job: JobDefinition) -> bool:
        """Return ``True`` if this caller should run ``job`` now."""
        entry = self._fresh_entry(job)
        if entry is None:
            logger.debug("job_no_longer_due", job=job.identifier)
            return False

        _, observed = entry
        rowcount = self.last_runs.claim(job.identifier, observed, self.clock())

        if rowcount is None or rowcount < 0:
            logger.info("job_claimed", job=job.identifier, rowcount="unknown")
            return True
        if rowcount == 0:
            logger.debug("job_claim_conflict", job=job.identifier)
            return False

        logger.info("job_claimed", job=job.identifier)
        return True

    def _fresh_entry(self, job: JobDefinition) -> tuple[JobDefinition, datetime | None] | None:
        """``(job, observed_last_run)`` from a fresh selection, ``None`` when not due."""
        for entry in self.selector.due_entries():
            if entry[0] == job:
                return entry
        return None


__all__ = ["RaceSafeClaimer"]
