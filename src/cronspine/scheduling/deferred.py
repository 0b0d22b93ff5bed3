"""Deferred batch: the work a request registers for after its response.

The host (the ASGI middleware, or the CLI) captures the due set into an
immutable :class:`DeferredBatch` while the request is being handled, and
hands it to :func:`execute_batch` once the response is out. The batch is
the explicit context for the deferred callback: it carries the jobs, the
working directory at capture time and who registered it.

Each job in the batch is claimed and run on its own; one job failing is
logged and recorded, and the next job still runs. The sandbox and
maintenance gates are not evaluated again here; the claim re-runs
selection, so a job disabled or already run since capture is skipped.
"""

from __future__ import annotations

import contextlib
import os
import traceback
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from cronspine.core.errors import categorize_error
from cronspine.core.logging import LogContext, get_logger
from cronspine.scheduling.claimer import RaceSafeClaimer
from cronspine.scheduling.models import JobDefinition
from cronspine.scheduling.runner import JobRunner

logger = get_logger(__name__)


@dataclass(frozen=True)
class DeferredBatch:
    """Due set captured at registration time."""

    jobs: tuple[JobDefinition, ...]
    working_dir: str
    registered_at: datetime
    request_id: str | None = None

    @classmethod
    def capture(
        cls,
        jobs: Sequence[JobDefinition],
        *,
        request_id: str | None = None,
        registered_at: datetime | None = None,
    ) -> DeferredBatch:
        return cls(
            jobs=tuple(jobs),
            working_dir=os.getcwd(),
            registered_at=registered_at or datetime.now(UTC),
            request_id=request_id,
        )

    def __len__(self) -> int:
        return len(self.jobs)


@dataclass(frozen=True)
class JobFailure:
    job: str
    error_type: str
    message: str
    traceback: str


@dataclass
class BatchReport:
    """Outcome of one deferred batch."""

    claimed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    succeeded: list[str] = field(default_factory=list)
    failed: list[JobFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "claimed": list(self.claimed),
            "skipped": list(self.skipped),
            "succeeded": list(self.succeeded),
            "failed": [
                {"job": f.job, "error_type": f.error_type, "message": f.message}
                for f in self.failed
            ],
        }


def _working_dir(path: str):
    if os.path.isdir(path) and path != os.getcwd():
        return contextlib.chdir(path)
    return contextlib.nullcontext()


def execute_batch(
    batch: DeferredBatch,
    claimer: RaceSafeClaimer,
    runner: JobRunner,
) -> BatchReport:
    """Claim and run every job of ``batch``, isolating failures per job."""
    report = BatchReport()
    if not batch.jobs:
        return report

    with LogContext(request_id=batch.request_id), _working_dir(batch.working_dir):
        logger.debug("batch_started", jobs=len(batch))
        for job in batch.jobs:
            try:
                if not claimer.try_claim(job):
                    report.skipped.append(job.identifier)
                    continue
                report.claimed.append(job.identifier)
                runner.run(job)
            except Exception as e:
                logger.error(
                    "job_failed",
                    job=job.identifier,
                    error_type=type(e).__name__,
                    category=categorize_error(e).value,
                    error=str(e),
                    exc_info=True,
                )
                report.failed.append(
                    JobFailure(
                        job=job.identifier,
                        error_type=type(e).__name__,
                        message=str(e),
                        traceback=traceback.format_exc(),
                    )
                )
            else:
                report.succeeded.append(job.identifier)

        logger.info(
            "batch_finished",
            claimed=len(report.claimed),
            skipped=len(report.skipped),
            failed=len(report.failed),
        )
    return report


__all__ = ["DeferredBatch", "JobFailure", "BatchReport", "execute_batch"]
