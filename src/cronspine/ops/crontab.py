"""
Crontab operations.

Management of the request-piggybacked scheduler: inspect the crontab and
the due set, rebuild the crontab from its sources, flip the site-wide
enabled flag and run due jobs on demand. Shared by the REST router and the
CLI.
"""

from __future__ import annotations

from datetime import datetime

from cronspine.core.errors import CronSpineError
from cronspine.core.logging import get_logger
from cronspine.ops.context import OperationContext
from cronspine.ops.responses import (
    CrontabView,
    EnabledState,
    JobSummary,
    ReloadSummary,
    RunSummary,
)
from cronspine.ops.result import OperationResult, PagedResult, start_timer
from cronspine.scheduling.models import JobDefinition
from cronspine.scheduling.selector import is_due
from cronspine.scheduling.service import CronScheduler
from cronspine.scheduling.sources import parse_source
from cronspine.scheduling.store import format_instant

logger = get_logger(__name__)


def _scheduler(ctx: OperationContext) -> CronScheduler:
    return CronScheduler(ctx.conn, ctx.settings, backend=ctx.backend, **ctx.scheduler_options)


def _summary(job: JobDefinition, last_run: datetime | None, now: datetime) -> JobSummary:
    return JobSummary(
        identifier=job.identifier,
        frequency=dict(job.frequency),
        interval_seconds=int(job.interval.total_seconds()),
        args=dict(job.args),
        last_run=format_instant(last_run) if last_run else None,
        next_due_at=format_instant(last_run + job.interval) if last_run else None,
        due=is_due(job, last_run, now),
    )


def get_crontab(ctx: OperationContext) -> OperationResult[CrontabView]:
    """Crontab entries with their last runs and the scheduler flags."""
    timer = start_timer()

    try:
        scheduler = _scheduler(ctx)
        crontab = scheduler.crontab()
        last_runs = scheduler.last_run_map()
        now = scheduler.clock()
        view = CrontabView(
            enabled=scheduler.is_enabled(),
            sandbox=ctx.settings.sandbox,
            maintenance=ctx.settings.maintenance,
            jobs=[_summary(job, last_runs.get(job.identifier), now) for job in crontab],
        )
        return OperationResult.ok(view, elapsed_ms=timer.elapsed_ms)
    except CronSpineError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", op="get_crontab", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to read crontab: {exc}", elapsed_ms=timer.elapsed_ms)


def list_due_jobs(ctx: OperationContext) -> PagedResult[JobSummary]:
    """Jobs that a request arriving now would run (empty when disabled)."""
    timer = start_timer()

    try:
        scheduler = _scheduler(ctx)
        now = scheduler.clock()
        summaries = [_summary(job, observed, now) for job, observed in scheduler.selector.due_entries()]
        warnings = []
        if ctx.settings.sandbox:
            warnings.append("Sandbox mode: requests will not run these jobs")
        return PagedResult.from_items(
            summaries,
            total=len(summaries),
            limit=max(len(summaries), 1),
            warnings=warnings,
            elapsed_ms=timer.elapsed_ms,
        )
    except CronSpineError as exc:
        return PagedResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", op="list_due_jobs", error=str(exc))
        return PagedResult.fail("INTERNAL", f"Failed to select due jobs: {exc}", elapsed_ms=timer.elapsed_ms)


def reload_crontab(ctx: OperationContext) -> OperationResult[ReloadSummary]:
    """Rebuild the crontab from every contributed source and the default one.

    A source that fails to parse aborts the reload with ``VALIDATION_FAILED``
    and leaves the persisted crontab as it was. With ``dry_run`` the sources
    are parsed but nothing is written.
    """
    timer = start_timer()

    try:
        scheduler = _scheduler(ctx)
        sources = scheduler.loader.sources()
        if ctx.dry_run:
            jobs = sum(len(parse_source(source)) for source in sources)
            return OperationResult.ok(
                ReloadSummary(sources=sources, jobs=jobs, data_changed=False, dry_run=True),
                elapsed_ms=timer.elapsed_ms,
            )

        crontab = scheduler.reload()
        logger.info("crontab_reload_requested", caller=ctx.caller, request_id=ctx.request_id)
        return OperationResult.ok(
            ReloadSummary(sources=sources, jobs=len(crontab)),
            elapsed_ms=timer.elapsed_ms,
        )
    except CronSpineError as exc:
        logger.warning("crontab_reload_failed", error=exc.message, **exc.context.to_dict())
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", op="reload_crontab", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to reload crontab: {exc}", elapsed_ms=timer.elapsed_ms)


def set_scheduler_enabled(ctx: OperationContext, enabled: bool) -> OperationResult[EnabledState]:
    """Turn the request-driven scheduler on or off site-wide."""
    timer = start_timer()

    try:
        scheduler = _scheduler(ctx)
        before = scheduler.is_enabled()
        if ctx.dry_run:
            return OperationResult.ok(
                EnabledState(enabled=enabled, changed=before != enabled, dry_run=True),
                elapsed_ms=timer.elapsed_ms,
            )
        scheduler.set_enabled(enabled)
        return OperationResult.ok(
            EnabledState(enabled=enabled, changed=before != enabled),
            elapsed_ms=timer.elapsed_ms,
        )
    except CronSpineError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", op="set_scheduler_enabled", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to update scheduler flag: {exc}", elapsed_ms=timer.elapsed_ms)


def run_pending_jobs(ctx: OperationContext) -> OperationResult[RunSummary]:
    """Claim and run every due job now, as a request's deferred phase would.

    Individual job failures do not fail the operation; they are listed in
    the payload and repeated as warnings.
    """
    timer = start_timer()

    try:
        scheduler = _scheduler(ctx)
        if ctx.settings.sandbox:
            return OperationResult.ok(
                RunSummary(sandbox=True),
                warnings=["Sandbox mode: scheduled jobs are not run"],
                elapsed_ms=timer.elapsed_ms,
            )
        if ctx.dry_run:
            due = [job.identifier for job in scheduler.select_due()]
            return OperationResult.ok(RunSummary(claimed=due, dry_run=True), elapsed_ms=timer.elapsed_ms)

        report = scheduler.run_pending()
        payload = report.to_dict()
        warnings = [f"{f['job']} failed: {f['error_type']}: {f['message']}" for f in payload["failed"]]
        return OperationResult.ok(
            RunSummary(**payload),
            warnings=warnings,
            elapsed_ms=timer.elapsed_ms,
        )
    except CronSpineError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", op="run_pending_jobs", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to run pending jobs: {exc}", elapsed_ms=timer.elapsed_ms)
