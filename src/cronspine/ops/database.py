"""
Database operations.

``initialize_database`` is the post-install step: create the scheduler
tables (idempotent) and build the crontab for the first time.
"""

from __future__ import annotations

from cronspine.core.errors import CronSpineError
from cronspine.core.logging import get_logger
from cronspine.core.schema import LAST_RUNS_TABLE, SETTINGS_TABLE, create_tables
from cronspine.ops.context import OperationContext
from cronspine.ops.responses import DatabaseInitResult
from cronspine.ops.result import OperationResult, start_timer
from cronspine.scheduling.service import CronScheduler

logger = get_logger(__name__)


def initialize_database(ctx: OperationContext) -> OperationResult[DatabaseInitResult]:
    """Create the scheduler tables and load the crontab."""
    timer = start_timer()

    if ctx.dry_run:
        return OperationResult.ok(
            DatabaseInitResult(tables_created=[SETTINGS_TABLE, LAST_RUNS_TABLE], dry_run=True),
            elapsed_ms=timer.elapsed_ms,
        )

    try:
        tables = create_tables(ctx.conn)
        scheduler = CronScheduler(ctx.conn, ctx.settings, backend=ctx.backend, **ctx.scheduler_options)
        crontab = scheduler.reload()
        return OperationResult.ok(
            DatabaseInitResult(tables_created=tables, jobs=len(crontab)),
            elapsed_ms=timer.elapsed_ms,
        )
    except CronSpineError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except Exception as exc:
        logger.exception("op_failed", op="initialize_database", error=str(exc))
        return OperationResult.fail("INTERNAL", f"Failed to create tables: {exc}", elapsed_ms=timer.elapsed_ms)
