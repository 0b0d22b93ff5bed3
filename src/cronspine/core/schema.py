"""DDL for the scheduler tables.

Two tables, both created idempotently:

``cron_settings``
    Site-scoped key/value settings (``crontab``, ``enabled``). ``value`` is
    text; ``value_type`` records how to decode it (``object`` = JSON,
    ``bool``, ``string``).

``cron_last_runs``
    One row per job identifier with the ISO-8601 UTC instant of its last
    successful claim. Written only by the claimer.
"""

from __future__ import annotations

from cronspine.core.logging import get_logger
from cronspine.core.protocols import Connection

logger = get_logger(__name__)

SETTINGS_TABLE = "cron_settings"
LAST_RUNS_TABLE = "cron_last_runs"

SCHEMA_STATEMENTS: tuple[str, ...] = (
    f"""
    CREATE TABLE IF NOT EXISTS {SETTINGS_TABLE} (
        scope TEXT NOT NULL,
        name TEXT NOT NULL,
        value TEXT,
        value_type TEXT NOT NULL DEFAULT 'string',
        PRIMARY KEY (scope, name)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {LAST_RUNS_TABLE} (
        job_id TEXT PRIMARY KEY,
        last_run TEXT NOT NULL
    )
    """,
)


def create_tables(conn: Connection) -> list[str]:
    """Create the scheduler tables if they don't exist. Returns the table names."""
    for statement in SCHEMA_STATEMENTS:
        conn.execute(statement.strip())
    conn.commit()
    tables = [SETTINGS_TABLE, LAST_RUNS_TABLE]
    logger.debug("schema_applied", tables=tables)
    return tables


__all__ = ["SETTINGS_TABLE", "LAST_RUNS_TABLE", "SCHEMA_STATEMENTS", "create_tables"]
