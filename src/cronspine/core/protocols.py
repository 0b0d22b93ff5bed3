"""
Protocol definitions for cronspine.

Manifesto:
    Protocols define contracts without inheritance:

    - **Decoupling:** The scheduler depends on shape, not implementation
    - **Testability:** Any object matching the protocol works
    - **Portability:** Same store code on SQLite and PostgreSQL

Architecture:
    ::

        protocols.py
        ├── Connection    : sync DB protocol (SqliteConnection, SAConnectionBridge)
        └── ScheduledJob  : the capability every job constructor must return

Guardrails:
    ❌ DON'T: Add implementation logic to protocol classes
    ✅ DO: Keep protocols pure contracts; implementations go in adapters

Tags:
    protocol, connection, database, scheduled-job, cronspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """
    Minimal synchronous database connection.

    Satisfied by :class:`~cronspine.core.sqlite_conn.SqliteConnection` and
    :class:`~cronspine.core.orm.SAConnectionBridge`. ``execute`` returns an
    object exposing ``rowcount`` for the last statement; the claimer relies
    on it to detect a lost race.

    Example:
        >>> def count_runs(conn: Connection) -> int:
        ...     conn.execute("SELECT COUNT(*) FROM cron_last_runs")
        ...     return conn.fetchone()[0]
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute a single statement."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from the last query."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from the last query."""
        ...

    def commit(self) -> None:
        """Commit the current transaction."""
        ...

    def rollback(self) -> None:
        """Roll back the current transaction."""
        ...


@runtime_checkable
class ScheduledJob(Protocol):
    """A unit of periodic work.

    Constructed by the job registry from the crontab entry's ``args`` and
    run once per claim.
    """

    def execute(self) -> Any:
        """Perform the job. Exceptions propagate to the batch executor."""
        ...


__all__ = ["Connection", "ScheduledJob"]
