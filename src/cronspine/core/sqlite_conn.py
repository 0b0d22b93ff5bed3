"""SQLite connection adapter.

Wraps a raw :class:`sqlite3.Connection` to satisfy the
:class:`~cronspine.core.protocols.Connection` protocol, exposing
``fetchone()`` / ``fetchall()`` / ``rowcount`` at the connection level.

Usage::

    from cronspine.core.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:")
    conn.execute("SELECT job_id FROM cron_last_runs")
    rows = conn.fetchall()
    conn.close()
"""

from __future__ import annotations

import sqlite3
from typing import Any


class SqliteConnection:
    """Adapter: ``sqlite3.Connection`` → ``Connection`` protocol.

    Maintains a single cursor so that ``execute`` / ``fetchone`` /
    ``fetchall`` / ``rowcount`` operate on the same statement.
    """

    def __init__(
        self,
        path: str = ":memory:",
        *,
        row_factory: Any = sqlite3.Row,
        timeout: float = 5.0,
    ) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False, timeout=timeout)
        self._conn.row_factory = row_factory
        self._cursor = self._conn.cursor()

    # -- Connection protocol -----------------------------------------------

    def execute(self, sql: str, params: tuple = ()) -> Any:
        self._cursor.execute(sql, params)
        return self._cursor

    def fetchone(self) -> Any:
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        return self._cursor.fetchall()

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    # -- convenience -------------------------------------------------------

    @property
    def rowcount(self) -> int:
        """Rows affected by the last DML statement (-1 when unknown)."""
        return self._cursor.rowcount

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection`` (e.g. for pragmas)."""
        return self._conn

    def __repr__(self) -> str:
        return f"SqliteConnection({self._conn!r})"
