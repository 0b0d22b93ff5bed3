"""Persistent scheduler state: site settings and last-run records.

``SettingsStore`` is a small scoped key/value store (table
``cron_settings``). The scheduler keeps two site-scoped values in it: the
serialized crontab and the ``enabled`` flag.

``LastRunRepository`` owns ``cron_last_runs``. Its ``claim`` method is the
only serialization point between racing requests: a conditional write whose
affected-row count tells the caller whether it won.

Instants are stored as ISO-8601 UTC text so the compare-and-set guard is a
plain string equality on every backend.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from cronspine.core.dialect import Dialect, SQLiteDialect
from cronspine.core.errors import DatabaseError
from cronspine.core.logging import get_logger
from cronspine.core.protocols import Connection
from cronspine.core.schema import LAST_RUNS_TABLE, SETTINGS_TABLE
from cronspine.scheduling.models import Crontab

logger = get_logger(__name__)

SITE_SCOPE = "site"
CRONTAB_KEY = "crontab"
ENABLED_KEY = "enabled"


def format_instant(instant: datetime) -> str:
    """Serialize an instant as UTC ISO-8601 text with microseconds."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC).isoformat(timespec="microseconds")


def parse_instant(raw: str) -> datetime:
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


def _encode(value: Any, value_type: str) -> str:
    if value_type == "object":
        return value if isinstance(value, str) else json.dumps(value)
    if value_type == "bool":
        return "1" if value else "0"
    return str(value)


def _decode(raw: str | None, value_type: str) -> Any:
    if raw is None:
        return None
    if value_type == "object":
        return json.loads(raw)
    if value_type == "bool":
        return raw in ("1", "true", "True")
    if value_type == "int":
        return int(raw)
    return raw


class _Repository:
    """Shared error wrapping for the two stores."""

    def __init__(self, conn: Connection, dialect: Dialect | None = None) -> None:
        self.conn = conn
        self.dialect = dialect or SQLiteDialect()

    def _execute(self, sql: str, params: tuple = ()) -> Any:
        try:
            return self.conn.execute(sql, params)
        except Exception as e:
            self.conn.rollback()
            raise DatabaseError(f"Scheduler storage query failed: {e}", cause=e) from e

    def _commit(self) -> None:
        try:
            self.conn.commit()
        except Exception as e:
            self.conn.rollback()
            raise DatabaseError(f"Scheduler storage commit failed: {e}", cause=e) from e


class SettingsStore(_Repository):
    """Scoped key/value settings (``cron_settings``)."""

    def __init__(
        self,
        conn: Connection,
        dialect: Dialect | None = None,
        scope: str = SITE_SCOPE,
    ) -> None:
        super().__init__(conn, dialect)
        self.scope = scope

    def get(self, name: str) -> Any | None:
        """Return the decoded setting, or ``None`` if it was never written."""
        cursor = self._execute(
            f"SELECT value, value_type FROM {SETTINGS_TABLE} WHERE scope = ? AND name = ?",
            (self.scope, name),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return _decode(row[0], row[1])

    def set(self, name: str, value: Any, value_type: str = "string") -> None:
        sql = self.dialect.upsert(
            SETTINGS_TABLE,
            ["scope", "name", "value", "value_type"],
            ["scope", "name"],
        )
        self._execute(sql, (self.scope, name, _encode(value, value_type), value_type))
        self._commit()

    def delete(self, name: str) -> None:
        self._execute(
            f"DELETE FROM {SETTINGS_TABLE} WHERE scope = ? AND name = ?",
            (self.scope, name),
        )
        self._commit()

    # -- crontab -----------------------------------------------------------

    def get_crontab(self) -> Crontab | None:
        cursor = self._execute(
            f"SELECT value FROM {SETTINGS_TABLE} WHERE scope = ? AND name = ?",
            (self.scope, CRONTAB_KEY),
        )
        row = cursor.fetchone()
        if row is None or row[0] is None:
            return None
        return Crontab.from_json(row[0])

    def set_crontab(self, crontab: Crontab) -> None:
        """Replace the persisted crontab in a single write."""
        self.set(CRONTAB_KEY, crontab.to_json(), "object")

    # -- enabled flag ------------------------------------------------------

    def is_enabled(self, default: bool = True) -> bool:
        value = self.get(ENABLED_KEY)
        return default if value is None else bool(value)

    def set_enabled(self, enabled: bool) -> None:
        self.set(ENABLED_KEY, enabled, "bool")


class LastRunRepository(_Repository):
    """Job identifier → last successful claim instant (``cron_last_runs``)."""

    def get(self, job_id: str) -> datetime | None:
        cursor = self._execute(
            f"SELECT last_run FROM {LAST_RUNS_TABLE} WHERE job_id = ?",
            (job_id,),
        )
        row = cursor.fetchone()
        return parse_instant(row[0]) if row else None

    def all(self) -> dict[str, datetime]:
        cursor = self._execute(f"SELECT job_id, last_run FROM {LAST_RUNS_TABLE} ORDER BY job_id")
        return {row[0]: parse_instant(row[1]) for row in cursor.fetchall()}

    def claim(self, job_id: str, observed: datetime | None, now: datetime) -> int | None:
        """Record ``now`` as the last run, guarded by the value the caller saw.

        With no observed record this inserts and does nothing on conflict;
        otherwise it updates only while the stored instant still equals
        ``observed``. Returns the driver's affected-row count, ``None`` or
        ``-1`` when the driver does not report one.
        """
        if observed is None:
            sql = self.dialect.insert_or_ignore(LAST_RUNS_TABLE, ["job_id", "last_run"])
            cursor = self._execute(sql, (job_id, format_instant(now)))
        else:
            cursor = self._execute(
                f"UPDATE {LAST_RUNS_TABLE} SET last_run = ? WHERE job_id = ? AND last_run = ?",
                (format_instant(now), job_id, format_instant(observed)),
            )
        rowcount = getattr(cursor, "rowcount", None)
        self._commit()
        return rowcount

    def delete_except(self, keep: Iterable[str]) -> int:
        """Delete records for identifiers not in ``keep``. Returns rows deleted."""
        keep = list(keep)
        if keep:
            placeholders = self.dialect.placeholders(len(keep))
            cursor = self._execute(
                f"DELETE FROM {LAST_RUNS_TABLE} WHERE job_id NOT IN ({placeholders})",
                tuple(keep),
            )
        else:
            cursor = self._execute(f"DELETE FROM {LAST_RUNS_TABLE}")
        deleted = getattr(cursor, "rowcount", 0) or 0
        self._commit()
        return max(deleted, 0)


__all__ = [
    "SITE_SCOPE",
    "CRONTAB_KEY",
    "ENABLED_KEY",
    "format_instant",
    "parse_instant",
    "SettingsStore",
    "LastRunRepository",
]
