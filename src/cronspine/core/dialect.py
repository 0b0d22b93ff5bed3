"""SQL dialect helpers for the scheduler's two tables.

The stores only need three SQL shapes that differ across backends:
positional placeholders, "insert unless the key exists" and "insert or
update on key conflict". Everything else is portable SQL.

Both dialects emit ``?`` placeholders: SQLite takes them natively and the
SQLAlchemy bridge rewrites them to named binds before handing the statement
to the PostgreSQL driver.

Examples:
    >>> from cronspine.core.dialect import get_dialect
    >>> get_dialect("sqlite").insert_or_ignore("t", ["a", "b"])
    'INSERT OR IGNORE INTO t (a, b) VALUES (?, ?)'

Tags:
    dialect, sql, portability, cronspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from typing import ClassVar, Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL fragment generator for one backend."""

    name: str

    def placeholders(self, count: int) -> str: ...

    def insert_or_ignore(self, table: str, columns: list[str]) -> str: ...

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str: ...


class _BaseDialect:
    name: ClassVar[str] = ""
    # Casing of the pseudo-table holding the rejected row in an upsert
    excluded: ClassVar[str] = "excluded"

    def placeholders(self, count: int) -> str:
        return ", ".join(["?"] * count)

    def _insert(self, table: str, columns: list[str]) -> str:
        return f"INTO {table} ({', '.join(columns)}) VALUES ({self.placeholders(len(columns))})"

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        raise NotImplementedError

    def upsert(self, table: str, columns: list[str], key_columns: list[str]) -> str:
        assignments = ", ".join(
            f"{col} = {self.excluded}.{col}" for col in columns if col not in key_columns
        )
        return (
            f"INSERT {self._insert(table, columns)} "
            f"ON CONFLICT ({', '.join(key_columns)}) DO UPDATE SET {assignments}"
        )


class SQLiteDialect(_BaseDialect):
    """SQLite: ``INSERT OR IGNORE`` and ``excluded.col`` upserts."""

    name = "sqlite"

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        return f"INSERT OR IGNORE {self._insert(table, columns)}"


class PostgreSQLDialect(_BaseDialect):
    """PostgreSQL: ``ON CONFLICT DO NOTHING`` and ``EXCLUDED.col`` upserts."""

    name = "postgresql"
    excluded = "EXCLUDED"

    def insert_or_ignore(self, table: str, columns: list[str]) -> str:
        return f"INSERT {self._insert(table, columns)} ON CONFLICT DO NOTHING"


_DIALECTS: dict[str, type[_BaseDialect]] = {
    "sqlite": SQLiteDialect,
    "postgresql": PostgreSQLDialect,
    "postgres": PostgreSQLDialect,
}


def get_dialect(backend: str) -> Dialect:
    """Dialect for a backend name as reported by :class:`ConnectionInfo`.

    Raises:
        ValueError: If ``backend`` is not recognised.
    """
    try:
        return _DIALECTS[backend.lower()]()
    except KeyError:
        raise ValueError(f"Unknown dialect '{backend}'. Supported: postgresql, sqlite") from None


__all__ = ["Dialect", "SQLiteDialect", "PostgreSQLDialect", "get_dialect"]
