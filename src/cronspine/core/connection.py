"""Connection factory: create settings-store connections from URL strings.

Supported URL schemes
---------------------

==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:`` or ``None``       SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``                SQLite file
``(file path)``     ``./data/cron.db`` or ``/tmp/cron.db``       SQLite file
``postgresql``      ``postgresql://user:pw@host:port/db``        PostgreSQL
``postgres``        ``postgres://user:pw@host:port/db``          PostgreSQL
==================  ==========================================  ============

Usage
-----
::

    from cronspine.core.connection import create_connection

    conn, info = create_connection("sqlite:///cron.db", init_schema=True)
    print(info)
    # ConnectionInfo(backend='sqlite', persistent=True, path='/abs/cron.db')

Each scheduler phase (selection before the endpoint, the deferred batch
after the response) opens its own connection: an in-memory database is
therefore private to one connection and only useful in tests.
PostgreSQL connections check out of one pooled engine per URL, kept for
the life of the process.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cronspine.core.errors import DatabaseError
from cronspine.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier: ``"sqlite"`` or ``"postgresql"``."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The original URL or path used to create the connection."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={self.url!r}")
        return f"ConnectionInfo({', '.join(parts)})"


def _create_sqlite_memory() -> tuple[Any, ConnectionInfo]:
    from cronspine.core.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:")
    return conn, ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")


def _create_sqlite_file(path_str: str) -> tuple[Any, ConnectionInfo]:
    from cronspine.core.sqlite_conn import SqliteConnection

    path = Path(path_str).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    resolved = str(path.resolve())
    conn = SqliteConnection(resolved)
    info = ConnectionInfo(backend="sqlite", persistent=True, url=path_str, resolved_path=resolved)
    return conn, info


def _create_postgresql(url: str) -> tuple[Any, ConnectionInfo]:
    from sqlalchemy.exc import SQLAlchemyError
    from sqlalchemy.orm import Session

    from cronspine.core.orm import SAConnectionBridge, get_cron_engine

    try:
        engine = get_cron_engine(url)
        with engine.connect():
            pass
        conn = SAConnectionBridge(Session(bind=engine, expire_on_commit=False))
    except (ImportError, SQLAlchemyError) as e:
        raise DatabaseError(f"Cannot connect to PostgreSQL: {e}", cause=e) from e
    return conn, ConnectionInfo(backend="postgresql", persistent=True, url=url)


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into ``(scheme, target)``.

    ``scheme`` is one of ``"memory"``, ``"sqlite"``, ``"postgresql"``, ``"file"``.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    for prefix in ("sqlite:///", "sqlite://"):
        if db.startswith(prefix):
            path = db[len(prefix):]
            if not path or path == ":memory:":
                return "memory", ":memory:"
            return "sqlite", path

    if db.startswith("postgres://"):
        # SQLAlchemy only knows the long scheme name
        return "postgresql", "postgresql://" + db[len("postgres://"):]

    if db.startswith(("postgresql://", "postgresql+")):
        return "postgresql", db

    return "file", db


def create_connection(
    db: str | None = None,
    *,
    init_schema: bool = False,
    data_dir: str | Path | None = None,
) -> tuple[Any, ConnectionInfo]:
    """Create a database connection from a URL, path, or keyword.

    Parameters
    ----------
    db:
        ``None``/``"memory"`` for in-memory SQLite, a file path or
        ``sqlite:///`` URL for file SQLite, ``postgresql://...`` for PostgreSQL.
    init_schema:
        If ``True``, create the scheduler tables (idempotent).
    data_dir:
        Resolve relative SQLite paths within this directory.

    Returns
    -------
    tuple[Connection, ConnectionInfo]
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        conn, info = _create_sqlite_memory()
    elif scheme in ("sqlite", "file"):
        if data_dir and not Path(target).is_absolute():
            target = str(Path(data_dir).expanduser() / target)
        conn, info = _create_sqlite_file(target)
    else:
        conn, info = _create_postgresql(target)

    if init_schema:
        from cronspine.core.schema import create_tables

        create_tables(conn)

    logger.debug("connection_opened", info=repr(info))
    return conn, info


__all__ = ["ConnectionInfo", "create_connection"]
