"""SQLAlchemy engine factory and Connection bridge.

Manifesto:
    The stores speak the plain ``Connection`` protocol with ``?``
    placeholders. ``SAConnectionBridge`` wraps a SA ``Session`` so the same
    store code runs against PostgreSQL (or any SQLAlchemy URL).

This module provides:

* ``create_cron_engine``   -- Create a SA engine with sane defaults.
* ``get_cron_engine``      -- Process-wide engine per URL, so every
  per-request connection checks out of one pool.
* ``dispose_engines``      -- Close every cached pool (app shutdown).
* ``SAConnectionBridge``   -- Wraps a SA ``Session`` to satisfy
  ``cronspine.core.protocols.Connection``.

Tags:
    cronspine, orm, sqlalchemy, session, engine, bridge, connection

Doc-Types:
    api-reference
"""

from __future__ import annotations

import itertools
import re
import threading
from collections.abc import Sequence
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session


def create_cron_engine(url: str, **kwargs: Any) -> Engine:
    """Engine for the settings store.

    Server databases get ``pool_pre_ping`` so a worker that sat idle between
    requests does not claim a job over a dead connection.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    return _sa_create_engine(url, **kwargs)


_engines: dict[str, Engine] = {}
_engines_lock = threading.Lock()


def get_cron_engine(url: str) -> Engine:
    """Engine for ``url``, created on first use and shared afterwards."""
    with _engines_lock:
        engine = _engines.get(url)
        if engine is None:
            engine = _engines[url] = create_cron_engine(url)
        return engine


def dispose_engines() -> None:
    """Dispose and forget every cached engine."""
    with _engines_lock:
        engines = list(_engines.values())
        _engines.clear()
    for engine in engines:
        engine.dispose()


def _rewrite_placeholders(sql: str) -> str:
    """``?`` → ``:p0``, ``:p1``, ... in order, for ``text()``."""
    counter = itertools.count()
    return re.sub(r"\?", lambda _: f":p{next(counter)}", sql)


class SAConnectionBridge:
    """Adapter that makes a SQLAlchemy ``Session`` look like ``Connection``.

    Implements: ``execute``, ``fetchone``, ``fetchall``,
    ``commit``, ``rollback``, ``close`` and ``rowcount``.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._last_result: Any = None

    def execute(self, sql: str, parameters: Sequence[Any] | None = None) -> SAConnectionBridge:
        if parameters:
            mapping = {f"p{i}": v for i, v in enumerate(parameters)}
            self._last_result = self._session.execute(text(_rewrite_placeholders(sql)), mapping)
        else:
            self._last_result = self._session.execute(text(sql))
        return self

    def fetchone(self) -> tuple[Any, ...] | None:
        if self._last_result is None:
            return None
        row = self._last_result.fetchone()
        return tuple(row) if row is not None else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        if self._last_result is None:
            return []
        return [tuple(r) for r in self._last_result.fetchall()]

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    def close(self) -> None:
        self._session.close()

    @property
    def rowcount(self) -> int:
        """Rows matched by the last DML statement; -1 when the driver can't tell."""
        if self._last_result is None:
            return -1
        return getattr(self._last_result, "rowcount", -1)
