"""
FastAPI dependency injection: shared singletons and per-request factories.

Usage in routers::

    from cronspine.api.deps import OpContext

    @router.get("/crontab")
    def show(ctx: OpContext):
        ...

Tags:
    cronspine, api, dependency-injection, OpContext

Doc-Types:
    api-reference
"""

from __future__ import annotations

import uuid
from collections.abc import Generator
from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends, Request

from cronspine.api.settings import CronSpineAPISettings
from cronspine.core.connection import ConnectionInfo, create_connection
from cronspine.ops.context import OperationContext

# ── Settings (singleton) ─────────────────────────────────────────────────


@lru_cache(maxsize=1)
def get_settings() -> CronSpineAPISettings:
    """Cached settings, loaded once per process."""
    return CronSpineAPISettings()


# ── Database connection (per-request) ────────────────────────────────────


def get_connection(
    settings: Annotated[CronSpineAPISettings, Depends(get_settings)],
) -> Generator[tuple[Any, ConnectionInfo], None, None]:
    """Yield ``(conn, info)`` for the request and close the connection after."""
    conn, info = create_connection(
        settings.resolved_database_url(),
        init_schema=True,
        data_dir=settings.data_dir,
    )
    try:
        yield conn, info
    finally:
        if hasattr(conn, "close"):
            conn.close()


# ── Operation context (per-request) ──────────────────────────────────────


def get_operation_context(
    request: Request,
    settings: Annotated[CronSpineAPISettings, Depends(get_settings)],
    connection: Annotated[tuple[Any, ConnectionInfo], Depends(get_connection)],
) -> OperationContext:
    """Build an :class:`OperationContext` from the current request."""
    conn, info = connection
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    return OperationContext(
        conn=conn,
        settings=settings,
        backend=info.backend,
        request_id=request_id,
        caller="api",
        scheduler_options=getattr(request.app.state, "scheduler_kwargs", {}),
    )


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[CronSpineAPISettings, Depends(get_settings)]
OpContext = Annotated[OperationContext, Depends(get_operation_context)]
