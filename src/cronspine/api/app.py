"""
FastAPI application factory.

``create_app()`` wires middleware, routers, error handlers, and
lifespan events into a single ``FastAPI`` instance.

Manifesto:
    The app factory is the single composition root. The deferred cron
    middleware, the management routers and the event subscriptions are
    wired here so the rest of the codebase never touches ``FastAPI``
    directly.

Tags:
    cronspine, api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import anyio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware

from cronspine.api.deps import get_settings
from cronspine.api.middleware.auth import AuthMiddleware
from cronspine.api.middleware.deferred import DeferredCronMiddleware
from cronspine.api.middleware.errors import unhandled_exception_handler
from cronspine.api.middleware.request_id import RequestIDMiddleware
from cronspine.api.middleware.timing import TimingMiddleware
from cronspine.api.settings import CronSpineAPISettings
from cronspine.core.connection import create_connection
from cronspine.core.errors import CronSpineError
from cronspine.core.events import get_event_bus
from cronspine.core.logging import get_logger
from cronspine.core.orm import dispose_engines


def _init_database(settings: CronSpineAPISettings) -> str:
    conn, info = create_connection(
        settings.resolved_database_url(),
        init_schema=True,
        data_dir=settings.data_dir,
    )
    conn.close()
    return info.backend


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: create tables, subscribe to component toggles."""
    from cronspine.scheduling.service import subscribe_component_toggles

    log = get_logger("cronspine.api")
    log.info("cronspine API starting", version=app.version)
    settings: CronSpineAPISettings = app.state.settings

    try:
        backend = await anyio.to_thread.run_sync(_init_database, settings)
        log.info("database initialized", backend=backend)
    except CronSpineError as e:
        log.warning("database auto-init failed", error=e.message)

    bus = get_event_bus()
    subscription = await subscribe_component_toggles(bus, settings, **app.state.scheduler_kwargs)

    yield

    await bus.unsubscribe(subscription)
    await anyio.to_thread.run_sync(dispose_engines)
    log.info("cronspine API shutting down")


def create_app(
    *,
    settings: CronSpineAPISettings | None = None,
    scheduler_kwargs: dict[str, Any] | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : CronSpineAPISettings | None
        Override settings (useful for testing). When ``None`` the cached
        singleton from :func:`get_settings` is used.
    scheduler_kwargs : dict | None
        Passed to every scheduler the app builds (``contributors``, ``jobs``,
        ``clock``); tests use it to isolate registries and freeze time.
    """

    settings = settings or get_settings()
    scheduler_kwargs = scheduler_kwargs or {}

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    # Stash on app state for the lifespan and dependencies
    app.state.settings = settings
    app.state.scheduler_kwargs = scheduler_kwargs

    app.dependency_overrides[get_settings] = lambda: settings

    # ── Middleware (innermost → outermost) ────────────────────────────
    # The deferred middleware must sit inside RequestIDMiddleware so the
    # batch inherits the request id.
    app.add_middleware(DeferredCronMiddleware, settings=settings, scheduler_kwargs=scheduler_kwargs)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(AuthMiddleware, api_key=settings.api_key)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size)

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from cronspine.api.routers import crontab
    from cronspine.core.health import create_health_router, database_check, scheduler_check

    app.include_router(
        create_health_router(
            "cronspine",
            version=settings.api_version,
            checks=[database_check(settings), scheduler_check(settings, **scheduler_kwargs)],
        ),
        tags=["health"],
    )
    app.include_router(crontab.router, prefix=settings.api_prefix, tags=["crontab"])

    return app
