"""Deferred cron middleware: run due jobs after the response is sent.

Manifesto:
    The host has no cron daemon; its requests are the clock. Each request
    asks whether anything is due before it reaches the endpoint, lets the
    endpoint answer the client, and only then claims and runs the due jobs.
    The client never waits for a job and never sees a job's failure.

Architecture:
    ::

        request ──► excluded path / maintenance / sandbox? ──► pass through
            │
            ▼ (threadpool, fresh connection)
        select_due() ── error? log, pass through
            │
            ├── empty ──► pass through
            ▼
        DeferredBatch.capture(jobs, request_id)
            │
            ▼
        endpoint (optionally time-limited; 504 if nothing was sent yet)
            response start gets ``connection: close`` and, unless already
            encoded, ``content-encoding: identity``
            │
            ▼ finally, shielded from cancellation
        BackgroundTask(execute_batch) in the threadpool, fresh connection

Guardrails:
    ❌ DON'T: Reuse the request's connection in the deferred phase
    ✅ DO: Open a new one; the request's resources may already be released

    ❌ DON'T: Let a job exception reach the ASGI server
    ✅ DO: Log it; the response is already gone

Tags:
    cronspine, api, middleware, asgi, background-task, scheduling

Doc-Types:
    api-reference, architecture-diagram
"""

from __future__ import annotations

import re
from typing import Any

import anyio
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from cronspine.api.middleware.errors import problem_response
from cronspine.api.settings import CronSpineAPISettings
from cronspine.core.logging import LogContext, get_logger
from cronspine.scheduling.deferred import BatchReport, DeferredBatch
from cronspine.scheduling.selector import utcnow
from cronspine.scheduling.service import open_scheduler

logger = get_logger(__name__)


def _request_id(scope: Scope) -> str | None:
    state = scope.get("state") or {}
    if "request_id" in state:
        return state["request_id"]
    for name, value in scope.get("headers", []):
        if name == b"x-request-id":
            return value.decode("latin-1")
    return None


class DeferredCronMiddleware:
    """Pure ASGI middleware binding the scheduler to the request lifecycle.

    Parameters
    ----------
    app:
        The ASGI application to wrap.
    settings:
        Gates (``sandbox``, ``maintenance``), excluded paths, the foreground
        time limit and the storage URL.
    scheduler_kwargs:
        Extra keyword arguments for :func:`open_scheduler` (``contributors``,
        ``jobs``, ``clock``).
    """

    def __init__(
        self,
        app: ASGIApp,
        settings: CronSpineAPISettings,
        scheduler_kwargs: dict[str, Any] | None = None,
    ) -> None:
        self.app = app
        self.settings = settings
        self.scheduler_kwargs = scheduler_kwargs or {}
        self._excludes = [re.compile(p) for p in settings.trigger_exclude_patterns]
        self.last_report: BatchReport | None = None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self._should_trigger(scope["path"]):
            await self.app(scope, receive, send)
            return

        batch = await run_in_threadpool(self._select, _request_id(scope))
        if batch is None:
            await self.app(scope, receive, send)
            return
        scope.setdefault("state", {})["deferred_jobs"] = len(batch)

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
                headers = MutableHeaders(scope=message)
                headers["connection"] = "close"
                if "content-encoding" not in headers:
                    headers["content-encoding"] = "identity"
            await send(message)

        try:
            timeout = self.settings.request_timeout_seconds
            if timeout is None:
                await self.app(scope, receive, send_wrapper)
            else:
                with anyio.move_on_after(timeout) as cancel_scope:
                    await self.app(scope, receive, send_wrapper)
                if cancel_scope.cancelled_caught:
                    logger.warning("request_timed_out", path=scope["path"], timeout_s=timeout)
                    if not response_started:
                        response = problem_response(
                            status=504,
                            title="Gateway Timeout",
                            detail=f"Request exceeded {timeout}s",
                            instance=scope["path"],
                        )
                        await response(scope, receive, send_wrapper)
        finally:
            with anyio.CancelScope(shield=True):
                await BackgroundTask(self._execute, batch)()

    # ------------------------------------------------------------------ #

    def _should_trigger(self, path: str) -> bool:
        if any(p.search(path) for p in self._excludes):
            return False
        if self.settings.maintenance:
            return False
        if self.settings.sandbox:
            logger.warning(
                "sandbox_mode_active",
                message="Application is set to sandbox mode and will not run any scheduled jobs",
            )
            return False
        return True

    def _select(self, request_id: str | None) -> DeferredBatch | None:
        """Due set for this request, or ``None`` when there is nothing to defer."""
        clock = self.scheduler_kwargs.get("clock", utcnow)
        try:
            with open_scheduler(self.settings, **self.scheduler_kwargs) as scheduler:
                jobs = scheduler.select_due()
        except Exception as e:
            logger.error("due_selection_failed", error=str(e), request_id=request_id, exc_info=True)
            return None
        if not jobs:
            return None
        logger.debug("batch_deferred", jobs=[job.identifier for job in jobs], request_id=request_id)
        return DeferredBatch.capture(jobs, request_id=request_id, registered_at=clock())

    def _execute(self, batch: DeferredBatch) -> None:
        """Deferred phase: claim and run on a fresh connection."""
        with LogContext(request_id=batch.request_id):
            try:
                with open_scheduler(self.settings, **self.scheduler_kwargs) as scheduler:
                    self.last_report = scheduler.run_batch(batch)
            except Exception as e:
                logger.error("deferred_batch_failed", error=str(e), exc_info=True)
