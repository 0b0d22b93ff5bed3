"""Timing middleware: ``X-Process-Time-Ms`` plus one ``request_completed`` line.

Only the foreground request is measured. When the request deferred a batch
(``request.state.deferred_jobs``, set by the deferred cron middleware), the
log line says how many jobs will run after the response; the jobs report
their own outcome under the same request id.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from cronspine.core.logging import get_logger

logger = get_logger(__name__)


class TimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Process-Time-Ms"] = str(elapsed_ms)

        deferred = getattr(request.state, "deferred_jobs", 0)
        log = logger.info if deferred else logger.debug
        log(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            elapsed_ms=elapsed_ms,
            deferred_jobs=deferred,
        )
        return response
