"""Health endpoints for the cronspine HTTP service.

``/health`` runs every registered :class:`HealthCheck` concurrently and
reports each one. ``/health/ready`` is the same report with a stricter
status code, and ``/health/live`` only proves the process answers.

Two checks ship with the package:

- ``database``: opens and closes a storage connection (required).
- ``scheduler``: reports the enabled flag, the gates and the size of the
  crontab and due set (optional; a disabled or sandboxed scheduler is still
  healthy, a failing one only degrades the service).

Health paths are excluded from the deferred trigger, so a load-balancer
probe never causes a job to run.

Tags:
    health, readiness, liveness, fastapi, cronspine
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Literal

import anyio
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from cronspine.core.connection import create_connection
from cronspine.core.settings import CronSpineSettings

_STARTED = time.monotonic()

Status = Literal["healthy", "degraded", "unhealthy"]


class CheckResult(BaseModel):
    status: Status
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Body of ``/health`` and ``/health/ready``."""

    status: Status = "healthy"
    service: str = ""
    version: str = ""
    uptime_s: float = Field(default_factory=lambda: round(time.monotonic() - _STARTED, 1))
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    checks: dict[str, CheckResult] = Field(default_factory=dict)


class LivenessResponse(BaseModel):
    status: str = "alive"


@dataclass
class HealthCheck:
    """One dependency probe.

    ``check_fn`` returns optional details and raises on failure. A failing
    ``required`` check makes the service ``unhealthy``; any other failure
    makes it ``degraded``.
    """

    name: str
    check_fn: Callable[[], Awaitable[dict[str, Any] | None]]
    required: bool = True
    timeout_s: float = 5.0

    async def run(self) -> CheckResult:
        started = time.monotonic()
        try:
            details = await asyncio.wait_for(self.check_fn(), timeout=self.timeout_s)
        except TimeoutError:
            return CheckResult(status="unhealthy", error="timeout")
        except Exception as exc:  # noqa: BLE001
            return CheckResult(status="unhealthy", latency_ms=_ms_since(started), error=str(exc)[:200])
        return CheckResult(status="healthy", latency_ms=_ms_since(started), details=details or {})


def _ms_since(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)


def database_check(settings: CronSpineSettings) -> HealthCheck:
    """Open and close a storage connection."""

    def _probe() -> dict[str, Any]:
        conn, info = create_connection(settings.resolved_database_url(), data_dir=settings.data_dir)
        try:
            conn.execute("SELECT 1")
        finally:
            conn.close()
        return {"backend": info.backend}

    async def check() -> dict[str, Any]:
        return await anyio.to_thread.run_sync(_probe)

    return HealthCheck("database", check)


def scheduler_check(settings: CronSpineSettings, **scheduler_kwargs: Any) -> HealthCheck:
    """Report :class:`~cronspine.scheduling.service.SchedulerStatus` as details."""
    from cronspine.scheduling.service import open_scheduler

    def _probe() -> dict[str, Any]:
        with open_scheduler(settings, **scheduler_kwargs) as scheduler:
            return scheduler.status().to_dict()

    async def check() -> dict[str, Any]:
        return await anyio.to_thread.run_sync(_probe)

    return HealthCheck("scheduler", check, required=False)


async def _report(checks: list[HealthCheck], service: str, version: str) -> HealthResponse:
    results = await asyncio.gather(*(hc.run() for hc in checks))
    failed = [hc for hc, result in zip(checks, results, strict=True) if result.status != "healthy"]
    if any(hc.required for hc in failed):
        status: Status = "unhealthy"
    elif failed:
        status = "degraded"
    else:
        status = "healthy"
    return HealthResponse(
        status=status,
        service=service,
        version=version,
        checks={hc.name: result for hc, result in zip(checks, results, strict=True)},
    )


def create_health_router(
    service_name: str,
    version: str,
    checks: list[HealthCheck] | None = None,
    prefix: str = "/health",
) -> APIRouter:
    """Router with ``{prefix}``, ``{prefix}/ready`` and ``{prefix}/live``.

    ``{prefix}`` answers 503 only when the service is unhealthy;
    ``{prefix}/ready`` answers 503 unless every check passed.
    """
    router = APIRouter(tags=["health"])
    registered = list(checks or [])

    @router.get(prefix, response_model=HealthResponse)
    async def health() -> JSONResponse:
        report = await _report(registered, service_name, version)
        code = 503 if report.status == "unhealthy" else 200
        return JSONResponse(content=report.model_dump(), status_code=code)

    @router.get(f"{prefix}/ready", response_model=HealthResponse)
    async def readiness() -> JSONResponse:
        report = await _report(registered, service_name, version)
        code = 200 if report.status == "healthy" else 503
        return JSONResponse(content=report.model_dump(), status_code=code)

    @router.get(f"{prefix}/live", response_model=LivenessResponse)
    async def liveness() -> LivenessResponse:
        return LivenessResponse()

    return router
