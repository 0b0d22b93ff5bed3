"""
Crontab router: inspect and manage the request-piggybacked scheduler.

GET    /crontab
GET    /crontab/due
POST   /crontab/reload
PUT    /crontab/enabled
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response
from starlette.concurrency import run_in_threadpool

from cronspine.api.deps import OpContext
from cronspine.api.schemas.common import PagedResponse, PageMeta, SuccessResponse
from cronspine.api.schemas.crontab import CrontabSchema, EnabledBody, EnabledSchema, JobSchema, ReloadAck
from cronspine.api.utils import _dc, _handle_error
from cronspine.core.events import CRONTAB_RELOADED, Event, get_event_bus

router = APIRouter(prefix="/crontab")

DATA_CHANGED_HEADER = "X-Data-Changed"


@router.get("", response_model=SuccessResponse[CrontabSchema])
def show_crontab(ctx: OpContext, request: Request):
    """Show the crontab with each entry's last run and due state.

    The crontab is built from its sources on first read.

    Example:
        GET /api/v1/crontab

        Response:
        {
            "data": {
                "enabled": true,
                "sandbox": false,
                "maintenance": false,
                "jobs": [
                    {
                        "identifier": "cronspine.heartbeat",
                        "frequency": {"hour": 1},
                        "interval_seconds": 3600,
                        "args": {"channel": "scheduler"},
                        "last_run": "2026-02-14T09:00:00.000000+00:00",
                        "next_due_at": "2026-02-14T10:00:00.000000+00:00",
                        "due": false
                    }
                ]
            }
        }
    """
    from cronspine.ops.crontab import get_crontab

    result = get_crontab(ctx)
    if not result.success:
        return _handle_error(result, instance=request.url.path)
    return SuccessResponse(
        data=CrontabSchema(**_dc(result.data)),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.get("/due", response_model=PagedResponse[JobSchema])
def list_due(ctx: OpContext, request: Request):
    """List the jobs a request arriving now would run.

    Read-only: nothing is claimed. Empty when the scheduler is disabled.
    """
    from cronspine.ops.crontab import list_due_jobs

    result = list_due_jobs(ctx)
    if not result.success:
        return _handle_error(result, instance=request.url.path)
    items = [JobSchema(**_dc(j)) for j in (result.data or [])]
    return PagedResponse(
        data=items,
        page=PageMeta(
            total=result.total,
            limit=result.limit,
            offset=result.offset,
            has_more=result.has_more,
        ),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.post("/reload", response_model=SuccessResponse[ReloadAck])
async def reload(
    ctx: OpContext,
    request: Request,
    response: Response,
    dry_run: bool = Query(False, description="Parse the sources without persisting"),
):
    """Rebuild the crontab from every contributed source.

    On success the acknowledgement carries ``data_changed`` and a transient
    notification, and the ``X-Data-Changed: crontab`` header tells clients
    to refresh their view. A ``crontab.reloaded`` event is published on the
    bus. A source that fails to parse yields a 400 and leaves the stored
    crontab untouched.
    """
    from cronspine.ops.crontab import reload_crontab

    ctx.dry_run = dry_run
    result = await run_in_threadpool(reload_crontab, ctx)
    if not result.success:
        return _handle_error(result, instance=request.url.path)
    summary = result.data
    if summary.data_changed:
        response.headers[DATA_CHANGED_HEADER] = "crontab"
        await get_event_bus().publish(
            Event(
                event_type=CRONTAB_RELOADED,
                source="api",
                payload={"jobs": summary.jobs, "sources": summary.sources},
                correlation_id=ctx.request_id,
            )
        )
    return SuccessResponse(
        data=ReloadAck(
            data_changed=summary.data_changed,
            notification=summary.notification,
            sources=summary.sources,
            jobs=summary.jobs,
        ),
        elapsed_ms=result.elapsed_ms,
        warnings=result.warnings,
    )


@router.put("/enabled", response_model=SuccessResponse[EnabledSchema])
def set_enabled(ctx: OpContext, request: Request, body: EnabledBody):
    """Turn the scheduler on or off site-wide.

    While disabled no request selects any job; last runs are kept.
    """
    from cronspine.ops.crontab import set_scheduler_enabled

    result = set_scheduler_enabled(ctx, body.enabled)
    if not result.success:
        return _handle_error(result, instance=request.url.path)
    return SuccessResponse(
        data=EnabledSchema(enabled=result.data.enabled, changed=result.data.changed),
        elapsed_ms=result.elapsed_ms,
    )
