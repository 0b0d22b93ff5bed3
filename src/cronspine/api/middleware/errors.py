"""
Error handling: maps ops-layer error codes to RFC 7807 responses.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from cronspine.api.schemas.common import ErrorDetail, ProblemDetail
from cronspine.core.logging import get_logger

logger = get_logger(__name__)

# ── Error code → HTTP status mapping ─────────────────────────────────────
ERROR_CODE_TO_STATUS: dict[str, int] = {
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "VALIDATION_FAILED": 400,
    "INVALID_INPUT": 400,
    "UNAUTHORIZED": 401,
    "UNAVAILABLE": 503,
    "TIMEOUT": 504,
    "INTERNAL": 500,
}


def status_for_error_code(code: str) -> int:
    """Resolve an ops error code to HTTP status, defaulting to 500."""
    return ERROR_CODE_TO_STATUS.get(code, 500)


def problem_body(
    *,
    status: int,
    title: str,
    detail: str = "",
    instance: str = "",
    errors: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    body = ProblemDetail(title=title, status=status, detail=detail, instance=instance)
    if errors:
        body.errors = [ErrorDetail(**e) for e in errors]
    return body.model_dump()


def problem_response(
    *,
    status: int,
    title: str,
    detail: str = "",
    instance: str = "",
    errors: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    return JSONResponse(
        status_code=status,
        content=problem_body(status=status, title=title, detail=detail, instance=instance, errors=errors),
        media_type="application/problem+json",
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: 500 with ProblemDetail."""
    logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=exc)
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if request.app.state.settings.debug else "An unexpected error occurred.",
        instance=str(request.url),
    )
