"""
Shared API router utilities.

- ``_dc()`` converts a dataclass or dict to a plain dict
- ``_handle_error()`` converts a failed OperationResult to a ``problem_response``

Tags:
    cronspine, api, utils, dataclass-conversion

Doc-Types: API_INFRASTRUCTURE
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi.responses import JSONResponse

from cronspine.api.middleware.errors import problem_response, status_for_error_code
from cronspine.ops.result import OperationResult


def _dc(obj: Any) -> dict[str, Any]:
    """Convert a dataclass (or dict) to a plain dict.

    Returns an empty dict for objects that are neither dataclasses nor dicts.
    """
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    return obj if isinstance(obj, dict) else {}


def _handle_error(result: OperationResult[Any], instance: str = "") -> JSONResponse:
    """Convert a failed ``OperationResult`` into a Problem Details response.

    The error code picks the HTTP status and the error message becomes the
    problem title. Error details (source path, job identifier) are listed
    under ``errors``.
    """
    if result.error is None:
        return problem_response(status=500, title="Operation failed", instance=instance)
    errors = [
        {"code": result.error.code, "message": str(value), "field": key}
        for key, value in result.error.details.items()
    ]
    return problem_response(
        status=status_for_error_code(result.error.code),
        title=result.error.message,
        instance=instance,
        errors=errors,
    )
