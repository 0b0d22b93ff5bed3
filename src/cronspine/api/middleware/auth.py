"""
API-key authentication middleware.

When ``CRONSPINE_API_KEY`` is set, every request must include a matching
``X-API-Key`` header (or ``?api_key=`` query param). Unauthenticated
requests receive a 401 problem response.

Bypass paths (no auth required):
  - ``/health/*``
  - ``/docs``, ``/redoc``, ``/openapi.json``

Tags:
    cronspine, api, middleware, authentication, API-key

Doc-Types:
    api-reference
"""

from __future__ import annotations

import re

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from cronspine.api.middleware.errors import problem_response

# Paths that never require authentication
_BYPASS_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^/health"),
    re.compile(r"/docs$"),
    re.compile(r"/redoc$"),
    re.compile(r"/openapi\.json$"),
]


def _is_bypass(path: str) -> bool:
    """Return True if *path* should skip authentication."""
    return any(p.search(path) for p in _BYPASS_PATTERNS)


class AuthMiddleware(BaseHTTPMiddleware):
    """Reject requests that lack a valid API key.

    ``api_key=None`` (the default) disables enforcement.
    """

    def __init__(self, app: object, api_key: str | None = None) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._api_key = api_key

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._api_key is None or _is_bypass(request.url.path):
            return await call_next(request)

        provided = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if provided != self._api_key:
            return problem_response(
                status=401,
                title="Unauthorized",
                detail="Missing or invalid API key. Provide X-API-Key header.",
                instance=request.url.path,
            )
        return await call_next(request)
