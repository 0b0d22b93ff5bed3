"""Request-ID middleware: every request, and the batch it defers, gets an id.

The id comes from the client's ``X-Request-ID`` when it looks like an id,
otherwise a fresh UUID. It is stored on ``request.state`` (the deferred
middleware copies it into the batch) and bound into the structlog context,
so due-job selection, the claim and the jobs themselves log under the id of
the request that triggered them.
"""

from __future__ import annotations

import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from cronspine.core.logging import LogContext

REQUEST_ID_HEADER = "X-Request-ID"

# Client ids end up in every log line of the request
_VALID_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def resolve_request_id(header: str | None) -> str:
    if header and _VALID_ID.match(header):
        return header
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        with LogContext(request_id=request_id):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
