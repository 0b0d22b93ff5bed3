"""
REST API layer for cronspine.

Provides a FastAPI application factory whose requests drive the scheduler:
each request checks for due jobs and runs them after its response is sent.
The management endpoints delegate to the operations layer
(``cronspine.ops``).

Quick start::

    from cronspine.api import create_app

    app = create_app()  # ready for uvicorn

Manifesto:
    This package owns the HTTP boundary. Business logic lives in
    ``cronspine.ops`` and ``cronspine.scheduling``; routers here handle
    only serialisation, authentication, error mapping, and request context.

Tags:
    cronspine, api, REST, FastAPI, transport-layer

Doc-Types:
    api-reference
"""

from cronspine.api.app import create_app

__all__ = ["create_app"]
