"""API middleware package.

Manifesto:
    Cross-cutting concerns (auth, timing, request ids, errors) belong in
    middleware so routers stay focused on crontab management. The
    request-piggybacked trigger lives here too: it is a property of the
    request lifecycle, not of any endpoint.

Tags:
    cronspine, api, middleware, cross-cutting

Doc-Types:
    api-reference
"""
