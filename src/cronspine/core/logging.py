"""
Structured logging for cronspine.

Manifesto:
    The scheduler does its real work after the response is gone, where
    nobody is watching. Logs are the only evidence that a job was claimed,
    skipped or failed, so every line is an event name plus fields:
    ``job_claimed job=cronspine.heartbeat request_id=...``.

Architecture:
    ::

        configure_logging(level, json_format, service)
            │
            ▼
        TimeStamper(iso) → merge_contextvars → add_log_level
            → service name → (JSON: ECS field names, format_exc_info)
            → JSONRenderer | ConsoleRenderer

    The deferred phase runs inside ``LogContext(request_id=...)`` so every
    line a batch emits names the request that triggered it.

Examples:
    >>> from cronspine.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> get_logger(__name__).info("crontab_reloaded", sources=2, jobs=5)

Tags:
    logging, structlog, observability, cronspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_service = "cronspine"


def _service_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service.name", _service)
    return event_dict


def _ecs_fields(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename ``timestamp``/``level`` to their ECS names for log shippers."""
    for plain, ecs in (("timestamp", "@timestamp"), ("level", "log.level")):
        if plain in event_dict:
            event_dict[ecs] = event_dict.pop(plain)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "cronspine",
) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum level name (``DEBUG`` .. ``ERROR``).
        json_format: JSON lines when True, colored console when False,
            JSON unless stdout is a terminal when None.
        service: Value of the ``service.name`` field.
    """
    global _service
    _service = service
    numeric_level = getattr(logging, level.upper())

    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _service_name,
    ]
    if json_format:
        processors += [_ecs_fields, structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # uvicorn and sqlalchemy log through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind fields into every following log line of the current task or thread."""
    structlog.contextvars.bind_contextvars(**kwargs)


class LogContext:
    """Bind fields for the duration of a ``with`` block.

    Previous values of the same keys come back on exit, so nested batches
    keep their own ``request_id``.
    """

    def __init__(self, **kwargs: Any):
        self._fields = kwargs
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> LogContext:
        self._tokens = structlog.contextvars.bind_contextvars(**self._fields)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)


__all__ = ["configure_logging", "get_logger", "bind_context", "LogContext"]
