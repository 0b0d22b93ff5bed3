"""
Typed errors raised by the scheduler.

A reload that meets a broken source, a crontab entry naming a job nobody
registered, and a settings store that went away are three different
failures. Each has its own type so the ops layer can pick an error code,
and the deferred phase can log a category, without matching on messages.

Manifesto:
    - **Typed:** ``ParseError`` for sources, ``ConfigError`` for job
      wiring, ``DatabaseError`` for storage
    - **Contextual:** errors name the ``source`` file and the ``job``
      identifier they are about
    - **Chained:** the underlying exception travels as ``cause``

Architecture:
    ::

        CronSpineError (category, retryable, context, cause)
        ├── ParseError        PARSE     reload aborted, crontab kept
        ├── ConfigError       CONFIG
        │   └── UnknownJobError         identifier not in the job registry
        └── DatabaseError     DATABASE  settings store / last-run table

Guardrails:
    ❌ DON'T: Treat a claim conflict or a zero frequency as an error
    ✅ DO: Log the conflict at debug and normalize the frequency

Tags:
    error-handling, exception-hierarchy, cronspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Where a failure came from."""

    PARSE = "PARSE"          # job-definition source unreadable or malformed
    CONFIG = "CONFIG"        # job wiring: unknown identifier, bad settings
    DATABASE = "DATABASE"    # settings store or last-run table
    INTERNAL = "INTERNAL"    # raised by cronspine without a better category
    UNKNOWN = "UNKNOWN"      # anything raised by a job itself


@dataclass
class ErrorContext:
    """What an error is about. ``to_dict()`` drops unset fields and flattens
    ``metadata`` so it can be splatted into a log call."""

    job: str | None = None
    source: str | None = None
    request_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        named = {"job": self.job, "source": self.source, "request_id": self.request_id}
        out = {key: value for key, value in named.items() if value is not None}
        out.update(self.metadata)
        return out


class CronSpineError(Exception):
    """Base class of every error cronspine raises on purpose.

    Examples:
        >>> CronSpineError("store unavailable").category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> ParseError("bad entry", source="jobs.yaml").with_context(job="a.b").context.job
        'a.b'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = self.default_retryable if retryable is None else retryable
        self.context = context or ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CronSpineError:
        """Attach context and return ``self`` so it can be raised inline.

        Keys that are not fields of :class:`ErrorContext` land in ``metadata``.
        """
        for key, value in kwargs.items():
            if key in ("job", "source", "request_id"):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if context := self.context.to_dict():
            out["context"] = context
        if self.cause is not None:
            out["cause"] = str(self.cause)
        return out

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


class ParseError(CronSpineError):
    """A job-definition source could not be read or has an invalid shape.

    Aborts the whole reload; the persisted crontab stays as it was.
    """

    default_category = ErrorCategory.PARSE

    def __init__(self, message: str, *, source: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        if source is not None:
            self.context.source = source


class ConfigError(CronSpineError):
    """Wiring or settings mistake; retrying will not help."""

    default_category = ErrorCategory.CONFIG


class UnknownJobError(ConfigError):
    """The crontab names a job identifier with no registered constructor."""

    def __init__(self, identifier: str, available: list[str] | None = None):
        self.identifier = identifier
        self.available = list(available or [])
        message = f"Unknown job type: {identifier}"
        if self.available:
            message = f"{message}. Available: {', '.join(self.available)}"
        super().__init__(message, context=ErrorContext(job=identifier))


class DatabaseError(CronSpineError):
    """The settings store or the last-run table could not be reached or queried."""

    default_category = ErrorCategory.DATABASE


def categorize_error(error: Exception) -> ErrorCategory:
    """Category for logging any exception, including ones raised by jobs."""
    if isinstance(error, CronSpineError):
        return error.category
    if isinstance(error, (KeyError, AttributeError)):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CronSpineError",
    "ParseError",
    "ConfigError",
    "UnknownJobError",
    "DatabaseError",
    "categorize_error",
]
