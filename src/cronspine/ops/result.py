"""
Operation result envelope.

Every operation function returns an :class:`OperationResult`; list
operations return a :class:`PagedResult`. Routers and CLI commands render
the envelope and never see scheduler exceptions. A :class:`CronSpineError`
becomes one of two codes:

========================  ==============================================
``VALIDATION_FAILED``     the caller can fix it (bad source, unknown job)
``INTERNAL``              storage failure or an unexpected exception
========================  ==============================================
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, TypeVar

from cronspine.core.errors import CronSpineError, DatabaseError, ErrorCategory

T = TypeVar("T")

VALIDATION_FAILED = "VALIDATION_FAILED"
INTERNAL = "INTERNAL"


@dataclass(frozen=True, slots=True)
class OperationError:
    """Why an operation failed.

    ``details`` carries the error context (``source`` for a broken job
    source, ``job`` for an unknown identifier).
    """

    code: str
    message: str
    category: ErrorCategory | None = None
    details: dict[str, Any] = field(default_factory=dict)
    retryable: bool = False


@dataclass
class OperationResult[T]:
    """Success or failure of one operation. Build it with :meth:`ok`,
    :meth:`fail` or :meth:`from_error`."""

    success: bool
    data: T | None = None
    error: OperationError | None = None
    warnings: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @classmethod
    def ok(cls, data: T, *, warnings: list[str] | None = None, elapsed_ms: float = 0.0) -> OperationResult[T]:
        return cls(success=True, data=data, warnings=list(warnings or []), elapsed_ms=elapsed_ms)

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        category: ErrorCategory | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        error = OperationError(code, message, category, dict(details or {}), retryable)
        return cls(success=False, error=error, elapsed_ms=elapsed_ms)

    @classmethod
    def from_error(cls, exc: CronSpineError, *, elapsed_ms: float = 0.0) -> OperationResult[T]:
        code = INTERNAL if isinstance(exc, DatabaseError) else VALIDATION_FAILED
        return cls.fail(
            code,
            exc.message,
            category=exc.category,
            details=exc.context.to_dict(),
            retryable=exc.retryable,
            elapsed_ms=elapsed_ms,
        )


@dataclass
class PagedResult(OperationResult[list[T]]):
    """List result with the page window it covers."""

    total: int = 0
    limit: int = 50
    offset: int = 0
    has_more: bool = False

    @classmethod
    def from_items(
        cls,
        items: list[T],
        total: int,
        *,
        limit: int = 50,
        offset: int = 0,
        warnings: list[str] | None = None,
        elapsed_ms: float = 0.0,
    ) -> PagedResult[T]:
        return cls(
            success=True,
            data=items,
            warnings=list(warnings or []),
            elapsed_ms=elapsed_ms,
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + limit < total,
        )


class _Stopwatch:
    __slots__ = ("_started",)

    def __init__(self) -> None:
        self._started = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000


def start_timer() -> _Stopwatch:
    """Start timing an operation; read ``elapsed_ms`` when it returns."""
    return _Stopwatch()
