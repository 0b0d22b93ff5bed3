"""
Common API schemas: shared envelopes and RFC 7807 errors.

Every endpoint returns either :class:`SuccessResponse` or
:class:`ProblemDetail` (4xx/5xx). The due-jobs listing embeds
:class:`PageMeta` alongside the item list.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorDetail(BaseModel):
    """Structured error detail for field-level or nested errors."""

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    field: str | None = Field(default=None, description="Field path if error is field-specific")


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs».

    Error Codes:
        - ``VALIDATION_FAILED`` (400): A job source failed to parse, unknown job
        - ``UNAUTHORIZED`` (401): Missing or invalid API key
        - ``TIMEOUT`` (504): The request exceeded its time limit
        - ``INTERNAL`` (500): Unexpected server error

    Example:
        {
            "type": "about:blank",
            "title": "Invalid YAML in /srv/jobs.yaml",
            "status": 400,
            "detail": "",
            "instance": "/api/v1/crontab/reload",
            "errors": []
        }
    """

    type: str = Field(default="about:blank", description="Error type URI")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code")
    detail: str = Field(default="", description="Human-readable explanation of the error")
    instance: str = Field(default="", description="URI of the failing request")
    errors: list[ErrorDetail] = Field(default_factory=list, description="Nested error details")


class PageMeta(BaseModel):
    """Pagination metadata for list responses."""

    total: int = Field(description="Total items across all pages")
    limit: int = Field(description="Items per page")
    offset: int = Field(description="Current offset (0-based)")
    has_more: bool = Field(description="True if more pages exist after current")


class SuccessResponse(BaseModel, Generic[T]):
    """Standard success envelope for single-item responses."""

    data: T = Field(description="Response payload (type varies by endpoint)")
    elapsed_ms: float = Field(default=0.0, description="Server-side processing time in milliseconds")
    warnings: list[str] = Field(default_factory=list, description="Non-fatal warnings")


class PagedResponse(BaseModel, Generic[T]):
    """Paged success envelope for list responses."""

    data: list[T] = Field(description="List of items for this page")
    page: PageMeta = Field(description="Pagination metadata")
    elapsed_ms: float = Field(default=0.0, description="Server-side processing time in milliseconds")
    warnings: list[str] = Field(default_factory=list, description="Non-fatal warnings")
