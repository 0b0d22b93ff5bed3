"""
API-specific settings.

Extends :class:`~cronspine.core.settings.CronSpineSettings` with the
parameters of the HTTP layer: prefix, auth, CORS and the knobs of the
request-piggybacked trigger. All values can be overridden via
``CRONSPINE_*`` environment variables.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from cronspine.core.settings import CronSpineSettings

DEFAULT_TRIGGER_EXCLUDES = [
    r"^/health",
    r"^/metrics$",
    r"/docs$",
    r"/redoc$",
    r"/openapi\.json$",
]


class CronSpineAPISettings(CronSpineSettings):
    """Settings for the cronspine REST API.

    Order of precedence (highest → lowest):
        1. Environment variables (``CRONSPINE_API_KEY``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    model_config = SettingsConfigDict(
        env_prefix="CRONSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # ── API ──────────────────────────────────────────────────────────────
    api_prefix: str = Field(default="/api/v1", description="URL prefix for all endpoints")
    api_title: str = Field(default="cronspine API", description="OpenAPI title")
    api_version: str = Field(default="0.1.0", description="OpenAPI version string")

    # ── CORS ─────────────────────────────────────────────────────────────
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")

    # ── Auth ─────────────────────────────────────────────────────────────
    api_key: str | None = Field(default=None, description="API key required by every non-bypass path")

    # ── Request-piggybacked trigger ──────────────────────────────────────
    trigger_exclude_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TRIGGER_EXCLUDES),
        description="Regexes of paths that never trigger the scheduler",
    )
    request_timeout_seconds: float | None = Field(
        default=None,
        description="Time limit for the foreground request; the deferred phase is not limited",
    )
    gzip_minimum_size: int = Field(default=1000, description="Minimum body size for gzip")
