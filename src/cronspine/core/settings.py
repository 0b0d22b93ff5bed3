"""Base settings for cronspine.

``CronSpineSettings`` holds what the scheduler itself needs: where the
settings store lives, the environment gates (sandbox, maintenance) and the
bundled default job source. The HTTP layer extends it in
:mod:`cronspine.api.settings`.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not runtime
    - **Environment-driven:** Reads ``CRONSPINE_*`` env vars and .env files
    - **Sensible defaults:** A file-backed SQLite store under ``~/.cronspine``

Examples:
    >>> from cronspine.core.settings import CronSpineSettings
    >>> settings = CronSpineSettings(sandbox=True)
    >>> settings.sandbox
    True

Tags:
    settings, configuration, pydantic, environment, cronspine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SOURCE = str(Path(__file__).resolve().parent.parent / "registry" / "scheduled_jobs.yaml")


class CronSpineSettings(BaseSettings):
    """Settings shared by the scheduler, the CLI and the API.

    Fields
    ──────
    host            : Bind address for ``cronspine serve``
    port            : Bind port for ``cronspine serve``
    debug           : Enable debug mode
    log_level       : Structlog log level
    json_logs       : Force JSON (True) or console (False) rendering; None = auto
    data_dir        : Directory holding the default SQLite store
    database_url    : Settings store URL; empty means ``<data_dir>/cronspine.db``
    sandbox         : Non-production environment; the scheduler never runs
    maintenance     : Maintenance mode; requests do not trigger the scheduler
    enabled_default : Value of the site ``enabled`` flag when it was never set
    default_source  : Job-definition source appended after all contributors
    plugins         : Extra plugin modules imported before every reload and run
    """

    model_config = SettingsConfigDict(
        env_prefix="CRONSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Network ──────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8000

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Storage ──────────────────────────────────────────────────
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".cronspine",
        description="Persistent data directory",
    )
    database_url: str = ""

    # ── Scheduler gates ──────────────────────────────────────────
    sandbox: bool = False
    maintenance: bool = False
    enabled_default: bool = True
    default_source: str = DEFAULT_SOURCE

    # ── Plugins ──────────────────────────────────────────────────
    plugins: list[str] = Field(default_factory=list)

    def resolved_database_url(self) -> str:
        """Database URL with the data-dir default applied."""
        if self.database_url:
            return self.database_url
        return str(self.data_dir.expanduser() / "cronspine.db")
