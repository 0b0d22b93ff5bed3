"""
Request-scoped context for operations.

Every operation function receives an :class:`OperationContext` as its first
argument. The context carries the storage connection, the settings the
scheduler is built from, caller identity and the dry-run flag.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from cronspine.core.protocols import Connection
from cronspine.core.settings import CronSpineSettings


@dataclass
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        conn: Database connection satisfying :class:`cronspine.core.protocols.Connection`.
        settings: Scheduler settings (sources, gates, enabled default).
        backend: Storage backend name, selects the SQL dialect.
        request_id: Unique ID for this operation invocation (auto-generated).
        caller: Origin of the request: ``"api"``, ``"cli"`` or ``"sdk"``.
        dry_run: When ``True``, operations return a preview without side effects.
        scheduler_options: Keyword arguments for :class:`~cronspine.scheduling.service.CronScheduler`
            (``contributors``, ``jobs``, ``clock``); empty means the process-wide defaults.
    """

    conn: Connection
    settings: CronSpineSettings = field(default_factory=CronSpineSettings)
    backend: str = "sqlite"
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"
    dry_run: bool = False
    scheduler_options: dict[str, Any] = field(default_factory=dict)
