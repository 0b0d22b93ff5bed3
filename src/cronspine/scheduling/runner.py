"""Job registry and runner.

Manifesto:
    A crontab entry names a job; the registry maps that name to a
    constructor. Jobs register themselves with ``@register_job`` when their
    module is imported, the same way any component announces itself, and
    the runner only ever looks names up.

    - **Explicit lookup:** An unregistered identifier is an
      ``UnknownJobError``, never a dynamic import of whatever the crontab says
    - **Constructor contract:** ``ctor(args)`` returns a ``ScheduledJob``
    - **Context on demand:** Jobs that need storage define ``bind(context)``

Examples:
    >>> @register_job("reports.digest")
    ... class DigestJob(BaseScheduledJob):
    ...     def execute(self):
    ...         send_digest(self.args["recipient"])

Tags:
    scheduling, registry, job-runner, cronspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from cronspine.core.errors import ConfigError, UnknownJobError
from cronspine.core.logging import get_logger
from cronspine.core.protocols import Connection, ScheduledJob
from cronspine.scheduling.models import JobDefinition
from cronspine.scheduling.plugins import load_plugins

logger = get_logger(__name__)

JobConstructor = Callable[[dict[str, str]], ScheduledJob]


@dataclass(frozen=True)
class JobContext:
    """What a running job may use besides its args."""

    conn: Connection
    job: JobDefinition


class BaseScheduledJob:
    """Convenience base: keeps ``args`` and the bound ``JobContext``."""

    description: str = ""

    def __init__(self, args: Mapping[str, str] | None = None) -> None:
        self.args = dict(args or {})
        self.context: JobContext | None = None

    def bind(self, context: JobContext) -> None:
        self.context = context

    def execute(self) -> Any:
        raise NotImplementedError


class JobRegistry:
    """Identifier → job constructor.

    With ``builtins=True`` the bundled jobs from
    :mod:`cronspine.scheduling.jobs` are registered on first lookup. With
    ``discover=True`` every lookup makes sure the plugin modules are imported.
    """

    def __init__(self, *, builtins: bool = True, discover: bool = False) -> None:
        self._constructors: dict[str, JobConstructor] = {}
        self._builtins = builtins
        self._discover = discover
        self._loaded = False

    def register(self, name: str, ctor: JobConstructor, *, replace: bool = False) -> None:
        if name in self._constructors and not replace:
            raise ValueError(f"Job '{name}' is already registered")
        self._constructors[name] = ctor
        logger.debug(
            "job_registered",
            name=name,
            ctor=getattr(ctor, "__name__", repr(ctor)),
            description=getattr(ctor, "description", ""),
        )

    def get(self, name: str) -> JobConstructor:
        """Constructor for ``name``.

        Raises:
            UnknownJobError: Nothing is registered under ``name``.
        """
        self._ensure_loaded()
        if name not in self._constructors:
            raise UnknownJobError(name, available=self.names())
        return self._constructors[name]

    def names(self) -> list[str]:
        self._ensure_loaded()
        return sorted(self._constructors)

    def __contains__(self, name: object) -> bool:
        self._ensure_loaded()
        return name in self._constructors

    def clear(self) -> None:
        """Clear registry (for testing)."""
        self._constructors.clear()
        self._loaded = False

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._loaded = True
            if self._builtins:
                from cronspine.scheduling.jobs import register_builtin_jobs

                register_builtin_jobs(self)
        if self._discover:
            load_plugins()


# Global job registry
job_registry = JobRegistry(discover=True)


def register_job(
    name: str,
    *,
    registry: JobRegistry | None = None,
) -> Callable[[JobConstructor], JobConstructor]:
    """Decorator registering a job class (or factory) under ``name``."""

    def decorator(ctor: JobConstructor) -> JobConstructor:
        (registry or job_registry).register(name, ctor)
        return ctor

    return decorator


class JobRunner:
    """Instantiates and executes jobs from their definitions."""

    def __init__(self, registry: JobRegistry | None = None, conn: Connection | None = None) -> None:
        self.registry = registry or job_registry
        self.conn = conn

    def build(self, job: JobDefinition) -> ScheduledJob:
        ctor = self.registry.get(job.identifier)
        instance = ctor(dict(job.args))
        if not isinstance(instance, ScheduledJob):
            raise ConfigError(
                f"Job '{job.identifier}' constructor returned {type(instance).__name__}, "
                "which has no execute() method"
            ).with_context(job=job.identifier)
        bind = getattr(instance, "bind", None)
        if callable(bind) and self.conn is not None:
            bind(JobContext(conn=self.conn, job=job))
        return instance

    def run(self, job: JobDefinition) -> Any:
        """Construct and execute ``job``. Exceptions from the job propagate."""
        instance = self.build(job)
        logger.info("job_started", job=job.identifier)
        result = instance.execute()
        logger.info("job_completed", job=job.identifier)
        return result


__all__ = [
    "JobConstructor",
    "JobContext",
    "BaseScheduledJob",
    "JobRegistry",
    "job_registry",
    "register_job",
    "JobRunner",
]
