"""Job-definition sources and the contributor extension point.

A *source* is a YAML document listing job definitions::

    apiVersion: cronspine.io/v1
    kind: Crontab
    jobs:
      - job: cronspine.heartbeat
        frequency: {hour: 1}
        args: {channel: ops}

A *contributor* is an installable component (a plugin, an app module) that
adds its own sources to the crontab. Contributors register with a
:class:`ContributorRegistry`; on every reload the registry's ``collect``
hook asks each enabled contributor, in registration order, to append its
source paths.

Examples:
    >>> registry = ContributorRegistry()
    >>> registry.register("billing", sources=["/srv/billing/jobs.yaml"])
    >>> registry.collect([])
    ['/srv/billing/jobs.yaml']

    >>> @contributor("reports", registry=registry)
    ... def reports_sources(sources: list[str]) -> None:
    ...     sources.append("/srv/reports/jobs.yaml")

Tags:
    scheduling, yaml, sources, plugins, extension-point, cronspine

Doc-Types:
    - API Reference
    - Extension Guide
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from cronspine.core.errors import ParseError
from cronspine.core.logging import get_logger
from cronspine.scheduling.models import JobDefinition
from cronspine.scheduling.plugins import load_plugins

logger = get_logger(__name__)

SUPPORTED_API_VERSIONS = {"cronspine.io/v1"}
SOURCE_KIND = "Crontab"

ContributeFn = Callable[[list[str]], None]


# =============================================================================
# SOURCE PARSING
# =============================================================================


def _parse_entry(entry: Any, index: int, source: str) -> JobDefinition:
    if not isinstance(entry, dict):
        raise ParseError(f"{source}: jobs[{index}] must be a mapping", source=source)

    identifier = entry.get("job")
    if not identifier or not isinstance(identifier, str):
        raise ParseError(f"{source}: jobs[{index}] has no 'job' identifier", source=source)

    frequency = entry.get("frequency")
    if frequency is not None and not isinstance(frequency, dict):
        raise ParseError(
            f"{source}: jobs[{index}] ({identifier}) frequency must be a mapping",
            source=source,
        ).with_context(job=identifier)

    args = entry.get("args")
    if args is not None and not isinstance(args, dict):
        raise ParseError(
            f"{source}: jobs[{index}] ({identifier}) args must be a mapping",
            source=source,
        ).with_context(job=identifier)

    try:
        return JobDefinition(identifier=identifier, frequency=frequency or {}, args=args or {})
    except ValueError as e:
        raise ParseError(f"{source}: jobs[{index}] ({identifier}): {e}", source=source, cause=e).with_context(
            job=identifier
        ) from e


def parse_source(path: str | Path) -> list[JobDefinition]:
    """Parse one YAML source into normalized job definitions, in file order.

    Raises:
        ParseError: The file is missing or unreadable, is not valid YAML, or
            does not have the expected shape.
    """
    source = str(path)
    path = Path(path)

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ParseError(f"Job source not found: {source}", source=source, cause=e) from e
    except OSError as e:
        raise ParseError(f"Cannot read job source {source}: {e}", source=source, cause=e) from e
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid YAML in {source}: {e}", source=source, cause=e) from e

    if not isinstance(data, dict):
        kind = type(data).__name__
        raise ParseError(f"{source}: expected a mapping at the root, got {kind}", source=source)

    api_version = data.get("apiVersion")
    if api_version and api_version not in SUPPORTED_API_VERSIONS:
        raise ParseError(
            f"{source}: unsupported apiVersion {api_version!r}. Supported: {sorted(SUPPORTED_API_VERSIONS)}",
            source=source,
        )

    kind = data.get("kind")
    if kind and kind != SOURCE_KIND:
        raise ParseError(f"{source}: expected kind {SOURCE_KIND!r}, got {kind!r}", source=source)

    entries = data.get("jobs")
    if entries is None:
        entries = []
    if not isinstance(entries, list):
        raise ParseError(f"{source}: 'jobs' must be a list", source=source)

    jobs = [_parse_entry(entry, index, source) for index, entry in enumerate(entries)]
    logger.debug("source_parsed", source=source, jobs=len(jobs))
    return jobs


# =============================================================================
# CONTRIBUTORS
# =============================================================================


@dataclass
class _Contributor:
    name: str
    contribute: ContributeFn
    enabled: bool = True


class ContributorRegistry:
    """Ordered registration table of job-source contributors.

    Only registered contributors take part in a reload, and only while
    enabled. ``is_registered`` is what decides whether toggling a component
    needs a crontab reload.

    With ``discover=True`` (the process-wide registry) ``collect`` first
    imports every plugin module, so contributors living in modules nobody
    imported yet still take part.
    """

    def __init__(self, *, discover: bool = False) -> None:
        self._contributors: dict[str, _Contributor] = {}
        self._discover = discover

    def register(
        self,
        name: str,
        contribute: ContributeFn | None = None,
        *,
        sources: Sequence[str | Path] | None = None,
        enabled: bool = True,
    ) -> None:
        """Register a contributor by callback or by a fixed list of sources."""
        if contribute is None and sources is None:
            raise ValueError(f"Contributor '{name}' needs a contribute callback or sources")
        if contribute is not None and sources is not None:
            raise ValueError(f"Contributor '{name}' takes a callback or sources, not both")
        if name in self._contributors:
            raise ValueError(f"Contributor '{name}' is already registered")

        if contribute is None:
            fixed = [str(s) for s in sources or []]

            def _append_fixed(collected: list[str]) -> None:
                collected.extend(fixed)

            contribute = _append_fixed

        self._contributors[name] = _Contributor(name=name, contribute=contribute, enabled=enabled)
        logger.debug("contributor_registered", name=name, enabled=enabled)

    def unregister(self, name: str) -> None:
        self._contributors.pop(name, None)

    def is_registered(self, name: str) -> bool:
        return name in self._contributors

    def is_enabled(self, name: str) -> bool:
        entry = self._contributors.get(name)
        return bool(entry and entry.enabled)

    def set_enabled(self, name: str, enabled: bool) -> None:
        if name not in self._contributors:
            raise KeyError(f"Contributor '{name}' not registered. Available: {', '.join(self.names())}")
        self._contributors[name].enabled = enabled

    def names(self) -> list[str]:
        """Registered contributor names in registration order."""
        return list(self._contributors)

    def collect(self, sources: list[str]) -> list[str]:
        """Let every enabled contributor append its sources, in registration order."""
        if self._discover:
            load_plugins()
        for entry in self._contributors.values():
            if entry.enabled:
                entry.contribute(sources)
        return sources

    def clear(self) -> None:
        """Clear registry (for testing)."""
        self._contributors.clear()


# Process-wide registry used by the app, the CLI and ``@contributor``
contributors = ContributorRegistry(discover=True)


def contributor(
    name: str,
    *,
    registry: ContributorRegistry | None = None,
    enabled: bool = True,
) -> Callable[[ContributeFn], ContributeFn]:
    """Decorator registering a contribute callback."""

    def decorator(fn: ContributeFn) -> ContributeFn:
        (registry or contributors).register(name, fn, enabled=enabled)
        return fn

    return decorator


__all__ = [
    "SUPPORTED_API_VERSIONS",
    "parse_source",
    "ContributorRegistry",
    "contributors",
    "contributor",
]
