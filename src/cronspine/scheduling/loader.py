"""Crontab loader: build the crontab from every source and persist it.

Manifesto:
    The crontab is rebuilt as a whole or not at all. Contributors are asked
    for their sources, the default source goes last, every source is parsed,
    and only when all of them parsed cleanly is the result written, in one
    write, over the previous crontab.

Architecture:
    ::

        reload()
          │
          ├── contributors.collect(sources)   enabled contributors, in order
          ├── sources.append(default_source)
          ├── parse_source(s) for s in sources  ── ParseError aborts here
          └── store.set_crontab(Crontab(jobs))  single write

Tags:
    scheduling, crontab, loader, reload, cronspine

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from pathlib import Path

from cronspine.core.logging import get_logger
from cronspine.scheduling.models import Crontab, JobDefinition
from cronspine.scheduling.sources import ContributorRegistry, parse_source
from cronspine.scheduling.store import SettingsStore

logger = get_logger(__name__)


class JobDefinitionLoader:
    """Collects, parses and persists job definitions.

    The only writer of the persisted crontab.
    """

    def __init__(
        self,
        store: SettingsStore,
        contributors: ContributorRegistry,
        default_source: str | Path,
    ) -> None:
        self.store = store
        self.contributors = contributors
        self.default_source = str(default_source)

    def sources(self) -> list[str]:
        """Source paths for the next reload: contributed first, default last."""
        sources: list[str] = []
        self.contributors.collect(sources)
        sources.append(self.default_source)
        return sources

    def reload(self) -> Crontab:
        """Rebuild and persist the crontab.

        Raises:
            ParseError: Any source failed to parse; nothing is written.
        """
        sources = self.sources()

        jobs: list[JobDefinition] = []
        for source in sources:
            jobs.extend(parse_source(source))

        crontab = Crontab(tuple(jobs))
        self.store.set_crontab(crontab)

        logger.info("crontab_reloaded", sources=len(sources), jobs=len(crontab))
        return crontab


__all__ = ["JobDefinitionLoader"]
