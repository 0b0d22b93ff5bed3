"""Scheduling data model: job definitions and the crontab.

Manifesto:
    A job definition is data, not code. It names a job constructor, says how
    often it should run and carries opaque arguments for it. The crontab is
    the ordered list of those definitions as last built from all sources.

    - **Non-zero frequency:** A persisted definition always has one;
      missing or all-zero frequencies become ``{"hour": 24}``
    - **Additive units:** ``{"day": 1, "hour": 12}`` means 36 hours
    - **Opaque args:** Forwarded verbatim to the job constructor as strings

Examples:
    >>> job = JobDefinition("cronspine.heartbeat", {"hour": 1})
    >>> job.interval
    datetime.timedelta(seconds=3600)
    >>> JobDefinition("reports.digest").frequency
    {'hour': 24}

Tags:
    scheduling, crontab, job-definition, frequency, cronspine

Doc-Types:
    - API Reference
    - Data Model
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

# A month is a fixed 30 days; scheduling here is not calendar-precise.
FREQUENCY_UNITS: dict[str, timedelta] = {
    "minute": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
    "month": timedelta(days=30),
}

DEFAULT_FREQUENCY: dict[str, int] = {"hour": 24}


def normalize_frequency(frequency: Mapping[str, Any] | None) -> dict[str, int]:
    """Validate a unit → count mapping and apply the default rule.

    Zero-valued units are dropped. An empty result becomes
    :data:`DEFAULT_FREQUENCY`.

    Raises:
        ValueError: Unknown unit, non-integer or negative count.
    """
    if not frequency:
        return dict(DEFAULT_FREQUENCY)

    normalized: dict[str, int] = {}
    for unit, raw in frequency.items():
        if unit not in FREQUENCY_UNITS:
            raise ValueError(
                f"Unknown frequency unit {unit!r}. Expected one of: {', '.join(FREQUENCY_UNITS)}"
            )
        # bool is an int subclass; "true" is never a count
        if isinstance(raw, bool) or not isinstance(raw, (int, str)):
            raise ValueError(f"Frequency {unit!r} must be an integer, got {raw!r}")
        try:
            count = int(raw)
        except ValueError as e:
            raise ValueError(f"Frequency {unit!r} must be an integer, got {raw!r}") from e
        if count < 0:
            raise ValueError(f"Frequency {unit!r} must not be negative, got {count}")
        if count:
            normalized[unit] = count

    return normalized or dict(DEFAULT_FREQUENCY)


@dataclass(frozen=True)
class JobDefinition:
    """One crontab entry.

    Attributes:
        identifier: Job-type name, resolved through the job registry
        frequency: Unit → count mapping, normalized on construction
        args: Constructor arguments, values coerced to ``str``
    """

    identifier: str
    frequency: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_FREQUENCY))
    args: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.identifier:
            raise ValueError("Job identifier must not be empty")
        object.__setattr__(self, "frequency", normalize_frequency(self.frequency))
        object.__setattr__(self, "args", {str(k): str(v) for k, v in (self.args or {}).items()})

    @property
    def interval(self) -> timedelta:
        """Minimum time between two runs."""
        return sum(
            (FREQUENCY_UNITS[unit] * count for unit, count in self.frequency.items()),
            timedelta(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "frequency": dict(self.frequency),
            "args": dict(self.args),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> JobDefinition:
        return cls(
            identifier=data["identifier"],
            frequency=dict(data.get("frequency") or {}),
            args=dict(data.get("args") or {}),
        )


@dataclass(frozen=True)
class Crontab:
    """Ordered collection of job definitions, persisted as one JSON value."""

    jobs: tuple[JobDefinition, ...] = ()

    def __iter__(self) -> Iterator[JobDefinition]:
        return iter(self.jobs)

    def __len__(self) -> int:
        return len(self.jobs)

    @property
    def identifiers(self) -> list[str]:
        return [job.identifier for job in self.jobs]

    def to_json(self) -> str:
        return json.dumps([job.to_dict() for job in self.jobs])

    @classmethod
    def from_json(cls, raw: str) -> Crontab:
        return cls(tuple(JobDefinition.from_dict(item) for item in json.loads(raw)))


__all__ = [
    "FREQUENCY_UNITS",
    "DEFAULT_FREQUENCY",
    "normalize_frequency",
    "JobDefinition",
    "Crontab",
]
