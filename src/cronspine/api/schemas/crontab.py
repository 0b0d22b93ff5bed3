"""Schemas for the crontab endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class JobSchema(BaseModel):
    """One crontab entry and its run state."""

    identifier: str = Field(description="Job identifier, resolved through the job registry")
    frequency: dict[str, int] = Field(description="Unit → count, e.g. {'hour': 1}")
    interval_seconds: int = Field(description="Frequency as seconds (month = 30 days)")
    args: dict[str, str] = Field(default_factory=dict, description="Constructor arguments")
    last_run: str | None = Field(default=None, description="Last successful claim (UTC ISO-8601)")
    next_due_at: str | None = Field(default=None, description="Earliest instant it is due again")
    due: bool = Field(default=False, description="Whether the job is due now")


class CrontabSchema(BaseModel):
    enabled: bool = Field(description="Site-wide scheduler flag")
    sandbox: bool = Field(description="Sandbox mode: the scheduler never runs")
    maintenance: bool = Field(description="Maintenance mode: requests do not trigger the scheduler")
    jobs: list[JobSchema] = Field(default_factory=list)


class ReloadAck(BaseModel):
    """Acknowledgement of a crontab reload.

    ``data_changed`` tells the client to refresh any view of the crontab;
    ``notification`` is a transient success message for the user.
    """

    data_changed: bool = True
    notification: str = Field(description="Transient success notification")
    sources: list[str] = Field(default_factory=list)
    jobs: int = 0


class EnabledBody(BaseModel):
    enabled: bool


class EnabledSchema(BaseModel):
    enabled: bool
    changed: bool
