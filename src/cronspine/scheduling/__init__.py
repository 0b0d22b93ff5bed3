"""Request-piggybacked scheduling.

Modules
-------
models      JobDefinition, Crontab, frequency units
store       SettingsStore, LastRunRepository
sources     YAML source parsing, ContributorRegistry
loader      JobDefinitionLoader
selector    DueJobSelector
claimer     RaceSafeClaimer
runner      JobRegistry, JobRunner, @register_job
deferred    DeferredBatch, execute_batch
service     CronScheduler, open_scheduler
jobs        built-in jobs
"""

from cronspine.scheduling.claimer import RaceSafeClaimer
from cronspine.scheduling.deferred import BatchReport, DeferredBatch, execute_batch
from cronspine.scheduling.loader import JobDefinitionLoader
from cronspine.scheduling.models import DEFAULT_FREQUENCY, Crontab, JobDefinition
from cronspine.scheduling.runner import (
    BaseScheduledJob,
    JobContext,
    JobRegistry,
    JobRunner,
    job_registry,
    register_job,
)
from cronspine.scheduling.selector import DueJobSelector, is_due
from cronspine.scheduling.service import CronScheduler, SchedulerStatus, open_scheduler
from cronspine.scheduling.sources import ContributorRegistry, contributor, contributors, parse_source
from cronspine.scheduling.store import LastRunRepository, SettingsStore

__all__ = [
    "BaseScheduledJob",
    "BatchReport",
    "ContributorRegistry",
    "CronScheduler",
    "Crontab",
    "DEFAULT_FREQUENCY",
    "DeferredBatch",
    "DueJobSelector",
    "JobContext",
    "JobDefinition",
    "JobDefinitionLoader",
    "JobRegistry",
    "JobRunner",
    "LastRunRepository",
    "RaceSafeClaimer",
    "SchedulerStatus",
    "SettingsStore",
    "contributor",
    "contributors",
    "execute_batch",
    "is_due",
    "job_registry",
    "open_scheduler",
    "parse_source",
    "register_job",
]
