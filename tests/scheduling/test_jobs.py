"""Tests for the built-in jobs and the bundled default source."""

from __future__ import annotations

import pytest

from cronspine.core.settings import DEFAULT_SOURCE
from cronspine.scheduling.jobs import BUILTIN_JOBS, HeartbeatJob, PruneLastRunsJob
from cronspine.scheduling.models import Crontab, JobDefinition
from cronspine.scheduling.runner import JobContext
from cronspine.scheduling.sources import parse_source
from cronspine.scheduling.store import LastRunRepository, SettingsStore

from tests.conftest import T0


class TestDefaultSource:
    def test_bundled_source_parses(self):
        jobs = parse_source(DEFAULT_SOURCE)
        assert [j.identifier for j in jobs] == ["cronspine.heartbeat", "cronspine.prune_last_runs"]

    def test_every_bundled_job_is_builtin(self):
        assert {j.identifier for j in parse_source(DEFAULT_SOURCE)} <= set(BUILTIN_JOBS)


class TestHeartbeatJob:
    def test_execute(self):
        assert HeartbeatJob({"channel": "ops"}).execute() == {"heartbeat": True, "channel": "ops"}


class TestPruneLastRunsJob:
    def _job(self, conn):
        job = PruneLastRunsJob()
        job.bind(JobContext(conn=conn, job=JobDefinition("cronspine.prune_last_runs")))
        return job

    def test_requires_context(self):
        with pytest.raises(RuntimeError, match="storage connection"):
            PruneLastRunsJob().execute()

    def test_keeps_everything_without_crontab(self, conn):
        LastRunRepository(conn).claim("orphan", None, T0)
        assert self._job(conn).execute() == 0
        assert LastRunRepository(conn).get("orphan") == T0

    def test_deletes_records_of_removed_jobs(self, conn):
        repo = LastRunRepository(conn)
        repo.claim("kept", None, T0)
        repo.claim("orphan", None, T0)
        SettingsStore(conn).set_crontab(Crontab((JobDefinition("kept"),)))

        assert self._job(conn).execute() == 1
        assert set(repo.all()) == {"kept"}
