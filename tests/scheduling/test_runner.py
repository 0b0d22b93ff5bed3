"""Tests for the job registry and runner."""

from __future__ import annotations

import pytest

from cronspine.core.errors import ConfigError, UnknownJobError
from cronspine.scheduling.jobs import HeartbeatJob
from cronspine.scheduling.models import JobDefinition
from cronspine.scheduling.runner import BaseScheduledJob, JobContext, JobRegistry, JobRunner, register_job


class TestJobRegistry:
    def test_register_and_get(self, jobs):
        jobs.register("x", HeartbeatJob)
        assert jobs.get("x") is HeartbeatJob
        assert "x" in jobs
        assert jobs.names() == ["x"]

    def test_duplicate_rejected_unless_replace(self, jobs):
        jobs.register("x", HeartbeatJob)
        with pytest.raises(ValueError, match="already registered"):
            jobs.register("x", HeartbeatJob)
        jobs.register("x", BaseScheduledJob, replace=True)
        assert jobs.get("x") is BaseScheduledJob

    def test_unknown_fails_fast(self, jobs):
        jobs.register("known", HeartbeatJob)
        with pytest.raises(UnknownJobError) as exc_info:
            jobs.get("app.missing")
        assert exc_info.value.available == ["known"]

    def test_builtins_loaded_lazily(self):
        registry = JobRegistry()
        assert "cronspine.heartbeat" in registry
        assert "cronspine.prune_last_runs" in registry.names()

    def test_app_job_keeps_builtin_name(self):
        registry = JobRegistry()
        registry.register("cronspine.heartbeat", BaseScheduledJob)
        assert registry.get("cronspine.heartbeat") is BaseScheduledJob

    def test_clear(self, jobs):
        jobs.register("x", HeartbeatJob)
        jobs.clear()
        assert jobs.names() == []

    def test_decorator(self, jobs):
        @register_job("reports.digest", registry=jobs)
        class DigestJob(BaseScheduledJob):
            def execute(self):
                return self.args["to"]

        assert jobs.get("reports.digest") is DigestJob


class TestJobRunner:
    def test_run_passes_args(self, recording_jobs, calls):
        JobRunner(recording_jobs).run(JobDefinition("test.a", args={"n": 1}))
        assert calls == [("test.a", {"n": "1"})]

    def test_run_returns_job_result(self, jobs):
        jobs.register("hb", HeartbeatJob)
        assert JobRunner(jobs).run(JobDefinition("hb", args={"channel": "ops"})) == {
            "heartbeat": True,
            "channel": "ops",
        }

    def test_job_exception_propagates(self, recording_jobs):
        with pytest.raises(RuntimeError, match="exploded"):
            JobRunner(recording_jobs).run(JobDefinition("test.boom"))

    def test_unknown_job(self, jobs):
        with pytest.raises(UnknownJobError):
            JobRunner(jobs).run(JobDefinition("nope"))

    def test_constructor_must_return_job(self, jobs):
        jobs.register("bad", lambda args: object())
        with pytest.raises(ConfigError, match="no execute"):
            JobRunner(jobs).build(JobDefinition("bad"))

    def test_bind_receives_context(self, jobs, conn):
        jobs.register("base", BaseScheduledJob)
        definition = JobDefinition("base")
        instance = JobRunner(jobs, conn=conn).build(definition)
        assert instance.context == JobContext(conn=conn, job=definition)

    def test_no_bind_without_connection(self, jobs):
        jobs.register("base", BaseScheduledJob)
        assert JobRunner(jobs).build(JobDefinition("base")).context is None
