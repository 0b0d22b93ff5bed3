"""Tests for deferred batches and their execution."""

from __future__ import annotations

import os
from unittest.mock import MagicMock

from cronspine.scheduling.deferred import BatchReport, DeferredBatch, execute_batch
from cronspine.scheduling.models import Crontab, JobDefinition
from cronspine.scheduling.runner import JobRunner

from tests.conftest import T0


class TestDeferredBatch:
    def test_capture(self):
        batch = DeferredBatch.capture([JobDefinition("a")], request_id="req-1", registered_at=T0)
        assert batch.jobs == (JobDefinition("a"),)
        assert batch.working_dir == os.getcwd()
        assert batch.registered_at == T0
        assert batch.request_id == "req-1"
        assert len(batch) == 1


class TestExecuteBatch:
    def _claimer(self, granted: set[str]):
        claimer = MagicMock()
        claimer.try_claim.side_effect = lambda job: job.identifier in granted
        return claimer

    def test_runs_claimed_jobs_in_order(self, recording_jobs, calls):
        batch = DeferredBatch.capture([JobDefinition("test.b"), JobDefinition("test.a")])
        report = execute_batch(batch, self._claimer({"test.a", "test.b"}), JobRunner(recording_jobs))
        assert [name for name, _ in calls] == ["test.b", "test.a"]
        assert report.claimed == ["test.b", "test.a"]
        assert report.ok

    def test_lost_claims_are_skipped(self, recording_jobs, calls):
        batch = DeferredBatch.capture([JobDefinition("test.a"), JobDefinition("test.b")])
        report = execute_batch(batch, self._claimer({"test.b"}), JobRunner(recording_jobs))
        assert calls == [("test.b", {})]
        assert report.skipped == ["test.a"]

    def test_failure_does_not_stop_siblings(self, recording_jobs, calls):
        batch = DeferredBatch.capture(
            [JobDefinition("test.boom"), JobDefinition("ghost.job"), JobDefinition("test.c")]
        )
        claimer = self._claimer({"test.boom", "ghost.job", "test.c"})
        report = execute_batch(batch, claimer, JobRunner(recording_jobs))

        assert calls == [("test.c", {})]
        assert report.succeeded == ["test.c"]
        assert [(f.job, f.error_type) for f in report.failed] == [
            ("test.boom", "RuntimeError"),
            ("ghost.job", "UnknownJobError"),
        ]
        assert not report.ok
        assert "job exploded" in report.failed[0].traceback

    def test_claim_error_is_recorded(self, recording_jobs):
        claimer = MagicMock()
        claimer.try_claim.side_effect = RuntimeError("db gone")
        report = execute_batch(DeferredBatch.capture([JobDefinition("test.a")]), claimer, JobRunner(recording_jobs))
        assert report.failed[0].message == "db gone"

    def test_empty_batch(self, recording_jobs):
        claimer = MagicMock()
        report = execute_batch(DeferredBatch.capture([]), claimer, JobRunner(recording_jobs))
        assert report == BatchReport()
        claimer.try_claim.assert_not_called()

    def test_runs_in_captured_working_dir(self, tmp_path, jobs):
        seen: list[str] = []

        class CwdJob:
            def __init__(self, args):
                pass

            def execute(self):
                seen.append(os.getcwd())

        jobs.register("cwd", CwdJob)
        batch = DeferredBatch(jobs=(JobDefinition("cwd"),), working_dir=str(tmp_path), registered_at=T0)
        before = os.getcwd()
        execute_batch(batch, self._claimer({"cwd"}), JobRunner(jobs))
        assert [os.path.realpath(p) for p in seen] == [os.path.realpath(tmp_path)]
        assert os.getcwd() == before

    def test_report_to_dict(self):
        report = BatchReport(claimed=["a"], succeeded=["a"])
        assert report.to_dict() == {"claimed": ["a"], "skipped": [], "succeeded": ["a"], "failed": []}


class TestEndToEnd:
    def test_two_requests_one_execution(self, scheduler, write_source, calls):
        """Both requests see the job due; only the first deferred phase runs it."""
        write_source("default.yaml", [{"job": "test.a", "frequency": {"hour": 1}}])

        first = DeferredBatch.capture(scheduler.select_due())
        second = DeferredBatch.capture(scheduler.select_due())
        assert len(first) == len(second) == 1

        reports = [scheduler.run_batch(first), scheduler.run_batch(second)]

        assert calls == [("test.a", {})]
        assert reports[0].succeeded == ["test.a"]
        assert reports[1].skipped == ["test.a"]
        assert scheduler.crontab() == Crontab((JobDefinition("test.a", {"hour": 1}),))
