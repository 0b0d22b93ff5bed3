"""Tests for RaceSafeClaimer."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from cronspine.scheduling.claimer import RaceSafeClaimer
from cronspine.scheduling.loader import JobDefinitionLoader
from cronspine.scheduling.models import Crontab, JobDefinition
from cronspine.scheduling.selector import DueJobSelector
from cronspine.scheduling.store import LastRunRepository, SettingsStore

JOB = JobDefinition("a", {"hour": 1})


@pytest.fixture
def store(conn):
    store = SettingsStore(conn)
    store.set_crontab(Crontab((JOB,)))
    return store


@pytest.fixture
def last_runs(conn):
    return LastRunRepository(conn)


@pytest.fixture
def selector(store, last_runs, contributors, empty_source, clock):
    return DueJobSelector(store, last_runs, JobDefinitionLoader(store, contributors, empty_source), clock=clock)


@pytest.fixture
def claimer(selector, last_runs, clock):
    return RaceSafeClaimer(selector, last_runs, clock=clock)


class TestTryClaim:
    def test_first_claim_wins_and_records_now(self, claimer, last_runs, clock):
        assert claimer.try_claim(JOB) is True
        assert last_runs.get("a") == clock.now

    def test_claim_after_win_is_no_longer_due(self, claimer):
        assert claimer.try_claim(JOB) is True
        assert claimer.try_claim(JOB) is False

    def test_stale_selection_is_rejected(self, claimer, selector, last_runs, clock):
        """Two requests select the same due job; only the first claim runs it."""
        first = selector.select_due()
        second = selector.select_due()
        assert first == second == [JOB]

        assert claimer.try_claim(first[0]) is True
        assert claimer.try_claim(second[0]) is False

    def test_due_again_after_interval(self, claimer, clock):
        assert claimer.try_claim(JOB) is True
        clock.advance(hours=1)
        assert claimer.try_claim(JOB) is True

    def test_disabled_between_selection_and_claim(self, claimer, store):
        store.set_enabled(False)
        assert claimer.try_claim(JOB) is False

    def test_job_removed_from_crontab(self, claimer, store):
        store.set_crontab(Crontab())
        assert claimer.try_claim(JOB) is False


class TestConcurrentClaims:
    """Conditional-update outcomes as reported by the storage driver."""

    def _claimer(self, rowcounts, clock):
        selector = MagicMock()
        selector.due_entries.return_value = [(JOB, None)]
        last_runs = MagicMock()
        last_runs.claim.side_effect = rowcounts
        return RaceSafeClaimer(selector, last_runs, clock=clock)

    def test_only_one_of_two_racers_wins(self, clock):
        claimer = self._claimer([1, 0], clock)
        results = [claimer.try_claim(JOB), claimer.try_claim(JOB)]
        assert results.count(True) == 1

    def test_zero_rows_is_a_conflict(self, clock):
        assert self._claimer([0], clock).try_claim(JOB) is False

    @pytest.mark.parametrize("rowcount", [None, -1])
    def test_unknown_rowcount_errs_toward_running(self, clock, rowcount):
        assert self._claimer([rowcount], clock).try_claim(JOB) is True

    def test_claim_uses_observed_value(self, clock):
        observed = clock.now - timedelta(hours=3)
        selector = MagicMock()
        selector.due_entries.return_value = [(JOB, observed)]
        last_runs = MagicMock()
        last_runs.claim.return_value = 1
        RaceSafeClaimer(selector, last_runs, clock=clock).try_claim(JOB)
        last_runs.claim.assert_called_once_with("a", observed, clock.now)
