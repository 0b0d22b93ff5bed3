"""Tests for job definitions, frequencies and the crontab value."""

from __future__ import annotations

from datetime import timedelta

import pytest

from cronspine.scheduling.models import DEFAULT_FREQUENCY, Crontab, JobDefinition, normalize_frequency


class TestNormalizeFrequency:
    @pytest.mark.parametrize("frequency", [None, {}, {"hour": 0}, {"day": 0, "minute": 0}])
    def test_missing_or_zero_becomes_default(self, frequency):
        assert normalize_frequency(frequency) == {"hour": 24}

    def test_zero_units_dropped(self):
        assert normalize_frequency({"day": 1, "hour": 0}) == {"day": 1}

    def test_numeric_strings_accepted(self):
        assert normalize_frequency({"minute": "15"}) == {"minute": 15}

    @pytest.mark.parametrize(
        "frequency",
        [{"fortnight": 1}, {"hour": -1}, {"hour": "often"}, {"hour": True}, {"hour": 1.5}],
    )
    def test_invalid(self, frequency):
        with pytest.raises(ValueError):
            normalize_frequency(frequency)

    def test_default_is_not_shared(self):
        normalize_frequency(None)["hour"] = 1
        assert DEFAULT_FREQUENCY == {"hour": 24}


class TestJobDefinition:
    def test_units_are_additive(self):
        job = JobDefinition("x", {"day": 1, "hour": 12})
        assert job.interval == timedelta(hours=36)

    def test_month_is_thirty_days(self):
        assert JobDefinition("x", {"month": 1}).interval == timedelta(days=30)

    def test_default_frequency(self):
        assert JobDefinition("x").frequency == {"hour": 24}

    def test_args_coerced_to_strings(self):
        job = JobDefinition("x", args={"limit": 10, "dry": False})
        assert job.args == {"limit": "10", "dry": "False"}

    def test_empty_identifier_rejected(self):
        with pytest.raises(ValueError, match="identifier"):
            JobDefinition("")

    def test_dict_roundtrip_keeps_equality(self):
        job = JobDefinition("x", {"week": 2}, {"k": "v"})
        assert JobDefinition.from_dict(job.to_dict()) == job


class TestCrontab:
    def test_json_preserves_order(self):
        crontab = Crontab((JobDefinition("b"), JobDefinition("a", {"minute": 5})))
        restored = Crontab.from_json(crontab.to_json())
        assert restored.identifiers == ["b", "a"]
        assert restored == crontab

    def test_len_and_iter(self):
        crontab = Crontab((JobDefinition("a"),))
        assert len(crontab) == 1
        assert [j.identifier for j in crontab] == ["a"]
        assert len(Crontab()) == 0
