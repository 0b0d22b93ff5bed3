"""Tests for SettingsStore and LastRunRepository."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from cronspine.core.errors import DatabaseError
from cronspine.scheduling.models import Crontab, JobDefinition
from cronspine.scheduling.store import (
    LastRunRepository,
    SettingsStore,
    format_instant,
    parse_instant,
)

from tests.conftest import T0


class TestInstants:
    def test_format_is_utc_with_microseconds(self):
        assert format_instant(T0) == "2026-03-01T12:00:00.000000+00:00"

    def test_naive_is_treated_as_utc(self):
        assert format_instant(T0.replace(tzinfo=None)) == format_instant(T0)

    def test_parse_roundtrip_is_stable(self):
        text = format_instant(T0 + timedelta(microseconds=7))
        assert format_instant(parse_instant(text)) == text


class TestSettingsStore:
    def test_get_missing(self, conn):
        assert SettingsStore(conn).get("nothing") is None

    def test_set_overwrites(self, conn):
        store = SettingsStore(conn)
        store.set("greeting", "hi")
        store.set("greeting", "hello")
        assert store.get("greeting") == "hello"

    def test_scopes_are_isolated(self, conn):
        SettingsStore(conn, scope="site").set("x", "1")
        assert SettingsStore(conn, scope="other").get("x") is None

    def test_delete(self, conn):
        store = SettingsStore(conn)
        store.set("x", "1")
        store.delete("x")
        assert store.get("x") is None

    def test_crontab_roundtrip(self, conn):
        store = SettingsStore(conn)
        assert store.get_crontab() is None
        crontab = Crontab((JobDefinition("a", {"hour": 1}, {"k": "v"}),))
        store.set_crontab(crontab)
        assert store.get_crontab() == crontab

    def test_enabled_flag_defaults(self, conn):
        store = SettingsStore(conn)
        assert store.is_enabled() is True
        assert store.is_enabled(default=False) is False
        store.set_enabled(False)
        assert store.is_enabled(default=True) is False
        store.set_enabled(True)
        assert store.is_enabled(default=False) is True

    def test_query_failure_wraps_and_rolls_back(self):
        conn = MagicMock()
        conn.execute.side_effect = RuntimeError("disk full")
        with pytest.raises(DatabaseError, match="disk full"):
            SettingsStore(conn).get("x")
        conn.rollback.assert_called_once()


class TestLastRunRepository:
    def test_first_claim_inserts(self, conn):
        repo = LastRunRepository(conn)
        assert repo.claim("a", None, T0) == 1
        assert repo.get("a") == T0

    def test_second_insert_loses(self, conn):
        repo = LastRunRepository(conn)
        repo.claim("a", None, T0)
        assert repo.claim("a", None, T0 + timedelta(seconds=1)) == 0
        assert repo.get("a") == T0

    def test_update_guarded_by_observed(self, conn):
        repo = LastRunRepository(conn)
        repo.claim("a", None, T0)
        later = T0 + timedelta(hours=1)
        assert repo.claim("a", T0, later) == 1
        # a claimer that still saw T0 now loses
        assert repo.claim("a", T0, later + timedelta(seconds=1)) == 0
        assert repo.get("a") == later

    def test_all(self, conn):
        repo = LastRunRepository(conn)
        repo.claim("b", None, T0)
        repo.claim("a", None, T0)
        assert repo.all() == {"a": T0, "b": T0}

    def test_delete_except(self, conn):
        repo = LastRunRepository(conn)
        for name in ("a", "b", "c"):
            repo.claim(name, None, T0)
        assert repo.delete_except({"a", "c"}) == 1
        assert set(repo.all()) == {"a", "c"}
        assert repo.delete_except([]) == 2
        assert repo.all() == {}
