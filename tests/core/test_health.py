"""Tests for the health router and its checks."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from cronspine.core.health import HealthCheck, create_health_router, database_check, scheduler_check


async def _ok():
    return {"answer": 42}


async def _fail():
    raise RuntimeError("down")


def _client(checks):
    app = FastAPI()
    app.include_router(create_health_router("cronspine", "0.1.0", checks=checks))
    return TestClient(app)


class TestHealthRouter:
    def test_all_healthy(self):
        resp = _client([HealthCheck("db", _ok)]).get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["service"] == "cronspine"
        assert body["checks"]["db"]["details"] == {"answer": 42}

    def test_required_failure_is_unhealthy(self):
        resp = _client([HealthCheck("db", _fail)]).get("/health")
        assert resp.status_code == 503
        assert resp.json()["checks"]["db"]["error"] == "down"

    def test_optional_failure_is_degraded(self):
        client = _client([HealthCheck("db", _ok), HealthCheck("extra", _fail, required=False)])
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "degraded"
        assert client.get("/health/ready").status_code == 503

    def test_liveness(self):
        assert _client([HealthCheck("db", _fail)]).get("/health/live").json() == {"status": "alive"}


class TestBuiltinChecks:
    def test_database_check(self, settings):
        resp = _client([database_check(settings)]).get("/health")
        assert resp.status_code == 200
        assert resp.json()["checks"]["database"]["details"] == {"backend": "sqlite"}

    def test_scheduler_check_reports_status(self, settings, contributors, recording_jobs, clock):
        check = scheduler_check(settings, contributors=contributors, jobs=recording_jobs, clock=clock)
        details = _client([check]).get("/health").json()["checks"]["scheduler"]["details"]
        assert details["enabled"] is True
        assert details["active"] is True
        assert details["jobs"] == 0
