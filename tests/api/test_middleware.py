"""Tests for the request-id and timing middleware."""

from __future__ import annotations

import uuid
from unittest.mock import patch

import pytest

from cronspine.api.middleware.request_id import resolve_request_id


class TestRequestId:
    @pytest.mark.parametrize("header", ["req-42", "a1b2.c3:d4_e5"])
    def test_client_id_kept(self, header):
        assert resolve_request_id(header) == header

    @pytest.mark.parametrize("header", [None, "", "has spaces", "x" * 129, "semi;colon"])
    def test_unusable_id_replaced(self, header):
        assert uuid.UUID(resolve_request_id(header))

    def test_unusable_header_replaced_in_response(self, client):
        resp = client.get("/health/live", headers={"X-Request-ID": "not an id"})
        assert uuid.UUID(resp.headers["X-Request-ID"])

    def test_deferred_batch_uses_request_id(self, client, write_source):
        write_source("default.yaml", [{"job": "test.a"}])
        with patch("cronspine.scheduling.deferred.LogContext") as log_context:
            client.get("/api/v1/crontab", headers={"X-Request-ID": "req-9"})
        log_context.assert_called_once_with(request_id="req-9")


class TestTiming:
    def test_logs_deferred_job_count(self, client, write_source):
        write_source("default.yaml", [{"job": "test.a"}, {"job": "test.b"}])
        with patch("cronspine.api.middleware.timing.logger") as logger:
            resp = client.get("/api/v1/crontab")
        assert "X-Process-Time-Ms" in resp.headers
        logger.info.assert_called_once()
        fields = logger.info.call_args.kwargs
        assert fields["deferred_jobs"] == 2
        assert fields["path"] == "/api/v1/crontab"
        assert fields["status"] == 200

    def test_plain_request_logged_at_debug(self, client):
        with patch("cronspine.api.middleware.timing.logger") as logger:
            client.get("/health/live")
        logger.info.assert_not_called()
        assert logger.debug.call_args.kwargs["deferred_jobs"] == 0
