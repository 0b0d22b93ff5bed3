"""Fixtures for operation tests."""

from __future__ import annotations

import pytest

from cronspine.ops.context import OperationContext


@pytest.fixture
def ctx(conn, settings, contributors, recording_jobs, clock) -> OperationContext:
    return OperationContext(
        conn=conn,
        settings=settings,
        caller="test",
        scheduler_options={"contributors": contributors, "jobs": recording_jobs, "clock": clock},
    )
