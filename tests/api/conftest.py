"""Fixtures for API tests: an app over a temp store with isolated registries."""

from __future__ import annotations

from collections.abc import Callable, Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cronspine.api.app import create_app
from cronspine.api.settings import CronSpineAPISettings


@pytest.fixture
def api_settings(tmp_path, db_path, empty_source) -> CronSpineAPISettings:
    return CronSpineAPISettings(
        data_dir=tmp_path,
        database_url=db_path,
        default_source=empty_source,
    )


@pytest.fixture
def scheduler_kwargs(contributors, recording_jobs, clock) -> dict:
    return {"contributors": contributors, "jobs": recording_jobs, "clock": clock}


@pytest.fixture
def make_app(api_settings, scheduler_kwargs) -> Callable[..., FastAPI]:
    """Build an app; keyword arguments override settings fields."""

    def _make(**overrides) -> FastAPI:
        settings = api_settings.model_copy(update=overrides) if overrides else api_settings
        return create_app(settings=settings, scheduler_kwargs=scheduler_kwargs)

    return _make


@pytest.fixture
def client(make_app) -> Generator[TestClient, None, None]:
    with TestClient(make_app()) as c:
        yield c
