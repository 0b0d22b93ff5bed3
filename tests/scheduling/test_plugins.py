"""Tests for plugin discovery and the registries that trigger it."""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest

from cronspine.core.errors import ConfigError
from cronspine.scheduling.plugins import PLUGIN_GROUP, clear_plugins, load_plugins
from cronspine.scheduling.runner import JobRegistry
from cronspine.scheduling.sources import ContributorRegistry


@pytest.fixture(autouse=True)
def fresh_plugins() -> Generator[None, None, None]:
    clear_plugins()
    yield
    clear_plugins()


def _entry_point(name: str, value: str, load=None) -> MagicMock:
    ep = MagicMock()
    ep.name = name
    ep.value = value
    ep.load = load or MagicMock()
    return ep


class TestLoadPlugins:
    def test_entry_points_loaded_once(self):
        ep = _entry_point("billing", "billing.cron")
        with patch("cronspine.scheduling.plugins.entry_points", return_value=[ep]) as eps:
            assert load_plugins() == ["billing.cron"]
            load_plugins()
        eps.assert_called_once_with(group=PLUGIN_GROUP)
        ep.load.assert_called_once()

    def test_setting_modules_imported(self):
        with (
            patch("cronspine.scheduling.plugins.entry_points", return_value=[]),
            patch("cronspine.scheduling.plugins.importlib.import_module") as imp,
        ):
            load_plugins(["billing.cron", "reports.cron"])
            load_plugins(["billing.cron"])
        assert [c.args[0] for c in imp.call_args_list] == ["billing.cron", "reports.cron"]

    def test_missing_module_raises_config_error(self):
        with patch("cronspine.scheduling.plugins.entry_points", return_value=[]):
            with pytest.raises(ConfigError, match="cronspine_absent_module") as exc_info:
                load_plugins(["cronspine_absent_module"])
        assert exc_info.value.context.metadata["origin"] == "settings"

    def test_broken_entry_point_retried_next_time(self):
        ep = _entry_point("billing", "billing.cron", load=MagicMock(side_effect=[RuntimeError("boom"), None]))
        with patch("cronspine.scheduling.plugins.entry_points", return_value=[ep]):
            with pytest.raises(ConfigError, match="billing"):
                load_plugins()
            assert load_plugins() == ["billing.cron"]


class TestRegistryDiscovery:
    def test_collect_loads_plugins_when_discovering(self):
        registry = ContributorRegistry(discover=True)
        with patch("cronspine.scheduling.sources.load_plugins") as load:
            registry.collect([])
        load.assert_called_once_with()

    def test_isolated_registry_does_not_discover(self):
        with patch("cronspine.scheduling.sources.load_plugins") as load:
            ContributorRegistry().collect([])
        load.assert_not_called()

    def test_job_lookup_loads_plugins(self):
        registry = JobRegistry(builtins=False, discover=True)

        def register_invoice():
            registry.register("billing.invoice", MagicMock())

        with patch("cronspine.scheduling.runner.load_plugins", side_effect=register_invoice):
            assert "billing.invoice" in registry.names()
