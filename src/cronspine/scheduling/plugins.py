"""Plugin discovery: import every module that registers jobs or sources.

Contributors and jobs announce themselves when their module is imported
(``@contributor``, ``@register_job``). A process that never imported those
modules would reload the crontab from the default source alone and drop
every contributed job, so each entry point loads all plugins before the
registries are consulted.

Two ways to declare a plugin:

- an installed distribution exposes a module in the ``cronspine.plugins``
  entry-point group::

      [project.entry-points."cronspine.plugins"]
      billing = "billing.cron"

- the ``plugins`` setting (``CRONSPINE_PLUGINS='["billing.cron"]'``) lists
  modules to import.

Loading is idempotent. A plugin that fails to import raises
``ConfigError``: reloading without it would silently delete its jobs.
"""

from __future__ import annotations

import importlib
from collections.abc import Iterable
from importlib.metadata import entry_points

from cronspine.core.errors import ConfigError
from cronspine.core.logging import get_logger

logger = get_logger(__name__)

PLUGIN_GROUP = "cronspine.plugins"

_loaded: set[str] = set()
_entry_points_loaded = False


def _import(module: str, origin: str) -> None:
    if module in _loaded:
        return
    try:
        importlib.import_module(module)
    except ImportError as e:
        raise ConfigError(f"Cannot load plugin module '{module}': {e}", cause=e).with_context(
            plugin=module, origin=origin
        ) from e
    _loaded.add(module)
    logger.debug("plugin_loaded", module=module, origin=origin)


def _load_entry_points() -> None:
    global _entry_points_loaded
    if _entry_points_loaded:
        return
    for ep in entry_points(group=PLUGIN_GROUP):
        if ep.value in _loaded:
            continue
        try:
            ep.load()
        except Exception as e:
            raise ConfigError(f"Cannot load plugin '{ep.name}' ({ep.value}): {e}", cause=e).with_context(
                plugin=ep.name, origin="entry_point"
            ) from e
        _loaded.add(ep.value)
        logger.debug("plugin_loaded", module=ep.value, origin="entry_point", name=ep.name)
    _entry_points_loaded = True


def load_plugins(modules: Iterable[str] = ()) -> list[str]:
    """Import installed entry-point plugins and ``modules``.

    Returns the names of every plugin loaded so far.

    Raises:
        ConfigError: A plugin module could not be imported.
    """
    _load_entry_points()
    for module in modules:
        _import(module, "settings")
    return sorted(_loaded)


def clear_plugins() -> None:
    """Forget what was loaded (for testing)."""
    global _entry_points_loaded
    _loaded.clear()
    _entry_points_loaded = False


__all__ = ["PLUGIN_GROUP", "load_plugins", "clear_plugins"]
