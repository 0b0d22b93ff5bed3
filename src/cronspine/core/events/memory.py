"""Single-process event bus.

Subscriptions live in a dict keyed by id; ``publish`` snapshots the matching
handlers and awaits them together. A handler that raises is logged and the
others still receive the event, so a broken listener cannot stop a crontab
reload from being announced.

Example::

    bus = InMemoryEventBus()
    sub = await bus.subscribe("component.*", on_toggle)
    await bus.publish(Event(event_type=COMPONENT_SETTING_CHANGED, source="billing"))
    await bus.unsubscribe(sub)
"""

from __future__ import annotations

import asyncio
import itertools
from typing import NamedTuple

from cronspine.core.events import Event, EventHandler
from cronspine.core.logging import get_logger

logger = get_logger(__name__)

__all__ = ["InMemoryEventBus"]


class _Listener(NamedTuple):
    pattern: str
    handler: EventHandler


class InMemoryEventBus:
    """:class:`~cronspine.core.events.EventBus` for one process and one event loop."""

    def __init__(self) -> None:
        self._listeners: dict[str, _Listener] = {}
        self._ids = itertools.count(1)
        self._closed = False

    async def publish(self, event: Event) -> None:
        if self._closed:
            return
        targets = [(sub_id, ln.handler) for sub_id, ln in list(self._listeners.items()) if event.matches(ln.pattern)]
        if targets:
            await asyncio.gather(*(self._deliver(sub_id, handler, event) for sub_id, handler in targets))

    @staticmethod
    async def _deliver(sub_id: str, handler: EventHandler, event: Event) -> None:
        try:
            await handler(event)
        except Exception as e:
            logger.warning(
                "event_handler_error",
                subscription_id=sub_id,
                event_type=event.event_type,
                error=str(e),
                exc_info=True,
            )

    async def subscribe(self, event_type: str, handler: EventHandler) -> str:
        """Listen for ``event_type``; ``*`` and ``prefix.*`` patterns are allowed."""
        sub_id = f"sub_{next(self._ids)}"
        self._listeners[sub_id] = _Listener(event_type, handler)
        return sub_id

    async def unsubscribe(self, subscription_id: str) -> None:
        self._listeners.pop(subscription_id, None)

    async def close(self) -> None:
        """Drop every listener; later publishes are ignored."""
        self._closed = True
        self._listeners.clear()

    @property
    def subscription_count(self) -> int:
        return len(self._listeners)
