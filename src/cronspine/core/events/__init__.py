"""In-process event bus.

Components announce state changes (a component enabled or disabled, the
crontab reloaded) without importing each other. The scheduler subscribes to
``component.setting_changed`` so that toggling a registered job contributor
rebuilds the crontab.

Usage::

    from cronspine.core.events import Event, get_event_bus

    bus = get_event_bus()
    await bus.publish(Event(
        event_type=COMPONENT_SETTING_CHANGED,
        source="billing",
        payload={"setting": "enabled", "value": False},
    ))

Modules
-------
memory      InMemoryEventBus -- asyncio, single-node
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

__all__ = [
    "COMPONENT_SETTING_CHANGED",
    "CRONTAB_RELOADED",
    "Event",
    "EventBus",
    "EventHandler",
    "get_event_bus",
    "set_event_bus",
]

COMPONENT_SETTING_CHANGED = "component.setting_changed"
CRONTAB_RELOADED = "crontab.reloaded"


@dataclass
class Event:
    """Event payload.

    Attributes:
        event_type: Dot-separated type (e.g., ``component.setting_changed``)
        source: Origin component
        payload: Event-specific data
        timestamp: When the event occurred (UTC)
        correlation_id: Optional ID linking related events
        event_id: Unique event identifier
    """

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    correlation_id: str | None = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def matches(self, pattern: str) -> bool:
        """Check if event type matches a pattern (supports wildcards).

        Examples:
            - ``component.*`` matches ``component.setting_changed``
            - ``*`` matches everything
        """
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            return self.event_type.startswith(prefix + ".")
        return self.event_type == pattern


EventHandler = Callable[[Event], Awaitable[None]]


@runtime_checkable
class EventBus(Protocol):
    """Publish/subscribe with wildcard patterns."""

    async def publish(self, event: Event) -> None: ...

    async def subscribe(self, event_type: str, handler: EventHandler) -> str: ...

    async def unsubscribe(self, subscription_id: str) -> None: ...

    async def close(self) -> None: ...


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the global event bus, creating an in-memory one if none is set."""
    global _event_bus
    if _event_bus is None:
        from cronspine.core.events.memory import InMemoryEventBus

        _event_bus = InMemoryEventBus()
    return _event_bus


def set_event_bus(bus: EventBus | None) -> None:
    """Set (or with ``None``, reset) the global event bus."""
    global _event_bus
    _event_bus = bus
