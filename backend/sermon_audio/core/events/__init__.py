"""Event system module."""

from sermon_audio.core.events.types import Event, EventType
from sermon_audio.core.events.bus import EventBus, get_event_bus

__all__ = [
    "Event",
    "EventType",
    "EventBus",
    "get_event_bus",
]
