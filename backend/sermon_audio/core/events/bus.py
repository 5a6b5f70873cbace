"""Synchronous event bus with an optional Redis relay."""

import json
import logging
from collections import defaultdict
from typing import Any, Callable

import redis

from sermon_audio.config import settings
from sermon_audio.core.events.types import Event, EventType

logger = logging.getLogger(__name__)

REDIS_CHANNEL = "events"


class EventBus:
    """
    Central event bus with:
    - Pub/sub for in-process handlers
    - Relay over Redis pub/sub for listeners in other processes
    """

    _instance: "EventBus | None" = None

    def __new__(cls) -> "EventBus":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._subscribers: dict[str, list[Callable]] = defaultdict(list)
            cls._instance._redis_client = None
        return cls._instance

    # === SUBSCRIPTION ===

    def subscribe(
        self,
        event_type: str | EventType,
        handler: Callable[[Event], Any],
    ) -> None:
        """Subscribe a handler to an event type."""
        key = event_type.value if isinstance(event_type, EventType) else event_type
        self._subscribers[key].append(handler)
        logger.debug(f"Subscribed handler to {key}")

    def unsubscribe(
        self,
        event_type: str | EventType,
        handler: Callable,
    ) -> None:
        """Unsubscribe a handler from an event type."""
        key = event_type.value if isinstance(event_type, EventType) else event_type
        if handler in self._subscribers[key]:
            self._subscribers[key].remove(handler)

    def subscribe_all(self, handler: Callable[[Event], Any]) -> None:
        """Subscribe to all events (wildcard)."""
        self._subscribers["*"].append(handler)

    def clear(self) -> None:
        """Drop every subscriber."""
        self._subscribers.clear()

    # === PUBLICATION ===

    def publish(
        self,
        event_type: str | EventType,
        source: str,
        payload: dict[str, Any],
    ) -> Event:
        """
        Publish an event to in-process subscribers.

        Handler errors are logged and never reach the publisher.
        """
        type_str = event_type.value if isinstance(event_type, EventType) else event_type
        event = Event(type=type_str, source=source, payload=payload)

        handlers = self._subscribers.get(type_str, []) + self._subscribers.get("*", [])
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler error for {type_str}: {e}")

        logger.debug(f"Published event: {type_str} from {source}")
        return event

    def publish_remote(
        self,
        event_type: str | EventType,
        source: str,
        payload: dict[str, Any],
    ) -> Event:
        """
        Publish locally, then relay over Redis when enabled.

        Celery workers use this so the API process (or any other listener
        on the events channel) sees updates applied by background sweeps.
        """
        event = self.publish(event_type, source, payload)
        if not settings.events_redis_enabled:
            return event

        try:
            self._get_redis().publish(
                REDIS_CHANNEL,
                json.dumps(event.model_dump(mode="json"), default=str),
            )
        except redis.RedisError as e:
            logger.error(f"Failed to relay event {event.type}: {e}")
        return event

    def _get_redis(self) -> redis.Redis:
        if self._redis_client is None:
            self._redis_client = redis.from_url(settings.redis_url)
        return self._redis_client


def get_event_bus() -> EventBus:
    """Get the singleton EventBus instance."""
    return EventBus()
