"""Publishes "spontaneously updated" events for results applied out of band."""

from collections.abc import Iterable
from typing import Any, Protocol

from sermon_audio.core.events.types import EventType
from sermon_audio.core.jobs.kinds import JobKind
from sermon_audio.core.logging import get_logger
from sermon_audio.core.records.models import SermonAudioTranslation

logger = get_logger(__name__)


class NotificationChannel(Protocol):
    def publish(self, event_type: str | EventType, source: str, payload: dict[str, Any]) -> Any: ...


class NotificationDispatcher:
    """
    Sends one event per translation whose result was just applied.

    Publishing is fire-and-forget: a failing channel is logged and the
    remaining translations are still dispatched.
    """

    SOURCE = "refresh:dispatcher"

    def __init__(self, channel: NotificationChannel) -> None:
        self.channel = channel

    def dispatch(self, translations: Iterable[SermonAudioTranslation], kind: JobKind) -> int:
        """Publish events in iteration order. Returns the number published."""
        published = 0
        for translation in translations:
            payload = {
                "record_id": translation.record_id,
                "langcode": translation.langcode,
                "translation_id": translation.id,
                kind.result_attr: getattr(translation, kind.result_attr),
            }
            try:
                self.channel.publish(kind.event_type, self.SOURCE, payload)
            except Exception as e:
                logger.error(
                    "notification_dispatch_failed",
                    kind=kind.value,
                    record_id=translation.record_id,
                    langcode=translation.langcode,
                    error=str(e),
                )
                continue
            published += 1
        return published


class RemoteEventChannel:
    """Channel that relays events to other processes through the event bus."""

    def __init__(self, bus: Any) -> None:
        self.bus = bus

    def publish(self, event_type: str | EventType, source: str, payload: dict[str, Any]) -> Any:
        return self.bus.publish_remote(event_type, source, payload)
