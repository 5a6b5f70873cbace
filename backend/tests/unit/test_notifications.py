"""Unit tests for notification dispatch and the event bus."""

from unittest.mock import MagicMock

import pytest

from sermon_audio.core.events.types import EventType
from sermon_audio.core.jobs.kinds import JobKind
from sermon_audio.refresh.notifications import NotificationDispatcher, RemoteEventChannel
from tests.conftest import build_translation


@pytest.mark.unit
class TestNotificationDispatcher:
    def test_audio_event_per_translation(self, dispatcher, published_events):
        """One audio event is sent per applied translation."""
        en = build_translation("en", processed_audio_ref="audio/en.m4a", duration=1.0)
        de = build_translation("de", processed_audio_ref="audio/de.m4a", duration=2.0)

        published = dispatcher.dispatch([en, de], JobKind.CLEANING)

        assert published == 2
        assert [e.type for e in published_events] == [EventType.AUDIO_SPONTANEOUSLY_UPDATED.value] * 2
        assert [e.payload["langcode"] for e in published_events] == ["en", "de"]
        assert published_events[0].payload["processed_audio_ref"] == "audio/en.m4a"
        assert published_events[0].source == NotificationDispatcher.SOURCE

    def test_transcription_event(self, dispatcher, published_events):
        """Transcription events carry the stored key."""
        translation = build_translation(transcription_sub_key="final-transcriptions/abc.html")

        dispatcher.dispatch([translation], JobKind.TRANSCRIPTION)

        assert published_events[0].type == EventType.TRANSCRIPTION_SPONTANEOUSLY_UPDATED.value
        assert published_events[0].payload["transcription_sub_key"] == "final-transcriptions/abc.html"

    def test_channel_failure_does_not_stop_dispatch(self):
        """A failing publish does not block the remaining events."""
        channel = MagicMock()
        channel.publish.side_effect = [RuntimeError("channel down"), None]
        dispatcher = NotificationDispatcher(channel)

        published = dispatcher.dispatch([build_translation("en"), build_translation("de")], JobKind.CLEANING)

        assert published == 1
        assert channel.publish.call_count == 2

    def test_nothing_to_dispatch(self, dispatcher, published_events):
        """No translations means no events."""
        assert dispatcher.dispatch([], JobKind.CLEANING) == 0
        assert published_events == []

    def test_remote_channel_relays_through_bus(self):
        """The remote channel forwards to publish_remote."""
        bus = MagicMock()

        RemoteEventChannel(bus).publish(EventType.JOB_ANNOUNCED, "test", {"job_id": "x"})

        bus.publish_remote.assert_called_once_with(EventType.JOB_ANNOUNCED, "test", {"job_id": "x"})


@pytest.mark.unit
class TestEventBus:
    def test_handler_errors_do_not_reach_publisher(self, event_bus, published_events):
        """A broken subscriber does not fail the publish."""
        def broken(event):
            raise RuntimeError("handler bug")

        event_bus.subscribe(EventType.JOB_ANNOUNCED, broken)

        event = event_bus.publish(EventType.JOB_ANNOUNCED, "test", {"job_id": "x"})

        assert event.type == "job.announced"
        assert published_events == [event]

    def test_unsubscribe(self, event_bus):
        """An unsubscribed handler receives nothing."""
        seen = []
        event_bus.subscribe("custom.event", seen.append)
        event_bus.unsubscribe("custom.event", seen.append)

        event_bus.publish("custom.event", "test", {})

        assert seen == []

    def test_publish_remote_without_redis(self, event_bus, published_events):
        """Without Redis the event is still delivered locally."""
        event_bus.publish_remote(EventType.REFRESH_DROPPED, "test", {"record_id": 1})

        assert [e.type for e in published_events] == ["refresh.dropped"]
