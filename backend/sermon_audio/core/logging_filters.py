"""Logging filters that route event-bus records to their own log file."""

import logging

EVENT_LOGGER_PREFIX = "sermon_audio.core.events"


def _is_event_record(record: logging.LogRecord) -> bool:
    return record.name.startswith(EVENT_LOGGER_PREFIX) or getattr(record, "is_event", False)


class EventFilter(logging.Filter):
    """Keep only records emitted by the event bus (or flagged with is_event)."""

    def filter(self, record: logging.LogRecord) -> bool:
        return _is_event_record(record)


class NonEventFilter(logging.Filter):
    """Drop event-bus records so backend.log holds everything else."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not _is_event_record(record)
