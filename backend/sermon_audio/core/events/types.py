"""Event types and models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Event types published by the refresh service."""

    # Results applied outside of an ordinary edit
    AUDIO_SPONTANEOUSLY_UPDATED = "audio.spontaneously_updated"
    TRANSCRIPTION_SPONTANEOUSLY_UPDATED = "transcription.spontaneously_updated"

    # Announcements received over HTTP
    JOB_ANNOUNCED = "job.announced"

    # Refresh work units given up on after retries
    REFRESH_DROPPED = "refresh.dropped"

    # System events
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"


class Event(BaseModel):
    """Event model for the event bus."""

    id: UUID = Field(default_factory=uuid4)
    type: str
    source: str  # Origin: "refresh:coordinator", "api:announcements"
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
