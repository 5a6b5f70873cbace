"""Kinds of remote processing job tracked per translation."""

from enum import Enum

from sermon_audio.core.events.types import EventType


class JobKind(str, Enum):
    """
    A remote job kind.

    Each kind selects the translation fields it reads and writes:
    the outstanding job id, the result it fills in, the terminal failure
    flag and the event published when a result lands out of band.
    """

    CLEANING = "cleaning"
    TRANSCRIPTION = "transcription"

    @property
    def job_id_attr(self) -> str:
        return f"{self.value}_job_id"

    @property
    def failed_attr(self) -> str:
        return f"{self.value}_job_failed"

    @property
    def result_attr(self) -> str:
        if self is JobKind.CLEANING:
            return "processed_audio_ref"
        return "transcription_sub_key"

    @property
    def event_type(self) -> EventType:
        if self is JobKind.CLEANING:
            return EventType.AUDIO_SPONTANEOUSLY_UPDATED
        return EventType.TRANSCRIPTION_SPONTANEOUSLY_UPDATED
