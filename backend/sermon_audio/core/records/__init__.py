"""Record persistence module."""

from sermon_audio.core.records.models import SermonAudio, SermonAudioTranslation
from sermon_audio.core.records.store import RecordStore

__all__ = ["SermonAudio", "SermonAudioTranslation", "RecordStore"]
