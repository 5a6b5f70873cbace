"""Builds the refresh components from settings."""

from functools import lru_cache

from sermon_audio.config import Settings, get_settings
from sermon_audio.core.jobs.client import get_job_status_client
from sermon_audio.core.jobs.kinds import JobKind
from sermon_audio.core.storage import get_transcript_storage
from sermon_audio.refresh.coordinator import ReconciliationCoordinator
from sermon_audio.refresh.engine import RefreshEngine
from sermon_audio.refresh.guard import get_refresh_guard
from sermon_audio.transcripts.generator import FinalTranscriptionGenerator


def build_engine(settings: Settings) -> RefreshEngine:
    """
    Wire a refresh engine to the configured endpoints and storage.

    Raises:
        ConfigurationError: An endpoint or the storage backend is not configured
    """
    storage = get_transcript_storage(settings)
    return RefreshEngine(
        clients={kind: get_job_status_client(kind, settings) for kind in JobKind},
        transcription_generator=FinalTranscriptionGenerator(storage),
        result_storage=storage,
    )


@lru_cache
def get_coordinator() -> ReconciliationCoordinator:
    """Get the process-wide coordinator, sharing the process-wide guard."""
    return ReconciliationCoordinator(build_engine(get_settings()), get_refresh_guard())
