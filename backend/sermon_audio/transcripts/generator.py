"""Builds final transcription HTML from raw transcription XML."""

from sermon_audio.core.logging import get_logger
from sermon_audio.core.storage.base import TranscriptFetcher
from sermon_audio.transcripts.segmenter import render_html, segment
from sermon_audio.transcripts.segments import parse_transcription_xml

logger = get_logger(__name__)


class FinalTranscriptionGenerator:
    """Fetches a raw transcript and renders it as paragraph HTML."""

    def __init__(self, fetcher: TranscriptFetcher) -> None:
        self.fetcher = fetcher

    def generate(self, raw_key: str) -> str:
        """
        Generate transcription HTML for the raw transcript under raw_key.

        Raises:
            TranscriptNotFoundError, TranscriptAccessDeniedError: Terminal fetch failures
            TransientStorageError: Storage could not be reached
            TranscriptFormatError: The payload is not valid transcription XML
        """
        payload = self.fetcher.fetch(raw_key)
        paragraphs = segment(parse_transcription_xml(payload))
        logger.debug(
            "transcription_segmented",
            raw_key=raw_key,
            paragraphs=len(paragraphs),
            words=sum(p.word_count for p in paragraphs),
        )
        return render_html(paragraphs)
