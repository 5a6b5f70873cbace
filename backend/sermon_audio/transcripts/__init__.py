"""Transcript parsing, segmentation and rendering."""

from sermon_audio.transcripts.generator import FinalTranscriptionGenerator
from sermon_audio.transcripts.segmenter import (
    MAX_EXPECTED_PARAGRAPH_WORD_COUNT,
    MIN_EXPECTED_PARAGRAPH_WORD_COUNT,
    SPLITTING_FLUCTUATION,
    TARGET_AVERAGE_PARAGRAPH_WORD_COUNT,
    render_html,
    segment,
)
from sermon_audio.transcripts.segments import Paragraph, TranscriptSegment, parse_transcription_xml

__all__ = [
    "TranscriptSegment",
    "Paragraph",
    "parse_transcription_xml",
    "segment",
    "render_html",
    "FinalTranscriptionGenerator",
    "MIN_EXPECTED_PARAGRAPH_WORD_COUNT",
    "MAX_EXPECTED_PARAGRAPH_WORD_COUNT",
    "TARGET_AVERAGE_PARAGRAPH_WORD_COUNT",
    "SPLITTING_FLUCTUATION",
]
