"""Time-coded transcript segments and the transcription XML format."""

import xml.etree.ElementTree as ET
from dataclasses import dataclass

from sermon_audio.core.exceptions import TranscriptFormatError

SENTENCE_BREAK_CHARACTERS = ".!?"


@dataclass(frozen=True)
class TranscriptSegment:
    """Timestamped span of transcript text."""

    start: float  # seconds
    end: float  # seconds
    text: str


@dataclass(frozen=True)
class Paragraph:
    """Rendered block of consecutive segment text."""

    index: int
    word_count: int
    text: str


def ends_sentence(text: str) -> bool:
    return bool(text) and text[-1] in SENTENCE_BREAK_CHARACTERS


def _parse_time(element: ET.Element, name: str, position: int) -> float:
    value = element.get(name)
    if value is None:
        raise TranscriptFormatError(f"<segment> {position} is missing the {name!r} attribute")
    try:
        return float(value)
    except ValueError as e:
        raise TranscriptFormatError(f"<segment> {position} has a non-numeric {name!r} attribute") from e


def parse_transcription_xml(payload: bytes | str) -> list[TranscriptSegment]:
    """
    Parse raw transcription XML into cleaned-up segments.

    The payload looks like::

        <transcription>
          <segment start="0.00" end="9.64">Well, good morning, everyone.</segment>
          ...
        </transcription>

    The returned segments may differ from the ones in the payload:
    - negative start times are clamped to zero
    - a start time earlier than the previous segment's end is moved up to it
    - segments with end <= start or with blank text are discarded
    - a segment whose text does not end a sentence is joined with its successor

    Every returned segment has trimmed, non-empty text, and every segment
    except possibly the last ends in a sentence break character.

    Raises:
        TranscriptFormatError: The payload is not well-formed transcription XML
    """
    if not payload.strip():
        return []

    try:
        root = ET.fromstring(payload)
    except ET.ParseError as e:
        raise TranscriptFormatError(f"Invalid transcription XML: {e}") from e

    if root.tag.lower() != "transcription":
        raise TranscriptFormatError(f"Expected a <transcription> root element, got <{root.tag}>")

    segments: list[TranscriptSegment] = []
    current_start = 0.0
    current_end = 0.0
    current_text = ""

    for position, element in enumerate(root):
        if element.tag.lower() != "segment":
            raise TranscriptFormatError(f"Unexpected <{element.tag}> element at position {position}")
        if len(element):
            raise TranscriptFormatError(f"<segment> {position} contains nested elements")

        start = max(_parse_time(element, "start", position), 0.0)
        end = _parse_time(element, "end", position)
        start = max(start, current_end)
        if end <= start:
            continue

        text = (element.text or "").strip()
        if not text:
            continue

        if not current_text:
            current_start, current_end, current_text = start, end, text
        elif not ends_sentence(current_text):
            current_end = end
            current_text = f"{current_text} {text}"
        else:
            segments.append(TranscriptSegment(current_start, current_end, current_text))
            current_start, current_end, current_text = start, end, text

    if current_text:
        segments.append(TranscriptSegment(current_start, current_end, current_text))

    return segments
