"""Splits time-coded transcripts into reader-friendly paragraphs.

Paragraph breaks come from two sources:
- pauses: a gap between segments longer than a pause threshold, where the
  threshold is chosen by bisection so paragraphs land near the target size
- length: runs without usable pause information, and any paragraph over the
  ceiling, are cut toward the target size at sentence ends, falling back
  to segment boundaries when a sentence runs too long

The output is deterministic for a given input.
"""

import html
import math
import re
from collections.abc import Iterable

from sermon_audio.transcripts.segments import Paragraph, TranscriptSegment

MIN_EXPECTED_PARAGRAPH_WORD_COUNT = 30
MAX_EXPECTED_PARAGRAPH_WORD_COUNT = 700
TARGET_AVERAGE_PARAGRAPH_WORD_COUNT = 75
SPLITTING_FLUCTUATION = 50
EPSILON = 1e-4

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def count_words(text: str) -> int:
    """Number of whitespace-separated tokens."""
    return len(text.split())


def segment(segments: Iterable[TranscriptSegment]) -> list[Paragraph]:
    """Group transcript segments into paragraphs, preserving order."""
    texts: list[str] = []
    gaps: list[float] = []  # gaps[i] precedes texts[i + 1]
    cursor: float | None = None

    for item in segments:
        text = item.text.strip()
        if text and item.end > item.start:
            if texts:
                gaps.append(item.start - cursor)
            texts.append(text)
        cursor = item.end

    if not texts:
        return []

    word_counts = [count_words(text) for text in texts]
    last = len(texts) - 1

    if last == 0:
        runs = [(0, 0)]
        balance_all = False
    elif max(gaps) - min(gaps) <= EPSILON:
        # No pause signal to go on
        runs = [(0, last)]
        balance_all = True
    else:
        threshold = _choose_pause_threshold(word_counts, gaps)
        runs = _split_at_pauses(gaps, threshold)
        balance_all = False

    blocks: list[str] = []
    for first, end in runs:
        run = texts[first:end + 1]
        if balance_all or sum(word_counts[first:end + 1]) > MAX_EXPECTED_PARAGRAPH_WORD_COUNT:
            blocks.extend(_balance(run))
        else:
            blocks.append(" ".join(run))

    return [
        Paragraph(index=index, word_count=count_words(block), text=block)
        for index, block in enumerate(blocks)
    ]


def render_html(paragraphs: Iterable[Paragraph]) -> str:
    """Serialize paragraphs as escaped <p> elements, one per line."""
    return "\n".join(f"<p>{html.escape(paragraph.text)}</p>" for paragraph in paragraphs)


def _count_paragraph_sizes(
    word_counts: list[int],
    gaps: list[float],
    threshold: float,
) -> tuple[int, int, int]:
    """Words in undersized paragraphs, words in oversized ones, paragraph count."""
    small = large = paragraphs = current = 0
    last = len(word_counts) - 1
    for i, word_count in enumerate(word_counts):
        current += word_count
        if i == last or gaps[i] > threshold:
            if current < MIN_EXPECTED_PARAGRAPH_WORD_COUNT:
                small += current
            elif current > MAX_EXPECTED_PARAGRAPH_WORD_COUNT:
                large += current
            paragraphs += 1
            current = 0
    return small, large, paragraphs


def _choose_pause_threshold(word_counts: list[int], gaps: list[float]) -> float:
    """
    Bisect over the distinct gap lengths for the pause threshold.

    A sentinel above the largest gap stands for "no pause splits at all".
    Low midpoints are tried first, so ties resolve toward longer paragraphs,
    which can still be cut by length afterwards.
    """
    candidates = sorted(set(gaps))
    candidates.append(candidates[-1] + 1)
    total = sum(word_counts)

    low, high = 0, len(candidates) - 1
    while low < high:
        mid = math.floor((low + high) / 2 + 0.1)
        small, large, paragraphs = _count_paragraph_sizes(word_counts, gaps, candidates[mid] - EPSILON)

        if small > large:
            # Too many short paragraphs: raise the threshold
            low = mid + 1 if low == mid else mid
        elif large == 0:
            diff = total - TARGET_AVERAGE_PARAGRAPH_WORD_COUNT * paragraphs
            if diff > EPSILON:
                high = mid
            elif diff < -EPSILON:
                low = mid + 1 if low == mid else mid
            else:
                low = high = mid
        else:
            high = mid

    return candidates[low] - EPSILON


def _split_at_pauses(gaps: list[float], threshold: float) -> list[tuple[int, int]]:
    runs = []
    first = 0
    for i, gap in enumerate(gaps):
        if gap > threshold:
            runs.append((first, i))
            first = i + 1
    runs.append((first, len(gaps)))
    return runs


def _pieces(texts: list[str]) -> list[tuple[str, int, bool]]:
    """
    Cut a run of segment texts into (text, word count, ends sentence) pieces.

    Every piece boundary is a segment or sentence boundary. A sentence
    longer than twice the fluctuation is cut into target-sized word chunks,
    so any piece fits after a paragraph of minimum size.
    """
    chunk_size = TARGET_AVERAGE_PARAGRAPH_WORD_COUNT
    max_piece = SPLITTING_FLUCTUATION * 2

    pieces = []
    for text in texts:
        for sentence in _SENTENCE_BOUNDARY.split(text):
            words = sentence.split()
            if not words:
                continue
            ends_sentence = words[-1][-1] in ".!?"
            if len(words) <= max_piece:
                pieces.append((" ".join(words), len(words), ends_sentence))
                continue
            for i in range(0, len(words), chunk_size):
                chunk = words[i:i + chunk_size]
                last_chunk = i + chunk_size >= len(words)
                pieces.append((" ".join(chunk), len(chunk), ends_sentence and last_chunk))
    return pieces


def _balance(texts: list[str]) -> list[str]:
    """
    Cut a run of segments into paragraphs near the target size.

    Paragraphs end at a sentence once they reach the target. A piece that
    would push a paragraph past target + fluctuation forces a cut, at the
    last sentence end that leaves a large enough paragraph, otherwise at
    the preceding piece boundary. Every paragraph but the last stays within
    the fluctuation band.
    """
    upper = TARGET_AVERAGE_PARAGRAPH_WORD_COUNT + SPLITTING_FLUCTUATION
    lower = TARGET_AVERAGE_PARAGRAPH_WORD_COUNT - SPLITTING_FLUCTUATION

    pieces = _pieces(texts)
    remaining = sum(word_count for _, word_count, _ in pieces)

    paragraphs: list[str] = []
    parts: list[tuple[str, int, bool]] = []
    count = 0

    for piece in pieces:
        _, word_count, ends_sentence = piece
        if parts and count + word_count > upper:
            cut = _sentence_cut(parts, count + word_count, lower, upper)
            paragraphs.append(" ".join(text for text, _, _ in parts[:cut]))
            parts = parts[cut:]
            count = sum(n for _, n, _ in parts)

        parts.append(piece)
        count += word_count
        remaining -= word_count

        # Keep a short tail in this paragraph rather than leaving it on its own
        absorb_tail = 0 < remaining < MIN_EXPECTED_PARAGRAPH_WORD_COUNT and count + remaining <= upper
        if ends_sentence and count >= TARGET_AVERAGE_PARAGRAPH_WORD_COUNT and not absorb_tail:
            paragraphs.append(" ".join(text for text, _, _ in parts))
            parts, count = [], 0

    if parts:
        paragraphs.append(" ".join(text for text, _, _ in parts))
    return paragraphs


def _sentence_cut(parts: list[tuple[str, int, bool]], total: int, lower: int, upper: int) -> int:
    """Number of leading parts to emit when the next piece does not fit."""
    prefix = 0
    best = len(parts)
    for i, (_, word_count, ends_sentence) in enumerate(parts[:-1], start=1):
        prefix += word_count
        if ends_sentence and prefix >= lower and total - prefix <= upper:
            best = i
    return best
