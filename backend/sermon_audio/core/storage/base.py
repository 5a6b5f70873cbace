"""Storage interfaces for raw transcripts and rendered results."""

import hashlib
from abc import ABC, abstractmethod


def content_key(prefix: str, content: bytes, suffix: str = ".html") -> str:
    """Content-addressed key: same content always maps to the same key."""
    return f"{prefix}{hashlib.sha256(content).hexdigest()}{suffix}"


class TranscriptFetcher(ABC):
    """Reads raw transcription payloads written by transcription jobs."""

    @abstractmethod
    def fetch(self, key: str) -> bytes:
        """
        Return the payload stored under key.

        Raises:
            TranscriptNotFoundError: No payload exists under key
            TranscriptAccessDeniedError: Storage refused access
            TransientStorageError: Storage could not be reached
        """
        ...


class ResultStorage(ABC):
    """Stores rendered artifacts and hands back their keys."""

    @abstractmethod
    def store(self, content: str) -> str:
        """Persist content and return the key it is stored under."""
        ...
