"""Filesystem-backed transcript storage."""

from pathlib import Path

from sermon_audio.core.exceptions import (
    TranscriptAccessDeniedError,
    TranscriptNotFoundError,
    TransientStorageError,
)
from sermon_audio.core.logging import get_logger
from sermon_audio.core.storage.base import ResultStorage, TranscriptFetcher, content_key

logger = get_logger(__name__)


class LocalTranscriptStorage(TranscriptFetcher, ResultStorage):
    """
    Reads and writes under a root directory.

    Keys are relative paths; the raw key prefix is prepended on fetch and
    the result prefix on store.
    """

    def __init__(self, root: str | Path, key_prefix: str = "", result_prefix: str = "") -> None:
        self.root = Path(root)
        self.key_prefix = key_prefix
        self.result_prefix = result_prefix

    def _resolve(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise TranscriptAccessDeniedError(f"Key {key!r} points outside of storage")
        return path

    def fetch(self, key: str) -> bytes:
        path = self._resolve(f"{self.key_prefix}{key}")
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise TranscriptNotFoundError(f"Transcript {key!r} not found") from e
        except PermissionError as e:
            raise TranscriptAccessDeniedError(f"Access to transcript {key!r} denied") from e
        except OSError as e:
            raise TransientStorageError(f"Could not read transcript {key!r}: {e}") from e

    def store(self, content: str) -> str:
        data = content.encode("utf-8")
        key = content_key(self.result_prefix, data)
        path = self._resolve(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise TransientStorageError(f"Could not write {key!r}: {e}") from e

        logger.debug("result_stored", key=key, size=len(data))
        return key
