"""Transcript storage module."""

from sermon_audio.config import Settings
from sermon_audio.core.exceptions import ConfigurationError
from sermon_audio.core.storage.base import ResultStorage, TranscriptFetcher
from sermon_audio.core.storage.local import LocalTranscriptStorage
from sermon_audio.core.storage.s3 import S3TranscriptStorage


def get_transcript_storage(settings: Settings) -> LocalTranscriptStorage | S3TranscriptStorage:
    """Build the storage backend selected by storage_type."""
    if settings.storage_type == "local":
        return LocalTranscriptStorage(
            root=settings.storage_local_path,
            key_prefix=settings.transcription_key_prefix,
            result_prefix=settings.final_transcription_key_prefix,
        )

    if settings.storage_type == "s3":
        if not settings.transcription_bucket_name:
            raise ConfigurationError("transcription_bucket_name is required for S3 storage")
        return S3TranscriptStorage(
            bucket=settings.transcription_bucket_name,
            region=settings.transcription_s3_aws_region,
            key_prefix=settings.transcription_key_prefix,
            result_prefix=settings.final_transcription_key_prefix,
        )

    raise ConfigurationError(f"Unknown storage_type {settings.storage_type!r}")


__all__ = [
    "TranscriptFetcher",
    "ResultStorage",
    "LocalTranscriptStorage",
    "S3TranscriptStorage",
    "get_transcript_storage",
]
