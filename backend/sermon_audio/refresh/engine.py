"""Applies finished remote job results to translations."""

import math
from collections.abc import Mapping
from dataclasses import dataclass

from sermon_audio.core.exceptions import ConfigurationError, InconsistentRecordError, TerminalError
from sermon_audio.core.jobs.client import Failed, JobResult, JobStatusClient, NotFinished
from sermon_audio.core.jobs.kinds import JobKind
from sermon_audio.core.logging import get_logger
from sermon_audio.core.records.models import SermonAudioTranslation
from sermon_audio.core.storage.base import ResultStorage
from sermon_audio.transcripts.generator import FinalTranscriptionGenerator

logger = get_logger(__name__)


@dataclass(frozen=True)
class RefreshOutcome:
    """What one refresh call did to a translation."""

    mutated: bool
    result_applied: bool


UNCHANGED = RefreshOutcome(mutated=False, result_applied=False)
APPLIED = RefreshOutcome(mutated=True, result_applied=True)
RESOLVED_AS_FAILED = RefreshOutcome(mutated=True, result_applied=False)


def is_refreshable(translation: SermonAudioTranslation, kind: JobKind) -> bool:
    """A job id is outstanding and its result has not landed yet."""
    return bool(getattr(translation, kind.job_id_attr)) and getattr(translation, kind.result_attr) is None


class RefreshEngine:
    """
    Refreshes one translation for one job kind.

    The engine mutates the translation in place and never saves it; callers
    persist the record when the outcome says it was mutated.
    """

    def __init__(
        self,
        clients: Mapping[JobKind, JobStatusClient],
        transcription_generator: FinalTranscriptionGenerator,
        result_storage: ResultStorage,
    ) -> None:
        self.clients = clients
        self.transcription_generator = transcription_generator
        self.result_storage = result_storage

    def refresh(self, translation: SermonAudioTranslation, kind: JobKind) -> RefreshOutcome:
        """
        Query the outstanding job of the given kind and apply its result.

        Raises:
            TransientError: The job status or transcript could not be fetched right now
            InvariantViolationError: The translation is inconsistent
            ConfigurationError: No client is configured for the kind
        """
        if not is_refreshable(translation, kind):
            return UNCHANGED

        translation.check_invariants()
        job_id = getattr(translation, kind.job_id_attr)

        client = self.clients.get(kind)
        if client is None:
            raise ConfigurationError(f"No job status client configured for {kind.value} jobs")

        try:
            if kind is JobKind.CLEANING and translation.unprocessed_audio_ref is None:
                raise InconsistentRecordError("cleaning job outstanding without unprocessed audio")

            status = client.query_status(job_id)
            if isinstance(status, NotFinished):
                logger.debug("refresh_job_pending", job_id=job_id, kind=kind.value)
                return UNCHANGED
            if isinstance(status, Failed):
                return self._resolve_as_failed(translation, kind, job_id, status.reason)

            self._apply(translation, kind, status.result)
        except TerminalError as e:
            return self._resolve_as_failed(translation, kind, job_id, str(e))

        translation.check_invariants()
        logger.info(
            "refresh_result_applied",
            record_id=translation.record_id,
            langcode=translation.langcode,
            kind=kind.value,
            job_id=job_id,
        )
        return APPLIED

    def _apply(self, translation: SermonAudioTranslation, kind: JobKind, result: JobResult) -> None:
        if kind is JobKind.CLEANING:
            duration = result.duration
            if duration is None or duration < 0 or not math.isfinite(duration):
                raise InconsistentRecordError(f"cleaning job reported invalid duration {duration!r}")
            translation.processed_audio_ref = result.output_ref
            translation.duration = duration
        else:
            transcription_html = self.transcription_generator.generate(result.output_ref)
            translation.transcription_sub_key = self.result_storage.store(transcription_html)

        setattr(translation, kind.job_id_attr, None)
        setattr(translation, kind.failed_attr, False)

    def _resolve_as_failed(
        self,
        translation: SermonAudioTranslation,
        kind: JobKind,
        job_id: str,
        reason: str,
    ) -> RefreshOutcome:
        setattr(translation, kind.job_id_attr, None)
        setattr(translation, kind.failed_attr, True)
        logger.warning(
            "refresh_job_failed",
            record_id=translation.record_id,
            langcode=translation.langcode,
            kind=kind.value,
            job_id=job_id,
            reason=reason,
        )
        translation.check_invariants()
        return RESOLVED_AS_FAILED
