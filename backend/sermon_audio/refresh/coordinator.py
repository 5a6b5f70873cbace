"""Reconciles every translation of a record against its outstanding jobs."""

from dataclasses import dataclass, field

from sermon_audio.core.jobs.kinds import JobKind
from sermon_audio.core.logging import get_logger
from sermon_audio.core.records.models import SermonAudio, SermonAudioTranslation
from sermon_audio.core.records.store import RecordStore
from sermon_audio.refresh.engine import RefreshEngine, is_refreshable
from sermon_audio.refresh.guard import DuplicateInvocationGuard
from sermon_audio.refresh.notifications import NotificationDispatcher

logger = get_logger(__name__)


@dataclass
class ReconciliationResult:
    """
    Aggregate outcome of one reconciliation pass over a record.

    Nothing is announced until the caller, having saved the record,
    calls notify().
    """

    requires_save: bool = False
    applied: list[tuple[SermonAudioTranslation, JobKind]] = field(default_factory=list)

    def notify(self, dispatcher: NotificationDispatcher) -> None:
        for kind in JobKind:
            translations = [t for t, applied_kind in self.applied if applied_kind is kind]
            if translations:
                dispatcher.dispatch(translations, kind)


def has_outstanding_job(translation: SermonAudioTranslation, kind: JobKind) -> bool:
    """Eligibility used on the read path: a live job with its source input present."""
    if not is_refreshable(translation, kind) or getattr(translation, kind.failed_attr):
        return False
    if kind is JobKind.CLEANING:
        return translation.unprocessed_audio_ref is not None
    return translation.unprocessed_audio_ref is not None or translation.processed_audio_ref is not None


class ReconciliationCoordinator:
    """Runs the refresh engine over a record's translations."""

    def __init__(self, engine: RefreshEngine, guard: DuplicateInvocationGuard) -> None:
        self.engine = engine
        self.guard = guard

    def reconcile(self, record: SermonAudio, kind: JobKind) -> ReconciliationResult:
        """Refresh every translation that has a job of the given kind."""
        result = ReconciliationResult()
        for translation in record.translations:
            if not getattr(translation, kind.job_id_attr):
                continue
            self._refresh_into(result, translation, kind)
        return result

    def reconcile_outstanding(self, record: SermonAudio) -> ReconciliationResult:
        """Refresh every translation with an outstanding job of any kind."""
        result = ReconciliationResult()
        for kind in JobKind:
            for translation in record.translations:
                if has_outstanding_job(translation, kind):
                    self._refresh_into(result, translation, kind)
        return result

    def refresh_on_read(self, record: SermonAudio) -> bool:
        """
        Read-time hook for RecordStore.

        Returns whether the record needs saving. Results applied here are
        part of the ordinary read and are not announced.
        """
        if not self.guard.begin_exclusive(record.id):
            logger.debug("refresh_on_read_skipped", record_id=record.id)
            return False
        try:
            return self.reconcile_outstanding(record).requires_save
        finally:
            self.guard.end_exclusive(record.id)

    def reconcile_and_persist(
        self,
        record_id: int,
        kind: JobKind,
        store: RecordStore,
        dispatcher: NotificationDispatcher,
    ) -> ReconciliationResult | None:
        """
        Load, reconcile, save and announce one record.

        Returns None when the record no longer exists.

        Raises:
            ReconciliationInProgressError: Another pass holds this record
            TransientError: A collaborator failed; the unit of work may be retried
        """
        with self.guard.exclusive(record_id):
            record = store.load(record_id)
            if record is None:
                logger.info("reconcile_record_missing", record_id=record_id, kind=kind.value)
                return None

            result = self.reconcile(record, kind)
            if result.requires_save:
                store.save(record)
            result.notify(dispatcher)

        logger.info(
            "record_reconciled",
            record_id=record_id,
            kind=kind.value,
            saved=result.requires_save,
            applied=len(result.applied),
        )
        return result

    def _refresh_into(
        self,
        result: ReconciliationResult,
        translation: SermonAudioTranslation,
        kind: JobKind,
    ) -> None:
        outcome = self.engine.refresh(translation, kind)
        if outcome.mutated:
            result.requires_save = True
        if outcome.result_applied:
            result.applied.append((translation, kind))
