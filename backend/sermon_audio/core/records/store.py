"""Persistence for sermon audio records."""

from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from sermon_audio.core.logging import get_logger
from sermon_audio.core.records.models import SermonAudio, SermonAudioTranslation

logger = get_logger(__name__)

# Called with every record right after it is loaded; returns True if the
# record was changed and must be saved.
ReadHook = Callable[[SermonAudio], bool]


class RecordStore:
    """
    Loads and saves records through a SQLAlchemy session.

    An optional read hook runs on every load so outstanding jobs can be
    reconciled as a side effect of reading the record.
    """

    def __init__(self, session: Session, read_hook: ReadHook | None = None) -> None:
        self.session = session
        self.read_hook = read_hook

    def load(self, record_id: int) -> SermonAudio | None:
        record = self.session.get(SermonAudio, record_id)
        if record is None:
            return None

        if self.read_hook is not None and self.read_hook(record):
            logger.info("record_refreshed_on_read", record_id=record_id)
            self.save(record)
        return record

    def save(self, record: SermonAudio) -> None:
        record.check_invariants()
        self.session.add(record)
        self.session.commit()

    def find_ids_with_outstanding_job(self, job_id_attr: str, failed_attr: str, result_attr: str) -> list[int]:
        """Ids of records with a translation awaiting a non-failed job whose result has not landed."""
        job_id_column = getattr(SermonAudioTranslation, job_id_attr)
        failed_column = getattr(SermonAudioTranslation, failed_attr)
        result_column = getattr(SermonAudioTranslation, result_attr)
        stmt = (
            select(SermonAudioTranslation.record_id)
            .where(
                job_id_column.is_not(None),
                job_id_column != "",
                failed_column.is_(False),
                result_column.is_(None),
            )
            .distinct()
            .order_by(SermonAudioTranslation.record_id)
        )
        return list(self.session.scalars(stmt))

    def find_ids_by_job_id(self, job_id_attr: str, job_id: str) -> list[int]:
        """Ids of records with a translation carrying the given job id."""
        job_id_column = getattr(SermonAudioTranslation, job_id_attr)
        stmt = (
            select(SermonAudioTranslation.record_id)
            .where(job_id_column == job_id)
            .distinct()
            .order_by(SermonAudioTranslation.record_id)
        )
        return list(self.session.scalars(stmt))
