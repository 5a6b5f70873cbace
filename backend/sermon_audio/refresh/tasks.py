"""Celery tasks that drive reconciliation in the background.

Each refresh_record call is one unit of work: one record, one job kind.
Sweeps and job announcements only find record ids and enqueue those units,
so a failure on one record never holds up the others.
"""

from celery import shared_task

from sermon_audio.config import settings
from sermon_audio.core.database.session import session_factory
from sermon_audio.core.events.bus import get_event_bus
from sermon_audio.core.jobs.kinds import JobKind
from sermon_audio.core.logging import get_logger
from sermon_audio.core.queue.base_task import RefreshTask
from sermon_audio.core.records.store import RecordStore
from sermon_audio.refresh.notifications import NotificationDispatcher, RemoteEventChannel
from sermon_audio.refresh.service import get_coordinator

logger = get_logger(__name__)


@shared_task(
    bind=True,
    base=RefreshTask,
    name="sermon_audio.refresh_record",
    max_retries=settings.refresh_max_retries,
)
def refresh_record(self, record_id: int, kind: str) -> dict:
    """
    Reconcile one record against its outstanding jobs of one kind.

    Any failure is turned into a retry so the broker delivers the unit of
    work again, with exponential backoff.

    Args:
        record_id: Id of the sermon audio record
        kind: Job kind ("cleaning" or "transcription")

    Returns:
        Summary of what the pass did
    """
    job_kind = JobKind(kind)
    coordinator = get_coordinator()
    dispatcher = NotificationDispatcher(RemoteEventChannel(get_event_bus()))

    try:
        with session_factory() as session:
            store = RecordStore(session, read_hook=coordinator.refresh_on_read)
            result = coordinator.reconcile_and_persist(record_id, job_kind, store, dispatcher)
    except Exception as e:
        countdown = settings.refresh_retry_backoff_seconds * (2 ** self.request.retries)
        raise self.retry(exc=e, countdown=countdown)

    if result is None:
        return {"record_id": record_id, "kind": job_kind.value, "status": "missing"}

    return {
        "record_id": record_id,
        "kind": job_kind.value,
        "status": "saved" if result.requires_save else "unchanged",
        "applied": [translation.langcode for translation, _ in result.applied],
    }


@shared_task(bind=True, base=RefreshTask, name="sermon_audio.sweep")
def sweep(self, kind: str) -> int:
    """Enqueue a refresh for every record with a live job of the given kind."""
    job_kind = JobKind(kind)
    with session_factory() as session:
        record_ids = RecordStore(session).find_ids_with_outstanding_job(
            job_kind.job_id_attr,
            job_kind.failed_attr,
            job_kind.result_attr,
        )

    for record_id in record_ids:
        refresh_record.delay(record_id, job_kind.value)

    logger.info("refresh_sweep_enqueued", kind=job_kind.value, records=len(record_ids))
    return len(record_ids)


@shared_task(bind=True, base=RefreshTask, name="sermon_audio.process_announced_job")
def process_announced_job(self, kind: str, job_id: str) -> int:
    """Enqueue a refresh for every record carrying the announced job id."""
    job_kind = JobKind(kind)
    with session_factory() as session:
        record_ids = RecordStore(session).find_ids_by_job_id(job_kind.job_id_attr, job_id)

    if not record_ids:
        logger.info("announced_job_unmatched", kind=job_kind.value, job_id=job_id)
        return 0

    for record_id in record_ids:
        refresh_record.delay(record_id, job_kind.value)

    logger.info("announced_job_enqueued", kind=job_kind.value, job_id=job_id, records=len(record_ids))
    return len(record_ids)
