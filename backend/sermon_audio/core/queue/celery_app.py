"""Celery application configuration."""

from celery import Celery

from sermon_audio.config import settings
from sermon_audio.core.logging import setup_logging

celery_app = Celery(
    "sermon_audio",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["sermon_audio.refresh.tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # A unit of work is one record; it only makes a handful of network calls
    task_track_started=True,
    task_time_limit=600,
    task_soft_time_limit=540,
    task_acks_late=True,

    # Result settings
    result_expires=3600,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,

    # Graceful shutdown (Kubernetes-compatible)
    worker_shutdown_timeout=30,
    worker_cancel_long_running_tasks_on_connection_loss=True,

    task_routes={
        "sermon_audio.refresh_record": {"queue": "refresh"},
        "sermon_audio.process_announced_job": {"queue": "refresh"},
        "sermon_audio.sweep": {"queue": "sweep"},
    },
    task_default_queue="default",

    # Periodic sweeps, one per job kind
    beat_schedule={
        "sweep-cleaning-jobs": {
            "task": "sermon_audio.sweep",
            "schedule": float(settings.refresh_sweep_interval_seconds),
            "args": ("cleaning",),
        },
        "sweep-transcription-jobs": {
            "task": "sermon_audio.sweep",
            "schedule": float(settings.refresh_sweep_interval_seconds),
            "args": ("transcription",),
        },
    },
)

# Initialize structured logging for Celery
setup_logging(
    log_level=settings.log_level,
    log_format=settings.log_format,
    is_development=settings.is_development,
    logs_dir=settings.logs_dir,
    log_to_file=settings.log_to_file,
    log_file_max_bytes=settings.log_file_max_bytes,
    log_file_backup_count=settings.log_file_backup_count,
    for_celery=True,
)
