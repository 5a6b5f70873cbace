"""Queue and task management module."""

from sermon_audio.core.queue.celery_app import celery_app
from sermon_audio.core.queue.base_task import RefreshTask

__all__ = ["celery_app", "RefreshTask"]
