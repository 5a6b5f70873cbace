"""Base task class for refresh work units."""

from typing import Any

from celery import Task

from sermon_audio.core.events.bus import get_event_bus
from sermon_audio.core.events.types import EventType
from sermon_audio.core.logging import get_logger

logger = get_logger(__name__)


class RefreshTask(Task):
    """
    Base class for refresh Celery tasks.

    Logs retries and publishes an event when a unit of work is given up on.
    """

    abstract = True
    _event_bus = None

    @property
    def event_bus(self):
        if self._event_bus is None:
            self._event_bus = get_event_bus()
        return self._event_bus

    def on_retry(self, exc: Exception, task_id: str, args: tuple, kwargs: dict, einfo: Any) -> None:
        logger.warning(
            "refresh_task_retrying",
            task=self.name,
            task_id=task_id,
            args=list(args),
            retries=self.request.retries,
            error=str(exc),
            error_type=type(exc).__name__,
        )

    def on_failure(
        self,
        exc: Exception,
        task_id: str,
        args: tuple,
        kwargs: dict,
        einfo: Any,
    ) -> None:
        """Called once retries are exhausted; the unit of work is dropped."""
        logger.error(
            "refresh_task_dropped",
            task=self.name,
            task_id=task_id,
            args=list(args),
            error=str(exc),
            error_type=type(exc).__name__,
        )
        self.event_bus.publish_remote(
            EventType.REFRESH_DROPPED,
            source=f"task:{self.name}",
            payload={
                "task_id": task_id,
                "args": list(args),
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
