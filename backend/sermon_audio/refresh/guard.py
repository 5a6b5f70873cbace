"""Per-record marker that suppresses reentrant reconciliation."""

import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager

from sermon_audio.core.exceptions import ReconciliationInProgressError


class DuplicateInvocationGuard:
    """
    Set of record ids with a reconciliation pass in progress.

    Loading a record for reconciliation runs the read-time refresh hook; the
    hook checks this guard and stands down so a job result is applied once.
    The guard is process-local: it does not coordinate separate workers.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: set[Hashable] = set()

    def begin_exclusive(self, record_id: Hashable) -> bool:
        """Mark record_id as in progress. Returns False if it already was."""
        with self._lock:
            if record_id in self._active:
                return False
            self._active.add(record_id)
            return True

    def end_exclusive(self, record_id: Hashable) -> None:
        with self._lock:
            self._active.discard(record_id)

    def is_active(self, record_id: Hashable) -> bool:
        with self._lock:
            return record_id in self._active

    @contextmanager
    def exclusive(self, record_id: Hashable) -> Iterator[None]:
        """
        Hold the marker for the duration of the block.

        Raises:
            ReconciliationInProgressError: The record is already marked
        """
        if not self.begin_exclusive(record_id):
            raise ReconciliationInProgressError(record_id)
        try:
            yield
        finally:
            self.end_exclusive(record_id)


_default_guard = DuplicateInvocationGuard()


def get_refresh_guard() -> DuplicateInvocationGuard:
    """Get the process-wide guard instance."""
    return _default_guard
