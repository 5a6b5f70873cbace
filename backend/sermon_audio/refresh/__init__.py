"""Refresh and reconciliation of derived artifacts."""

from sermon_audio.refresh.coordinator import ReconciliationCoordinator, ReconciliationResult
from sermon_audio.refresh.engine import RefreshEngine, RefreshOutcome
from sermon_audio.refresh.guard import DuplicateInvocationGuard, get_refresh_guard
from sermon_audio.refresh.notifications import NotificationDispatcher

__all__ = [
    "RefreshEngine",
    "RefreshOutcome",
    "ReconciliationCoordinator",
    "ReconciliationResult",
    "DuplicateInvocationGuard",
    "get_refresh_guard",
    "NotificationDispatcher",
]
