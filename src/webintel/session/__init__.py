"""Session progress and its synchronization with the session store."""

from .state import (
    ScraperRun,
    SessionState,
    SessionTotals,
    count_completed_runs,
)
from .state_synchronizer import (
    SessionStateSynchronizer,
    SyncResult,
    SyncStatus,
)

__all__ = [
    "ScraperRun",
    "SessionState",
    "SessionTotals",
    "count_completed_runs",
    "SessionStateSynchronizer",
    "SyncResult",
    "SyncStatus",
]
