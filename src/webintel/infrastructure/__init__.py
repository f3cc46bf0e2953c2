"""
Infrastructure Package.

Background scheduling and performance tracking shared by the crawler,
strategy routing and session synchronization.
"""

from .scheduling import (
    DelayedTask,
    PeriodicTask,
    has_running_loop,
)
from .performance_tracker import (
    PerformanceTracker,
    PerformanceMetric,
    SlowOperation,
    TimerHandle,
)

__all__ = [
    "DelayedTask",
    "PeriodicTask",
    "has_running_loop",
    "PerformanceTracker",
    "PerformanceMetric",
    "SlowOperation",
    "TimerHandle",
]
