"""
Timing and memory aggregation for labeled operations.

Every stopped timer folds its duration into a per-label aggregate whose
average always equals total duration divided by operation count. Timers
that are never stopped are swept after a while and contribute nothing.
"""
import logging
import itertools
import time
import tracemalloc
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..config import PerformanceTrackerConfig
from .scheduling import PeriodicTask, has_running_loop

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.perf_counter() * 1000.0


def _traced_bytes() -> int:
    if tracemalloc.is_tracing():
        return tracemalloc.get_traced_memory()[0]
    return 0


@dataclass
class PerformanceMetric:
    """Aggregate for one operation label."""

    duration: float = 0.0  # cumulative, ms
    memory_used: int = 0  # cumulative, bytes
    operations: int = 0
    average_time: float = 0.0
    max_duration: float = 0.0

    def record(self, duration_ms: float, memory_bytes: int) -> None:
        self.duration += duration_ms
        self.memory_used += memory_bytes
        self.operations += 1
        self.average_time = self.duration / self.operations
        self.max_duration = max(self.max_duration, duration_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration": self.duration,
            "memory_used": self.memory_used,
            "operations": self.operations,
            "average_time": self.average_time,
            "max_duration": self.max_duration,
        }


@dataclass
class SlowOperation:
    label: str
    duration: float
    metadata: Dict[str, Any] = field(default_factory=dict)


class TimerHandle:
    """A running timer returned by ``PerformanceTracker.start_timer``."""

    def __init__(self, tracker: "PerformanceTracker", timer_id: int, label: str,
                 started_at: float, metadata: Optional[Dict[str, Any]] = None):
        self._tracker = tracker
        self.timer_id = timer_id
        self.label = label
        self.started_at = started_at
        self.metadata = dict(metadata or {})
        self.checkpoints: List[Dict[str, Any]] = []
        self.memory_at_start = _traced_bytes()
        self.duration: Optional[float] = None
        self.cancelled = False

    def stop(self) -> float:
        """Record the elapsed time. Stopping again returns the first duration."""
        if self.duration is not None:
            return self.duration
        return self._tracker._stop(self)

    def cancel(self) -> None:
        """Discard the timer without recording anything."""
        self._tracker._cancel(self)

    def checkpoint(self, name: str, data: Optional[Dict[str, Any]] = None) -> float:
        """Log an intermediate mark; returns ms elapsed since start."""
        elapsed = self._tracker._clock() - self.started_at
        self.checkpoints.append({"name": name, "elapsed": elapsed, "data": data or {}})
        logger.debug(f"[{self.label}] checkpoint {name} at {elapsed:.1f}ms")
        return elapsed


class PerformanceTracker:
    """
    Collects per-label timing aggregates.

    Used by the crawler and the strategy grouper to surface slow work:

        tracker = PerformanceTracker()
        timer = tracker.start_timer("crawl", {"domain": "example.com"})
        ...
        timer.stop()
        tracker.get_metrics("crawl").average_time

    Memory deltas are measured only while ``tracemalloc`` is tracing.
    """

    def __init__(
        self,
        config: Optional[PerformanceTrackerConfig] = None,
        clock: Callable[[], float] = _now_ms,
    ):
        self.config = config or PerformanceTrackerConfig()
        self._clock = clock
        self._ids = itertools.count(1)
        self._active: Dict[int, TimerHandle] = {}
        self._metrics: Dict[str, PerformanceMetric] = {}
        self._slow: List[SlowOperation] = []
        self._sweeper: Optional[PeriodicTask] = None

        if has_running_loop():
            self.start()

    def start(self) -> None:
        """Start the abandoned-timer sweep on the running loop (idempotent)."""
        if self._sweeper is None or not self._sweeper.running:
            self._sweeper = PeriodicTask(
                self.config.sweep_interval_ms, self.sweep_stale_timers, name="timer-sweep"
            ).start()

    def start_timer(self, label: str, metadata: Optional[Dict[str, Any]] = None) -> TimerHandle:
        """
        Start timing an operation.

        Args:
            label: Operation category; durations aggregate per label
            metadata: Context attached to slow-operation reports

        Returns:
            TimerHandle with stop(), cancel() and checkpoint()
        """
        handle = TimerHandle(self, next(self._ids), label, self._clock(), metadata)
        self._active[handle.timer_id] = handle
        return handle

    def _stop(self, handle: TimerHandle) -> float:
        if self._active.pop(handle.timer_id, None) is None:
            # cancelled or swept
            logger.debug(f"Timer for {handle.label} is no longer active; nothing recorded")
            handle.duration = 0.0
            return 0.0

        duration = self._clock() - handle.started_at
        memory = max(0, _traced_bytes() - handle.memory_at_start)
        handle.duration = duration
        self._metrics.setdefault(handle.label, PerformanceMetric()).record(duration, memory)

        if duration > self.config.slow_threshold_ms:
            self._slow.append(SlowOperation(handle.label, duration, handle.metadata))
            logger.info(
                f"Slow operation: {handle.label} took {duration:.0f}ms "
                f"(threshold {self.config.slow_threshold_ms:.0f}ms) {handle.metadata}"
            )
        return duration

    def _cancel(self, handle: TimerHandle) -> None:
        if self._active.pop(handle.timer_id, None) is not None:
            handle.cancelled = True
            logger.debug(f"Timer for {handle.label} cancelled")

    @contextmanager
    def measure(self, label: str, metadata: Optional[Dict[str, Any]] = None) -> Iterator[TimerHandle]:
        """Time the enclosed block; the timer is stopped even if it raises."""
        handle = self.start_timer(label, metadata)
        try:
            yield handle
        finally:
            handle.stop()

    def sweep_stale_timers(self) -> int:
        """
        Drop timers started longer ago than ``stale_after_ms``.

        Returns:
            Number of timers removed
        """
        now = self._clock()
        stale = [
            timer_id for timer_id, handle in self._active.items()
            if now - handle.started_at > self.config.stale_after_ms
        ]
        for timer_id in stale:
            handle = self._active.pop(timer_id)
            logger.info(f"Cleaned up abandoned timer: {handle.label}")
        return len(stale)

    @property
    def active_timers(self) -> int:
        return len(self._active)

    def get_metrics(self, label: Optional[str] = None):
        """Aggregate for one label (None if unseen), or a copy of all aggregates."""
        if label is not None:
            return self._metrics.get(label)
        return dict(self._metrics)

    def get_slow_operations(self, threshold_ms: Optional[float] = None) -> List[SlowOperation]:
        """Slow single operations, optionally re-filtered with a higher threshold."""
        if threshold_ms is None:
            return list(self._slow)
        return [op for op in self._slow if op.duration > threshold_ms]

    def summary(self) -> Dict[str, Any]:
        return {
            "metrics": {label: m.to_dict() for label, m in self._metrics.items()},
            "slow_operations": len(self._slow),
            "active_timers": len(self._active),
        }

    def reset(self) -> None:
        self._active.clear()
        self._metrics.clear()
        self._slow.clear()

    def close(self) -> None:
        """Stop the background sweep."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            self._sweeper = None
