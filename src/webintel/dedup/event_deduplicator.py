"""
Time-windowed deduplication of discrete events.

Used to drop repeated scrape-complete / phase-complete notifications. An
entry older than the TTL is logically expired even before the background
sweep removes it.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..config import EventDeduplicatorConfig
from ..infrastructure.scheduling import PeriodicTask, has_running_loop

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class DeduplicationEntry:
    """A processed event id and when it was first seen (ms)."""

    event_id: str
    first_seen_at: float

    def is_expired(self, now_ms: float, ttl_ms: float) -> bool:
        return now_ms - self.first_seen_at >= ttl_ms


def generate_event_id(
    event_type: str,
    scraper_id: Optional[str] = None,
    timestamp: Optional[Any] = None,
) -> str:
    """
    Build an event id of the form ``{type}-{scraper_id}-{timestamp}``.

    The timestamp defaults to the current wall-clock time in milliseconds.
    Callers that retry an event must pass the original timestamp, otherwise
    each retry gets a fresh id and is not recognized as a duplicate.

    Args:
        event_type: Event kind, e.g. 'scrape-complete'
        scraper_id: Scraper that emitted the event
        timestamp: Stable event timestamp

    Returns:
        Event id string
    """
    if not timestamp:
        timestamp = int(time.time() * 1000)
    return f"{event_type}-{scraper_id or 'unknown'}-{timestamp}"


class EventDeduplicator:
    """
    Bounded TTL cache answering "has this event already been processed?".

    Capacity eviction removes the oldest inserted entry (insertion order,
    not access order). A periodic sweep removes expired entries; it runs
    only while an event loop is running and is stopped by ``close()``.

    Example:
        dedup = EventDeduplicator(EventDeduplicatorConfig(ttl_ms=5000))
        if not dedup.is_duplicate(event_id):
            handle(event)
    """

    def __init__(
        self,
        config: Optional[EventDeduplicatorConfig] = None,
        clock: Callable[[], float] = _now_ms,
    ):
        """
        Initialize the deduplicator.

        Args:
            config: TTL, capacity and sweep interval
            clock: Millisecond clock; monotonic by default
        """
        self.config = config or EventDeduplicatorConfig()
        self._clock = clock
        self._entries: Dict[str, DeduplicationEntry] = {}
        self._sweeper: Optional[PeriodicTask] = None
        self._evictions = 0
        self._duplicates = 0

        if has_running_loop():
            self.start()

    def start(self) -> None:
        """Start the background sweep on the running loop (idempotent)."""
        if self._sweeper is None or not self._sweeper.running:
            self._sweeper = PeriodicTask(
                self.config.cleanup_interval_ms, self.sweep, name="event-dedup-sweep"
            ).start()

    def is_duplicate(self, event_id: str) -> bool:
        """
        Check an event id and mark it processed if new.

        A duplicate hit does not refresh the entry's timestamp.

        Args:
            event_id: Event identifier

        Returns:
            True if the id was processed less than ``ttl_ms`` ago
        """
        now = self._clock()
        entry = self._entries.get(event_id)
        if entry is not None:
            if not entry.is_expired(now, self.config.ttl_ms):
                self._duplicates += 1
                logger.debug(f"Duplicate event detected: {event_id}")
                return True
            del self._entries[event_id]

        self._admit(event_id, now)
        return False

    def mark_processed(self, event_id: str) -> None:
        """Record an event id as processed now, replacing any older entry."""
        self._entries.pop(event_id, None)
        self._admit(event_id, self._clock())

    def _admit(self, event_id: str, now: float) -> None:
        if len(self._entries) >= self.config.max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            self._evictions += 1
            logger.debug(f"Evicted oldest event at capacity: {oldest}")
        self._entries[event_id] = DeduplicationEntry(event_id, now)

    def sweep(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [
            key for key, entry in self._entries.items()
            if entry.is_expired(now, self.config.ttl_ms)
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired events")
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    @property
    def size(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._entries),
            "max_size": self.config.max_size,
            "ttl_ms": self.config.ttl_ms,
            "duplicates": self._duplicates,
            "evictions": self._evictions,
        }

    def close(self) -> None:
        """Stop the background sweep."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            self._sweeper = None
