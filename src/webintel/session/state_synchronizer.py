"""
Debounced synchronization of session progress with the session store.

Callers hand in cumulative snapshots (``SessionState.to_partial()``). Only
the newest snapshot within a debounce window is written, and each write
adds the difference between that snapshot and what this synchronizer has
already written into ``merged_data.stats``. Superseded snapshots therefore
lose no counts, and nothing is counted twice.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..config import SyncOptions
from ..exceptions import PersistenceError, SessionNotFoundError, TableNotFoundError
from ..infrastructure.scheduling import DelayedTask, PeriodicTask, has_running_loop
from ..persistence.repository import ScraperRunRow, SessionRepository, utc_now
from .state import ScraperRun, SessionState, SessionTotals, count_completed_runs

logger = logging.getLogger(__name__)

# merged_data.stats keys, in the store's camelCase
_STAT_KEYS = {
    "pages_scraped": "totalPages",
    "data_points": "dataPoints",
    "discovered_links": "totalLinks",
    "scraper_runs": "scraperRuns",
}


class SyncStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass
class SyncResult:
    """Outcome of ``sync_from_database``; ``state`` is set only when found."""

    status: SyncStatus
    state: Optional[SessionState] = None
    error: Optional[Exception] = None

    @property
    def found(self) -> bool:
        return self.status is SyncStatus.FOUND


class SessionStateSynchronizer:
    """
    Keeps the persisted session aggregate in step with in-memory progress.

    - ``sync_to_database`` debounces writes (default 2s).
    - An interval task (default 30s) flushes only when a sync is pending.
    - ``flush`` writes immediately; ``destroy`` cancels timers and makes a
      final best-effort flush.

    Use as an async context manager to get timers started and torn down:

        async with SessionStateSynchronizer(session_id, repo) as sync:
            sync.sync_to_database(state.to_partial())
    """

    def __init__(self, session_id: str, repository: SessionRepository,
                 options: Optional[SyncOptions] = None):
        """
        Initialize the synchronizer.

        Args:
            session_id: Session to synchronize
            repository: Session store
            options: Debounce and interval settings
        """
        self.session_id = session_id
        self.repository = repository
        self.options = options or SyncOptions()

        self._current = SessionTotals()
        self._phase_counts: Dict[str, int] = {}
        # Per-scraper counts loaded from the store; history only holds newer runs
        self._base_phase_counts: Dict[str, int] = {}
        self._written = SessionTotals()
        self._written_phase_counts: Dict[str, int] = {}

        self._pending = False
        self._version = 0
        self._last_sync_time: Optional[str] = None
        self._lock = asyncio.Lock()
        self._debounce: Optional[DelayedTask] = None
        self._interval: Optional[PeriodicTask] = None
        self._destroyed = False

        if has_running_loop():
            self.start()

    async def __aenter__(self) -> "SessionStateSynchronizer":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.destroy()

    def start(self) -> None:
        """Start the auto-sync interval on the running loop (idempotent)."""
        if self.options.auto_sync and (self._interval is None or not self._interval.running):
            self._interval = PeriodicTask(
                self.options.sync_interval_ms, self._interval_flush, name="session-auto-sync"
            ).start()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _apply_partial(self, partial: Mapping[str, Any]) -> None:
        totals = SessionState.partial_totals(partial)
        if totals is not None:
            self._current = totals
        history = SessionState.partial_history(partial)
        if history is not None:
            phase_counts = dict(self._base_phase_counts)
            for scraper_id, count in count_completed_runs(history).items():
                phase_counts[scraper_id] = phase_counts.get(scraper_id, 0) + count
            self._phase_counts = phase_counts
        self._pending = True
        self._version += 1

    def sync_to_database(self, partial_state: Mapping[str, Any]) -> None:
        """
        Request a debounced write of a cumulative snapshot.

        Each call supersedes the previous snapshot and restarts the debounce
        timer. Outside a running event loop nothing is scheduled; the sync
        stays pending until ``flush()``.

        Args:
            partial_state: Mapping with optional 'totals' and 'history'
        """
        self._apply_partial(partial_state)

        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None

        if not has_running_loop():
            logger.debug("No running event loop; sync left pending until flush()")
            return
        self._debounce = DelayedTask(
            self.options.debounce_ms, self.perform_sync, name="session-sync-debounce"
        ).start()

    async def perform_sync(self, partial_state: Optional[Mapping[str, Any]] = None) -> None:
        """
        Write the current snapshot into ``merged_data.stats`` now.

        Args:
            partial_state: Optional snapshot applied before writing

        Raises:
            SessionNotFoundError: If the session row does not exist
            PersistenceError: If the read or write fails; the sync stays pending
        """
        if partial_state:
            self._apply_partial(partial_state)

        async with self._lock:
            version = self._version
            snapshot = self._current.copy()
            phase_snapshot = dict(self._phase_counts)

            row = self.repository.get_session(self.session_id)
            if row is None:
                raise SessionNotFoundError(self.session_id)

            merged = dict(row.merged_data or {})
            stats = dict(merged.get("stats") or {})
            delta = snapshot - self._written
            for attr, key in _STAT_KEYS.items():
                stats[key] = int(stats.get(key, 0) or 0) + getattr(delta, attr)

            phase_counts = dict(stats.get("phaseCounts") or {})
            for scraper_id, count in phase_snapshot.items():
                added = count - self._written_phase_counts.get(scraper_id, 0)
                phase_counts[scraper_id] = int(phase_counts.get(scraper_id, 0) or 0) + added
            stats["phaseCounts"] = phase_counts

            now = utc_now()
            stats["lastSync"] = now
            merged["stats"] = stats
            self.repository.update_session(self.session_id, merged)

            self._written = snapshot
            self._written_phase_counts = phase_snapshot
            self._last_sync_time = now
            if self._version == version:
                self._pending = False

        logger.debug(
            f"Synced session {self.session_id}: +{delta.pages_scraped} pages, "
            f"+{delta.data_points} data points, +{delta.discovered_links} links"
        )

    async def flush(self) -> None:
        """Write any pending snapshot immediately (explicit checkpoint)."""
        if self._debounce is not None:
            if not self._debounce.cancel() and self._debounce.fired:
                # A debounced write is in flight; let it land first
                await self._debounce.wait()
            self._debounce = None
        if self._pending:
            await self.perform_sync()

    async def _interval_flush(self) -> None:
        if self._pending:
            logger.debug(f"Auto-sync flushing pending state for session {self.session_id}")
            await self.flush()

    async def save_scraper_run(self, run: ScraperRun) -> Optional[ScraperRunRow]:
        """
        Record a scraper run in the run log.

        When the run table does not exist, the run's counters are folded into
        the session aggregate instead and written right away. Per-run detail
        is lost on that path; the counters are not.

        Args:
            run: Completed (or failed) scraper run

        Returns:
            Stored row, or None when the aggregate fallback was used

        Raises:
            PersistenceError: On insert failures other than a missing table,
                or when the fallback write fails
        """
        row = ScraperRunRow(
            session_id=self.session_id,
            scraper_id=run.scraper_id,
            scraper_name=run.scraper_name,
            started_at=run.started_at or run.timestamp,
            completed_at=run.completed_at or utc_now(),
            pages_scraped=run.pages_scraped,
            data_points=run.data_points,
            discovered_links=run.discovered_links,
            status=run.status.value if hasattr(run.status, "value") else str(run.status),
            extracted_data=run.extracted_data,
            event_id=run.event_id,
        )
        try:
            return self.repository.insert_scraper_run(row)
        except TableNotFoundError as e:
            logger.warning(f"Run table unavailable ({e}); folding run {run.id} into session stats")

        phase_counts = dict(self._phase_counts)
        if run.is_complete:
            phase_counts[run.scraper_id] = phase_counts.get(run.scraper_id, 0) + 1
        self._phase_counts = phase_counts
        self.sync_to_database({"totals": self._current + run.counters()})
        await self.flush()
        return None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def sync_from_database(self) -> SyncResult:
        """
        Rebuild session state from the persisted aggregate.

        Run history is not reconstructed; used scrapers come from the
        persisted per-scraper counts. A found state also becomes this
        synchronizer's baseline, so later snapshots built on it are not
        counted twice.

        Returns:
            SyncResult distinguishing found, not found and read error
        """
        try:
            row = self.repository.get_session(self.session_id)
        except PersistenceError as e:
            logger.error(f"Failed to load session {self.session_id}: {e}")
            return SyncResult(SyncStatus.ERROR, error=e)

        if row is None:
            logger.info(f"No persisted session {self.session_id}")
            return SyncResult(SyncStatus.NOT_FOUND)

        stats = (row.merged_data or {}).get("stats") or {}
        totals = SessionTotals(
            pages_scraped=int(stats.get("totalPages", 0) or 0),
            data_points=int(stats.get("dataPoints", 0) or 0),
            discovered_links=int(stats.get("totalLinks", 0) or 0),
            scraper_runs=int(stats.get("scraperRuns", 0) or 0),
        )
        phase_counts = {k: int(v) for k, v in (stats.get("phaseCounts") or {}).items()}

        self._current = totals.copy()
        self._written = totals.copy()
        self._phase_counts = dict(phase_counts)
        self._base_phase_counts = dict(phase_counts)
        self._written_phase_counts = dict(phase_counts)
        self._last_sync_time = stats.get("lastSync")

        state = SessionState(
            session_id=row.id,
            domain=row.domain,
            history=[],
            totals=totals,
            used_scrapers=set(phase_counts),
        )
        return SyncResult(SyncStatus.FOUND, state=state)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "last_sync_time": self._last_sync_time,
            "pending_sync": self._pending,
            "session_id": self.session_id,
        }

    @property
    def pending(self) -> bool:
        return self._pending

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def destroy(self) -> None:
        """
        Cancel timers and flush a pending sync once.

        A failing final flush is logged, not raised.
        """
        if self._destroyed:
            return
        self._destroyed = True

        if self._interval is not None:
            await self._interval.stop()
            self._interval = None

        try:
            await self.flush()
        except Exception as e:
            logger.error(f"Final sync for session {self.session_id} failed: {e}", exc_info=True)
