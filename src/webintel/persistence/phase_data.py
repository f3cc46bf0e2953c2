"""
Stage-scoped session data with sliding-window retention.

Stage payloads live under ``merged_data[stage]`` of the session row. Only
the most recent ``stageN`` keys are kept by ``cleanup_old_phase_data`` so a
long-running session does not grow without bound.
"""
import copy
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..constants import PHASE_CACHE_TTL_MS, PHASE_KEEP_STAGES
from ..exceptions import PhaseDataNotFoundError, SessionNotFoundError
from .repository import PhaseDataRow, SessionRepository

logger = logging.getLogger(__name__)


@dataclass
class _CacheEntry:
    value: Any
    stored_at: float

    def is_expired(self, now_ms: float, ttl_ms: float) -> bool:
        return now_ms - self.stored_at > ttl_ms


def stage_number(stage: str) -> int:
    """'stage12' -> 12; keys without digits count as 0."""
    digits = re.sub(r"\D", "", stage)
    return int(digits) if digits else 0


class PhaseDataStore:
    """
    Reads and writes per-stage data for sessions.

    Reads are served from a short-lived cache; every write or delete for a
    stage invalidates or refreshes its entry.
    """

    def __init__(
        self,
        repository: SessionRepository,
        cache_ttl_ms: float = PHASE_CACHE_TTL_MS,
        clock: Callable[[], float] = lambda: time.monotonic() * 1000.0,
    ):
        self.repository = repository
        self.cache_ttl_ms = cache_ttl_ms
        self._clock = clock
        self._cache: Dict[Tuple[str, str], _CacheEntry] = {}

    def _merged_data(self, session_id: str) -> Dict[str, Any]:
        row = self.repository.get_session(session_id)
        if row is None:
            raise SessionNotFoundError(session_id)
        return dict(row.merged_data or {})

    def _cache_get(self, key: Tuple[str, str]) -> Optional[_CacheEntry]:
        entry = self._cache.get(key)
        if entry is not None and entry.is_expired(self._clock(), self.cache_ttl_ms):
            del self._cache[key]
            return None
        return entry

    def save_phase_data(self, session_id: str, stage: str, data: Any) -> None:
        """
        Store data for a stage, replacing any previous value.

        Args:
            session_id: Session id
            stage: Stage key, e.g. 'stage1'
            data: JSON-serializable payload

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        merged = self._merged_data(session_id)
        merged[stage] = data
        self.repository.update_session(session_id, merged)
        self._cache[(session_id, stage)] = _CacheEntry(copy.deepcopy(data), self._clock())
        logger.debug(f"Saved phase data for {stage} in session {session_id}")

    def get_phase_data(self, session_id: str, stage: str) -> Any:
        """
        Fetch data for a stage.

        Raises:
            PhaseDataNotFoundError: If the stage has no data
            SessionNotFoundError: If the session does not exist
        """
        entry = self._cache_get((session_id, stage))
        if entry is not None:
            return copy.deepcopy(entry.value)

        merged = self._merged_data(session_id)
        if merged.get(stage) is None:
            raise PhaseDataNotFoundError(session_id, stage)
        self._cache[(session_id, stage)] = _CacheEntry(copy.deepcopy(merged[stage]), self._clock())
        return merged[stage]

    def get_all_phase_data(self, session_id: str) -> List[PhaseDataRow]:
        """All stage rows of a session, oldest stage first."""
        row = self.repository.get_session(session_id)
        if row is None:
            raise SessionNotFoundError(session_id)
        stages = sorted(
            (key for key in (row.merged_data or {}) if key.startswith("stage")),
            key=stage_number,
        )
        return [
            PhaseDataRow(session_id=session_id, stage=stage, data=row.merged_data[stage],
                         updated_at=row.updated_at)
            for stage in stages
        ]

    def delete_phase_data(self, session_id: str, stage: str) -> bool:
        """
        Remove a stage's data.

        Returns:
            True if the stage existed
        """
        self._cache.pop((session_id, stage), None)
        merged = self._merged_data(session_id)
        if stage not in merged:
            return False
        del merged[stage]
        self.repository.update_session(session_id, merged)
        logger.debug(f"Deleted phase data for {stage} in session {session_id}")
        return True

    def cleanup_old_phase_data(self, session_id: str, keep_stages: int = PHASE_KEEP_STAGES) -> List[str]:
        """
        Keep only the ``keep_stages`` highest-numbered stage keys.

        Keys that do not start with 'stage' are never removed.

        Args:
            session_id: Session id
            keep_stages: Number of newest stages to keep

        Returns:
            Stage keys that were removed
        """
        merged = self._merged_data(session_id)
        stage_keys = sorted(
            (key for key in merged if key.startswith("stage")),
            key=stage_number,
            reverse=True,
        )
        to_delete = stage_keys[keep_stages:]
        if not to_delete:
            return []

        logger.info(
            f"Removing old stages from session {session_id}: {to_delete} "
            f"(keeping {stage_keys[:keep_stages]})"
        )
        for stage in to_delete:
            del merged[stage]
            self._cache.pop((session_id, stage), None)
        self.repository.update_session(session_id, merged)
        return to_delete

    def clear_cache(self) -> None:
        self._cache.clear()
