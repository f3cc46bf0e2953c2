"""In-memory session progress: scraper runs and aggregate counters."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Set

from ..models import RunStatus


@dataclass
class SessionTotals:
    """Aggregate counters of a session."""

    pages_scraped: int = 0
    data_points: int = 0
    discovered_links: int = 0
    scraper_runs: int = 0

    def __add__(self, other: "SessionTotals") -> "SessionTotals":
        return SessionTotals(
            self.pages_scraped + other.pages_scraped,
            self.data_points + other.data_points,
            self.discovered_links + other.discovered_links,
            self.scraper_runs + other.scraper_runs,
        )

    def __sub__(self, other: "SessionTotals") -> "SessionTotals":
        return SessionTotals(
            self.pages_scraped - other.pages_scraped,
            self.data_points - other.data_points,
            self.discovered_links - other.discovered_links,
            self.scraper_runs - other.scraper_runs,
        )

    def copy(self) -> "SessionTotals":
        return replace(self)

    @classmethod
    def from_value(cls, value: Any) -> "SessionTotals":
        """Accept a SessionTotals or a mapping in snake_case or camelCase."""
        if isinstance(value, SessionTotals):
            return value.copy()
        value = value or {}
        return cls(
            pages_scraped=int(value.get("pages_scraped", value.get("pagesScraped", 0)) or 0),
            data_points=int(value.get("data_points", value.get("dataPoints", 0)) or 0),
            discovered_links=int(value.get("discovered_links", value.get("discoveredLinks", 0)) or 0),
            scraper_runs=int(value.get("scraper_runs", value.get("scraperRuns", 0)) or 0),
        )


@dataclass
class ScraperRun:
    """One execution of a scraper within a session."""

    scraper_id: str
    scraper_name: Optional[str] = None
    status: RunStatus = RunStatus.COMPLETE
    pages_scraped: int = 0
    data_points: int = 0
    discovered_links: int = 0
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    extracted_data: Optional[Dict[str, Any]] = None
    event_id: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def is_complete(self) -> bool:
        return RunStatus(self.status) is RunStatus.COMPLETE

    def counters(self) -> SessionTotals:
        """This run's contribution to the session totals."""
        return SessionTotals(self.pages_scraped, self.data_points, self.discovered_links, 1)

    @classmethod
    def from_value(cls, value: Any) -> "ScraperRun":
        if isinstance(value, ScraperRun):
            return value
        return cls(
            scraper_id=value.get("scraper_id") or value.get("scraperId") or "unknown",
            scraper_name=value.get("scraper_name") or value.get("scraperName"),
            status=RunStatus(value.get("status", RunStatus.COMPLETE.value)),
            pages_scraped=int(value.get("pages_scraped", value.get("pagesScraped", 0)) or 0),
            data_points=int(value.get("data_points", value.get("dataPoints", 0)) or 0),
            discovered_links=int(value.get("discovered_links", value.get("discoveredLinks", 0)) or 0),
            event_id=value.get("event_id") or value.get("eventId"),
        )


def count_completed_runs(history: List[ScraperRun]) -> Dict[str, int]:
    """Completed runs per scraper id."""
    counts: Dict[str, int] = {}
    for run in history:
        if run.is_complete:
            counts[run.scraper_id] = counts.get(run.scraper_id, 0) + 1
    return counts


@dataclass
class SessionState:
    """
    Progress of one domain's intelligence session.

    Totals are cumulative for the lifetime of this object (seeded from
    persistence when a session is resumed).
    """

    session_id: str
    domain: str
    history: List[ScraperRun] = field(default_factory=list)
    totals: SessionTotals = field(default_factory=SessionTotals)
    used_scrapers: Set[str] = field(default_factory=set)
    suggestions: List[Dict[str, Any]] = field(default_factory=list)

    def record_run(self, run: ScraperRun) -> None:
        """Append a run and fold its counters into the totals."""
        self.history.append(run)
        self.totals = self.totals + run.counters()
        self.used_scrapers.add(run.scraper_id)

    def to_partial(self) -> Dict[str, Any]:
        """Snapshot passed to ``SessionStateSynchronizer.sync_to_database``."""
        return {
            "totals": self.totals.copy(),
            "history": list(self.history),
        }

    @staticmethod
    def partial_totals(partial: Mapping[str, Any]) -> Optional[SessionTotals]:
        if "totals" not in partial:
            return None
        return SessionTotals.from_value(partial["totals"])

    @staticmethod
    def partial_history(partial: Mapping[str, Any]) -> Optional[List[ScraperRun]]:
        if "history" not in partial:
            return None
        return [ScraperRun.from_value(run) for run in partial["history"] or []]
