"""Session persistence boundary and phase data storage."""

from .repository import (
    SessionRepository,
    InMemorySessionRepository,
    SqliteSessionRepository,
    SessionRow,
    ScraperRunRow,
    PhaseDataRow,
    get_repository,
    SESSIONS_TABLE,
    SCRAPER_RUNS_TABLE,
)
from .phase_data import PhaseDataStore

__all__ = [
    "SessionRepository",
    "InMemorySessionRepository",
    "SqliteSessionRepository",
    "SessionRow",
    "ScraperRunRow",
    "PhaseDataRow",
    "get_repository",
    "SESSIONS_TABLE",
    "SCRAPER_RUNS_TABLE",
    "PhaseDataStore",
]
