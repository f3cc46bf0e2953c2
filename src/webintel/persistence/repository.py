# src/webintel/persistence/repository.py
"""Session storage boundary with in-memory and SQLite backends.

The core depends only on ``SessionRepository``: sessions keyed by id with
a JSON ``merged_data`` document, plus an append-only scraper run log. A
missing run table surfaces as ``TableNotFoundError`` so callers can fall
back to aggregate-only bookkeeping.
"""

import copy
import json
import logging
import sqlite3
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..config import settings
from ..exceptions import PersistenceError, SessionNotFoundError, TableNotFoundError

logger = logging.getLogger(__name__)

SESSIONS_TABLE = "company_intelligence_sessions"
SCRAPER_RUNS_TABLE = "scraper_runs"

CREATE_SESSIONS_SQL = f"""
CREATE TABLE IF NOT EXISTS {SESSIONS_TABLE} (
    id TEXT PRIMARY KEY,
    domain TEXT NOT NULL,
    merged_data TEXT NOT NULL DEFAULT '{{}}',
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL
);
"""

CREATE_SCRAPER_RUNS_SQL = f"""
CREATE TABLE IF NOT EXISTS {SCRAPER_RUNS_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    scraper_id TEXT NOT NULL,
    scraper_name TEXT,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    pages_scraped INTEGER DEFAULT 0,
    data_points INTEGER DEFAULT 0,
    discovered_links INTEGER DEFAULT 0,
    status TEXT,
    extracted_data TEXT,
    event_id TEXT
);
"""


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SessionRow:
    """Row of the sessions table."""

    id: str
    domain: str
    merged_data: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)


@dataclass
class ScraperRunRow:
    """Row of the scraper run log."""

    session_id: str
    scraper_id: str
    scraper_name: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    pages_scraped: int = 0
    data_points: int = 0
    discovered_links: int = 0
    status: str = "complete"
    extracted_data: Optional[Dict[str, Any]] = None
    event_id: Optional[str] = None
    id: Optional[int] = None


@dataclass
class PhaseDataRow:
    """Data stored for one stage of a session."""

    session_id: str
    stage: str
    data: Any
    updated_at: Optional[str] = None


class SessionRepository(ABC):
    """Abstract base class defining the session store interface."""

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[SessionRow]:
        """Fetch a session.

        Args:
            session_id: Session id

        Returns:
            SessionRow, or None if no such session exists

        Raises:
            PersistenceError: If the read fails
        """

    @abstractmethod
    def create_session(self, domain: str, session_id: Optional[str] = None,
                       merged_data: Optional[Dict[str, Any]] = None) -> SessionRow:
        """Create a session row."""

    @abstractmethod
    def update_session(self, session_id: str, merged_data: Dict[str, Any]) -> SessionRow:
        """Replace a session's merged_data.

        Raises:
            SessionNotFoundError: If the session does not exist
            PersistenceError: If the write fails
        """

    @abstractmethod
    def insert_scraper_run(self, run: ScraperRunRow) -> ScraperRunRow:
        """Append a scraper run.

        Raises:
            TableNotFoundError: If the run table has not been created
            PersistenceError: For any other failure
        """

    @abstractmethod
    def list_scraper_runs(self, session_id: str) -> List[ScraperRunRow]:
        """Runs of a session, oldest first."""

    def close(self) -> None:
        """Release resources."""


class InMemorySessionRepository(SessionRepository):
    """Dict-backed repository.

    ``run_table_available=False`` behaves like a database whose run table
    migration was never applied.
    """

    def __init__(self, run_table_available: bool = True):
        self.run_table_available = run_table_available
        self._sessions: Dict[str, SessionRow] = {}
        self._runs: List[ScraperRunRow] = []
        self.update_count = 0

    def get_session(self, session_id: str) -> Optional[SessionRow]:
        row = self._sessions.get(session_id)
        return copy.deepcopy(row) if row else None

    def create_session(self, domain: str, session_id: Optional[str] = None,
                       merged_data: Optional[Dict[str, Any]] = None) -> SessionRow:
        row = SessionRow(id=session_id or str(uuid.uuid4()), domain=domain,
                         merged_data=copy.deepcopy(merged_data or {}))
        self._sessions[row.id] = row
        logger.debug(f"Created session {row.id} for {domain}")
        return copy.deepcopy(row)

    def update_session(self, session_id: str, merged_data: Dict[str, Any]) -> SessionRow:
        row = self._sessions.get(session_id)
        if row is None:
            raise SessionNotFoundError(session_id)
        row.merged_data = copy.deepcopy(merged_data)
        row.updated_at = utc_now()
        self.update_count += 1
        return copy.deepcopy(row)

    def insert_scraper_run(self, run: ScraperRunRow) -> ScraperRunRow:
        if not self.run_table_available:
            raise TableNotFoundError(SCRAPER_RUNS_TABLE)
        stored = replace(run, id=len(self._runs) + 1)
        self._runs.append(stored)
        return replace(stored)

    def list_scraper_runs(self, session_id: str) -> List[ScraperRunRow]:
        if not self.run_table_available:
            raise TableNotFoundError(SCRAPER_RUNS_TABLE)
        return [replace(run) for run in self._runs if run.session_id == session_id]


class SqliteSessionRepository(SessionRepository):
    """SQLite implementation for local storage."""

    def __init__(self, db_url: Optional[str] = None, create_run_table: bool = True):
        """Initialize the SQLite repository.

        Args:
            db_url: Database URL (sqlite:///path/to/db.db or sqlite:///:memory:).
                Defaults to settings.DATABASE_URL.
            create_run_table: Create the scraper run table along with sessions
        """
        self.db_url = db_url or settings.DATABASE_URL
        self.db_path = self.db_url.replace("sqlite:///", "")
        self.conn: Optional[sqlite3.Connection] = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        logger.debug(f"Connected to local SQLite database: {self.db_path}")
        self.create_schema(create_run_table)

    def create_schema(self, create_run_table: bool = True) -> None:
        """Create tables that don't exist yet."""
        with self.conn:
            self.conn.execute(CREATE_SESSIONS_SQL)
            if create_run_table:
                self.conn.execute(CREATE_SCRAPER_RUNS_SQL)
        logger.debug("Schema verified/created for local SQLite")

    def close(self) -> None:
        """Close SQLite connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed local SQLite connection")

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            with self.conn:
                return self.conn.execute(sql, params)
        except sqlite3.OperationalError as e:
            message = str(e)
            if message.startswith("no such table:"):
                raise TableNotFoundError(message.split(":", 1)[1].strip()) from e
            raise PersistenceError(message) from e
        except sqlite3.Error as e:
            raise PersistenceError(str(e)) from e

    @staticmethod
    def _session_from_row(row: sqlite3.Row) -> SessionRow:
        return SessionRow(
            id=row["id"],
            domain=row["domain"],
            merged_data=json.loads(row["merged_data"] or "{}"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def get_session(self, session_id: str) -> Optional[SessionRow]:
        row = self._execute(f"SELECT * FROM {SESSIONS_TABLE} WHERE id = ?", (session_id,)).fetchone()
        return self._session_from_row(row) if row else None

    def create_session(self, domain: str, session_id: Optional[str] = None,
                       merged_data: Optional[Dict[str, Any]] = None) -> SessionRow:
        row = SessionRow(id=session_id or str(uuid.uuid4()), domain=domain, merged_data=merged_data or {})
        self._execute(
            f"INSERT INTO {SESSIONS_TABLE} (id, domain, merged_data, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (row.id, row.domain, json.dumps(row.merged_data), row.created_at, row.updated_at),
        )
        logger.debug(f"Created session {row.id} for {domain}")
        return row

    def update_session(self, session_id: str, merged_data: Dict[str, Any]) -> SessionRow:
        updated_at = utc_now()
        cursor = self._execute(
            f"UPDATE {SESSIONS_TABLE} SET merged_data = ?, updated_at = ? WHERE id = ?",
            (json.dumps(merged_data), updated_at, session_id),
        )
        if cursor.rowcount == 0:
            raise SessionNotFoundError(session_id)
        return self.get_session(session_id)

    def insert_scraper_run(self, run: ScraperRunRow) -> ScraperRunRow:
        cursor = self._execute(
            f"INSERT INTO {SCRAPER_RUNS_TABLE} (session_id, scraper_id, scraper_name, started_at, "
            "completed_at, pages_scraped, data_points, discovered_links, status, extracted_data, event_id) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                run.session_id, run.scraper_id, run.scraper_name, run.started_at, run.completed_at,
                run.pages_scraped, run.data_points, run.discovered_links, run.status,
                json.dumps(run.extracted_data) if run.extracted_data is not None else None,
                run.event_id,
            ),
        )
        return replace(run, id=cursor.lastrowid)

    def list_scraper_runs(self, session_id: str) -> List[ScraperRunRow]:
        rows = self._execute(
            f"SELECT * FROM {SCRAPER_RUNS_TABLE} WHERE session_id = ? ORDER BY id ASC", (session_id,)
        ).fetchall()
        return [
            ScraperRunRow(
                id=row["id"],
                session_id=row["session_id"],
                scraper_id=row["scraper_id"],
                scraper_name=row["scraper_name"],
                started_at=row["started_at"],
                completed_at=row["completed_at"],
                pages_scraped=row["pages_scraped"],
                data_points=row["data_points"],
                discovered_links=row["discovered_links"],
                status=row["status"],
                extracted_data=json.loads(row["extracted_data"]) if row["extracted_data"] else None,
                event_id=row["event_id"],
            )
            for row in rows
        ]


def get_repository(backend: Optional[str] = None, **kwargs) -> SessionRepository:
    """Factory function to create the configured session repository.

    Args:
        backend: 'memory' or 'sqlite'. Defaults to settings.DB_BACKEND.
        **kwargs: Additional arguments passed to the repository constructor.

    Returns:
        A SessionRepository instance

    Raises:
        ValueError: If an unknown backend is specified.
    """
    backend = backend or settings.DB_BACKEND
    if backend == "memory":
        logger.info("Using in-memory session repository")
        return InMemorySessionRepository(**kwargs)
    elif backend == "sqlite":
        logger.info("Using local SQLite session repository")
        return SqliteSessionRepository(**kwargs)
    else:
        raise ValueError(
            f"Unknown database backend: '{backend}'. "
            "Supported backends: 'memory', 'sqlite'"
        )
