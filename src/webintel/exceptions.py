"""Exception hierarchy for the web intelligence pipeline."""


class WebIntelError(Exception):
    """Base class for all library errors."""


class NavigationError(WebIntelError):
    """Raised when a page capability cannot be driven at all."""


class PersistenceError(WebIntelError):
    """A read or write against the session store failed."""


class TableNotFoundError(PersistenceError):
    """The target table does not exist (migration not applied)."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"Table not found: {table}")


class SessionNotFoundError(PersistenceError):
    """No session row exists for the requested id."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class PhaseDataNotFoundError(PersistenceError):
    """No data has been stored for a session stage."""

    def __init__(self, session_id: str, stage: str):
        self.session_id = session_id
        self.stage = stage
        super().__init__(f"No data found for stage '{stage}' in session {session_id}")
