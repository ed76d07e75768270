# ideaboard/services/errors.py
"""
Error kinds raised by the fetch service and the persistence store.

Lock conflicts are deliberately absent: "someone else is editing" is a boolean
policy answer from the lock coordinator, never an exception.
"""

from typing import Optional


class IdeaboardError(Exception):
    """Base class for every error raised by this package."""


class FetchError(IdeaboardError):
    """Base class for failures of a cache-backed remote fetch."""


class NoAuthToken(FetchError):
    """No session is available; raised before any network call."""

    def __init__(self, message: str = "No auth token available"):
        super().__init__(message)


class AuthenticationFailed(FetchError):
    """Terminal: the single refresh-and-retry cycle did not produce a successful response."""

    def __init__(self, message: str = "Authentication failed, please log in again"):
        super().__init__(message)


class FetchFailed(FetchError):
    """Remote endpoint answered with a non-2xx status other than 401/403."""

    def __init__(self, status: int, resource: str = "Profile"):
        self.status = status
        super().__init__(f"{resource} fetch failed: {status}")


class ServiceDestroyed(FetchError):
    """The owning service was destroyed while the request was pending (or before it started)."""

    def __init__(self, message: str = "Fetch service destroyed"):
        super().__init__(message)


class PersistenceError(IdeaboardError):
    """Read or write through the persistence store failed."""

    def __init__(self, message: str, *, table: Optional[str] = None, entity_id: Optional[str] = None):
        self.table = table
        self.entity_id = entity_id
        super().__init__(message)


class EntityNotFound(PersistenceError):
    """The targeted row does not exist."""

    def __init__(self, table: str, entity_id: str):
        super().__init__(f"{table} {entity_id} not found", table=table, entity_id=entity_id)
