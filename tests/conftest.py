# tests/conftest.py
import asyncio
import os
from typing import Any, Dict, List, Optional

import pytest

# Point the store at an in-memory SQLite DB before the package reads its config.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("LOCK_JANITOR_INTERVAL_SECONDS", "0")

from ideaboard.database import engine  # import after env is set
from ideaboard.models import Base
from ideaboard.services.auth_provider import AuthSession
from ideaboard.services.errors import PersistenceError
from ideaboard.services.remote import RemoteResponse


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAuth:
    def __init__(self, token: Optional[str] = "test-token", refreshed: Optional[str] = "fresh-token"):
        self.session = AuthSession(token, "refresh-me") if token else None
        self.refreshed = refreshed
        self.refresh_error: Optional[Exception] = None
        self.get_calls = 0
        self.refresh_calls = 0

    async def get_session(self) -> Optional[AuthSession]:
        self.get_calls += 1
        return self.session

    async def refresh_session(self) -> Optional[AuthSession]:
        self.refresh_calls += 1
        if self.refresh_error is not None:
            raise self.refresh_error
        if not self.refreshed:
            return None
        self.session = AuthSession(self.refreshed, "refresh-me")
        return self.session


class FakeRemote:
    """
    Replays scripted outcomes in order (RemoteResponse or exception instance);
    the last one repeats. `gate`, when set, holds every call until it is released.
    """

    def __init__(self, *outcomes: Any, gate: Optional[asyncio.Event] = None):
        self.outcomes: List[Any] = list(outcomes) or [RemoteResponse(200, {"user": {"id": "user-123"}})]
        self.gate = gate
        self.calls: List[tuple] = []

    async def authenticated_fetch(self, path: str, access_token: str) -> RemoteResponse:
        self.calls.append((path, access_token))
        outcome = self.outcomes[min(len(self.calls), len(self.outcomes)) - 1]
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeStore:
    """Dict-backed PersistenceStore."""

    def __init__(self, **tables: Dict[str, Dict[str, Any]]):
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {name: dict(rows) for name, rows in tables.items()}
        self.fail_with: Optional[Exception] = None
        self.updates: List[tuple] = []

    async def get(self, table: str, entity_id: str) -> Optional[Dict[str, Any]]:
        row = self.tables.get(table, {}).get(entity_id)
        return dict(row) if row is not None else None

    async def update(self, table, entity_id, patch, *, match=None):
        self.updates.append((table, entity_id, dict(patch), dict(match or {})))
        if self.fail_with is not None:
            raise self.fail_with
        row = self.tables.get(table, {}).get(entity_id)
        if row is None:
            return None
        if any(row.get(k) != v for k, v in (match or {}).items()):
            return None
        row.update(patch)
        return dict(row)

    async def clear_stale_locks(self, table, cutoff) -> int:
        cleared = 0
        for row in self.tables.get(table, {}).values():
            if row.get("editing_by") is not None and (row.get("editing_at") is None or row["editing_at"] <= cutoff):
                row.update(editing_by=None, editing_at=None)
                cleared += 1
        return cleared


def profile_payload(**overrides: Any) -> Dict[str, Any]:
    user = {
        "id": "user-123",
        "email": "test@example.com",
        "full_name": "Test User",
        "role": "user",
        "avatar_url": None,
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-01-01T00:00:00Z",
    }
    user.update(overrides)
    return {"user": user}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db():
    """Fresh schema on the shared in-memory engine for every test."""
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)


@pytest.fixture
def failing_store():
    store = FakeStore(user_profiles={})
    store.fail_with = PersistenceError("Error updating user profile", table="user_profiles")
    return store
