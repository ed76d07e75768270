# ideaboard/services/edit_lock.py
"""
Lease-based optimistic edit locks for idea cards.

The lock lives on the idea itself (editing_by / editing_at). Nothing here is
atomic: two sessions can both read "unlocked" and both write a lock, and the
last write wins. Expired locks are reinterpreted as free by readers, not
cleared. A lock is never renewed while its owner keeps editing, so a long edit
can be taken over once the lease runs out.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from ideaboard.config import LOCK_LEASE_SECONDS
from ideaboard.schemas.lock import LockBadge

LEASE = timedelta(seconds=LOCK_LEASE_SECONDS)


@dataclass(frozen=True)
class Unlocked:
    def fields(self) -> Dict[str, Any]:
        return {"editing_by": None, "editing_at": None}


@dataclass(frozen=True)
class LockedBy:
    user_id: str
    # None only for legacy rows that carry an owner without a timestamp. Readers keep
    # showing such a lock, but it never blocks acquire and the cleanup clears it.
    since: Optional[datetime]

    def is_expired(self, now: datetime, lease: timedelta = LEASE) -> bool:
        if self.since is None:
            return False
        return as_utc(now) - self.since >= lease

    def fields(self) -> Dict[str, Any]:
        return {"editing_by": self.user_id, "editing_at": self.since}


EditLock = Union[Unlocked, LockedBy]

UNLOCKED = Unlocked()


def as_utc(value: datetime) -> datetime:
    # Naive timestamps (e.g. from SQLite) are stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _field(entity: Any, name: str) -> Any:
    if isinstance(entity, dict):
        return entity.get(name)
    return getattr(entity, name, None)


def read_lock(entity: Any) -> EditLock:
    """Build the lock state from an entity (mapping, ORM row or lock instance)."""
    if isinstance(entity, (Unlocked, LockedBy)):
        return entity
    editing_by = _field(entity, "editing_by")
    if editing_by is None or not str(editing_by).strip():
        return UNLOCKED
    editing_at = _field(entity, "editing_at")
    if isinstance(editing_at, str):
        editing_at = datetime.fromisoformat(editing_at.replace("Z", "+00:00"))
    return LockedBy(str(editing_by), as_utc(editing_at) if editing_at is not None else None)


class LeaseLockCoordinator:
    """Policy checks over an entity's lock fields. Conflicts are answered with booleans, never raised."""

    def __init__(self, lease: timedelta = LEASE) -> None:
        self.lease = lease

    def is_locked_by_other(self, entity: Any, current_user: str, now: datetime) -> bool:
        lock = read_lock(entity)
        return (
            isinstance(lock, LockedBy)
            and lock.user_id != current_user
            and not lock.is_expired(now, self.lease)
        )

    def is_locked_by_self(self, entity: Any, current_user: str, now: Optional[datetime] = None) -> bool:
        # Own locks are honoured whatever their age; `now` is accepted for symmetry only.
        lock = read_lock(entity)
        return isinstance(lock, LockedBy) and lock.user_id == current_user

    def acquire(self, entity: Any, current_user: str, now: datetime) -> Optional[LockedBy]:
        """Lock fields to write for `current_user`, or None when someone else holds a live lock."""
        lock = read_lock(entity)
        if isinstance(lock, LockedBy) and lock.since is None:
            # no lease start, nothing to honour
            return LockedBy(current_user, as_utc(now))
        if self.is_locked_by_other(lock, current_user, now):
            return None
        return LockedBy(current_user, as_utc(now))

    def release(self, entity: Any, current_user: str) -> EditLock:
        """Lock state after `current_user` stops editing; other owners' locks are left as they are."""
        lock = read_lock(entity)
        if isinstance(lock, LockedBy) and lock.user_id == current_user:
            return UNLOCKED
        return lock

    def expires_at(self, entity: Any) -> Optional[datetime]:
        lock = read_lock(entity)
        if isinstance(lock, LockedBy) and lock.since is not None:
            return lock.since + self.lease
        return None

    def presentation(self, entity: Any, current_user: str, now: datetime) -> LockBadge:
        if self.is_locked_by_other(entity, current_user, now):
            return LockBadge(label="Active", disabled=True)
        if self.is_locked_by_self(entity, current_user, now):
            return LockBadge(label="Editing", disabled=False)
        return LockBadge()
