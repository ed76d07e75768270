# ideaboard/services/lock_service.py

import logging
from datetime import datetime
from typing import Optional

from ideaboard.schemas.lock import LockBadge, LockInfo
from ideaboard.services.edit_lock import LeaseLockCoordinator, LockedBy, Unlocked, as_utc, read_lock, utcnow
from ideaboard.services.errors import EntityNotFound
from ideaboard.services.store import PersistenceStore

logger = logging.getLogger(__name__)

IDEAS_TABLE = "ideas"


class IdeaLockService:
    """
    Edit-start / edit-end actions on idea cards, persisted through the store.

    start_editing() reads the idea, asks the coordinator, then writes. The read
    and the write are separate round-trips, so two sessions can both win; the
    last write is the lock everyone sees afterwards.
    """

    def __init__(self, store: PersistenceStore, coordinator: Optional[LeaseLockCoordinator] = None) -> None:
        self.store = store
        self.coordinator = coordinator or LeaseLockCoordinator()

    async def _load_idea(self, idea_id: str) -> dict:
        idea = await self.store.get(IDEAS_TABLE, idea_id)
        if idea is None:
            raise EntityNotFound(IDEAS_TABLE, idea_id)
        return idea

    async def start_editing(self, idea_id: str, user_id: str, now: Optional[datetime] = None) -> bool:
        """True when `user_id` now holds the lock; False when another user's live lock refused it."""
        now = now or utcnow()
        idea = await self._load_idea(idea_id)
        lock = self.coordinator.acquire(idea, user_id, now)
        if lock is None:
            holder = read_lock(idea)
            logger.info("lock: %s refused on idea %s (held by %s)", user_id, idea_id, getattr(holder, "user_id", None))
            return False

        updated = await self.store.update(IDEAS_TABLE, idea_id, lock.fields())
        if updated is None:
            raise EntityNotFound(IDEAS_TABLE, idea_id)
        logger.info("lock: %s acquired idea %s", user_id, idea_id)
        return True

    async def stop_editing(self, idea_id: str, user_id: str) -> bool:
        """Clear the lock if `user_id` owns it. Returns False (no-op) otherwise."""
        updated = await self.store.update(
            IDEAS_TABLE,
            idea_id,
            Unlocked().fields(),
            match={"editing_by": user_id},
        )
        if updated is None:
            logger.debug("lock: release of idea %s by %s was a no-op", idea_id, user_id)
            return False
        logger.info("lock: %s released idea %s", user_id, idea_id)
        return True

    async def lock_badge(self, idea_id: str, user_id: str, now: Optional[datetime] = None) -> LockBadge:
        idea = await self._load_idea(idea_id)
        return self.coordinator.presentation(idea, user_id, now or utcnow())

    async def lock_info(self, idea_id: str) -> Optional[LockInfo]:
        """Holder and lease window of the idea's lock; None when unlocked or when the lock has no timestamp."""
        idea = await self._load_idea(idea_id)
        lock = read_lock(idea)
        if not isinstance(lock, LockedBy) or lock.since is None:
            return None
        return LockInfo(
            idea_id=idea_id,
            user_id=lock.user_id,
            acquired_at=lock.since,
            expires_at=self.coordinator.expires_at(lock),
        )

    async def clear_stale_locks(self, now: Optional[datetime] = None) -> int:
        """Physically clear every lock whose lease has run out; returns how many were cleared."""
        cutoff = as_utc(now or utcnow()) - self.coordinator.lease
        cleared = await self.store.clear_stale_locks(IDEAS_TABLE, cutoff)
        if cleared:
            logger.info("lock: cleared %d stale lock(s)", cleared)
        return cleared
