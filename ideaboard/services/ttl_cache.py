import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional

from .cache import Cache

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    key: Hashable
    value: Any
    expires_at: float


class TTLCache(Cache):
    """
    In-process key/value cache with a per-entry time-to-live.

    An entry whose expires_at <= now is logically absent: get() reports a miss and
    drops it, cleanup() drops every such entry. Both paths use the same predicate,
    so nothing stale is returned between sweeps.

    size() is a storage count: expired entries still count until something removes them.

    With auto_cleanup=True a CacheSweeper task runs cleanup() every
    cleanup_interval_seconds; this needs a running event loop at construction.
    destroy() cancels it.
    """

    def __init__(
        self,
        default_ttl_seconds: float,
        *,
        auto_cleanup: bool = False,
        cleanup_interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl_seconds = default_ttl_seconds
        self.auto_cleanup = auto_cleanup
        self.cleanup_interval_seconds = cleanup_interval_seconds
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._sweeper: Optional[CacheSweeper] = None
        if auto_cleanup:
            self._sweeper = CacheSweeper(self, cleanup_interval_seconds)
            self._sweeper.start()

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return entry.expires_at <= now

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry, self._clock()):
            # Expired: evict and miss
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(self, key: Hashable, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)

    def delete(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Remove every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("ttl_cache: swept %d expired entries", len(expired))
        return len(expired)

    def size(self) -> int:
        return len(self._entries)

    @property
    def sweeper(self) -> Optional["CacheSweeper"]:
        return self._sweeper

    def destroy(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            self._sweeper = None
        self.clear()


class CacheSweeper:
    """Periodic background task that calls cache.cleanup() until cancelled."""

    def __init__(self, cache: Cache, interval_seconds: float) -> None:
        self.cache = cache
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""
        if self._task is not None:
            return  # Already started
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as ex:
            raise RuntimeError("CacheSweeper needs a running event loop (auto_cleanup=True)") from ex
        self._task = loop.create_task(self._run(), name="ttl-cache-sweeper")

    def cancel(self) -> None:
        """Stop the sweep loop. Safe to call more than once."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        logger.debug("ttl_cache: sweeper started (interval=%s sec)", self.interval_seconds)
        try:
            while True:
                await asyncio.sleep(self.interval_seconds)
                try:
                    self.cache.cleanup()
                except Exception:
                    logger.exception("ttl_cache: sweep failed with an exception.")
        finally:
            logger.debug("ttl_cache: sweeper exiting")
