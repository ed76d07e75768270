from typing import Any, Hashable, Optional
from .cache import Cache
from .ttl_cache import TTLCache
from ideaboard.config import CACHE_BACKEND, CACHE_AUTO_CLEANUP, CACHE_CLEANUP_INTERVAL_SECONDS


def build_cache(default_ttl_seconds: float, backend: Optional[str] = None) -> Cache:
    """
    Returns a new cache instance based on configuration:
      - "none"   -> no-op backend (always misses)
      - "memory" -> in-process TTL cache (optionally swept in the background)

    Every service owns the instance it gets; there is no process-wide singleton,
    so destroy() on one service never touches another service's entries.
    """
    backend = (backend or CACHE_BACKEND).lower()
    if backend == "none":
        return NullCache()
    return TTLCache(
        default_ttl_seconds,
        auto_cleanup=CACHE_AUTO_CLEANUP,
        cleanup_interval_seconds=CACHE_CLEANUP_INTERVAL_SECONDS,
    )


class NullCache(Cache):
    """No-op cache used when caching is disabled."""
    def get(self, key: Hashable): return None
    def set(self, key: Hashable, value: Any, ttl_seconds: Optional[float] = None): pass
    def delete(self, key: Hashable): pass
    def clear(self): pass
    def cleanup(self) -> int: return 0
    def size(self) -> int: return 0
    def destroy(self): pass
