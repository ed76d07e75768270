# tests/test_ttl_cache.py
import asyncio

import pytest

from ideaboard.services.cache_factory import NullCache, build_cache
from ideaboard.services.ttl_cache import TTLCache


def test_get_missing_key_returns_none(clock):
    cache = TTLCache(1.0, clock=clock)
    assert cache.get("missing") is None


def test_fresh_then_expired(clock):
    cache = TTLCache(1.0, clock=clock)
    cache.set("k", "v")
    assert cache.get("k") == "v"

    clock.advance(1.001)
    assert cache.get("k") is None


def test_expired_entry_is_removed_on_get(clock):
    cache = TTLCache(1.0, clock=clock)
    cache.set("k", "v")
    assert cache.size() == 1

    clock.advance(1.001)
    cache.get("k")
    assert cache.size() == 0


def test_overwrite_resets_expiry(clock):
    cache = TTLCache(1.0, clock=clock)
    cache.set("k", "v1")
    clock.advance(0.5)
    cache.set("k", "v2")

    # 1.1s after the first set, 0.6s after the overwrite
    clock.advance(0.6)
    assert cache.get("k") == "v2"


def test_per_entry_ttl_overrides_default(clock):
    cache = TTLCache(10.0, clock=clock)
    cache.set("short", "s", ttl_seconds=0.5)
    cache.set("long", "l")
    clock.advance(0.6)
    assert cache.get("short") is None
    assert cache.get("long") == "l"


def test_zero_ttl_expires_once_clock_moves(clock):
    cache = TTLCache(1.0, clock=clock)
    cache.set("k", "v", ttl_seconds=0)
    clock.advance(0.001)
    assert cache.get("k") is None


def test_delete_is_safe_for_missing_keys(clock):
    cache = TTLCache(1.0, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)

    cache.delete("a")
    cache.delete("never-there")

    assert cache.get("a") is None
    assert cache.get("b") == 2


def test_clear_removes_everything(clock):
    cache = TTLCache(1.0, clock=clock)
    for key in ("a", "b", "c"):
        cache.set(key, key.upper())
    cache.clear()
    assert cache.size() == 0
    assert cache.get("a") is None


def test_cleanup_counts_expired_entries(clock):
    cache = TTLCache(1.0, clock=clock)
    for key in ("a", "b", "c"):
        cache.set(key, key)

    clock.advance(1.001)
    assert cache.cleanup() == 3
    assert cache.size() == 0


def test_cleanup_keeps_live_entries(clock):
    cache = TTLCache(1.0, clock=clock)
    cache.set("old", 1, ttl_seconds=0.2)
    cache.set("new", 2)
    clock.advance(0.5)

    assert cache.cleanup() == 1
    assert cache.size() == 1
    assert cache.get("new") == 2


def test_size_counts_unswept_expired_entries(clock):
    cache = TTLCache(1.0, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    clock.advance(5)
    # storage count, not validity count
    assert cache.size() == 2


def test_auto_cleanup_requires_running_loop():
    with pytest.raises(RuntimeError):
        TTLCache(1.0, auto_cleanup=True)


def test_background_sweep_removes_expired_entries_and_stops_on_destroy(clock):
    async def scenario():
        cache = TTLCache(1.0, auto_cleanup=True, cleanup_interval_seconds=0.01, clock=clock)
        task = cache.sweeper._task
        cache.set("a", 1)
        cache.set("b", 2)
        clock.advance(2)

        for _ in range(50):
            if cache.size() == 0:
                break
            await asyncio.sleep(0.01)
        assert cache.size() == 0

        cache.destroy()
        assert cache.sweeper is None
        await asyncio.sleep(0)
        assert task.cancelled() or task.done()

    asyncio.run(scenario())


def test_destroy_without_sweeper_clears(clock):
    cache = TTLCache(1.0, clock=clock)
    cache.set("a", 1)
    cache.destroy()
    assert cache.size() == 0


def test_build_cache_backends():
    assert isinstance(build_cache(5, backend="memory"), TTLCache)

    disabled = build_cache(5, backend="none")
    assert isinstance(disabled, NullCache)
    disabled.set("k", "v")
    assert disabled.get("k") is None
    assert disabled.cleanup() == 0
