# -*- coding: utf-8 -*-

"""
Unit tests for StatsCache.
Tests memoization, TTL expiry, eviction and hit/miss counters.
"""

import threading

import pytest

from gatekeeper.cache import CacheStats, StatsCache, make_cache_key


class ManualClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return ManualClock()


class TestMakeCacheKey:
    """Tests for make_cache_key()."""

    def test_key_ignores_dict_order(self):
        """
        What it does: Builds keys for two dicts with the same items in different order.
        Purpose: Equal inputs share one memo entry.
        """
        a = make_cache_key("S", {"page": 1, "sort": "asc"})
        b = make_cache_key("S", {"sort": "asc", "page": 1})
        print(f"Key: {a}")
        assert a == b

    def test_key_depends_on_schema(self):
        """
        What it does: Builds keys for the same input under two schemas.
        Purpose: Outcomes of different schemas never collide.
        """
        assert make_cache_key("A", {"x": 1}) != make_cache_key("B", {"x": 1})

    def test_unserializable_input_has_no_key(self):
        """
        What it does: Builds a key for a set.
        Purpose: Inputs without canonical JSON are never memoized.
        """
        assert make_cache_key("S", {"x": {1, 2}}) is None


class TestStatsCache:
    """Tests for StatsCache storage."""

    def test_set_and_get_returns_copy(self, clock):
        """
        What it does: Stores a dict, mutates the returned copy, reads again.
        Purpose: Handlers cannot corrupt a cached value.
        """
        cache = StatsCache(ttl=10, max_keys=10, clock=clock)
        cache.set("k", {"tags": ["a"]})

        first = cache.get("k")
        first["tags"].append("b")

        print(f"Second read: {cache.get('k')}")
        assert cache.get("k") == {"tags": ["a"]}

    def test_entry_expires_after_ttl(self, clock):
        """
        What it does: Reads an entry after its TTL.
        Purpose: Expired entries are not served.
        """
        cache = StatsCache(ttl=10, max_keys=10, clock=clock)
        cache.set("k", 1)
        clock.now += 10
        assert cache.get("k") is None
        assert cache.size == 0

    def test_oldest_entry_is_evicted_when_full(self, clock):
        """
        What it does: Fills the cache beyond max_keys.
        Purpose: The store stays bounded.
        """
        cache = StatsCache(ttl=10, max_keys=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        print(f"Keys: {cache.keys()}")
        assert cache.keys() == ["b", "c"]

    def test_delete_and_clear(self, clock):
        """
        What it does: Deletes one entry, then clears.
        Purpose: Explicit invalidation works.
        """
        cache = StatsCache(ttl=10, max_keys=10, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.delete("a")
        assert not cache.delete("a")
        assert not cache.has("a")
        cache.clear()
        assert cache.keys() == []

    def test_zero_capacity_disables_memoization(self, clock):
        """
        What it does: Stores into a cache with max_keys=0.
        Purpose: The trivial no-memoization case is valid.
        """
        cache = StatsCache(ttl=10, max_keys=0, clock=clock)
        cache.set("a", 1)
        assert cache.get("a") is None
        assert cache.snapshot() == CacheStats(hits=0, misses=0, keys=0, ksize=0, vsize=0)


class TestStatsCounters:
    """Tests for record_attempt() and snapshot()."""

    def test_hits_plus_misses_equals_attempts(self, clock):
        """
        What it does: Records 3 hits and 2 misses.
        Purpose: Counters account for every attempt.
        """
        cache = StatsCache(ttl=10, max_keys=10, clock=clock)
        for hit in (True, False, True, True, False):
            cache.record_attempt(hit)

        stats = cache.snapshot()
        print(f"Stats: {stats}")
        assert stats.hits == 3
        assert stats.misses == 2

    def test_snapshot_reports_store_size(self, clock):
        """
        What it does: Stores one entry and takes a snapshot.
        Purpose: keys/ksize/vsize describe the memo store.
        """
        cache = StatsCache(ttl=10, max_keys=10, clock=clock)
        cache.set("key", "value")
        stats = cache.snapshot()

        assert stats.keys == 1
        assert stats.ksize == 3
        assert stats.vsize > 0

    def test_reset_stats(self, clock):
        """
        What it does: Resets counters after recording attempts.
        Purpose: Counters only reset on explicit request.
        """
        cache = StatsCache(ttl=10, max_keys=10, clock=clock)
        cache.record_attempt(True)
        cache.clear()
        assert cache.snapshot().hits == 1
        cache.reset_stats()
        assert cache.snapshot().to_dict() == {"hits": 0, "misses": 0, "keys": 0, "ksize": 0, "vsize": 0}

    def test_concurrent_increments_are_not_lost(self):
        """
        What it does: Records attempts from 8 threads.
        Purpose: Shared counters are safe under concurrent requests.
        """
        cache = StatsCache(ttl=10, max_keys=10)

        def worker():
            for _ in range(1000):
                cache.record_attempt(hit=True)
                cache.record_attempt(hit=False)

        print("Action: Running 8 threads x 1000 iterations...")
        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stats = cache.snapshot()
        print(f"Stats: {stats}")
        assert stats.hits == 8000
        assert stats.misses == 8000
