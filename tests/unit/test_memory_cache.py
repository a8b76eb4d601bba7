"""
Unit tests for the bounded in-memory LRU cache.
"""

import threading

import pytest

from xtreamtv.cache.memory import MemoryCache


@pytest.mark.unit
class TestMemoryCache:
    """Tests for MemoryCache."""

    def test_set_and_get(self):
        cache = MemoryCache(count_limit=10, total_cost_limit=1000)
        cache.set("a", "A", cost=10)

        assert cache.get("a") == "A"
        assert cache.get("missing") is None
        assert cache.total_cost == 10

    def test_invalid_limits(self):
        with pytest.raises(ValueError):
            MemoryCache(count_limit=0)
        with pytest.raises(ValueError):
            MemoryCache(total_cost_limit=0)

    def test_count_limit_evicts_least_recently_used(self):
        cache = MemoryCache(count_limit=3, total_cost_limit=1000)
        for key in ("a", "b", "c"):
            cache.set(key, key.upper())

        cache.get("a")
        cache.set("d", "D")

        assert len(cache) == 3
        assert "b" not in cache
        assert cache.keys() == ["c", "a", "d"]
        assert cache.evictions == 1

    def test_cost_limit_evicts_until_fit(self):
        cache = MemoryCache(count_limit=100, total_cost_limit=100)
        cache.set("a", 1, cost=40)
        cache.set("b", 2, cost=40)
        cache.set("c", 3, cost=50)

        assert "a" not in cache
        assert cache.keys() == ["b", "c"]
        assert cache.total_cost == 90

    def test_oversized_value_not_stored(self):
        cache = MemoryCache(count_limit=10, total_cost_limit=100)
        cache.set("small", 1, cost=10)

        assert cache.set("huge", 2, cost=101) is False
        assert "huge" not in cache
        assert "small" in cache

    def test_replace_updates_cost(self):
        cache = MemoryCache(count_limit=10, total_cost_limit=100)
        cache.set("a", 1, cost=60)
        cache.set("a", 2, cost=30)

        assert cache.get("a") == 2
        assert cache.total_cost == 30
        assert len(cache) == 1

    def test_limits_hold_for_many_inserts(self):
        cache = MemoryCache(count_limit=100, total_cost_limit=50_000)
        for i in range(500):
            cache.set(f"img-{i}", object(), cost=(i % 7 + 1) * 200)
            assert len(cache) <= 100
            assert cache.total_cost <= 50_000

    def test_delete_and_clear(self):
        cache = MemoryCache()
        cache.set("a", 1, cost=5)
        cache.set("b", 2, cost=5)

        assert cache.delete("a") is True
        assert cache.delete("a") is False
        assert cache.clear() == 1
        assert len(cache) == 0
        assert cache.total_cost == 0

    def test_concurrent_inserts_respect_limits(self):
        cache = MemoryCache(count_limit=50, total_cost_limit=10_000)

        def worker(prefix: str):
            for i in range(200):
                cache.set(f"{prefix}-{i}", i, cost=100)

        threads = [threading.Thread(target=worker, args=(str(n),)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        info = cache.get_info()
        assert info["entry_count"] <= 50
        assert info["total_cost"] <= 10_000
        assert info["total_cost"] == info["entry_count"] * 100
