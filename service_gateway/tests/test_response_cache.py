"""
Unit tests for the gateway response cache.
"""

import base64
import json

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_gateway.app.caching.response_cache import MISS, ResponseCache


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds * 1000


class TestResponseCache:
    """Test cases for ResponseCache."""

    @pytest.fixture
    def clock(self):
        return FakeClock(start=1_000_000)

    @pytest.fixture
    def cache(self, clock):
        return ResponseCache(max_entries=3, clock=clock)

    def test_get_missing_key_is_miss(self, cache):
        assert cache.get("rates:current:", 60) is MISS
        assert not MISS

    def test_fresh_entry_returned(self, cache, clock):
        payload = {"routes": [1, 2, 3]}
        cache.put("k", payload)
        clock.advance(59)

        assert cache.get("k", 60) == payload

    def test_entry_at_exact_ttl_still_fresh(self, cache, clock):
        cache.put("k", "v")
        clock.advance(60)

        assert cache.get("k", 60) == "v"

    def test_stale_entry_removed_on_read(self, cache, clock):
        cache.put("k", "v")
        clock.advance(60.001)

        assert cache.get("k", 60) is MISS
        assert "k" not in cache
        assert cache.size() == 0
        assert cache.expirations == 1

    def test_ttl_is_read_at_lookup_time(self, cache, clock):
        cache.put("k", "v")
        clock.advance(10)

        assert cache.get("k", 30) == "v"
        assert cache.get("k", 5) is MISS

    def test_none_payload_is_cacheable(self, cache):
        cache.put("k", None)

        assert cache.get("k", 60) is None

    def test_repeated_reads_return_identical_payload(self, cache):
        payload = {"summary": {"avgRate": 33600.0}}
        cache.put("k", payload)

        first = cache.get("k", 60)
        second = cache.get("k", 60)
        assert first is second
        assert json.dumps(first) == json.dumps(payload)

    def test_fifo_eviction_of_oldest_inserted(self, cache):
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("c", 3)

        # Reading "a" does not protect it: eviction is by insertion order
        assert cache.get("a", 60) == 1
        cache.put("d", 4)

        assert "a" not in cache
        assert [k for k in ("b", "c", "d") if k in cache] == ["b", "c", "d"]
        assert cache.size() == 3
        assert cache.evictions == 1

    def test_capacity_never_exceeded(self, clock):
        cache = ResponseCache(clock=clock)
        for i in range(201):
            cache.put(f"key-{i}", i)

        assert cache.size() == 200
        assert "key-0" not in cache
        assert "key-1" in cache
        assert "key-200" in cache

    def test_overwrite_moves_key_to_newest_position(self, cache, clock):
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("c", 3)
        clock.advance(30)
        cache.put("a", 10)
        cache.put("d", 4)

        assert "a" in cache
        assert "b" not in cache
        assert cache.evictions == 1

    def test_overwrite_resets_timestamp(self, cache, clock):
        cache.put("k", "old")
        clock.advance(50)
        cache.put("k", "new")
        clock.advance(50)

        assert cache.get("k", 60) == "new"

    def test_overwrite_when_full_does_not_evict(self, cache):
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("c", 3)
        cache.put("b", 20)

        assert cache.size() == 3
        assert cache.evictions == 0

    def test_clear(self, cache):
        cache.put("a", 1)
        cache.clear()

        assert len(cache) == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            ResponseCache(max_entries=0)

    def test_stats(self, cache):
        cache.put("a", 1)

        stats = cache.stats()
        assert stats["size"] == 1
        assert stats["max_entries"] == 3
        assert stats["evictions"] == 0


class TestCacheKey:
    """Test cases for cache key generation."""

    def test_key_format(self):
        key = ResponseCache.make_key("rates", "current", {"route": "Mumbai-Delhi"})
        encoded = base64.b64encode(b'{"route":"Mumbai-Delhi"}').decode()

        assert key == f"rates:current:{encoded}"

    def test_empty_and_missing_query_share_key(self):
        assert ResponseCache.make_key("rates", "current", {}) == "rates:current:"
        assert ResponseCache.make_key("rates", "current", None) == "rates:current:"

    def test_key_is_deterministic(self):
        query = {"from": "Pune", "to": "Hyderabad"}

        assert ResponseCache.make_key("rates", "history", query) == ResponseCache.make_key(
            "rates", "history", dict(query)
        )

    def test_key_order_sensitive(self):
        first = ResponseCache.make_key("rates", "current", {"a": 1, "b": 2})
        second = ResponseCache.make_key("rates", "current", {"b": 2, "a": 1})

        assert first != second

    def test_key_distinguishes_widget_and_endpoint(self):
        keys = {
            ResponseCache.make_key("rates", "current", {"x": 1}),
            ResponseCache.make_key("rates", "history", {"x": 1}),
            ResponseCache.make_key("operations", "current", {"x": 1}),
        }

        assert len(keys) == 3
