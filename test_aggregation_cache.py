"""Tests for the aggregation cache: TTLs, capacity and memory pressure."""

import threading

import pytest

from mplads.cache import (
    TTL_LONG,
    TTL_MEDIUM,
    TTL_SHORT,
    AggregationCache,
    CacheConfig,
    make_cache_key,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def _cache(clock, memory_mb=10.0, **limits):
    config = CacheConfig(max_memory_mb=limits.pop("max_memory_mb", 100.0), **limits)
    return AggregationCache(config, memory_sampler=lambda: memory_mb, clock=clock)


def test_ttl_tiers():
    assert TTL_LONG == 24 * 3600
    assert TTL_MEDIUM == 12 * 3600
    assert TTL_SHORT == 6 * 3600


def test_make_cache_key_is_order_independent():
    a = make_cache_key("getStateSummary", {"state": "Bihar", "house": "lok-sabha", "ls_term": "18"})
    b = make_cache_key("getStateSummary", {"ls_term": "18", "state": "Bihar", "house": "lok-sabha"})
    assert a == b == "getStateSummary:house=lok-sabha&ls_term=18&state=Bihar"


def test_make_cache_key_drops_none_and_namespaces_user():
    assert make_cache_key("getOverview", {"state": None}) == "getOverview:"
    assert make_cache_key("getOverview", {"house": "both"}, user_id="42") == "user:42:getOverview:house=both"


def test_entry_expires_after_ttl(clock):
    cache = _cache(clock)
    cache.set("k", {"v": 1}, ttl=60)
    assert cache.get("k") == {"v": 1}
    clock.now += 61
    assert cache.get("k") is None
    assert len(cache) == 0


def test_get_or_compute_memoizes(clock):
    cache = _cache(clock)
    calls = []

    def compute():
        calls.append(1)
        return {"total": 5}

    assert cache.get_or_compute("k", compute) == {"total": 5}
    assert cache.get_or_compute("k", compute) == {"total": 5}
    assert len(calls) == 1
    assert cache.stats()["hits"] == 1


def test_overflow_evicts_oldest_tenth_and_retries(clock):
    cache = _cache(clock, max_keys=10)
    for i in range(10):
        cache.set(f"k{i}", i)

    assert cache.set("new", "value") is True
    assert "k0" not in cache
    assert cache.get("k1") == 1
    assert cache.get("new") == "value"
    assert cache.stats()["evictions"] == 1


def test_overflow_prefers_expired_entries(clock):
    cache = _cache(clock, max_keys=2)
    cache.set("old", 1, ttl=10)
    cache.set("keep", 2, ttl=1000)
    clock.now += 11
    assert cache.set("new", 3) is True
    assert cache.get("keep") == 2
    assert cache.stats()["evictions"] == 0


def test_degraded_write_is_not_an_error(clock):
    # floor(10% of 5) == 0, so the retry cannot free a slot
    cache = _cache(clock, max_keys=5)
    for i in range(5):
        cache.set(f"k{i}", i)

    assert cache.set("new", "value") is False
    assert cache.get("new") is None
    assert cache.stats()["failed_writes"] == 1
    assert cache.get_or_compute("other", lambda: "computed") == "computed"


def test_memory_pressure_evicts_oldest_thirty_percent(clock):
    cache = _cache(clock, memory_mb=10.0, max_memory_mb=100.0, cleanup_threshold=0.8)
    for i in range(10):
        cache.set(f"k{i}", i)

    cache._memory_sampler = lambda: 90.0
    cache.set("new", "value")

    assert len(cache) == 8
    assert all(f"k{i}" not in cache for i in range(3))
    assert cache.get("new") == "value"


def test_invalidate_by_substring(clock):
    cache = _cache(clock)
    cache.set("getStateSummary:house=lok-sabha&state=Bihar", 1)
    cache.set("getStateSummary:house=lok-sabha&state=Goa", 2)
    cache.set("getOverview:house=lok-sabha", 3)

    assert cache.invalidate("state=Bihar") == 1
    assert cache.invalidate("getStateSummary") == 1
    assert cache.get("getOverview:house=lok-sabha") == 3


def test_instances_are_independent(clock):
    first, second = _cache(clock), _cache(clock)
    first.set("k", 1)
    assert second.get("k") is None


def test_cached_value_is_a_private_copy(clock):
    cache = _cache(clock)
    cache.set("k", {"allocated_amount": 100, "flags": ["a"]})

    first = cache.get("k")
    first["allocated_amount"] = -1
    first["flags"].append("b")
    second = cache.get("k")

    assert second == {"allocated_amount": 100, "flags": ["a"]}
    assert first is not second


def test_computed_value_is_not_shared_with_later_hits(clock):
    cache = _cache(clock)
    first = cache.get_or_compute("k", lambda: {"allocated_amount": 100})
    first["allocated_amount"] = -1
    assert cache.get_or_compute("k", lambda: {"allocated_amount": 0}) == {"allocated_amount": 100}


def test_non_json_value_is_rejected(clock):
    cache = _cache(clock)
    with pytest.raises(TypeError):
        cache.set("k", object())


def test_concurrent_writers_last_write_wins(clock):
    cache = _cache(clock, max_keys=50)
    keys = [f"k{i}" for i in range(10)]
    errors = []

    def worker(n):
        try:
            for round_ in range(200):
                key = keys[(n + round_) % len(keys)]
                cache.set(key, {"writer": n, "round": round_})
                value = cache.get(key)
                if value is not None:
                    assert set(value) == {"writer", "round"}
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(cache) == len(keys)
    for key in keys:
        value = cache.get(key)
        assert 0 <= value["writer"] < 8
        assert 0 <= value["round"] < 200
