"""Eviction-order and accounting tests for the content caches.

Run:  pytest tests/ -v
"""

import random

import pytest

from hkademlia.cache import (FIFOCache, LFUCache, LRUCache, NullCache,
                             make_cache)
from hkademlia.config import CacheStrategy, ConfigurationError

STRATEGIES = [
    pytest.param(FIFOCache, id="FIFO"),
    pytest.param(LRUCache, id="LRU"),
    pytest.param(LFUCache, id="LFU"),
]


def fill(cache, *keys):
    for key in keys:
        cache.put(key, f"v-{key}")


# ──────────────────────────────────────────────────────────────────────
# 1. Common contract
# ──────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("cache_cls", STRATEGIES)
def test_size_never_exceeds_capacity(cache_cls):
    rng = random.Random(11)
    cache = cache_cls(8)
    for _ in range(2000):
        key = rng.randrange(40)
        if rng.random() < 0.6:
            cache.put(key, key)
        else:
            cache.get(key)
        assert cache.size() <= 8
    assert len(cache) == cache.size()


@pytest.mark.parametrize("cache_cls", STRATEGIES)
def test_hits_and_misses_are_counted(cache_cls):
    cache = cache_cls(4)
    fill(cache, "a", "b")
    assert cache.get("a") == "v-a"
    assert cache.get("zzz") is None
    assert cache.get("zzz", "fallback") == "fallback"

    stats = cache.stats()
    assert (stats.hits, stats.misses) == (1, 2)
    assert stats.size == 2
    assert stats.capacity == 4
    assert stats.hit_ratio == pytest.approx(1 / 3)


@pytest.mark.parametrize("cache_cls", STRATEGIES)
def test_contains_does_not_touch_counters(cache_cls):
    cache = cache_cls(4)
    fill(cache, "a")
    assert cache.contains("a")
    assert "a" in cache
    assert not cache.contains("b")
    assert cache.stats().requests == 0


@pytest.mark.parametrize("cache_cls", STRATEGIES)
def test_put_existing_key_updates_value(cache_cls):
    cache = cache_cls(2)
    cache.put("a", 1)
    cache.put("a", 2)
    assert cache.size() == 1
    assert cache.get("a") == 2


@pytest.mark.parametrize("cache_cls", STRATEGIES)
def test_clear_then_reuse(cache_cls):
    cache = cache_cls(2)
    fill(cache, "a", "b")
    cache.get("a")
    cache.clear()
    assert cache.size() == 0
    assert not cache.contains("a")
    fill(cache, "c", "d", "e")
    assert cache.size() == 2
    assert cache.contains("e")


@pytest.mark.parametrize("capacity", [0, -3])
@pytest.mark.parametrize("cache_cls", STRATEGIES)
def test_non_positive_capacity_fails_fast(cache_cls, capacity):
    with pytest.raises(ConfigurationError):
        cache_cls(capacity)


def test_empty_stats_hit_ratio_is_zero():
    assert LRUCache(3).stats().hit_ratio == 0.0


# ──────────────────────────────────────────────────────────────────────
# 2. FIFO
# ──────────────────────────────────────────────────────────────────────

def test_fifo_evicts_oldest_insert():
    cache = FIFOCache(3)
    fill(cache, "k1", "k2", "k3", "k4")
    assert not cache.contains("k1")
    assert all(cache.contains(k) for k in ("k2", "k3", "k4"))


def test_fifo_reinsert_and_get_keep_position():
    cache = FIFOCache(2)
    fill(cache, "a", "b")
    cache.put("a", "again")
    cache.get("a")
    fill(cache, "c")
    assert not cache.contains("a")
    assert cache.keys() == ["b", "c"]


# ──────────────────────────────────────────────────────────────────────
# 3. LRU
# ──────────────────────────────────────────────────────────────────────

def test_lru_get_refreshes_key():
    cache = LRUCache(2)
    fill(cache, "a", "b")
    cache.get("a")
    fill(cache, "c")
    assert not cache.contains("b")
    assert cache.contains("a") and cache.contains("c")


def test_lru_put_refreshes_key():
    cache = LRUCache(2)
    fill(cache, "a", "b")
    cache.put("a", "new")
    fill(cache, "c")
    assert cache.keys() == ["a", "c"]


def test_lru_miss_does_not_reorder():
    cache = LRUCache(2)
    fill(cache, "a", "b")
    cache.get("x")
    fill(cache, "c")
    assert not cache.contains("a")


# ──────────────────────────────────────────────────────────────────────
# 4. LFU
# ──────────────────────────────────────────────────────────────────────

def test_lfu_evicts_least_frequent():
    cache = LFUCache(2)
    fill(cache, "a", "b")
    cache.get("a")
    cache.get("a")
    fill(cache, "c")
    assert not cache.contains("b")
    assert cache.frequency("a") == 3
    assert cache.frequency("c") == 1
    assert cache.frequency("b") == 0


def test_lfu_ties_go_to_oldest_in_bucket():
    cache = LFUCache(3)
    fill(cache, "a", "b", "c", "d")
    assert cache.keys() == ["b", "c", "d"]


def test_lfu_min_frequency_advances_when_bucket_empties():
    cache = LFUCache(2)
    fill(cache, "a")
    cache.get("a")
    assert cache.min_frequency == 2
    fill(cache, "b")
    assert cache.min_frequency == 1
    cache.get("b")
    assert cache.min_frequency == 2
    # a and b both at frequency 2; a reached that bucket first
    fill(cache, "c")
    assert not cache.contains("a")
    assert cache.contains("b") and cache.contains("c")


def test_lfu_never_evicts_from_stale_minimum():
    cache = LFUCache(2)
    fill(cache, "a", "b")
    cache.get("a")
    cache.get("a")
    cache.get("b")        # frequency-1 bucket is now empty
    assert cache.min_frequency == 2
    fill(cache, "c")
    assert not cache.contains("b")
    assert cache.contains("a") and cache.contains("c")


def test_lfu_promoted_keys_keep_promotion_order():
    cache = LFUCache(3)
    fill(cache, "a", "b", "c")
    cache.get("b")
    cache.get("a")
    cache.get("c")
    fill(cache, "d")
    assert not cache.contains("b")


def test_lfu_reput_counts_as_use():
    cache = LFUCache(2)
    fill(cache, "a", "b")
    cache.put("a", "again")
    fill(cache, "c")
    assert cache.frequency("a") == 2
    assert not cache.contains("b")


def test_lfu_clear_resets_frequencies():
    cache = LFUCache(2)
    fill(cache, "a")
    cache.get("a")
    cache.clear()
    assert cache.min_frequency == 0
    assert cache.frequency("a") == 0
    fill(cache, "a", "b", "c")
    assert cache.keys() == ["b", "c"]


# ──────────────────────────────────────────────────────────────────────
# 5. Disabled cache and factory
# ──────────────────────────────────────────────────────────────────────

def test_null_cache_keeps_nothing():
    cache = NullCache()
    fill(cache, "a", "b")
    assert cache.size() == 0
    assert cache.get("a") is None
    assert cache.stats().misses == 1
    assert cache.stats().capacity == 0


@pytest.mark.parametrize("name,cls", [
    ("fifo", FIFOCache), ("LRU", LRUCache), (CacheStrategy.LFU, LFUCache),
    ("none", NullCache),
])
def test_make_cache(name, cls):
    assert isinstance(make_cache(name, 4), cls)


def test_make_cache_unknown_strategy():
    with pytest.raises(ConfigurationError):
        make_cache("arc", 4)
