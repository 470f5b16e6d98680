"""Bounded content caches with pluggable eviction.

Every strategy shares the same contract: ``put`` / ``get`` / ``contains`` /
``clear`` / ``size`` / ``stats``.  ``get`` counts a hit or a miss;
``contains`` never touches the counters.  A victim is evicted *before* a new
key is inserted, so ``size() <= capacity`` holds after every ``put``.
"""

import logging
from abc import ABC, abstractmethod
from collections import OrderedDict, defaultdict
from dataclasses import dataclass
from typing import Any, Hashable, Optional

from .config import CacheStrategy, ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    hits: int
    misses: int
    size: int
    capacity: int

    @property
    def requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_ratio(self) -> float:
        return self.hits / self.requests if self.requests else 0.0

    def __str__(self):
        return (f"Cache size: {self.size}/{self.capacity}, Hits: {self.hits}, "
                f"Misses: {self.misses}, Hit ratio: {self.hit_ratio:.2%}")


class ContentCache(ABC):
    """Base class for the eviction strategies."""

    strategy: CacheStrategy

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ConfigurationError(
                f"cache capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.hits = 0
        self.misses = 0
        self._data: dict[Hashable, Any] = self._new_store()

    def _new_store(self) -> dict:
        return {}

    # ------------------------------------------------------------------
    # Strategy hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _victim(self) -> Hashable:
        """Key to evict when the cache is full."""
        ...

    def _on_insert(self, key: Hashable):
        pass

    def _on_hit(self, key: Hashable):
        pass

    def _on_update(self, key: Hashable):
        pass

    def _on_evict(self, key: Hashable):
        pass

    def _on_clear(self):
        pass

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def put(self, key: Hashable, value: Any):
        if key in self._data:
            self._data[key] = value
            self._on_update(key)
            return
        if len(self._data) >= self.capacity:
            victim = self._victim()
            self._on_evict(victim)
            del self._data[victim]
            logger.debug("%s cache evicted %r", self.strategy.value, victim)
        self._data[key] = value
        self._on_insert(key)

    def get(self, key: Hashable, default: Optional[Any] = None) -> Any:
        if key not in self._data:
            self.misses += 1
            return default
        self.hits += 1
        self._on_hit(key)
        return self._data[key]

    def contains(self, key: Hashable) -> bool:
        return key in self._data

    __contains__ = contains

    def clear(self):
        self._data.clear()
        self._on_clear()

    def size(self) -> int:
        return len(self._data)

    __len__ = size

    def keys(self) -> list:
        return list(self._data)

    def stats(self) -> CacheStats:
        return CacheStats(self.hits, self.misses, self.size(), self.capacity)


class FIFOCache(ContentCache):
    """Evicts in strict insertion order; re-putting a key keeps its slot."""

    strategy = CacheStrategy.FIFO

    def _victim(self):
        return next(iter(self._data))


class LRUCache(ContentCache):
    """Evicts the least recently used key; hits and puts refresh a key."""

    strategy = CacheStrategy.LRU

    def _new_store(self):
        return OrderedDict()

    def _victim(self):
        return next(iter(self._data))

    def _on_hit(self, key):
        self._data.move_to_end(key)

    _on_update = _on_hit


class LFUCache(ContentCache):
    """Evicts the least frequently used key in O(1).

    Keys are grouped into frequency buckets (insertion-ordered dicts used as
    ordered sets) and ``min_frequency`` tracks the lowest non-empty bucket.
    Ties inside a bucket go to the key that entered it first.  A ``put`` of a
    key that is already cached counts as a use, like a ``get`` hit.
    """

    strategy = CacheStrategy.LFU

    def __init__(self, capacity: int):
        super().__init__(capacity)
        self._frequency: dict[Hashable, int] = {}
        self._buckets: defaultdict[int, dict] = defaultdict(dict)
        self.min_frequency = 0

    def frequency(self, key: Hashable) -> int:
        return self._frequency.get(key, 0)

    def _touch(self, key):
        freq = self._frequency[key]
        bucket = self._buckets[freq]
        del bucket[key]
        if not bucket:
            del self._buckets[freq]
            if self.min_frequency == freq:
                self.min_frequency = freq + 1
        self._frequency[key] = freq + 1
        self._buckets[freq + 1][key] = None

    _on_hit = _touch
    _on_update = _touch

    def _on_insert(self, key):
        self._frequency[key] = 1
        self._buckets[1][key] = None
        self.min_frequency = 1

    def _victim(self):
        return next(iter(self._buckets[self.min_frequency]))

    def _on_evict(self, key):
        freq = self._frequency.pop(key)
        bucket = self._buckets[freq]
        del bucket[key]
        if not bucket:
            del self._buckets[freq]
        # min_frequency is reset to 1 by the insert that follows

    def _on_clear(self):
        self._frequency.clear()
        self._buckets.clear()
        self.min_frequency = 0


class NullCache(ContentCache):
    """Caching disabled: nothing is kept, every ``get`` is a miss."""

    strategy = CacheStrategy.NONE

    def __init__(self, capacity: int = 0):
        self.capacity = 0
        self.hits = 0
        self.misses = 0
        self._data = {}

    def put(self, key, value):
        pass

    def _victim(self):
        raise LookupError("NullCache holds no entries")


CACHE_TYPES = {
    CacheStrategy.FIFO: FIFOCache,
    CacheStrategy.LRU: LRUCache,
    CacheStrategy.LFU: LFUCache,
    CacheStrategy.NONE: NullCache,
}


def make_cache(strategy, capacity: int) -> ContentCache:
    if not isinstance(strategy, CacheStrategy):
        try:
            strategy = CacheStrategy(str(strategy).lower())
        except ValueError:
            raise ConfigurationError(
                f"unknown cache strategy {strategy!r}") from None
    return CACHE_TYPES[strategy](capacity)
