"""Protocol configuration and error types."""

from dataclasses import dataclass
from enum import Enum


class HKademliaError(Exception):
    """Base class for errors raised by the simulator."""


class ConfigurationError(HKademliaError, ValueError):
    """Invalid protocol configuration."""


class ClusterAssignmentError(HKademliaError):
    """A node's cluster id was changed after it had been assigned."""


class CacheStrategy(str, Enum):
    FIFO = "fifo"
    LRU = "lru"
    LFU = "lfu"
    NONE = "none"


class LatencyModel(str, Enum):
    UNIT = "unit"        # 1 unit per contact
    CLUSTER = "cluster"  # random intra/inter-cluster cost in ms


def _coerce(enum_cls, value, field_name):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ConfigurationError(
            f"{field_name} must be one of {choices}, got {value!r}") from None


def _check_range(value, field_name):
    try:
        low, high = value
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"{field_name} must be a (low, high) pair, got {value!r}") from None
    if not 0 <= low < high:
        raise ConfigurationError(
            f"{field_name} must satisfy 0 <= low < high, got {value!r}")
    return (int(low), int(high))


@dataclass(frozen=True)
class ProtocolConfig:
    """Per-node protocol parameters.

    kad_k
        Routing-table capacity and number of STORE receivers.
    kad_a
        Alpha: peers contacted per round of the iterative search.
    cache_size / cache_strategy
        Capacity and eviction policy of the local content cache.
    hierarchical
        Cluster-aware admission (gateway election) instead of the flat
        "keep the K closest to me" table.
    latency_model
        ``unit`` charges 1 per contact, ``cluster`` draws from
        ``intra_cluster_latency`` / ``inter_cluster_latency`` (ms, [low, high)).
    cache_on_store, cache_deposits, cache_lookup_results
        Where content is also put into caches: at the STORE initiator, at
        every STORE receiver, and at a LOOKUP initiator after a remote hit.
    count_store_hits_as_cache_hits
        When set, LOOKUPs answered from the local store are reported as
        cache hits by ``cache_stats()`` instead of cache misses.
    seed
        Mixed with the node id to seed each node's private RNG.
    """
    kad_k: int = 20
    kad_a: int = 3
    cache_size: int = 500
    cache_strategy: CacheStrategy = CacheStrategy.LFU
    hierarchical: bool = True
    latency_model: LatencyModel = LatencyModel.CLUSTER
    cache_on_store: bool = True
    cache_deposits: bool = True
    cache_lookup_results: bool = False
    count_store_hits_as_cache_hits: bool = False
    intra_cluster_latency: tuple[int, int] = (5, 10)
    inter_cluster_latency: tuple[int, int] = (20, 40)
    seed: int = 0

    def __post_init__(self):
        # frozen dataclass: normalised values go through object.__setattr__
        set_ = object.__setattr__
        set_(self, "cache_strategy",
             _coerce(CacheStrategy, self.cache_strategy, "cache_strategy"))
        set_(self, "latency_model",
             _coerce(LatencyModel, self.latency_model, "latency_model"))
        set_(self, "intra_cluster_latency",
             _check_range(self.intra_cluster_latency, "intra_cluster_latency"))
        set_(self, "inter_cluster_latency",
             _check_range(self.inter_cluster_latency, "inter_cluster_latency"))

        if self.kad_k <= 0:
            raise ConfigurationError(f"kad_k must be positive, got {self.kad_k}")
        if self.kad_a <= 0:
            raise ConfigurationError(f"kad_a must be positive, got {self.kad_a}")
        if self.cache_strategy is not CacheStrategy.NONE and self.cache_size <= 0:
            raise ConfigurationError(
                f"cache_size must be positive, got {self.cache_size}")

    @property
    def caching(self) -> bool:
        return self.cache_strategy is not CacheStrategy.NONE
