"""Hierarchical (cluster-aware) Kademlia simulator.

Nodes are grouped into clusters; routing tables favour intra-cluster peers
and elect one gateway per cluster for each remote peer.  Every node runs an
iterative STORE / LOOKUP over the XOR metric with an optional FIFO, LRU or
LFU content cache.
"""

from .base import (
    LookupResult,
    StoreResult,
    Topology,
    closest_n,
    distance,
    generate_keys,
    generate_node_ids,
    key_near_node,
)
from .cache import CacheStats, FIFOCache, LFUCache, LRUCache, NullCache, make_cache
from .config import (
    CacheStrategy,
    ClusterAssignmentError,
    ConfigurationError,
    HKademliaError,
    LatencyModel,
    ProtocolConfig,
)
from .metrics import NodeMetrics, TickRecorder
from .protocol import HKademliaNode
from .routing import FlatRoutingTable, HierarchicalRoutingTable, elect_gateway
from .simulation import StoreLookupSimulator, build_network

__all__ = [
    "HKademliaNode",
    "Topology",
    "ProtocolConfig",
    "CacheStrategy",
    "LatencyModel",
    "HKademliaError",
    "ConfigurationError",
    "ClusterAssignmentError",
    "StoreResult",
    "LookupResult",
    "CacheStats",
    "FIFOCache",
    "LRUCache",
    "LFUCache",
    "NullCache",
    "make_cache",
    "FlatRoutingTable",
    "HierarchicalRoutingTable",
    "elect_gateway",
    "NodeMetrics",
    "TickRecorder",
    "StoreLookupSimulator",
    "build_network",
    "distance",
    "closest_n",
    "generate_node_ids",
    "generate_keys",
    "key_near_node",
]
