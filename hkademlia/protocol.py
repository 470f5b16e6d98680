"""H-Kademlia node: routing, iterative STORE / LOOKUP and local caching.

One configurable class covers the flat and hierarchical variants, every
cache strategy and both latency models (see ``ProtocolConfig``).

Key properties
--------------
- XOR metric over 64-bit ids; peers ordered by (distance, NodeId)
- Iterative search in rounds of up to ``kad_a`` peers; one hop per round
- STORE deposits on the ``kad_k`` closest peers found at the fixed point
- LOOKUP short-circuits on the local cache, then the local store, then
  stops at the first contacted peer holding the content
- Nodes only interact through each other's public methods, reached via
  the ``Topology``
"""

import heapq
import logging
import random
from typing import Any, Optional

from .base import (ID_BITS, LookupResult, StoreResult, Topology, check_id,
                   distance, closest_n)
from .cache import CacheStats, make_cache
from .config import ClusterAssignmentError, ProtocolConfig
from .latency import contact_latency
from .metrics import NodeMetrics
from .routing import make_routing_table

logger = logging.getLogger(__name__)

_MISSING = object()


def content_payload(content_id: int) -> str:
    return f"content-{content_id:016x}"


class HKademliaNode:

    def __init__(self, node_id: int, topology: Topology,
                 config: Optional[ProtocolConfig] = None,
                 rng: Optional[random.Random] = None):
        self.node_id = check_id(node_id, "node_id")
        self.topology = topology
        self.config = config if config is not None else ProtocolConfig()
        self.rng = rng if rng is not None else random.Random(
            (self.config.seed << ID_BITS) | node_id)

        self._cluster_id = 0
        self._cluster_assigned = False

        self.routing_table = make_routing_table(
            node_id, self.config.kad_k, topology, self._cluster_of,
            hierarchical=self.config.hierarchical)
        self.local_store: set[int] = set()
        self.cache = make_cache(self.config.cache_strategy,
                                self.config.cache_size)
        self.content_origin_cluster: dict[int, int] = {}
        self.metrics = NodeMetrics()

    def __repr__(self):
        return (f"HKademliaNode(id={self.node_id:#018x}, "
                f"cluster={self._cluster_id}, peers={len(self.routing_table)})")

    # ------------------------------------------------------------------
    # Cluster membership
    # ------------------------------------------------------------------

    def set_cluster_id(self, cluster_id: int):
        if self._cluster_assigned and cluster_id != self._cluster_id:
            raise ClusterAssignmentError(
                f"node {self.node_id} already belongs to cluster "
                f"{self._cluster_id}, cannot move it to {cluster_id}")
        self._cluster_id = cluster_id
        self._cluster_assigned = True

    def get_cluster_id(self) -> int:
        return self._cluster_id

    @property
    def cluster_id(self) -> int:
        return self._cluster_id

    def _cluster_of(self, node_id: int) -> Optional[int]:
        if node_id == self.node_id:
            return self._cluster_id
        peer = self.topology.resolve(node_id)
        return None if peer is None else peer.get_cluster_id()

    # ------------------------------------------------------------------
    # Routing table
    # ------------------------------------------------------------------

    def add_peer(self, candidate: int) -> bool:
        """Offer *candidate* to the routing table; returns whether it is held."""
        return self.routing_table.add(candidate)

    def remove_peer(self, peer: int) -> bool:
        return self.routing_table.remove(peer)

    def kbucket_size(self) -> int:
        return len(self.routing_table)

    # ------------------------------------------------------------------
    # Peer-facing calls (the only way nodes touch each other)
    # ------------------------------------------------------------------

    def find_closest_peers(self, target: int, count: int) -> list[int]:
        """FIND_NODE: up to *count* known peers closest to *target*."""
        return self.routing_table.closest(target, count)

    closest_peers = find_closest_peers

    def holds_content(self, content_id: int) -> bool:
        """Whether *content_id* is in the local store or cache (no stats)."""
        return content_id in self.local_store or self.cache.contains(content_id)

    def has_stored(self, content_id: int) -> bool:
        return content_id in self.local_store

    def accept_store(self, content_id: int, origin_cluster: int):
        """STORE deposit from a remote initiator."""
        self.local_store.add(content_id)
        self.register_content_origin(content_id, origin_cluster)
        if self.config.cache_deposits:
            self.store_in_cache(content_id)

    # ------------------------------------------------------------------
    # Iterative search helpers
    # ------------------------------------------------------------------

    def _next_round(self, queue: list, contacted: set[int]) -> list[int]:
        """Pop up to alpha not-yet-contacted peers, nearest first."""
        active = []
        while queue and len(active) < self.config.kad_a:
            _, peer = heapq.heappop(queue)
            if peer not in contacted:
                contacted.add(peer)
                active.append(peer)
        return active

    def _resolve_peer(self, peer_id: int):
        peer = self.topology.resolve(peer_id)
        if peer is None:
            logger.warning("node %d: peer %d is unreachable, skipping",
                           self.node_id, peer_id)
        return peer

    def _is_live(self, peer_id: int, unreachable: set[int]) -> bool:
        """Resolve *peer_id* once per search, remembering dead peers."""
        if peer_id in unreachable:
            return False
        if self._resolve_peer(peer_id) is None:
            unreachable.add(peer_id)
            return False
        return True

    # ------------------------------------------------------------------
    # STORE
    # ------------------------------------------------------------------

    def execute_store(self, content_id: int) -> StoreResult:
        check_id(content_id, "content_id")
        k = self.config.kad_k
        source_cluster = self._cluster_id

        self.local_store.add(content_id)
        self.register_content_origin(content_id, source_cluster)
        if self.config.cache_on_store:
            self.store_in_cache(content_id)

        unreachable = set()
        closest = [p for p in self.routing_table.closest(content_id, k)
                   if self._is_live(p, unreachable)]
        queue = [(distance(p, content_id), p) for p in closest]
        heapq.heapify(queue)
        queued = set(closest)
        contacted = {self.node_id}

        hops = 0
        latency = 0
        intra = inter = 0
        changed = True

        # Dead peers never enter the candidate set; while they leave it
        # short of K the search keeps draining the queue to backfill.
        while queue and (changed or (unreachable and len(closest) < k)):
            changed = False
            active = self._next_round(queue, contacted)
            if not active:
                break
            hops += 1

            reachable = [self.topology.resolve(peer_id) for peer_id in active]
            latency += max(
                contact_latency(self.config, self.rng, source_cluster,
                                peer.get_cluster_id())
                for peer in reachable)

            for peer in reachable:
                if peer.get_cluster_id() == source_cluster:
                    intra += 1
                else:
                    inter += 1

                before = set(closest)
                for neighbor in peer.find_closest_peers(content_id, k):
                    if neighbor == self.node_id or neighbor in before:
                        continue
                    if not self._is_live(neighbor, unreachable):
                        continue
                    if neighbor not in queued and neighbor not in contacted:
                        heapq.heappush(queue,
                                       (distance(neighbor, content_id), neighbor))
                        queued.add(neighbor)
                    closest.append(neighbor)
                closest = closest_n(closest, content_id, k)
                if set(closest) != before:
                    changed = True

        for peer_id in closest:
            peer = self.topology.resolve(peer_id)
            if peer.get_cluster_id() == source_cluster:
                intra += 1
            else:
                inter += 1
            peer.accept_store(content_id, source_cluster)
            logger.debug("node %d stored content %d on peer %d",
                         self.node_id, content_id, peer_id)

        result = StoreResult(hops=hops, latency=latency,
                             receivers=len(closest),
                             intra_cluster_messages=intra,
                             inter_cluster_messages=inter)
        self.metrics.record_store(result)
        return result

    # ------------------------------------------------------------------
    # LOOKUP
    # ------------------------------------------------------------------

    def execute_lookup(self, content_id: int) -> LookupResult:
        check_id(content_id, "content_id")

        if self.search_cache(content_id, _MISSING) is not _MISSING:
            logger.debug("node %d: cache hit for content %d",
                         self.node_id, content_id)
            self.metrics.local_cache_hits += 1
            return self._finish_lookup(LookupResult(True, 0, 0, 0, 0))
        if content_id in self.local_store:
            self.metrics.local_store_hits += 1
            return self._finish_lookup(LookupResult(True, 0, 0, 0, 0))

        k = self.config.kad_k
        source_cluster = self._cluster_id
        seeds = self.routing_table.closest(content_id, k)
        queue = [(distance(p, content_id), p) for p in seeds]
        heapq.heapify(queue)
        seen = set(seeds)
        seen.add(self.node_id)
        contacted = {self.node_id}

        hops = 0
        latency = 0
        intra = inter = 0
        success = False

        while queue and not success:
            active = self._next_round(queue, contacted)
            if not active:
                break
            hops += 1
            for peer_id in active:
                peer = self._resolve_peer(peer_id)
                if peer is None:
                    continue
                peer_cluster = peer.get_cluster_id()
                if peer_cluster == source_cluster:
                    intra += 1
                else:
                    inter += 1
                latency += contact_latency(self.config, self.rng,
                                           source_cluster, peer_cluster)
                if peer.holds_content(content_id):
                    success = True
                    break
                for neighbor in peer.find_closest_peers(content_id, k):
                    if neighbor not in seen:
                        seen.add(neighbor)
                        heapq.heappush(queue,
                                       (distance(neighbor, content_id), neighbor))

        if success and self.config.cache_lookup_results:
            self.store_in_cache(content_id)
        return self._finish_lookup(
            LookupResult(success, hops, latency, intra, inter))

    def _finish_lookup(self, result: LookupResult) -> LookupResult:
        self.metrics.record_lookup(result)
        return result

    # ------------------------------------------------------------------
    # Content cache
    # ------------------------------------------------------------------

    def store_in_cache(self, content_id: int, content: Any = None):
        if content is None:
            content = content_payload(content_id)
        self.cache.put(content_id, content)

    def search_cache(self, content_id: int, default: Any = None) -> Any:
        """Cache read that counts a hit or a miss."""
        return self.cache.get(content_id, default)

    def is_cached(self, content_id: int) -> bool:
        return self.cache.contains(content_id)

    def clear_cache(self):
        self.cache.clear()

    def cache_stats(self) -> CacheStats:
        stats = self.cache.stats()
        if self.config.count_store_hits_as_cache_hits:
            # each local-store answer followed exactly one cache miss
            moved = min(self.metrics.local_store_hits, stats.misses)
            stats.hits += moved
            stats.misses -= moved
        return stats

    # ------------------------------------------------------------------
    # Content origin (metrics only)
    # ------------------------------------------------------------------

    def register_content_origin(self, content_id: int, cluster_id: int):
        self.content_origin_cluster[content_id] = cluster_id

    def get_content_origin_cluster(self, content_id: int) -> Optional[int]:
        return self.content_origin_cluster.get(content_id)

    # ------------------------------------------------------------------
    # Metric accessors
    # ------------------------------------------------------------------

    @property
    def intra_cluster_store(self) -> int:
        return self.metrics.intra_cluster_store

    @property
    def inter_cluster_store(self) -> int:
        return self.metrics.inter_cluster_store

    @property
    def intra_cluster_lookup(self) -> int:
        return self.metrics.intra_cluster_lookup

    @property
    def inter_cluster_lookup(self) -> int:
        return self.metrics.inter_cluster_lookup
