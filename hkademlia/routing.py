"""K-bucket routing tables.

Two admission policies share one interface:

- ``FlatRoutingTable``: plain Kademlia, admits everyone and keeps the K
  peers closest to the owner's own id.
- ``HierarchicalRoutingTable``: H-Kademlia.  Same-cluster peers are always
  admitted and make redundant cross-cluster entries obsolete; a
  cross-cluster peer is admitted only by the one node of the owner's
  cluster that is XOR-closest to it (the gateway).

Tables hold NodeIds only; nodes are reached through the ``Topology``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Iterator, Optional

from .base import Topology, closest_n, distance
from .config import ConfigurationError

logger = logging.getLogger(__name__)

ClusterOf = Callable[[int], Optional[int]]


class RoutingTable(ABC):

    def __init__(self, owner_id: int, capacity: int):
        if capacity <= 0:
            raise ConfigurationError(
                f"routing table capacity must be positive, got {capacity}")
        self.owner_id = owner_id
        self.capacity = capacity
        self._peers: dict[int, None] = {}   # insertion-ordered set

    @abstractmethod
    def add(self, candidate: int) -> bool:
        """Offer *candidate* to the table.  Returns whether it is a member."""
        ...

    def remove(self, peer: int) -> bool:
        if peer not in self._peers:
            return False
        del self._peers[peer]
        return True

    def closest(self, target: int, count: int) -> list[int]:
        return closest_n(self._peers, target, count)

    @property
    def peers(self) -> list[int]:
        return list(self._peers)

    def __contains__(self, peer: int) -> bool:
        return peer in self._peers

    def __len__(self) -> int:
        return len(self._peers)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._peers))

    def _keep(self, members: Iterable[int]):
        keep = set(members)
        self._peers = {p: None for p in self._peers if p in keep}


class FlatRoutingTable(RoutingTable):

    def add(self, candidate: int) -> bool:
        if candidate == self.owner_id:
            return False
        self._peers[candidate] = None
        if len(self._peers) > self.capacity:
            self._keep(closest_n(self._peers, self.owner_id, self.capacity))
        return candidate in self._peers


def elect_gateway(topology: Topology, cluster_of: ClusterOf, cluster_id: int,
                  target: int, extra: Iterable[int] = ()) -> Optional[int]:
    """Return the member of *cluster_id* XOR-closest to *target*.

    Members are every live node of the cluster plus *extra*; ties go to the
    lower NodeId.  Returns ``None`` for an empty cluster.
    """
    members = [nid for nid in topology.all_node_ids()
               if cluster_of(nid) == cluster_id]
    members.extend(extra)
    best = closest_n(members, target, 1)
    return best[0] if best else None


class HierarchicalRoutingTable(RoutingTable):

    def __init__(self, owner_id: int, capacity: int, topology: Topology,
                 cluster_of: ClusterOf):
        super().__init__(owner_id, capacity)
        self.topology = topology
        self._cluster_of = cluster_of

    @property
    def own_cluster(self) -> Optional[int]:
        return self._cluster_of(self.owner_id)

    def is_local(self, peer: int) -> bool:
        return self._cluster_of(peer) == self.own_cluster

    def gateway_for(self, target: int) -> Optional[int]:
        return elect_gateway(self.topology, self._cluster_of, self.own_cluster,
                             target, extra=(self.owner_id,))

    def add(self, candidate: int) -> bool:
        if candidate == self.owner_id:
            return False
        candidate_cluster = self._cluster_of(candidate)
        if candidate_cluster is None:
            logger.warning("node %d: cannot admit unreachable peer %d",
                           self.owner_id, candidate)
            return False

        own = self.own_cluster
        if candidate_cluster == own:
            self._peers[candidate] = None
            self._purge_gateways(candidate)
        elif self.gateway_for(candidate) == self.owner_id:
            self._peers[candidate] = None
        else:
            return False

        if len(self._peers) > self.capacity:
            self._trim()
        return candidate in self._peers

    def _purge_gateways(self, local_peer: int):
        """Drop cross-cluster entries made redundant by *local_peer*."""
        own_distance = distance(self.owner_id, local_peer)
        own = self.own_cluster
        for other in list(self._peers):
            other_cluster = self._cluster_of(other)
            if other_cluster is None or other_cluster == own:
                continue
            if distance(other, local_peer) > own_distance:
                del self._peers[other]

    def _trim(self):
        # Remote entries go first, each group farthest-from-owner first.
        own = self.own_cluster
        ranked = sorted(
            self._peers,
            key=lambda p: (self._cluster_of(p) != own,
                           distance(p, self.owner_id), p))
        self._keep(ranked[:self.capacity])


def make_routing_table(owner_id: int, capacity: int, topology: Topology,
                       cluster_of: ClusterOf,
                       hierarchical: bool = True) -> RoutingTable:
    if hierarchical:
        return HierarchicalRoutingTable(owner_id, capacity, topology,
                                        cluster_of)
    return FlatRoutingTable(owner_id, capacity)
