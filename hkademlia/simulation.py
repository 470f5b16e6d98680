"""Network bootstrap and the STORE/LOOKUP workload driver.

These are the collaborators that sit around the protocol: they assign
clusters round-robin, seed routing tables, and issue a stream of STORE and
LOOKUP requests from random initiators while folding the results into
tick-based metrics.
"""

import logging
import random
import statistics
from dataclasses import dataclass, field
from typing import Optional

from .base import Topology, generate_node_ids, key_near_node
from .config import ProtocolConfig
from .metrics import TickRecorder, ratio
from .protocol import HKademliaNode

logger = logging.getLogger(__name__)

OPERATIONS = ("storelookup", "store", "lookup")


# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------

def assign_clusters(nodes: list[HKademliaNode], num_clusters: int):
    """Round-robin: node *i* joins cluster ``i % num_clusters``."""
    if num_clusters <= 0:
        raise ValueError(f"num_clusters must be positive, got {num_clusters}")
    for i, node in enumerate(nodes):
        node.set_cluster_id(i % num_clusters)


def bootstrap_full(nodes: list[HKademliaNode]):
    """Offer every other node to every node's routing table."""
    for node in nodes:
        for candidate in nodes:
            if candidate is not node:
                node.add_peer(candidate.node_id)


def bootstrap_partial(nodes: list[HKademliaNode], rng: random.Random,
                      fill: float = 0.5):
    """Offer each node a shuffled sample of ``max(1, K * fill)`` others."""
    ids = [n.node_id for n in nodes]
    for node in nodes:
        candidates = [nid for nid in ids if nid != node.node_id]
        rng.shuffle(candidates)
        target = max(1, int(node.config.kad_k * fill))
        for nid in candidates[:target]:
            node.add_peer(nid)


def build_network(num_nodes: int, config: Optional[ProtocolConfig] = None,
                  num_clusters: int = 5, seed: int = 42,
                  bootstrap: str = "full"):
    """Create, cluster and bootstrap *num_nodes* nodes.

    Returns ``(topology, nodes)``.  *bootstrap* is ``"full"`` (everyone is
    offered everyone) or ``"partial"`` (half a bucket of random offers).
    """
    config = config if config is not None else ProtocolConfig()
    topology = Topology()
    nodes = []
    for nid in generate_node_ids(num_nodes, seed=seed):
        node = HKademliaNode(nid, topology, config)
        topology.register(node)
        nodes.append(node)

    assign_clusters(nodes, num_clusters)
    if bootstrap == "full":
        bootstrap_full(nodes)
    elif bootstrap == "partial":
        bootstrap_partial(nodes, random.Random(seed))
    else:
        raise ValueError(f"unknown bootstrap mode {bootstrap!r}")

    logger.info("built network: %d nodes, %d clusters, mean k-bucket %.1f",
                num_nodes, num_clusters,
                statistics.mean(n.kbucket_size() for n in nodes) if nodes else 0)
    return topology, nodes


# ---------------------------------------------------------------------------
# Workload
# ---------------------------------------------------------------------------

@dataclass
class SimulationReport:
    recorder: TickRecorder
    store_requests: int = 0
    lookup_requests: int = 0
    successful_lookups: int = 0
    lookup_hops: list[int] = field(default_factory=list)
    lookup_latencies: list[int] = field(default_factory=list)

    @property
    def avg_lookup_hops(self) -> float:
        return ratio(sum(self.lookup_hops), len(self.lookup_hops))

    @property
    def avg_lookup_latency(self) -> float:
        return ratio(sum(self.lookup_latencies), len(self.lookup_latencies))

    @property
    def lookup_success_rate(self) -> float:
        return ratio(self.successful_lookups, self.lookup_requests)


class StoreLookupSimulator:
    """Issues STORE and/or LOOKUP requests from random initiators.

    Each request picks an initiator uniformly, STOREs a key inside the
    initiator's XOR neighbourhood and LOOKUPs a previously stored key.
    Every *tick_size* requests the recorder closes a tick row.
    """

    def __init__(self, nodes: list[HKademliaNode], rng: random.Random,
                 operation: str = "storelookup", proximity_bits: int = 8):
        if operation not in OPERATIONS:
            raise ValueError(f"operation must be one of {OPERATIONS}, "
                             f"got {operation!r}")
        if not nodes:
            raise ValueError("simulator needs at least one node")
        self.nodes = nodes
        self.rng = rng
        self.operation = operation
        self.proximity_bits = proximity_bits
        self.stored_keys: list[int] = []

    def avg_kbucket_size(self) -> float:
        return statistics.mean(n.kbucket_size() for n in self.nodes)

    def run(self, total_requests: int, tick_size: int) -> SimulationReport:
        if tick_size <= 0:
            raise ValueError(f"tick_size must be positive, got {tick_size}")
        report = SimulationReport(TickRecorder())
        recorder = report.recorder

        for i in range(1, total_requests + 1):
            initiator = self.rng.choice(self.nodes)

            if self.operation in ("storelookup", "store"):
                key = key_near_node(initiator.node_id, self.rng,
                                    self.proximity_bits)
                recorder.record_store(initiator.execute_store(key))
                self.stored_keys.append(key)
                report.store_requests += 1

            if self.operation in ("storelookup", "lookup") and self.stored_keys:
                key = self.rng.choice(self.stored_keys)
                result = initiator.execute_lookup(key)
                recorder.record_lookup(result)
                report.lookup_requests += 1
                if result.success:
                    report.successful_lookups += 1
                    report.lookup_hops.append(result.hops)
                    report.lookup_latencies.append(result.latency)

            if i % tick_size == 0:
                recorder.close_tick(self.avg_kbucket_size())

        if recorder.pending:
            recorder.close_tick(self.avg_kbucket_size())
        return report
