"""Identity, distance and the peer directory for the H-Kademlia simulator.

Provides the XOR metric over 64-bit identifiers, the ``Topology`` peer
directory through which nodes reach each other, the result records of the
STORE / LOOKUP operations, and helpers for generating deterministic node
IDs, content keys and workload keys.
"""

import hashlib
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Optional

if TYPE_CHECKING:
    from .protocol import HKademliaNode

ID_BITS = 64
ID_SPACE = 2 ** ID_BITS
ID_MASK = ID_SPACE - 1


@dataclass
class StoreResult:
    """Outcome of an iterative STORE."""
    hops: int
    latency: int
    receivers: int
    intra_cluster_messages: int
    inter_cluster_messages: int


@dataclass
class LookupResult:
    """Outcome of an iterative LOOKUP."""
    success: bool
    hops: int
    latency: int
    intra_cluster_messages: int
    inter_cluster_messages: int


# ---------------------------------------------------------------------------
# XOR metric
# ---------------------------------------------------------------------------

def distance(a: int, b: int) -> int:
    """Kademlia distance: ``a XOR b`` as an unsigned 64-bit magnitude."""
    return (a ^ b) & ID_MASK


def closest_n(candidates: Iterable[int], target: int, n: int) -> list[int]:
    """Return the *n* candidates closest to *target*.

    Ties are broken by NodeId ascending so the result is deterministic.
    Duplicate candidates collapse to a single entry.
    """
    if n <= 0:
        return []
    ranked = sorted(set(candidates), key=lambda c: (distance(c, target), c))
    return ranked[:n]


def check_id(value: int, what: str = "id") -> int:
    if not isinstance(value, int) or not 0 <= value < ID_SPACE:
        raise ValueError(f"{what} must be an integer in [0, 2**{ID_BITS}), "
                         f"got {value!r}")
    return value


# ---------------------------------------------------------------------------
# Peer directory
# ---------------------------------------------------------------------------

class Topology:
    """In-process peer directory for H-Kademlia nodes.

    All nodes live in the same Python process and interact via their
    public methods.  The topology only maps a NodeId to the node instance;
    it is handed to every node explicitly instead of being looked up
    globally.
    """

    def __init__(self):
        self._nodes: dict[int, Any] = {}

    def register(self, node: "HKademliaNode"):
        self._nodes[node.node_id] = node

    def unregister(self, node_id: int):
        self._nodes.pop(node_id, None)

    def resolve(self, node_id: int) -> Optional["HKademliaNode"]:
        """Return the node for *node_id*, or ``None`` if it is not live."""
        return self._nodes.get(node_id)

    def all_node_ids(self) -> list[int]:
        return list(self._nodes)

    def nodes(self) -> list["HKademliaNode"]:
        return list(self._nodes.values())

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self._nodes


# ---------------------------------------------------------------------------
# Deterministic ID / key generators (for reproducible runs)
# ---------------------------------------------------------------------------

def generate_node_ids(count: int, id_bits: int = ID_BITS,
                      seed: int = 42) -> list[int]:
    """Return *count* well-distributed, deterministic node IDs."""
    ids: set[int] = set()
    i = 0
    while len(ids) < count:
        h = hashlib.sha1(f"node-{seed}-{i}".encode()).hexdigest()
        ids.add(int(h, 16) % (2 ** id_bits))
        i += 1
    return sorted(ids)[:count]


def generate_keys(count: int, id_bits: int = ID_BITS,
                  seed: int = 123) -> list[int]:
    """Return *count* deterministic content keys."""
    keys: set[int] = set()
    i = 0
    while len(keys) < count:
        h = hashlib.sha1(f"key-{seed}-{i}".encode()).hexdigest()
        keys.add(int(h, 16) % (2 ** id_bits))
        i += 1
    return sorted(keys)[:count]


def key_near_node(node_id: int, rng: random.Random,
                  proximity_bits: int = 8) -> int:
    """Return a content key inside *node_id*'s XOR neighbourhood.

    Only the low *proximity_bits* bits differ from the node id, so the
    key's distance to the node is below ``2**proximity_bits``.
    """
    offset = rng.getrandbits(proximity_bits) if proximity_bits > 0 else 0
    return (node_id ^ offset) & ID_MASK
