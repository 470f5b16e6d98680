"""Unit tests for the XOR metric, the peer directory and the generators.

Run:  pytest tests/ -v
"""

import random

import pytest

from hkademlia.base import (ID_SPACE, Topology, check_id, closest_n, distance,
                            generate_keys, generate_node_ids, key_near_node)
from hkademlia.protocol import HKademliaNode


# ──────────────────────────────────────────────────────────────────────
# 1. XOR distance
# ──────────────────────────────────────────────────────────────────────

def test_distance_is_symmetric():
    ids = generate_node_ids(40)
    for a in ids:
        for b in ids:
            assert distance(a, b) == distance(b, a)


def test_distance_zero_iff_equal():
    ids = generate_node_ids(40)
    for a in ids:
        assert distance(a, a) == 0
        for b in ids:
            if a != b:
                assert distance(a, b) > 0


def test_distance_is_unsigned_64_bit():
    top = ID_SPACE - 1
    assert distance(top, 0) == top
    assert distance(top, top) == 0
    assert distance(1 << 63, 0) == 1 << 63


# ──────────────────────────────────────────────────────────────────────
# 2. closest_n
# ──────────────────────────────────────────────────────────────────────

def test_closest_n_orders_by_distance():
    assert closest_n([8, 1, 3, 12, 6], target=0, n=3) == [1, 3, 6]
    assert closest_n([8, 1, 3, 12, 6], target=9, n=2) == [8, 12]


def test_closest_n_collapses_duplicates():
    assert closest_n([5, 5, 4, 4, 7], target=4, n=10) == [4, 5, 7]


def test_closest_n_edge_sizes():
    assert closest_n([1, 2, 3], target=0, n=0) == []
    assert closest_n([], target=0, n=5) == []
    assert closest_n([3, 1, 2], target=0, n=10) == [1, 2, 3]


def test_closest_n_matches_brute_force():
    ids = generate_node_ids(60)
    for key in generate_keys(20):
        expected = sorted(ids, key=lambda nid: nid ^ key)[:7]
        assert closest_n(ids, key, 7) == expected


def test_check_id_rejects_out_of_range():
    assert check_id(0) == 0
    assert check_id(ID_SPACE - 1) == ID_SPACE - 1
    with pytest.raises(ValueError):
        check_id(-1)
    with pytest.raises(ValueError):
        check_id(ID_SPACE)


# ──────────────────────────────────────────────────────────────────────
# 3. Topology (peer directory)
# ──────────────────────────────────────────────────────────────────────

def test_topology_register_resolve_unregister():
    topology = Topology()
    nodes = [HKademliaNode(nid, topology) for nid in (30, 10, 20)]
    for node in nodes:
        topology.register(node)

    assert topology.node_count == 3
    assert topology.all_node_ids() == [30, 10, 20]
    assert topology.resolve(10) is nodes[1]
    assert 20 in topology

    topology.unregister(10)
    assert topology.resolve(10) is None
    assert 10 not in topology
    topology.unregister(10)   # unknown ids are ignored
    assert topology.node_count == 2


def test_resolve_unknown_is_none():
    assert Topology().resolve(1234) is None


# ──────────────────────────────────────────────────────────────────────
# 4. Generators
# ──────────────────────────────────────────────────────────────────────

def test_generators_are_deterministic_and_in_range():
    assert generate_node_ids(25) == generate_node_ids(25)
    assert generate_keys(25) == generate_keys(25)
    assert generate_node_ids(25, seed=1) != generate_node_ids(25, seed=2)
    ids = generate_node_ids(100)
    assert len(set(ids)) == 100
    assert all(0 <= nid < ID_SPACE for nid in ids)


def test_key_near_node_stays_in_neighbourhood():
    rng = random.Random(3)
    for nid in generate_node_ids(20):
        for bits in (0, 4, 8):
            key = key_near_node(nid, rng, bits)
            assert distance(key, nid) < 2 ** bits
