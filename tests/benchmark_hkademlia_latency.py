"""STORE cost benchmark with simulated latency.

Builds flat and hierarchical networks at increasing N, issues STOREs from
random initiators and checks that the mean number of rounds (hops) stays
within O(log N), and that the simulated latency stays within the per-round
bounds of the latency model.

Run:  python -m pytest tests/benchmark_hkademlia_latency.py -v -s
"""

import math
import random
import statistics

import pytest

from hkademlia.base import generate_keys
from hkademlia.config import ProtocolConfig
from hkademlia.simulation import build_network

STORES_PER_N = 100
NUM_CLUSTERS = 5
# O(log N) bound: mean_hops <= COEF * log2(N)
COEF = 2.5


def run_stores(num_nodes: int, hierarchical: bool, latency_model: str):
    config = ProtocolConfig(kad_k=20, kad_a=3, cache_strategy="none",
                            hierarchical=hierarchical,
                            latency_model=latency_model)
    _, nodes = build_network(num_nodes, config, NUM_CLUSTERS)
    results = []
    for key in generate_keys(STORES_PER_N):
        initiator = random.Random(key).choice(nodes)
        results.append(initiator.execute_store(key))
    return results


@pytest.mark.parametrize("hierarchical", [False, True], ids=["flat", "hier"])
@pytest.mark.parametrize("n", [20, 50, 100])
def test_store_hops_olog_n(n: int, hierarchical: bool):
    """Mean STORE rounds must scale as O(log N)."""
    results = run_stores(n, hierarchical, "unit")
    hops = [r.hops for r in results]
    mean_hops = statistics.mean(hops)
    upper_bound = COEF * math.log2(n)

    print(f"\n  N={n:3d}:  mean_hops={mean_hops:.2f}  "
          f"log2(N)={math.log2(n):.2f}  bound={upper_bound:.1f}  "
          f"max={max(hops)}")

    assert mean_hops <= upper_bound, (
        f"N={n}: mean STORE hops {mean_hops:.2f} "
        f"exceeds {COEF}*log2(N) = {upper_bound:.1f}"
    )
    # unit model: one unit per round
    assert all(r.latency == r.hops for r in results)
    assert all(0 < r.receivers <= 20 for r in results)


@pytest.mark.parametrize("n", [20, 50, 100])
def test_cluster_latency_within_round_bounds(n: int):
    results = run_stores(n, True, "cluster")
    for r in results:
        assert 5 * r.hops <= r.latency <= 39 * r.hops

    mean_latency = statistics.mean(r.latency for r in results)
    print(f"\n  N={n:3d}:  mean_latency={mean_latency:.1f}ms")
