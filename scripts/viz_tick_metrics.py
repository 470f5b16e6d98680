"""H-Kademlia tick-metrics visualization tool.

Runs the STORE/LOOKUP workload for each routing/cache variant, collects the
per-tick reports and produces static plots: store hops and latency per
tick, inter/intra-cluster message ratios, routing-table size distribution
and cache hit ratio per variant.

Run from project root:
    python scripts/viz_tick_metrics.py

Output: figures/*.png (created in ./figures/)
"""

import os
import random
import sys

# Run from project root so hkademlia is on path
if __name__ == "__main__":
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from hkademlia import ProtocolConfig, StoreLookupSimulator, build_network
from hkademlia.metrics import ratio

sns.set_theme(style="whitegrid", font_scale=1.1)

# ---------------------------------------------------------------------------
# Config (aligned with benchmark.py)
# ---------------------------------------------------------------------------
NUM_NODES = 100
NUM_CLUSTERS = 5
KAD_K = 20
KAD_A = 3
CACHE_SIZE = 50
TOTAL_REQUESTS = 3000
TICK_SIZE = 300
FIGURES_DIR = "figures"

VARIANTS = {
    "Kademlia": dict(hierarchical=False, cache_strategy="none"),
    "H-Kademlia": dict(cache_strategy="none"),
    "H-Kademlia-FIFO": dict(cache_strategy="fifo"),
    "H-Kademlia-LRU": dict(cache_strategy="lru"),
    "H-Kademlia-LFU": dict(cache_strategy="lfu"),
}


def run_variants(seed: int = 42):
    """Run every variant; return name -> {report, kbuckets, hit_ratio}."""
    runs = {}
    for name, overrides in VARIANTS.items():
        config = ProtocolConfig(kad_k=KAD_K, kad_a=KAD_A, cache_size=CACHE_SIZE,
                                **overrides)
        _, nodes = build_network(NUM_NODES, config, NUM_CLUSTERS, seed=seed)
        report = StoreLookupSimulator(nodes, random.Random(seed)).run(
            TOTAL_REQUESTS, TICK_SIZE)
        hits = sum(n.cache_stats().hits for n in nodes)
        requests = sum(n.cache_stats().requests for n in nodes)
        runs[name] = {
            "report": report,
            "kbuckets": np.array([n.kbucket_size() for n in nodes]),
            "hit_ratio": ratio(hits, requests),
        }
    return runs


# ---------------------------------------------------------------------------
# Plot 1: store hops and latency per tick
# ---------------------------------------------------------------------------
def plot_store_ticks(runs: dict, out_path: str):
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(11, 4))
    for idx, (name, run) in enumerate(runs.items()):
        rows = run["report"].recorder.store_rows
        ticks = np.array([r.tick for r in rows])
        ax1.plot(ticks, [r.avg_store_hops for r in rows], "o-", color=f"C{idx}",
                 label=name)
        ax2.plot(ticks, [r.avg_store_latency_ms for r in rows], "o-",
                 color=f"C{idx}", label=name)
    ax1.set_xlabel("Tick")
    ax1.set_ylabel("Mean STORE hops")
    ax2.set_xlabel("Tick")
    ax2.set_ylabel("Mean STORE latency (ms)")
    ax1.set_title("STORE rounds per tick")
    ax2.set_title("STORE latency per tick")
    ax2.legend(fontsize=8)
    fig.tight_layout()
    fig.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close(fig)


# ---------------------------------------------------------------------------
# Plot 2: inter/intra-cluster message ratios per tick
# ---------------------------------------------------------------------------
def plot_cluster_ratios(runs: dict, out_path: str):
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(11, 4), sharey=True)
    for idx, (name, run) in enumerate(runs.items()):
        rows = run["report"].recorder.cluster_rows
        ticks = np.array([r.tick for r in rows])
        ax1.plot(ticks, [r.store_inter_to_intra for r in rows], "o-",
                 color=f"C{idx}", label=name)
        ax2.plot(ticks, [r.lookup_inter_to_intra for r in rows], "o-",
                 color=f"C{idx}", label=name)
    ax1.set_title("STORE inter/intra-cluster messages")
    ax2.set_title("LOOKUP inter/intra-cluster messages")
    for ax in (ax1, ax2):
        ax.set_xlabel("Tick")
    ax1.set_ylabel("Inter / intra ratio")
    ax2.legend(fontsize=8)
    fig.tight_layout()
    fig.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close(fig)


# ---------------------------------------------------------------------------
# Plot 3: routing-table size distribution
# ---------------------------------------------------------------------------
def plot_kbuckets(runs: dict, out_path: str):
    names = list(runs)
    fig, ax = plt.subplots(figsize=(7, 4))
    ax.boxplot([runs[n]["kbuckets"] for n in names], tick_labels=names)
    ax.axhline(KAD_K, color="gray", linestyle="--", linewidth=1,
               label=f"k = {KAD_K}")
    ax.set_ylabel("Routing-table entries")
    ax.set_title(f"K-bucket size per node (N={NUM_NODES})")
    ax.legend()
    plt.setp(ax.get_xticklabels(), rotation=20, ha="right")
    fig.tight_layout()
    fig.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close(fig)


# ---------------------------------------------------------------------------
# Plot 4: cache hit ratio per variant
# ---------------------------------------------------------------------------
def plot_hit_ratio(runs: dict, out_path: str):
    names = list(runs)
    values = np.array([runs[n]["hit_ratio"] for n in names]) * 100
    fig, ax = plt.subplots(figsize=(7, 4))
    ax.bar(np.arange(len(names)), values, color="steelblue",
           edgecolor="navy", alpha=0.8)
    ax.set_xticks(np.arange(len(names)))
    ax.set_xticklabels(names, rotation=20, ha="right")
    ax.set_ylabel("Cache hit ratio (%)")
    ax.set_title("Local cache hit ratio")
    fig.tight_layout()
    fig.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close(fig)


def main():
    os.makedirs(FIGURES_DIR, exist_ok=True)
    print("Running H-Kademlia workload for each variant...")
    runs = run_variants()
    print(f"  Collected {len(runs)} runs.")

    base = os.path.join(FIGURES_DIR, "hkademlia")
    print("Generating plots...")
    plot_store_ticks(runs, f"{base}_store_ticks.png")
    print(f"  Saved {base}_store_ticks.png")
    plot_cluster_ratios(runs, f"{base}_cluster_ratios.png")
    print(f"  Saved {base}_cluster_ratios.png")
    plot_kbuckets(runs, f"{base}_kbuckets.png")
    print(f"  Saved {base}_kbuckets.png")
    plot_hit_ratio(runs, f"{base}_hit_ratio.png")
    print(f"  Saved {base}_hit_ratio.png")
    print("Done.")


if __name__ == "__main__":
    main()
