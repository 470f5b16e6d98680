"""H-Kademlia strategy comparison benchmark.

Runs the STORE/LOOKUP workload against flat Kademlia and hierarchical
H-Kademlia with each cache strategy, prints a formatted report and writes
the per-tick CSV reports to ``results/``.

Usage
-----
    python benchmark.py
"""

import logging
import os
import random
import statistics
import time

from hkademlia import ProtocolConfig, StoreLookupSimulator, build_network
from hkademlia.metrics import ratio

NUM_CLUSTERS = 5
KAD_K = 20
KAD_A = 3
CACHE_SIZE = 50
TOTAL_REQUESTS = 3000
TICK_SIZE = 300
RESULTS_DIR = "results"

VARIANTS = {
    "Kademlia":        ProtocolConfig(kad_k=KAD_K, kad_a=KAD_A, hierarchical=False,
                                      cache_strategy="none"),
    "Kademlia-LFU":    ProtocolConfig(kad_k=KAD_K, kad_a=KAD_A, hierarchical=False,
                                      cache_strategy="lfu", cache_size=CACHE_SIZE),
    "H-Kademlia":      ProtocolConfig(kad_k=KAD_K, kad_a=KAD_A, cache_strategy="none"),
    "H-Kademlia-FIFO": ProtocolConfig(kad_k=KAD_K, kad_a=KAD_A,
                                      cache_strategy="fifo", cache_size=CACHE_SIZE),
    "H-Kademlia-LRU":  ProtocolConfig(kad_k=KAD_K, kad_a=KAD_A,
                                      cache_strategy="lru", cache_size=CACHE_SIZE),
    "H-Kademlia-LFU":  ProtocolConfig(kad_k=KAD_K, kad_a=KAD_A,
                                      cache_strategy="lfu", cache_size=CACHE_SIZE),
}


# ──────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────

def run_variant(config, num_nodes, seed=42, bootstrap="full"):
    _, nodes = build_network(num_nodes, config, NUM_CLUSTERS, seed=seed,
                             bootstrap=bootstrap)
    sim = StoreLookupSimulator(nodes, random.Random(seed))
    t0 = time.perf_counter()
    report = sim.run(TOTAL_REQUESTS, TICK_SIZE)
    elapsed = time.perf_counter() - t0
    return nodes, report, elapsed


def summarize(nodes, report):
    rows = report.recorder.store_rows
    cache_hits = sum(n.cache_stats().hits for n in nodes)
    cache_requests = sum(n.cache_stats().requests for n in nodes)
    return {
        "store_hops": statistics.mean(r.avg_store_hops for r in rows),
        "store_latency": statistics.mean(r.avg_store_latency_ms for r in rows),
        "receivers": statistics.mean(r.store_receivers for r in rows),
        "lookup_hops": report.avg_lookup_hops,
        "lookup_latency": report.avg_lookup_latency,
        "success": report.lookup_success_rate,
        "kbucket": statistics.mean(n.kbucket_size() for n in nodes),
        "store_ratio": ratio(sum(n.inter_cluster_store for n in nodes),
                             sum(n.intra_cluster_store for n in nodes)),
        "lookup_ratio": ratio(sum(n.inter_cluster_lookup for n in nodes),
                              sum(n.intra_cluster_lookup for n in nodes)),
        "hit_ratio": ratio(cache_hits, cache_requests),
    }


def print_table(header, rows, widths=None):
    if widths is None:
        widths = [max(len(str(row[i])) for row in [header] + rows) + 2
                  for i in range(len(header))]
    print("  " + "".join(str(h).ljust(w) for h, w in zip(header, widths)))
    print("  " + "-" * sum(widths))
    for row in rows:
        print("  " + "".join(str(v).ljust(w) for v, w in zip(row, widths)))


def slug(name):
    return name.lower().replace("-", "_")


# ──────────────────────────────────────────────────────────────────────
# Main benchmark
# ──────────────────────────────────────────────────────────────────────

def main():
    logging.basicConfig(level=logging.WARNING,
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")
    os.makedirs(RESULTS_DIR, exist_ok=True)

    sep = "=" * 78
    print(f"\n{sep}")
    print("  H-KADEMLIA STRATEGY COMPARISON")
    print(f"  k={KAD_K}  alpha={KAD_A}  clusters={NUM_CLUSTERS}  "
          f"cache={CACHE_SIZE}  requests={TOTAL_REQUESTS}")
    print(sep)

    results = {}
    for n in [25, 50, 100]:
        results[n] = {}
        for name, config in VARIANTS.items():
            nodes, report, elapsed = run_variant(config, n)
            results[n][name] = summarize(nodes, report)
            results[n][name]["elapsed"] = elapsed
            if n == 100:
                report.recorder.write_store_csv(
                    os.path.join(RESULTS_DIR, f"store_metrics_{slug(name)}.csv"))
                report.recorder.write_cluster_csv(
                    os.path.join(RESULTS_DIR, f"cluster_metrics_{slug(name)}.csv"))

    # ── 1. STORE cost ─────────────────────────────────────────────────
    print("\n  1. STORE -- hops, latency and receivers per store\n")
    for n, by_name in results.items():
        print(f"  N = {n}")
        header = ["Variant", "Hops", "Latency(ms)", "Receivers"]
        rows = [[name, f"{s['store_hops']:.2f}", f"{s['store_latency']:.2f}",
                 f"{s['receivers']:.1f}"] for name, s in by_name.items()]
        print_table(header, rows, [18, 8, 14, 10])
        print()

    # ── 2. LOOKUP ─────────────────────────────────────────────────────
    print("  2. LOOKUP -- success rate, hops and latency (successful lookups)\n")
    for n, by_name in results.items():
        print(f"  N = {n}")
        header = ["Variant", "Success", "Hops", "Latency(ms)", "Cache hit"]
        rows = [[name, f"{s['success']:.1%}", f"{s['lookup_hops']:.2f}",
                 f"{s['lookup_latency']:.2f}", f"{s['hit_ratio']:.1%}"]
                for name, s in by_name.items()]
        print_table(header, rows, [18, 10, 8, 14, 10])
        print()

    # ── 3. Routing state and cluster traffic ──────────────────────────
    print("  3. ROUTING STATE AND CLUSTER TRAFFIC (N=100)\n")
    header = ["Variant", "K-bucket", "Store inter/intra", "Lookup inter/intra",
              "Elapsed"]
    rows = [[name, f"{s['kbucket']:.1f}", f"{s['store_ratio']:.4f}",
             f"{s['lookup_ratio']:.4f}", f"{s['elapsed']:.2f}s"]
            for name, s in results[100].items()]
    print_table(header, rows, [18, 10, 19, 20, 10])

    print(f"\n  CSV reports written to ./{RESULTS_DIR}/")
    print()


if __name__ == "__main__":
    main()
