"""Metric counters and tick-based reporting.

``NodeMetrics`` holds the running totals of one node.  ``TickRecorder``
folds STORE / LOOKUP results issued by a driver into per-tick rows and
writes them as the two CSV reports used to compare strategies.
"""

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from .base import LookupResult, StoreResult

logger = logging.getLogger(__name__)

STORE_CSV_HEADER = ["Tick", "AvgStoreHops", "AvgStoreLatency(ms)",
                    "StoreReceivers"]
CLUSTER_CSV_HEADER = ["Tick", "Avg KBucket Size",
                      "InterToIntraCluster Ratio - Store",
                      "InterToIntraCluster Ratio - Lookup"]


def ratio(numerator: float, denominator: float) -> float:
    """``numerator / denominator``, defined as 0.0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return numerator / denominator


@dataclass
class NodeMetrics:
    """Running totals for one node (messages are counted at the initiator)."""
    intra_cluster_store: int = 0
    inter_cluster_store: int = 0
    intra_cluster_lookup: int = 0
    inter_cluster_lookup: int = 0
    stores: int = 0
    lookups: int = 0
    successful_lookups: int = 0
    local_cache_hits: int = 0
    local_store_hits: int = 0

    def record_store(self, result: StoreResult):
        self.stores += 1
        self.intra_cluster_store += result.intra_cluster_messages
        self.inter_cluster_store += result.inter_cluster_messages

    def record_lookup(self, result: LookupResult):
        self.lookups += 1
        self.successful_lookups += int(result.success)
        self.intra_cluster_lookup += result.intra_cluster_messages
        self.inter_cluster_lookup += result.inter_cluster_messages

    @property
    def store_inter_to_intra(self) -> float:
        return ratio(self.inter_cluster_store, self.intra_cluster_store)

    @property
    def lookup_inter_to_intra(self) -> float:
        return ratio(self.inter_cluster_lookup, self.intra_cluster_lookup)


@dataclass
class StoreTickRow:
    tick: int
    avg_store_hops: float
    avg_store_latency_ms: float
    store_receivers: int

    def as_csv(self) -> list[str]:
        return [str(self.tick), f"{self.avg_store_hops:.2f}",
                f"{self.avg_store_latency_ms:.2f}", str(self.store_receivers)]


@dataclass
class ClusterTickRow:
    tick: int
    avg_kbucket_size: float
    store_inter_to_intra: float
    lookup_inter_to_intra: float

    def as_csv(self) -> list[str]:
        return [str(self.tick), f"{self.avg_kbucket_size:.2f}",
                f"{self.store_inter_to_intra:.4f}",
                f"{self.lookup_inter_to_intra:.4f}"]


@dataclass
class _TickCounters:
    stores: int = 0
    store_hops: int = 0
    store_latency: int = 0
    store_receivers: int = 0
    store_intra: int = 0
    store_inter: int = 0
    lookups: int = 0
    lookup_intra: int = 0
    lookup_inter: int = 0


@dataclass
class TickRecorder:
    """Accumulates operation results and closes them into tick rows."""
    store_rows: list[StoreTickRow] = field(default_factory=list)
    cluster_rows: list[ClusterTickRow] = field(default_factory=list)
    _current: _TickCounters = field(default_factory=_TickCounters)

    def record_store(self, result: StoreResult):
        c = self._current
        c.stores += 1
        c.store_hops += result.hops
        c.store_latency += result.latency
        c.store_receivers += result.receivers
        c.store_intra += result.intra_cluster_messages
        c.store_inter += result.inter_cluster_messages

    def record_lookup(self, result: LookupResult):
        c = self._current
        c.lookups += 1
        c.lookup_intra += result.intra_cluster_messages
        c.lookup_inter += result.inter_cluster_messages

    @property
    def pending(self) -> bool:
        c = self._current
        return bool(c.stores or c.lookups)

    def close_tick(self, avg_kbucket_size: float) -> tuple[StoreTickRow,
                                                           ClusterTickRow]:
        c = self._current
        tick = len(self.store_rows) + 1
        store_row = StoreTickRow(
            tick=tick,
            avg_store_hops=ratio(c.store_hops, c.stores),
            avg_store_latency_ms=ratio(c.store_latency, c.stores),
            store_receivers=int(ratio(c.store_receivers, c.stores) + 0.5),
        )
        cluster_row = ClusterTickRow(
            tick=tick,
            avg_kbucket_size=avg_kbucket_size,
            store_inter_to_intra=ratio(c.store_inter, c.store_intra),
            lookup_inter_to_intra=ratio(c.lookup_inter, c.lookup_intra),
        )
        self.store_rows.append(store_row)
        self.cluster_rows.append(cluster_row)
        self._current = _TickCounters()
        logger.info("tick %d: hops=%.2f latency=%.2fms receivers=%d "
                    "store inter/intra=%.4f lookup inter/intra=%.4f",
                    tick, store_row.avg_store_hops,
                    store_row.avg_store_latency_ms, store_row.store_receivers,
                    cluster_row.store_inter_to_intra,
                    cluster_row.lookup_inter_to_intra)
        return store_row, cluster_row

    def write_store_csv(self, path: Union[str, Path]):
        _write_csv(path, STORE_CSV_HEADER, self.store_rows)

    def write_cluster_csv(self, path: Union[str, Path]):
        _write_csv(path, CLUSTER_CSV_HEADER, self.cluster_rows)


def _write_csv(path, header, rows):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="") as fh:
        writer = csv.writer(fh, lineterminator="\n")
        writer.writerow(header)
        for row in rows:
            writer.writerow(row.as_csv())
    logger.info("wrote %d rows to %s", len(rows), path)
