"""Simulated per-contact network cost."""

import random

from .config import LatencyModel, ProtocolConfig


def contact_latency(config: ProtocolConfig, rng: random.Random,
                    source_cluster: int, peer_cluster: int) -> int:
    """Cost of one contact from *source_cluster* to *peer_cluster*.

    ``unit``: always 1.  ``cluster``: a draw from the intra-cluster range
    (5-10 ms by default) or the inter-cluster range (20-40 ms).
    """
    if config.latency_model is LatencyModel.UNIT:
        return 1
    if source_cluster == peer_cluster:
        low, high = config.intra_cluster_latency
    else:
        low, high = config.inter_cluster_latency
    return rng.randrange(low, high)
