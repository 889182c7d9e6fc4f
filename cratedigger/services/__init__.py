"""Algorithmic core of catalog discovery.

- **fan_out_fetcher** -- concurrent per-provider fetch with timeouts.
- **cache_partitioner** -- stale / cached split by last-fetch age.
- **score_aggregator** -- per-candidate fold of cached similarity rows.
- **ranking** -- filtering, ordering and percent scores for candidates.
"""

from cratedigger.services.cache_partitioner import CachePartition, partition_by_cache_status
from cratedigger.services.fan_out_fetcher import fetch_from_all
from cratedigger.services.ranking import (
    average_match_percent,
    normalize_to_percent,
    rank_candidates,
    weighted_score_percent,
)
from cratedigger.services.score_aggregator import aggregate_similar

__all__ = [
    "CachePartition",
    "aggregate_similar",
    "average_match_percent",
    "fetch_from_all",
    "normalize_to_percent",
    "partition_by_cache_status",
    "rank_candidates",
    "weighted_score_percent",
]
