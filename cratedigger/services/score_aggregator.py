"""Fold cached similarity rows into one aggregate per candidate name.

Each row contributes its score, one unit of source count, its provider tag
and the display name of the library artist it was fetched for.  Rows are
keyed by normalized candidate name, and the fold is commutative: any
permutation of the same rows yields an equal map.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from cratedigger.models.catalog import SimilarityCacheRow
from cratedigger.models.discovery import AggregatedCandidate

UNKNOWN_SOURCE = "unknown"


def aggregate_similar(
    rows: Iterable[SimilarityCacheRow],
    excluded_names: set[str] | frozenset[str],
    name_by_id: Mapping[int, str],
) -> dict[str, AggregatedCandidate]:
    """Aggregate *rows* per normalized candidate name.

    Parameters
    ----------
    rows:
        Similarity cache rows for the current library artists.
    excluded_names:
        Normalized names to drop, typically the library itself: an artist
        the user already owns is never a candidate.
    name_by_id:
        Catalog artist id to display name, used for "similar to".  Rows
        whose source is missing from the mapping are attributed to
        ``"unknown"``.
    """
    aggregated: dict[str, AggregatedCandidate] = {}
    for row in rows:
        if row.name_lower in excluded_names:
            continue
        candidate = aggregated.get(row.name_lower)
        if candidate is None:
            candidate = AggregatedCandidate(name=row.name, name_lower=row.name_lower)
            aggregated[row.name_lower] = candidate
        candidate.add(
            name=row.name,
            score=row.score,
            provider=row.provider,
            similar_to=name_by_id.get(row.catalog_artist_id, UNKNOWN_SOURCE),
        )
    return aggregated
