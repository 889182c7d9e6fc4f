"""Ranking and selection of aggregated candidates.

Selection drops candidates that were surfaced before or whose average
match is below the configured floor, then orders the rest by:

1. distinct provider count, descending (intersection boost);
2. source count, descending (similar to more library artists);
3. summed raw score, descending;
4. normalized name, ascending, so equal candidates still order the same
   way on every run.

The weighted percentage computed here is presentation metadata stored with
queue entries; it plays no part in the sort.
"""

from __future__ import annotations

from collections.abc import Mapping

from cratedigger.models.discovery import AggregatedCandidate, RankedCandidate

_PROVIDER_BONUS_STEP = 0.2


def normalize_to_percent(score: float | None) -> float | None:
    """Put a score on the 0-100 scale, rounded to 2 decimals.

    Scores up to 1 are read as fractions; anything above 1 is assumed to
    already be a percentage and passes through.
    """
    if score is None:
        return None
    as_percent = score * 100 if score <= 1 else score
    return round(as_percent, 2)


def average_match_percent(score: float, source_count: int) -> float | None:
    """Average match (``score / source_count``) as a percentage."""
    if not source_count:
        return None
    return normalize_to_percent(score / source_count)


def weighted_score_percent(
    score: float,
    source_count: int,
    provider_count: int,
    similar_artist_limit: int,
) -> float | None:
    """Weighted 0-100 score rewarding breadth of agreement.

    ``avg% * source_count * provider_bonus / similar_artist_limit``, with a
    20% bonus per provider beyond the first, clamped to [0, 100] and
    rounded to 2 decimals.  Without a limit, the average is returned as-is.
    """
    avg_percent = average_match_percent(score, source_count)
    if avg_percent is None:
        return None
    if not similar_artist_limit:
        return avg_percent

    provider_bonus = 1 + _PROVIDER_BONUS_STEP * max(0, provider_count - 1)
    weighted = avg_percent * source_count * provider_bonus / similar_artist_limit
    return round(min(100.0, max(0.0, weighted)), 2)


def _sort_key(candidate: AggregatedCandidate) -> tuple[int, int, float, str]:
    return (
        -candidate.provider_count,
        -candidate.source_count,
        -candidate.score,
        candidate.name_lower,
    )


def rank_candidates(
    aggregated: Mapping[str, AggregatedCandidate],
    discovered: set[str] | frozenset[str],
    min_similarity: float,
    max_candidates: int,
    similar_artist_limit: int,
) -> list[RankedCandidate]:
    """Filter, order and truncate *aggregated* into the run's candidate list."""
    eligible = [
        candidate
        for name_lower, candidate in aggregated.items()
        if name_lower not in discovered
        and candidate.source_count > 0
        and candidate.score / candidate.source_count >= min_similarity
    ]
    eligible.sort(key=_sort_key)

    return [
        RankedCandidate(
            name=candidate.name,
            name_lower=candidate.name_lower,
            score=candidate.score,
            source_count=candidate.source_count,
            providers=sorted(candidate.providers),
            similar_to=sorted(candidate.similar_to),
            avg_match_percent=average_match_percent(candidate.score, candidate.source_count),
            weighted_score=weighted_score_percent(
                candidate.score,
                candidate.source_count,
                candidate.provider_count,
                similar_artist_limit,
            ),
        )
        for candidate in eligible[: max(0, max_candidates)]
    ]
