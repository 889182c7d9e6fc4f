"""Unit tests for score aggregation and ranking."""

from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest

from cratedigger.models.catalog import SimilarityCacheRow
from cratedigger.services.ranking import (
    average_match_percent,
    normalize_to_percent,
    rank_candidates,
    weighted_score_percent,
)
from cratedigger.services.score_aggregator import UNKNOWN_SOURCE, aggregate_similar

FETCHED = datetime(2026, 1, 1, tzinfo=timezone.utc)  # noqa: UP017
NAMES = {1: "Autechre", 2: "Aphex Twin", 3: "Squarepusher"}


def _row(artist_id: int, name: str, score: float, provider: str = "lastfm") -> SimilarityCacheRow:
    return SimilarityCacheRow(
        catalog_artist_id=artist_id,
        name=name,
        name_lower=name.lower(),
        score=score,
        provider=provider,
        fetched_at=FETCHED,
    )


# ======================================================================
# aggregate_similar
# ======================================================================


class TestAggregateSimilar:
    def test_sums_scores_and_tracks_sources(self) -> None:
        rows = [
            _row(1, "Plaid", 0.9, "lastfm"),
            _row(2, "Plaid", 0.8, "listenbrainz"),
            _row(1, "Seefeel", 0.5),
        ]
        aggregated = aggregate_similar(rows, set(), NAMES)

        plaid = aggregated["plaid"]
        assert plaid.score == pytest.approx(1.7)
        assert plaid.source_count == 2
        assert plaid.providers == {"lastfm", "listenbrainz"}
        assert plaid.similar_to == {"Autechre", "Aphex Twin"}
        assert aggregated["seefeel"].source_count == 1

    def test_excludes_library_artists(self) -> None:
        rows = [_row(1, "Aphex Twin", 0.9), _row(1, "Plaid", 0.8)]
        aggregated = aggregate_similar(rows, {"aphex twin"}, NAMES)
        assert set(aggregated) == {"plaid"}

    def test_unknown_source_id(self) -> None:
        aggregated = aggregate_similar([_row(99, "Plaid", 0.5)], set(), NAMES)
        assert aggregated["plaid"].similar_to == {UNKNOWN_SOURCE}

    def test_fold_is_order_independent(self) -> None:
        rows = [
            _row(1, "Plaid", 0.1, "lastfm"),
            _row(2, "PLAID", 0.2, "listenbrainz"),
            _row(3, "Plaid", 0.7, "lastfm"),
            _row(2, "Seefeel", 0.3),
            _row(3, "Seefeel", 0.6, "listenbrainz"),
        ]
        expected = aggregate_similar(rows, set(), NAMES)

        rng = random.Random(7)
        for _ in range(20):
            shuffled = rows[:]
            rng.shuffle(shuffled)
            assert aggregate_similar(shuffled, set(), NAMES) == expected

    def test_display_name_is_smallest_spelling(self) -> None:
        rows = [_row(1, "plaid", 0.5), _row(2, "Plaid", 0.5)]
        assert aggregate_similar(rows, set(), NAMES)["plaid"].name == "Plaid"


# ======================================================================
# Percent helpers
# ======================================================================


class TestPercentHelpers:
    def test_fraction_becomes_percent(self) -> None:
        assert normalize_to_percent(0.456) == 45.6

    def test_value_above_one_is_already_percent(self) -> None:
        assert normalize_to_percent(87.123) == 87.12

    def test_none_passes_through(self) -> None:
        assert normalize_to_percent(None) is None

    def test_average_match_percent(self) -> None:
        assert average_match_percent(1.5, 2) == 75.0
        assert average_match_percent(0.0, 0) is None

    def test_weighted_single_provider(self) -> None:
        # avg 90% from one source, one provider, limit 10
        assert weighted_score_percent(0.9, 1, 1, 10) == pytest.approx(9.0)

    def test_weighted_two_providers_bonus(self) -> None:
        # 90% * 1 source * 1.2 bonus / 10
        assert weighted_score_percent(0.9, 1, 2, 10) == pytest.approx(10.8)

    def test_weighted_two_sources_two_providers(self) -> None:
        # 85% * 2 sources * 1.2 / 10
        assert weighted_score_percent(1.7, 2, 2, 10) == pytest.approx(20.4)

    def test_weighted_is_clamped(self) -> None:
        assert weighted_score_percent(9.0, 10, 3, 5) == 100.0

    def test_weighted_without_limit_is_average(self) -> None:
        assert weighted_score_percent(0.9, 1, 2, 0) == 90.0


# ======================================================================
# rank_candidates
# ======================================================================


class TestRankCandidates:
    def test_provider_count_beats_source_count_beats_score(self) -> None:
        rows = [
            # two providers, one source each
            _row(1, "Both", 0.4, "lastfm"),
            _row(1, "Both", 0.4, "listenbrainz"),
            # one provider, three sources
            _row(1, "Many", 0.9),
            _row(2, "Many", 0.9),
            _row(3, "Many", 0.9),
            # one provider, one source, high score
            _row(1, "Loud", 0.99),
            _row(1, "Quiet", 0.5),
        ]
        ranked = rank_candidates(aggregate_similar(rows, set(), NAMES), set(), 0.0, 10, 10)
        assert [c.name for c in ranked] == ["Both", "Many", "Loud", "Quiet"]

    def test_equal_candidates_order_by_name(self) -> None:
        rows = [_row(1, "Beta", 0.5), _row(1, "Alpha", 0.5)]
        ranked = rank_candidates(aggregate_similar(rows, set(), NAMES), set(), 0.0, 10, 10)
        assert [c.name for c in ranked] == ["Alpha", "Beta"]

    def test_filters_discovered_and_weak_candidates(self) -> None:
        rows = [_row(1, "Old", 0.9), _row(1, "Weak", 0.2), _row(1, "New", 0.6)]
        ranked = rank_candidates(aggregate_similar(rows, set(), NAMES), {"old"}, 0.3, 10, 10)
        assert [c.name for c in ranked] == ["New"]

    def test_min_similarity_uses_average_not_sum(self) -> None:
        rows = [_row(1, "Spread", 0.2), _row(2, "Spread", 0.2)]
        ranked = rank_candidates(aggregate_similar(rows, set(), NAMES), set(), 0.3, 10, 10)
        assert ranked == []

    def test_caps_candidate_count(self) -> None:
        rows = [_row(1, f"Artist {i}", 0.5 + i / 100) for i in range(5)]
        ranked = rank_candidates(aggregate_similar(rows, set(), NAMES), set(), 0.0, 2, 10)
        assert [c.name for c in ranked] == ["Artist 4", "Artist 3"]

    def test_presentation_fields(self) -> None:
        rows = [_row(1, "Plaid", 0.9, "lastfm"), _row(2, "Plaid", 0.8, "listenbrainz")]
        [plaid] = rank_candidates(aggregate_similar(rows, set(), NAMES), set(), 0.0, 10, 10)

        assert plaid.providers == ["lastfm", "listenbrainz"]
        assert plaid.similar_to == ["Aphex Twin", "Autechre"]
        assert plaid.avg_match_percent == 85.0
        assert plaid.weighted_score == pytest.approx(20.4)
