"""Pydantic models and transient aggregation state for CrateDigger."""

from cratedigger.models.catalog import (
    CandidateResult,
    CatalogArtist,
    LibraryArtist,
    SimilarityCacheRow,
)
from cratedigger.models.discovery import (
    AggregatedCandidate,
    DiscoveryPhase,
    DiscoveryReport,
    JobOutcome,
    JobRunResult,
    RankedCandidate,
    RecommendationReport,
)
from cratedigger.models.queue import EntrySource, EntryType, PendingEntry

__all__ = [
    "AggregatedCandidate",
    "CandidateResult",
    "CatalogArtist",
    "DiscoveryPhase",
    "DiscoveryReport",
    "EntrySource",
    "EntryType",
    "JobOutcome",
    "JobRunResult",
    "LibraryArtist",
    "PendingEntry",
    "RankedCandidate",
    "RecommendationReport",
    "SimilarityCacheRow",
]
