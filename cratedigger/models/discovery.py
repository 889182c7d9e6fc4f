"""Discovery models: aggregation state, ranked candidates and job reports.

``AggregatedCandidate`` is transient and mutable -- it only exists inside a
single ranking pass and is folded into by the score aggregator.  Everything
that leaves the pipeline (``RankedCandidate``, ``DiscoveryReport``,
``JobRunResult``) is a frozen Pydantic model.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from cratedigger.models.catalog import utc_now


# ---------------------------------------------------------------------------
# DiscoveryPhase -- the state machine driven by the catalog discovery job.
# ---------------------------------------------------------------------------
class DiscoveryPhase(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Phases of a catalog discovery run.

    SYNCING_SOURCES → RESOLVING_EXTERNAL_IDS → PARTITIONING_CACHE →
    FETCHING_STALE → AGGREGATING → RANKING_AND_FILTERING →
    ENRICHING_TOP_CANDIDATES → DONE, with CANCELLED / FAILED reachable
    from every step.
    """

    PENDING = "PENDING"
    SYNCING_SOURCES = "SYNCING_SOURCES"
    RESOLVING_EXTERNAL_IDS = "RESOLVING_EXTERNAL_IDS"
    PARTITIONING_CACHE = "PARTITIONING_CACHE"
    FETCHING_STALE = "FETCHING_STALE"
    AGGREGATING = "AGGREGATING"
    RANKING_AND_FILTERING = "RANKING_AND_FILTERING"
    ENRICHING_TOP_CANDIDATES = "ENRICHING_TOP_CANDIDATES"
    DONE = "DONE"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


class JobOutcome(str, Enum):  # noqa: UP042
    """How a job run ended, as reported to the scheduler."""

    COMPLETED = "completed"
    SKIPPED = "skipped"      # disabled or not configured
    DEFERRED = "deferred"    # a job sharing the same rate-limited upstream is running
    CANCELLED = "cancelled"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# AggregatedCandidate -- folded per normalized name during one ranking pass.
# ---------------------------------------------------------------------------
@dataclass
class AggregatedCandidate:
    """Running aggregate for one candidate across providers and library artists.

    ``score`` is recomputed with :func:`math.fsum` over every contribution,
    which is exactly rounded and therefore independent of fold order.
    """

    name: str
    name_lower: str
    score: float = 0.0
    source_count: int = 0
    providers: set[str] = field(default_factory=set)
    similar_to: set[str] = field(default_factory=set)
    _contributions: list[float] = field(default_factory=list, compare=False, repr=False)

    def add(self, name: str, score: float, provider: str, similar_to: str) -> None:
        """Fold one similarity row into this aggregate."""
        # Smallest spelling wins so the display name does not depend on row order.
        if name < self.name:
            self.name = name
        self._contributions.append(score)
        self.score = math.fsum(self._contributions)
        self.source_count += 1
        self.providers.add(provider)
        self.similar_to.add(similar_to)

    @property
    def provider_count(self) -> int:
        return len(self.providers)


class RankedCandidate(BaseModel):
    """A candidate that survived filtering, with its presentation scores."""

    model_config = ConfigDict(frozen=True)

    name: str
    name_lower: str
    score: float
    source_count: int
    providers: list[str] = Field(default_factory=list)
    similar_to: list[str] = Field(default_factory=list)
    # Average match on a 0-100 scale (None when source_count is 0).
    avg_match_percent: float | None = None
    # Weighted 0-100 score including the intersection bonus.
    weighted_score: float | None = None


class DiscoveryReport(BaseModel):
    """Summary of one catalog discovery run."""

    model_config = ConfigDict(frozen=True)

    outcome: JobOutcome = JobOutcome.COMPLETED
    phase: DiscoveryPhase = DiscoveryPhase.DONE
    library_artist_count: int = 0
    resolved_mbid_count: int = 0
    cached_artist_count: int = 0
    fetched_artist_count: int = 0
    # True when the consecutive-empty-fetch circuit breaker tripped.
    fetch_aborted_early: bool = False
    candidates: list[RankedCandidate] = Field(default_factory=list)
    added_count: int = 0
    message: str = ""


class RecommendationReport(BaseModel):
    """Summary of one ListenBrainz recommendation fetch run."""

    model_config = ConfigDict(frozen=True)

    outcome: JobOutcome = JobOutcome.COMPLETED
    source_type: str = ""
    mode: str = ""
    received_count: int = 0
    added_count: int = 0
    message: str = ""


class JobRunResult(BaseModel):
    """What the job runner reports back to the scheduling collaborator."""

    model_config = ConfigDict(frozen=True)

    job_name: str
    outcome: JobOutcome
    started_at: datetime = Field(default_factory=utc_now)
    finished_at: datetime = Field(default_factory=utc_now)
    added_count: int = 0
    # Failure / cancellation cause, empty on success.
    error: str = ""
