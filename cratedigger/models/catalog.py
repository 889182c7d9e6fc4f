"""Catalog models: library artists, similarity results and cached similarity rows.

Defines Pydantic v2 models for the entities the catalog store persists.
All models use frozen config; the store hands out fresh snapshots and
mutations go through store methods (``set_mbid``, ``mark_fetched`` ...),
never through the model objects.

Lifecycle:
    LibraryArtist   -- one entry returned by the library server sync.
    CatalogArtist   -- the tracked source entity, upserted on every sync;
                       its MBID is filled in lazily and its
                       ``last_similar_fetched_at`` moves on every fetch cycle.
    CandidateResult -- one provider's opinion about one candidate.
    SimilarityCacheRow -- a CandidateResult persisted against the catalog
                       artist it was fetched for.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from cratedigger.utils.text_normalizer import normalize_name


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class LibraryArtist(BaseModel):
    """An artist as listed by the library server (source registry)."""

    model_config = ConfigDict(frozen=True)

    # Library-server identifier (Subsonic artist id).
    library_id: str
    name: str

    @property
    def name_lower(self) -> str:
        return normalize_name(self.name)


class CatalogArtist(BaseModel):
    """A tracked source entity: a library artist known to the catalog store."""

    model_config = ConfigDict(frozen=True)

    id: int
    library_id: str | None = None
    name: str
    # Dedupe / lookup key, unique across the catalog.
    name_lower: str
    # MusicBrainz artist id, resolved lazily.
    mbid: str | None = None
    last_synced_at: datetime | None = None
    # None means "never fetched" and always makes the artist stale.
    last_similar_fetched_at: datetime | None = None


class CandidateResult(BaseModel):
    """One provider's similarity opinion about one candidate artist."""

    model_config = ConfigDict(frozen=True)

    name: str
    # Usually 0.0-1.0.  Not capped: values above 1 are read as percentages
    # when normalised for display.
    match: float = Field(ge=0.0)
    mbid: str | None = None
    # Identity string of the provider that produced this result.
    provider: str

    @property
    def name_lower(self) -> str:
        return normalize_name(self.name)


class SimilarityCacheRow(BaseModel):
    """A persisted similarity result, unique on (artist id, name_lower, provider)."""

    model_config = ConfigDict(frozen=True)

    catalog_artist_id: int
    name: str
    name_lower: str
    mbid: str | None = None
    score: float
    provider: str
    fetched_at: datetime
