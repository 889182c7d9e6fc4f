"""Abstract base class for catalog persistence.

The catalog store owns the durable state discovery depends on:

- ``catalog_artists`` -- tracked library artists (unique on ``name_lower``);
- ``similar_artists`` -- the similarity cache, unique on
  ``(catalog_artist_id, name_lower, provider)``;
- ``discovered_artists`` -- discovered markers, unique on ``name_lower``;
- ``processed_recordings`` -- recordings/albums already handled by the
  ListenBrainz fetch job, unique on ``(mbid, source)``.

Every write is individually idempotent, so a run that fails half-way
leaves a state the next run can safely resume from.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from cratedigger.models.catalog import CandidateResult, CatalogArtist, SimilarityCacheRow


class ICatalogStore(ABC):
    """Contract for catalog, similarity-cache and marker persistence."""

    # -- Catalog artists -------------------------------------------------------

    @abstractmethod
    async def upsert_artist(
        self, library_id: str, name: str, name_lower: str, synced_at: datetime
    ) -> None:
        """Insert or refresh a library artist, keyed by *name_lower*."""

    @abstractmethod
    async def list_artists(self, names_lower: Iterable[str] | None = None) -> list[CatalogArtist]:
        """Return catalog artists, optionally restricted to *names_lower*, by id."""

    @abstractmethod
    async def list_unresolved(self, names_lower: Iterable[str]) -> list[CatalogArtist]:
        """Return artists among *names_lower* whose MBID is still unknown."""

    @abstractmethod
    async def set_mbid(self, artist_id: int, mbid: str) -> None:
        """Record the resolved MusicBrainz id for an artist."""

    @abstractmethod
    async def mark_fetched(self, artist_id: int, fetched_at: datetime) -> None:
        """Move the artist's last-successful-fetch timestamp to *fetched_at*."""

    # -- Similarity cache ------------------------------------------------------

    @abstractmethod
    async def upsert_similar(
        self, artist_id: int, results: Iterable[CandidateResult], fetched_at: datetime
    ) -> None:
        """Write similarity results for an artist, replacing rows with the same key."""

    @abstractmethod
    async def list_similar(self, artist_ids: Iterable[int]) -> list[SimilarityCacheRow]:
        """Return cached similarity rows for the given catalog artists."""

    # -- Discovered markers ----------------------------------------------------

    @abstractmethod
    async def discovered_names(self, names_lower: Iterable[str]) -> set[str]:
        """Return the subset of *names_lower* that already has a marker."""

    @abstractmethod
    async def mark_discovered(self, name_lower: str, discovered_at: datetime) -> None:
        """Create a marker for *name_lower*; an existing marker is left untouched."""

    # -- Processed recordings --------------------------------------------------

    @abstractmethod
    async def is_processed(self, mbid: str, source: str) -> bool:
        """Return ``True`` if *mbid* was already handled for *source*."""

    @abstractmethod
    async def mark_processed(self, mbid: str, source: str, processed_at: datetime) -> None:
        """Record that *mbid* was handled for *source* (idempotent)."""
