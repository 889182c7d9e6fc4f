"""Abstract base class for music-database service providers.

Defines the contract for querying an external music database (MusicBrainz)
in three roles:

- **naming registry** -- resolve an artist name to an identifier;
- **detail registry** -- list release groups (albums) for an artist name;
- **recording resolver** -- turn a recommended recording into the track or
  album it belongs to.

Lookups answer with empty results / ``None`` when the service fails; only
cancellation propagates.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from cratedigger.utils.cancellation import CancellationToken


@dataclass(frozen=True)
class ArtistSearchResult:
    """A single result returned by an artist-name search.

    Attributes
    ----------
    mbid:
        MusicBrainz artist id.
    name:
        The artist's canonical name.
    disambiguation:
        Optional text distinguishing identically-named artists.
    confidence:
        Search score between 0.0 and 1.0.
    """

    mbid: str
    name: str
    disambiguation: str | None = None
    confidence: float = 0.0


@dataclass(frozen=True)
class ReleaseGroup:
    """A release group (album, EP, single) from the detail registry."""

    mbid: str
    title: str
    first_release_date: str | None = None
    primary_type: str | None = None


@dataclass(frozen=True)
class TrackInfo:
    """A recording resolved to its artist/title and preferred release group."""

    mbid: str
    artist: str
    title: str
    release_group_mbid: str | None = None


@dataclass(frozen=True)
class AlbumInfo:
    """A recording resolved to the album (release group) it appears on."""

    mbid: str
    artist: str
    title: str
    track_title: str
    year: int | None = None


class IMusicDatabaseProvider(ABC):
    """Contract for the music database used for identity and detail lookups."""

    @abstractmethod
    async def search_artists(
        self,
        name: str,
        limit: int = 1,
        cancel_token: CancellationToken | None = None,
    ) -> list[ArtistSearchResult]:
        """Search for artists matching *name*, best match first."""

    @abstractmethod
    async def search_release_groups(
        self,
        artist_name: str,
        primary_type: str = "Album",
        limit: int = 3,
        cancel_token: CancellationToken | None = None,
    ) -> list[ReleaseGroup]:
        """Return up to *limit* release groups of *primary_type* by *artist_name*."""

    @abstractmethod
    async def resolve_recording(
        self,
        recording_mbid: str,
        cancel_token: CancellationToken | None = None,
    ) -> TrackInfo | None:
        """Resolve a recording to artist, title and its preferred release group."""

    @abstractmethod
    async def resolve_recording_to_album(
        self,
        recording_mbid: str,
        cancel_token: CancellationToken | None = None,
    ) -> AlbumInfo | None:
        """Resolve a recording to the album it belongs to, preferring type Album."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"musicbrainz"``."""
