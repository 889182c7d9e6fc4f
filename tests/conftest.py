"""Shared pytest fixtures for the CrateDigger test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from cratedigger.config.settings import Settings
from cratedigger.interfaces.library_provider import ILibraryProvider
from cratedigger.interfaces.music_db_provider import (
    AlbumInfo,
    ArtistSearchResult,
    IMusicDatabaseProvider,
    ReleaseGroup,
    TrackInfo,
)
from cratedigger.interfaces.similarity_provider import ISimilarityProvider
from cratedigger.models.catalog import CandidateResult, LibraryArtist
from cratedigger.providers.catalog.sqlite_catalog_store import SQLiteCatalogStore
from cratedigger.providers.jobs.memory_job_registry import MemoryJobRegistry
from cratedigger.providers.queue.sqlite_pending_queue import SQLitePendingQueue
from cratedigger.utils.cancellation import CancellationToken

# ---------------------------------------------------------------------------
# Stub collaborators
# ---------------------------------------------------------------------------


class StubSimilarityProvider(ISimilarityProvider):
    """Similarity provider answering from a per-artist table.

    ``delay`` makes every call slow (for timeout tests); ``error`` makes
    every call raise, which real providers never do but the fan-out must
    survive anyway.
    """

    def __init__(
        self,
        name: str,
        by_artist: dict[str, list[tuple[str, float]]] | None = None,
        *,
        delay: float = 0.0,
        error: Exception | None = None,
        configured: bool = True,
    ) -> None:
        self._name = name
        self._by_artist = by_artist or {}
        self._delay = delay
        self._error = error
        self._configured = configured
        self.calls: list[str] = []
        self.tokens: list[CancellationToken | None] = []

    async def get_similar_artists(
        self,
        artist_name: str,
        artist_mbid: str | None = None,
        limit: int = 10,
        cancel_token: CancellationToken | None = None,
    ) -> list[CandidateResult]:
        self.calls.append(artist_name)
        self.tokens.append(cancel_token)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return [
            CandidateResult(name=name, match=match, provider=self._name)
            for name, match in self._by_artist.get(artist_name, [])[:limit]
        ]

    def get_provider_name(self) -> str:
        return self._name

    def is_configured(self) -> bool:
        return self._configured


class StubLibrary(ILibraryProvider):
    def __init__(self, names: list[str], configured: bool = True) -> None:
        self._artists = [LibraryArtist(library_id=f"ar-{i}", name=n) for i, n in enumerate(names)]
        self._configured = configured

    async def list_artists(
        self, cancel_token: CancellationToken | None = None
    ) -> list[LibraryArtist]:
        return list(self._artists)

    def get_provider_name(self) -> str:
        return "stub-library"

    def is_configured(self) -> bool:
        return self._configured


class StubMusicDatabase(IMusicDatabaseProvider):
    """Music database answering from in-memory tables and recording calls."""

    def __init__(
        self,
        artist_mbids: dict[str, str] | None = None,
        albums: dict[str, list[ReleaseGroup]] | None = None,
        tracks: dict[str, TrackInfo] | None = None,
        recording_albums: dict[str, AlbumInfo] | None = None,
    ) -> None:
        self.artist_mbids = artist_mbids or {}
        self.albums = albums or {}
        self.tracks = tracks or {}
        self.recording_albums = recording_albums or {}
        self.calls: list[tuple[str, str]] = []

    async def search_artists(
        self,
        name: str,
        limit: int = 1,
        cancel_token: CancellationToken | None = None,
    ) -> list[ArtistSearchResult]:
        self.calls.append(("search_artists", name))
        mbid = self.artist_mbids.get(name)
        return [ArtistSearchResult(mbid=mbid, name=name, confidence=1.0)] if mbid else []

    async def search_release_groups(
        self,
        artist_name: str,
        primary_type: str = "Album",
        limit: int = 3,
        cancel_token: CancellationToken | None = None,
    ) -> list[ReleaseGroup]:
        self.calls.append(("search_release_groups", artist_name))
        return self.albums.get(artist_name, [])[:limit]

    async def resolve_recording(
        self,
        recording_mbid: str,
        cancel_token: CancellationToken | None = None,
    ) -> TrackInfo | None:
        self.calls.append(("resolve_recording", recording_mbid))
        return self.tracks.get(recording_mbid)

    async def resolve_recording_to_album(
        self,
        recording_mbid: str,
        cancel_token: CancellationToken | None = None,
    ) -> AlbumInfo | None:
        self.calls.append(("resolve_recording_to_album", recording_mbid))
        return self.recording_albums.get(recording_mbid)

    def get_provider_name(self) -> str:
        return "stub-musicdb"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Return a Settings factory with zero delays and no .env file."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "rate_limit_delay_seconds": 0.0,
            "cover_art_delay_seconds": 0.0,
            "subsonic_host": "http://library.test",
            "subsonic_username": "tester",
            "lastfm_api_key": "",
            "listenbrainz_username": "",
            "listenbrainz_token": "",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def registry() -> MemoryJobRegistry:
    return MemoryJobRegistry()


@pytest_asyncio.fixture
async def catalog(tmp_path: Path) -> SQLiteCatalogStore:
    store = SQLiteCatalogStore(db_path=tmp_path / "catalog.db")
    await store.initialize()
    return store


@pytest_asyncio.fixture
async def queue(tmp_path: Path) -> SQLitePendingQueue:
    pending = SQLitePendingQueue(db_path=tmp_path / "queue.db")
    await pending.initialize()
    return pending
