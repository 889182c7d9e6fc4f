"""MusicBrainz provider implementing IMusicDatabaseProvider.

Queries the MusicBrainz JSON web service (``/ws/2``) for artist search
(naming registry), release-group search (detail registry) and recording
lookups (recording resolver).  Every request goes through the shared retry
transport, which also retries the 503 MusicBrainz answers with when a
client exceeds the 1 request/second limit.  Requests are additionally
throttled here so that two consecutive calls never land closer than
``min_interval`` seconds apart.

HTTP failures and malformed payloads are logged and turned into empty
results / ``None``; cancellation always propagates.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import httpx

from cratedigger.config.settings import Settings
from cratedigger.interfaces.music_db_provider import (
    AlbumInfo,
    ArtistSearchResult,
    IMusicDatabaseProvider,
    ReleaseGroup,
    TrackInfo,
)
from cratedigger.utils.cancellation import CancellationToken
from cratedigger.utils.errors import OperationCancelledError, ProviderError
from cratedigger.utils.logging import get_logger
from cratedigger.utils.retry import RetryingExecutor
from cratedigger.utils.text_normalizer import parse_year

_BASE_URL = "https://musicbrainz.org/ws/2"
# Spaces are sent as "+", the separator MusicBrainz expects.
_RECORDING_INCLUDES = "artists releases release-groups"
_DEFAULT_MIN_INTERVAL = 1.0  # seconds between requests


def _escape_lucene(value: str) -> str:
    """Escape double quotes and backslashes for a quoted Lucene term."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _objects(value: Any) -> list[dict[str, Any]]:
    """Return the JSON objects in *value*, or ``[]`` if it is not a list."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _artist_credit_name(credits: Any) -> str:
    """Join an ``artist-credit`` list into a display name ("A feat. B")."""
    parts: list[str] = []
    for credit in _objects(credits):
        artist = credit.get("artist")
        name = credit.get("name") or (artist.get("name") if isinstance(artist, dict) else None) or ""
        parts.append(str(name) + str(credit.get("joinphrase") or ""))
    return "".join(parts).strip() or "Unknown Artist"


class MusicBrainzProvider(IMusicDatabaseProvider):
    """MusicBrainz music-database provider with built-in rate limiting.

    MusicBrainz is a free, open music encyclopedia.  No API key is
    required, but clients must identify themselves via a user-agent string
    and respect the 1 request/second rate limit.

    Attributes
    ----------
    _settings : Settings
        Application settings containing MusicBrainz user-agent details.
    _last_request_time : float
        Monotonic timestamp of the most recent API call, used for throttling.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        retry: RetryingExecutor | None = None,
        min_interval: float = _DEFAULT_MIN_INTERVAL,
    ) -> None:
        self._http = http_client
        self._settings = settings
        self._retry = retry or RetryingExecutor()
        self._min_interval = min_interval
        self._last_request_time: float = 0.0
        self._logger = get_logger(__name__)

        contact = settings.musicbrainz_contact
        self._user_agent = f"{settings.musicbrainz_app_name}/{settings.musicbrainz_app_version}"
        if contact:
            self._user_agent += f" ( {contact} )"

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------

    async def _throttle(self, cancel_token: CancellationToken | None) -> None:
        """Enforce the MusicBrainz 1 req/sec rate limit."""
        elapsed = time.monotonic() - self._last_request_time
        if self._last_request_time > 0 and elapsed < self._min_interval:
            wait = self._min_interval - elapsed
            if cancel_token is not None:
                await cancel_token.sleep(wait)
            else:
                await asyncio.sleep(wait)
        self._last_request_time = time.monotonic()

    async def _get_json(
        self,
        path: str,
        params: dict[str, str],
        cancel_token: CancellationToken | None,
    ) -> dict[str, Any]:
        await self._throttle(cancel_token)
        response = await self._retry.request(
            self._http,
            "GET",
            f"{_BASE_URL}{path}",
            cancel_token=cancel_token,
            params={**params, "fmt": "json"},
            headers={"User-Agent": self._user_agent, "Accept": "application/json"},
        )
        payload = response.json()
        if not isinstance(payload, dict):
            raise ProviderError(
                message=f"Expected a JSON object from {path}, got {type(payload).__name__}",
                provider_name=self.get_provider_name(),
            )
        return payload

    async def _get_recording(
        self, recording_mbid: str, cancel_token: CancellationToken | None
    ) -> dict[str, Any] | None:
        try:
            return await self._get_json(
                f"/recording/{recording_mbid}",
                {"inc": _RECORDING_INCLUDES},
                cancel_token,
            )
        except OperationCancelledError:
            raise
        except (httpx.HTTPError, ValueError, ProviderError) as exc:
            self._logger.warning(
                "musicbrainz_recording_lookup_failed",
                recording_mbid=recording_mbid,
                error=str(exc) or type(exc).__name__,
            )
            return None

    @staticmethod
    def _preferred_release_group(recording: dict[str, Any]) -> dict[str, Any] | None:
        """Pick the release group to attribute a recording to.

        The first release whose group is of primary type ``Album`` wins;
        otherwise the first release with any group.
        """
        groups = [
            rel["release-group"]
            for rel in _objects(recording.get("releases"))
            if isinstance(rel.get("release-group"), dict)
        ]
        for group in groups:
            if group.get("primary-type") == "Album":
                return group
        return groups[0] if groups else None

    # ------------------------------------------------------------------
    # IMusicDatabaseProvider implementation
    # ------------------------------------------------------------------

    async def search_artists(
        self,
        name: str,
        limit: int = 1,
        cancel_token: CancellationToken | None = None,
    ) -> list[ArtistSearchResult]:
        """Search MusicBrainz for artists matching *name*."""
        try:
            payload = await self._get_json(
                "/artist", {"query": name, "limit": str(limit)}, cancel_token
            )
        except OperationCancelledError:
            raise
        except (httpx.HTTPError, ValueError, ProviderError) as exc:
            self._logger.warning(
                "musicbrainz_artist_search_failed",
                query=name,
                error=str(exc) or type(exc).__name__,
            )
            return []

        results: list[ArtistSearchResult] = []
        for artist in _objects(payload.get("artists")):
            if not artist.get("id"):
                continue
            results.append(
                ArtistSearchResult(
                    mbid=artist["id"],
                    name=artist.get("name", ""),
                    disambiguation=artist.get("disambiguation") or None,
                    confidence=int(artist.get("score", 0) or 0) / 100.0,
                )
            )

        self._logger.debug(
            "musicbrainz_artist_search",
            query=name,
            result_count=len(results),
        )
        return results[:limit]

    async def search_release_groups(
        self,
        artist_name: str,
        primary_type: str = "Album",
        limit: int = 3,
        cancel_token: CancellationToken | None = None,
    ) -> list[ReleaseGroup]:
        """Return up to *limit* release groups of *primary_type* by *artist_name*."""
        query = f'artist:"{_escape_lucene(artist_name)}" AND primarytype:{primary_type}'
        try:
            payload = await self._get_json(
                "/release-group", {"query": query, "limit": str(limit)}, cancel_token
            )
        except OperationCancelledError:
            raise
        except (httpx.HTTPError, ValueError, ProviderError) as exc:
            self._logger.warning(
                "musicbrainz_release_group_search_failed",
                artist=artist_name,
                error=str(exc) or type(exc).__name__,
            )
            return []

        groups: list[ReleaseGroup] = []
        for item in _objects(payload.get("release-groups")):
            if not item.get("id"):
                continue
            groups.append(
                ReleaseGroup(
                    mbid=item["id"],
                    title=item.get("title", ""),
                    first_release_date=item.get("first-release-date") or None,
                    primary_type=item.get("primary-type"),
                )
            )

        self._logger.debug(
            "musicbrainz_release_group_search",
            artist=artist_name,
            primary_type=primary_type,
            result_count=len(groups),
        )
        return groups[:limit]

    async def resolve_recording(
        self,
        recording_mbid: str,
        cancel_token: CancellationToken | None = None,
    ) -> TrackInfo | None:
        """Resolve a recording to artist, title and its preferred release group."""
        recording = await self._get_recording(recording_mbid, cancel_token)
        if recording is None:
            return None

        group = self._preferred_release_group(recording)
        return TrackInfo(
            mbid=recording.get("id") or recording_mbid,
            artist=_artist_credit_name(recording.get("artist-credit")),
            title=recording.get("title", ""),
            release_group_mbid=group.get("id") if group else None,
        )

    async def resolve_recording_to_album(
        self,
        recording_mbid: str,
        cancel_token: CancellationToken | None = None,
    ) -> AlbumInfo | None:
        """Resolve a recording to the album (release group) it belongs to."""
        recording = await self._get_recording(recording_mbid, cancel_token)
        if recording is None:
            return None

        group = self._preferred_release_group(recording)
        if group is None or not group.get("id"):
            self._logger.debug("musicbrainz_recording_without_album", recording_mbid=recording_mbid)
            return None

        return AlbumInfo(
            mbid=group["id"],
            artist=_artist_credit_name(recording.get("artist-credit")),
            title=group.get("title", ""),
            track_title=recording.get("title", ""),
            year=parse_year(group.get("first-release-date")),
        )

    def get_provider_name(self) -> str:
        """Return the provider identifier."""
        return "musicbrainz"
