"""ListenBrainz recommendation provider implementing IRecommendationProvider.

Two recommendation sources are supported:

- **collaborative** -- the collaborative-filtering recording
  recommendations for a user (requires a user token);
- **weekly_playlist** -- the "Weekly Exploration" playlist ListenBrainz
  generates for every active user (public, no token needed).

Failures and malformed payloads are logged and answered with empty
results (``None`` for a playlist fetch); cancellation propagates.
"""

from __future__ import annotations

from typing import Any

import httpx

from cratedigger.interfaces.recommendation_provider import (
    IRecommendationProvider,
    PlaylistSummary,
    RecordingRecommendation,
)
from cratedigger.utils.cancellation import CancellationToken
from cratedigger.utils.errors import OperationCancelledError, ProviderError
from cratedigger.utils.logging import get_logger
from cratedigger.utils.retry import RetryingExecutor
from cratedigger.utils.text_normalizer import extract_recording_mbid

_API_URL = "https://api.listenbrainz.org/1"
_PLAYLIST_PAGE_SIZE = 25
_WEEKLY_EXPLORATION_MARKER = "weekly-exploration"
_JSPF_PLAYLIST_EXTENSION = "https://musicbrainz.org/doc/jspf#playlist"


def _object(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _objects(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _is_weekly_exploration(playlist: dict[str, Any]) -> bool:
    """Return ``True`` if a JSPF playlist is a weekly exploration playlist."""
    identifier = playlist.get("identifier")
    if isinstance(identifier, str) and _WEEKLY_EXPLORATION_MARKER in identifier:
        return True
    extension = _object(_object(playlist.get("extension")).get(_JSPF_PLAYLIST_EXTENSION))
    metadata = _object(_object(extension.get("additional_metadata")).get("algorithm_metadata"))
    return metadata.get("source_patch") == _WEEKLY_EXPLORATION_MARKER


class ListenBrainzRecommendationProvider(IRecommendationProvider):
    """Recording recommendations from the ListenBrainz public API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        retry: RetryingExecutor | None = None,
    ) -> None:
        self._http = http_client
        self._retry = retry or RetryingExecutor()
        self._logger = get_logger(__name__)

    async def _get(
        self,
        path: str,
        cancel_token: CancellationToken | None,
        params: dict[str, str] | None = None,
        token: str | None = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Token {token}"} if token else {}
        return await self._retry.request(
            self._http,
            "GET",
            f"{_API_URL}{path}",
            cancel_token=cancel_token,
            params=params,
            headers=headers,
        )

    def _json_object(self, response: httpx.Response) -> dict[str, Any]:
        payload = response.json()
        if not isinstance(payload, dict):
            raise ProviderError(
                message=f"Expected a JSON object, got {type(payload).__name__}",
                provider_name=self.get_provider_name(),
            )
        return payload

    async def fetch_recommendations(
        self,
        username: str,
        token: str,
        count: int = 100,
        cancel_token: CancellationToken | None = None,
    ) -> list[RecordingRecommendation]:
        """Return collaborative-filtering recommendations for *username*.

        ListenBrainz answers 204 when it has no recommendations for the
        user yet; that, and any failure, yields an empty list.
        """
        try:
            response = await self._get(
                f"/cf/recommendation/user/{username}/recording",
                cancel_token,
                params={"count": str(count)},
                token=token,
            )
            if response.status_code == 204 or not response.content:
                self._logger.info("listenbrainz_no_recommendations", username=username)
                return []
            payload = self._json_object(response)
        except OperationCancelledError:
            raise
        except (httpx.HTTPError, ValueError, ProviderError) as exc:
            self._logger.warning(
                "listenbrainz_recommendations_failed",
                username=username,
                error=str(exc) or type(exc).__name__,
            )
            return []

        recommendations: list[RecordingRecommendation] = []
        for item in _objects(_object(payload.get("payload")).get("mbids")):
            mbid = item.get("recording_mbid")
            if not mbid or not isinstance(mbid, str):
                continue
            score = item.get("score")
            if not isinstance(score, (int, float)):
                score = None
            recommendations.append(
                RecordingRecommendation(
                    recording_mbid=mbid,
                    score=float(score) if score is not None else None,
                )
            )
        return recommendations

    async def list_playlists_created_for(
        self,
        username: str,
        cancel_token: CancellationToken | None = None,
    ) -> list[PlaylistSummary]:
        """Return the playlists ListenBrainz generated for *username*."""
        try:
            response = await self._get(
                f"/user/{username}/playlists/createdfor",
                cancel_token,
                params={"count": str(_PLAYLIST_PAGE_SIZE)},
            )
            payload = self._json_object(response)
        except OperationCancelledError:
            raise
        except (httpx.HTTPError, ValueError, ProviderError) as exc:
            self._logger.warning(
                "listenbrainz_playlists_failed",
                username=username,
                error=str(exc) or type(exc).__name__,
            )
            return []

        summaries: list[PlaylistSummary] = []
        for entry in _objects(payload.get("playlists")):
            playlist = _object(entry.get("playlist"))
            identifier = playlist.get("identifier")
            if not identifier or not isinstance(identifier, str):
                continue
            title = playlist.get("title")
            summaries.append(
                PlaylistSummary(
                    identifier=identifier,
                    title=title if isinstance(title, str) else "",
                    weekly=_is_weekly_exploration(playlist),
                )
            )
        return summaries

    async def find_weekly_exploration_playlist(
        self,
        username: str,
        cancel_token: CancellationToken | None = None,
    ) -> PlaylistSummary | None:
        """Return the user's weekly exploration playlist, if one exists."""
        for summary in await self.list_playlists_created_for(username, cancel_token):
            if summary.weekly:
                return summary
        return None

    async def fetch_playlist_recordings(
        self,
        playlist_mbid: str,
        cancel_token: CancellationToken | None = None,
    ) -> list[RecordingRecommendation] | None:
        """Return one unscored recording per playlist track, or ``None`` on error."""
        try:
            response = await self._get(f"/playlist/{playlist_mbid}", cancel_token)
            payload = self._json_object(response)
        except OperationCancelledError:
            raise
        except (httpx.HTTPError, ValueError, ProviderError) as exc:
            self._logger.warning(
                "listenbrainz_playlist_failed",
                playlist_mbid=playlist_mbid,
                error=str(exc) or type(exc).__name__,
            )
            return None

        recordings: list[RecordingRecommendation] = []
        for track in _objects(_object(payload.get("playlist")).get("track")):
            identifiers = track.get("identifier") or []
            if isinstance(identifiers, str):
                identifiers = [identifiers]
            elif not isinstance(identifiers, list):
                continue
            # One recording MBID per track is enough.
            for identifier in identifiers:
                if not isinstance(identifier, str):
                    continue
                mbid = extract_recording_mbid(identifier)
                if mbid:
                    recordings.append(RecordingRecommendation(recording_mbid=mbid))
                    break
        return recordings

    def get_provider_name(self) -> str:
        return "listenbrainz"
