"""Last.fm similarity provider (keyed-API variant).

Calls ``artist.getSimilar`` on the Last.fm 2.0 web service with the
configured API key.  One round trip per call, wrapped in the shared retry
transport with a lower attempt ceiling (Last.fm rate-limits aggressively
and a fan-out call has its own timeout anyway).

Last.fm reports API-level failures (unknown artist, invalid key) as a 200
response with an ``error`` field; those, like every other provider-side
failure, become an empty result list.
"""

from __future__ import annotations

from typing import Any

import httpx

from cratedigger.interfaces.similarity_provider import ISimilarityProvider
from cratedigger.models.catalog import CandidateResult
from cratedigger.utils.cancellation import CancellationToken
from cratedigger.utils.errors import OperationCancelledError, ProviderError
from cratedigger.utils.logging import get_logger
from cratedigger.utils.retry import RetryingExecutor, RetryPolicy

_API_URL = "https://ws.audioscrobbler.com/2.0/"
_DEFAULT_MAX_ATTEMPTS = 2


class LastFmSimilarityProvider(ISimilarityProvider):
    """Similarity provider backed by the Last.fm ``artist.getSimilar`` API.

    The ``httpx.AsyncClient`` is injected via the constructor for
    testability.  An empty API key leaves the provider unconfigured.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        retry: RetryingExecutor | None = None,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self._retry = retry or RetryingExecutor(RetryPolicy(max_attempts=_DEFAULT_MAX_ATTEMPTS))
        self._logger = get_logger(__name__)

    # -- Private helpers -------------------------------------------------------

    def _parse_similar(self, payload: dict[str, Any], limit: int) -> list[CandidateResult]:
        """Map a ``similarartists`` payload to candidate results."""
        if "error" in payload:
            raise ProviderError(
                message=f"Last.fm error {payload.get('error')}: {payload.get('message', '')}",
                provider_name=self.get_provider_name(),
            )

        artists = (payload.get("similarartists") or {}).get("artist") or []
        # A single similar artist comes back as an object, not a list.
        if isinstance(artists, dict):
            artists = [artists]

        results: list[CandidateResult] = []
        for item in artists[:limit]:
            if not isinstance(item, dict):
                continue
            name = (item.get("name") or "").strip()
            if not name:
                continue
            try:
                match = float(item.get("match") or 0.0)
            except (TypeError, ValueError):
                match = 0.0
            results.append(
                CandidateResult(
                    name=name,
                    match=max(0.0, match),
                    mbid=item.get("mbid") or None,
                    provider=self.get_provider_name(),
                )
            )
        return results

    # -- ISimilarityProvider implementation -----------------------------------

    async def get_similar_artists(
        self,
        artist_name: str,
        artist_mbid: str | None = None,
        limit: int = 10,
        cancel_token: CancellationToken | None = None,
    ) -> list[CandidateResult]:
        """Return up to *limit* Last.fm similar artists for *artist_name*.

        *artist_mbid* is accepted for interface compatibility; Last.fm is
        queried by name so that artists without an MBID still resolve.
        """
        params = {
            "method": "artist.getsimilar",
            "artist": artist_name,
            "api_key": self._api_key,
            "limit": str(limit),
            "format": "json",
        }
        try:
            response = await self._retry.request(
                self._http, "GET", _API_URL, cancel_token=cancel_token, params=params
            )
            results = self._parse_similar(response.json(), limit)
        except OperationCancelledError:
            self._logger.debug("lastfm_similar_cancelled", artist=artist_name)
            return []
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(
                "lastfm_similar_failed",
                artist=artist_name,
                error=str(exc) or type(exc).__name__,
            )
            return []

        self._logger.debug(
            "lastfm_similar_fetched",
            artist=artist_name,
            result_count=len(results),
        )
        return results

    def get_provider_name(self) -> str:
        return "lastfm"

    def is_configured(self) -> bool:
        return bool(self._api_key)
