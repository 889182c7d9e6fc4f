"""ListenBrainz similarity provider (token-free variant).

Queries the ListenBrainz Labs ``similar-artists`` dataset, which is keyed
by MusicBrainz artist id.  When the caller has no MBID for the artist, the
provider resolves one through the injected music-database provider and
remembers the answer in a per-instance ``cachetools.LRUCache`` keyed by
normalized name, so a given artist is resolved at most once for the
lifetime of the provider.  The cache is bounded well above any library
size; a name evicted from a full cache is simply resolved again.

Only successful resolutions are cached: the music-database provider answers
"no match" and "network failure" alike with an empty list, and neither
should pin the artist as unresolvable for the provider's lifetime.
"""

from __future__ import annotations

from typing import Any

import httpx
from cachetools import LRUCache

from cratedigger.interfaces.music_db_provider import IMusicDatabaseProvider
from cratedigger.interfaces.similarity_provider import ISimilarityProvider
from cratedigger.models.catalog import CandidateResult
from cratedigger.utils.cancellation import CancellationToken
from cratedigger.utils.errors import OperationCancelledError, ProviderError
from cratedigger.utils.logging import get_logger
from cratedigger.utils.retry import RetryingExecutor
from cratedigger.utils.text_normalizer import normalize_name

_LABS_URL = "https://labs.api.listenbrainz.org/similar-artists/json"
_ALGORITHM = "session_based_days_9000_session_300_contribution_5_threshold_15_limit_50_skip_30"
_DEFAULT_MBID_CACHE_SIZE = 10_000


class ListenBrainzSimilarityProvider(ISimilarityProvider):
    """Similarity provider backed by the ListenBrainz Labs API.

    Needs no API key.  The MBID resolution cache belongs to this instance;
    build one provider per job run (or share one across sequential runs),
    never a module-level singleton.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        music_db: IMusicDatabaseProvider,
        retry: RetryingExecutor | None = None,
        enabled: bool = True,
        mbid_cache_size: int = _DEFAULT_MBID_CACHE_SIZE,
    ) -> None:
        self._http = http_client
        self._music_db = music_db
        self._retry = retry or RetryingExecutor()
        self._enabled = enabled
        self._mbid_cache: LRUCache[str, str] = LRUCache(maxsize=mbid_cache_size)
        self._logger = get_logger(__name__)

    # -- Private helpers -------------------------------------------------------

    async def _resolve_mbid(
        self, artist_name: str, cancel_token: CancellationToken | None
    ) -> str | None:
        """Return the cached or freshly resolved MBID for *artist_name*."""
        key = normalize_name(artist_name)
        cached = self._mbid_cache.get(key)
        if cached:
            return cached

        matches = await self._music_db.search_artists(artist_name, limit=1, cancel_token=cancel_token)
        mbid = matches[0].mbid if matches else None
        if mbid:
            self._mbid_cache[key] = mbid

        self._logger.debug(
            "listenbrainz_mbid_resolved",
            artist=artist_name,
            mbid=mbid,
        )
        return mbid

    def _parse_similar(
        self, payload: Any, artist_mbid: str, limit: int
    ) -> list[CandidateResult]:
        if isinstance(payload, dict) and "error" in payload:
            raise ProviderError(
                message=f"ListenBrainz Labs error: {payload['error']}",
                provider_name=self.get_provider_name(),
            )
        if not isinstance(payload, list):
            raise ProviderError(
                message="Unexpected similar-artists payload shape",
                provider_name=self.get_provider_name(),
            )

        similar: list[dict[str, Any]] = []
        for block in payload:
            if not isinstance(block, dict):
                continue
            if block.get("artist_mbid") in (None, artist_mbid):
                similar.extend(block.get("similar_artists") or [])

        results: list[CandidateResult] = []
        for item in similar:
            name = (item.get("name") or "").strip()
            if not name:
                continue
            results.append(
                CandidateResult(
                    name=name,
                    match=max(0.0, float(item.get("score") or 0.0)),
                    mbid=item.get("artist_mbid") or None,
                    provider=self.get_provider_name(),
                )
            )
            if len(results) >= limit:
                break
        return results

    # -- ISimilarityProvider implementation -----------------------------------

    async def get_similar_artists(
        self,
        artist_name: str,
        artist_mbid: str | None = None,
        limit: int = 10,
        cancel_token: CancellationToken | None = None,
    ) -> list[CandidateResult]:
        """Return up to *limit* similar artists from ListenBrainz Labs."""
        try:
            mbid = artist_mbid or await self._resolve_mbid(artist_name, cancel_token)
            if not mbid:
                self._logger.debug("listenbrainz_mbid_unresolved", artist=artist_name)
                return []

            body = [{"artist_mbids": [mbid], "algorithm": _ALGORITHM}]
            response = await self._retry.request(
                self._http, "POST", _LABS_URL, cancel_token=cancel_token, json=body
            )
            results = self._parse_similar(response.json(), mbid, limit)
        except OperationCancelledError:
            self._logger.debug("listenbrainz_similar_cancelled", artist=artist_name)
            return []
        except Exception as exc:  # noqa: BLE001
            self._logger.warning(
                "listenbrainz_similar_failed",
                artist=artist_name,
                error=str(exc) or type(exc).__name__,
            )
            return []

        self._logger.debug(
            "listenbrainz_similar_fetched",
            artist=artist_name,
            result_count=len(results),
        )
        return results

    def get_provider_name(self) -> str:
        return "listenbrainz"

    def is_configured(self) -> bool:
        return self._enabled
