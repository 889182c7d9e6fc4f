"""Unit tests for the Last.fm and ListenBrainz similarity providers."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest
from conftest import StubMusicDatabase

from cratedigger.providers.similarity.lastfm_provider import LastFmSimilarityProvider
from cratedigger.providers.similarity.listenbrainz_provider import ListenBrainzSimilarityProvider
from cratedigger.utils.cancellation import CancellationToken
from cratedigger.utils.retry import RetryingExecutor, RetryPolicy


async def _no_sleep(seconds: float) -> None:
    return None


def _retry(max_attempts: int = 2) -> RetryingExecutor:
    return RetryingExecutor(RetryPolicy(max_attempts=max_attempts), sleep=_no_sleep)


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ======================================================================
# Last.fm
# ======================================================================


class TestLastFmSimilarityProvider:
    def test_identity_and_configuration(self) -> None:
        provider = LastFmSimilarityProvider(http_client=_client(lambda r: httpx.Response(200)), api_key="")
        assert provider.get_provider_name() == "lastfm"
        assert provider.is_configured() is False

    @pytest.mark.asyncio
    async def test_parses_similar_artists(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "similarartists": {
                        "artist": [
                            {"name": "Plaid", "match": "0.91", "mbid": "plaid-mbid"},
                            {"name": "Seefeel", "match": "0.5", "mbid": ""},
                            {"name": "", "match": "0.4"},
                        ]
                    }
                },
            )

        async with _client(handler) as client:
            provider = LastFmSimilarityProvider(client, api_key="key", retry=_retry())
            results = await provider.get_similar_artists("Autechre", limit=5)

        assert [(r.name, r.match, r.mbid, r.provider) for r in results] == [
            ("Plaid", 0.91, "plaid-mbid", "lastfm"),
            ("Seefeel", 0.5, None, "lastfm"),
        ]
        params = seen[0].url.params
        assert params["method"] == "artist.getsimilar"
        assert params["artist"] == "Autechre"
        assert params["api_key"] == "key"
        assert params["limit"] == "5"
        assert params["format"] == "json"

    @pytest.mark.asyncio
    async def test_single_artist_object(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"similarartists": {"artist": {"name": "Plaid", "match": "1"}}})

        async with _client(handler) as client:
            provider = LastFmSimilarityProvider(client, api_key="key", retry=_retry())
            results = await provider.get_similar_artists("Autechre")

        assert [r.name for r in results] == ["Plaid"]

    @pytest.mark.asyncio
    async def test_api_error_yields_empty(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"error": 6, "message": "The artist you supplied could not be found"})

        async with _client(handler) as client:
            provider = LastFmSimilarityProvider(client, api_key="key", retry=_retry())
            assert await provider.get_similar_artists("Nobody") == []

    @pytest.mark.asyncio
    async def test_retries_at_most_twice_then_gives_up(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(503)

        async with _client(handler) as client:
            provider = LastFmSimilarityProvider(client, api_key="key", retry=_retry(max_attempts=2))
            assert await provider.get_similar_artists("Autechre") == []
        assert calls == 2

    @pytest.mark.asyncio
    async def test_cancelled_token_yields_empty(self) -> None:
        token = CancellationToken()
        token.cancel()

        async with _client(lambda r: httpx.Response(200, json={})) as client:
            provider = LastFmSimilarityProvider(client, api_key="key", retry=_retry())
            assert await provider.get_similar_artists("Autechre", cancel_token=token) == []


# ======================================================================
# ListenBrainz Labs
# ======================================================================


def _labs_handler(bodies: list[object]) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(
            200,
            json=[
                {
                    "artist_mbid": "autechre-mbid",
                    "similar_artists": [
                        {"name": "Plaid", "score": 0.8, "artist_mbid": "plaid-mbid"},
                        {"name": "Seefeel", "score": 0.6},
                        {"name": "Boards of Canada", "score": 0.5},
                    ],
                },
                {"artist_mbid": "someone-else", "similar_artists": [{"name": "Wrong", "score": 1.0}]},
            ],
        )

    return handler


class TestListenBrainzSimilarityProvider:
    @pytest.mark.asyncio
    async def test_uses_known_mbid_without_lookup(self) -> None:
        bodies: list[object] = []
        music_db = StubMusicDatabase()

        async with _client(_labs_handler(bodies)) as client:
            provider = ListenBrainzSimilarityProvider(client, music_db, retry=_retry())
            results = await provider.get_similar_artists("Autechre", "autechre-mbid", limit=2)

        assert [(r.name, r.match, r.provider) for r in results] == [
            ("Plaid", 0.8, "listenbrainz"),
            ("Seefeel", 0.6, "listenbrainz"),
        ]
        assert results[0].mbid == "plaid-mbid"
        assert music_db.calls == []
        assert bodies[0][0]["artist_mbids"] == ["autechre-mbid"]
        assert bodies[0][0]["algorithm"].startswith("session_based")

    @pytest.mark.asyncio
    async def test_resolves_and_caches_mbid(self) -> None:
        bodies: list[object] = []
        music_db = StubMusicDatabase(artist_mbids={"Autechre": "autechre-mbid"})

        async with _client(_labs_handler(bodies)) as client:
            provider = ListenBrainzSimilarityProvider(client, music_db, retry=_retry())
            await provider.get_similar_artists("Autechre")
            await provider.get_similar_artists("Autechre")

        assert music_db.calls == [("search_artists", "Autechre")]
        assert len(bodies) == 2

    @pytest.mark.asyncio
    async def test_mbid_cache_is_bounded(self) -> None:
        bodies: list[object] = []
        music_db = StubMusicDatabase(artist_mbids={"Autechre": "autechre-mbid", "Plaid": "plaid-mbid"})

        async with _client(_labs_handler(bodies)) as client:
            provider = ListenBrainzSimilarityProvider(client, music_db, retry=_retry(), mbid_cache_size=1)
            await provider.get_similar_artists("Autechre")
            await provider.get_similar_artists("autechre")
            await provider.get_similar_artists("Plaid")
            await provider.get_similar_artists("Autechre")

        # The lookup key is the normalized name; Plaid evicts Autechre.
        assert music_db.calls == [
            ("search_artists", "Autechre"),
            ("search_artists", "Plaid"),
            ("search_artists", "Autechre"),
        ]

    @pytest.mark.asyncio
    async def test_unresolvable_artist_yields_empty_without_request(self) -> None:
        bodies: list[object] = []
        music_db = StubMusicDatabase()

        async with _client(_labs_handler(bodies)) as client:
            provider = ListenBrainzSimilarityProvider(client, music_db, retry=_retry())
            assert await provider.get_similar_artists("Nobody") == []
            assert await provider.get_similar_artists("Nobody") == []

        assert bodies == []
        # Failed resolutions are not cached.
        assert music_db.calls == [("search_artists", "Nobody"), ("search_artists", "Nobody")]

    @pytest.mark.asyncio
    async def test_error_payload_yields_empty(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"error": "unknown algorithm"})

        async with _client(handler) as client:
            provider = ListenBrainzSimilarityProvider(client, StubMusicDatabase(), retry=_retry())
            assert await provider.get_similar_artists("Autechre", "autechre-mbid") == []

    @pytest.mark.asyncio
    async def test_http_failure_yields_empty(self) -> None:
        async with _client(lambda r: httpx.Response(500)) as client:
            provider = ListenBrainzSimilarityProvider(client, StubMusicDatabase(), retry=_retry())
            assert await provider.get_similar_artists("Autechre", "autechre-mbid") == []

    def test_configuration_follows_enabled_flag(self) -> None:
        client = _client(lambda r: httpx.Response(200))
        assert ListenBrainzSimilarityProvider(client, StubMusicDatabase()).is_configured() is True
        assert ListenBrainzSimilarityProvider(client, StubMusicDatabase(), enabled=False).is_configured() is False
