"""Unit tests for the ListenBrainz recommendation fetch job."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import StubMusicDatabase

from cratedigger.interfaces.job_control import JOB_LISTENBRAINZ_FETCH
from cratedigger.interfaces.music_db_provider import AlbumInfo, TrackInfo
from cratedigger.interfaces.recommendation_provider import (
    IRecommendationProvider,
    PlaylistSummary,
    RecordingRecommendation,
)
from cratedigger.models.discovery import JobOutcome
from cratedigger.models.queue import EntrySource, EntryType, PendingEntry
from cratedigger.pipeline.recommendation_fetch import ListenBrainzFetchJob
from cratedigger.providers.cover_art.cover_art_archive_provider import CoverArtArchiveProvider
from cratedigger.utils.errors import OperationCancelledError

_WEEKLY = PlaylistSummary(
    identifier="https://listenbrainz.org/playlist/aaaa-1111",
    title="Weekly Exploration for digger",
    weekly=True,
)

ALBUMS = {
    "rec-1": AlbumInfo(mbid="rg-a", artist="Plaid", title="Not for Threes", track_title="Headspin", year=1997),
    "rec-2": AlbumInfo(mbid="rg-a", artist="Plaid", title="Not for Threes", track_title="Extork", year=1997),
    "rec-3": AlbumInfo(mbid="rg-b", artist="Seefeel", title="Quique", track_title="Climactic Phase", year=1993),
}

TRACKS = {
    "rec-1": TrackInfo(mbid="rec-1", artist="Plaid", title="Headspin", release_group_mbid="rg-a"),
    "rec-2": TrackInfo(mbid="rec-2", artist="Bola", title="Glink"),
    "rec-3": TrackInfo(mbid="rec-3", artist="Seefeel", title="Climactic Phase", release_group_mbid="rg-b"),
}


def _recommendations(
    recordings: list[RecordingRecommendation] | None = None,
    playlist: PlaylistSummary | None = _WEEKLY,
) -> MagicMock:
    provider = MagicMock(spec=IRecommendationProvider)
    provider.fetch_recommendations = AsyncMock(return_value=list(recordings or []))
    provider.find_weekly_exploration_playlist = AsyncMock(return_value=playlist)
    provider.fetch_playlist_recordings = AsyncMock(return_value=list(recordings or []))
    return provider


def _recs(*mbids: str, score: float | None = None) -> list[RecordingRecommendation]:
    return [RecordingRecommendation(recording_mbid=m, score=score) for m in mbids]


def _build(settings, catalog, queue, registry, recommendations, music_db=None) -> ListenBrainzFetchJob:
    return ListenBrainzFetchJob(
        settings=settings,
        recommendations=recommendations,
        music_db=music_db or StubMusicDatabase(tracks=TRACKS, recording_albums=ALBUMS),
        catalog=catalog,
        queue=queue,
        cover_art=CoverArtArchiveProvider(),
        job_control=registry,
    )


# ======================================================================
# Source selection
# ======================================================================


class TestSourceSelection:
    @pytest.mark.asyncio
    async def test_no_username_is_skipped(self, make_settings, catalog, queue, registry) -> None:
        recommendations = _recommendations(_recs("rec-1"))
        report = await _build(make_settings(), catalog, queue, registry, recommendations).run()

        assert report.outcome == JobOutcome.SKIPPED
        recommendations.find_weekly_exploration_playlist.assert_not_awaited()
        recommendations.fetch_recommendations.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_weekly_playlist_source(self, make_settings, catalog, queue, registry) -> None:
        recommendations = _recommendations(_recs("rec-1"))
        settings = make_settings(listenbrainz_username="digger")

        report = await _build(settings, catalog, queue, registry, recommendations).run()

        assert report.source_type == "weekly_playlist"
        assert report.received_count == 1
        recommendations.find_weekly_exploration_playlist.assert_awaited_once()
        assert recommendations.fetch_playlist_recordings.await_args.args[0] == "aaaa-1111"
        recommendations.fetch_recommendations.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_collaborative_without_token_falls_back(self, make_settings, catalog, queue, registry) -> None:
        recommendations = _recommendations(_recs("rec-1"))
        settings = make_settings(listenbrainz_username="digger", listenbrainz_source_type="collaborative")

        report = await _build(settings, catalog, queue, registry, recommendations).run()

        assert report.source_type == "weekly_playlist"
        recommendations.fetch_recommendations.assert_not_awaited()
        recommendations.fetch_playlist_recordings.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_collaborative_with_token(self, make_settings, catalog, queue, registry) -> None:
        recommendations = _recommendations(_recs("rec-1", score=0.8))
        settings = make_settings(
            listenbrainz_username="digger",
            listenbrainz_token="secret",
            listenbrainz_source_type="collaborative",
            fetch_count=25,
        )

        report = await _build(settings, catalog, queue, registry, recommendations).run()

        assert report.source_type == "collaborative"
        call = recommendations.fetch_recommendations.await_args
        assert call.args[:2] == ("digger", "secret")
        assert call.kwargs["count"] == 25
        recommendations.find_weekly_exploration_playlist.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_weekly_playlist_completes_empty(self, make_settings, catalog, queue, registry) -> None:
        recommendations = _recommendations(playlist=None)
        settings = make_settings(listenbrainz_username="digger")

        report = await _build(settings, catalog, queue, registry, recommendations).run()

        assert report.outcome == JobOutcome.COMPLETED
        assert report.message == "no recommendations available"
        recommendations.fetch_playlist_recordings.assert_not_awaited()


# ======================================================================
# Album mode
# ======================================================================


class TestAlbumMode:
    @pytest.mark.asyncio
    async def test_albums_are_queued_once_per_run(self, make_settings, catalog, queue, registry) -> None:
        recommendations = _recommendations(_recs("rec-1", "rec-2", "rec-3"))
        settings = make_settings(listenbrainz_username="digger")

        report = await _build(settings, catalog, queue, registry, recommendations).run()

        assert report.added_count == 2
        pending = await queue.list_pending()
        assert [p.mbid for p in pending] == ["rg-a", "rg-b"]
        first = pending[0]
        assert first.type == EntryType.ALBUM
        assert first.source == EntrySource.LISTENBRAINZ
        assert first.source_track == "Headspin"
        assert first.year == 1997
        assert first.score is None
        assert await catalog.is_processed("rg-a", "listenbrainz") is True

    @pytest.mark.asyncio
    async def test_processed_album_is_not_queued_again(self, make_settings, catalog, queue, registry) -> None:
        settings = make_settings(listenbrainz_username="digger")
        await _build(settings, catalog, queue, registry, _recommendations(_recs("rec-1"))).run()
        await queue.reject("rg-a")

        report = await _build(settings, catalog, queue, registry, _recommendations(_recs("rec-2"))).run()

        assert report.added_count == 0
        assert await queue.list_pending() == []

    @pytest.mark.asyncio
    async def test_rejected_and_pending_albums_are_skipped(self, make_settings, catalog, queue, registry) -> None:
        await queue.add_pending(
            PendingEntry(mbid="rg-a", type=EntryType.ALBUM, artist="Plaid", source=EntrySource.CATALOG)
        )
        await queue.reject("rg-a")
        await queue.add_pending(
            PendingEntry(mbid="rg-b", type=EntryType.ALBUM, artist="Seefeel", source=EntrySource.CATALOG)
        )
        settings = make_settings(listenbrainz_username="digger")

        report = await _build(settings, catalog, queue, registry, _recommendations(_recs("rec-1", "rec-3"))).run()

        assert report.added_count == 0
        [still_pending] = await queue.list_pending()
        assert still_pending.source == EntrySource.CATALOG

    @pytest.mark.asyncio
    async def test_auto_approval_marks_without_queueing(self, make_settings, catalog, queue, registry) -> None:
        settings = make_settings(listenbrainz_username="digger", listenbrainz_approval_mode="auto")

        report = await _build(settings, catalog, queue, registry, _recommendations(_recs("rec-1"))).run()

        assert report.added_count == 1
        assert await queue.list_pending() == []
        assert await catalog.is_processed("rg-a", "listenbrainz") is True


# ======================================================================
# Track mode
# ======================================================================


class TestTrackMode:
    @pytest.mark.asyncio
    async def test_min_score_filters_scored_recordings(self, make_settings, catalog, queue, registry) -> None:
        recordings = [
            RecordingRecommendation("rec-1", 0.82),
            RecordingRecommendation("rec-2", 0.3),
            RecordingRecommendation("rec-3", None),
        ]
        settings = make_settings(
            listenbrainz_username="digger",
            listenbrainz_token="secret",
            listenbrainz_source_type="collaborative",
            recommendation_mode="track",
            min_score=0.5,
        )
        music_db = StubMusicDatabase(tracks=TRACKS)

        report = await _build(settings, catalog, queue, registry, _recommendations(recordings), music_db).run()

        assert report.added_count == 2
        assert ("resolve_recording", "rec-2") not in music_db.calls
        pending = await queue.list_pending()
        assert [(p.mbid, p.type, p.score) for p in pending] == [
            ("rec-1", EntryType.TRACK, 82.0),
            ("rec-3", EntryType.TRACK, None),
        ]
        assert pending[0].title == "Headspin"
        assert pending[0].cover_url == "https://coverartarchive.org/release-group/rg-a/front-250"
        assert await catalog.is_processed("rec-1", "listenbrainz") is True

    @pytest.mark.asyncio
    async def test_track_without_release_group_has_no_cover(self, make_settings, catalog, queue, registry) -> None:
        settings = make_settings(listenbrainz_username="digger", recommendation_mode="track")

        await _build(settings, catalog, queue, registry, _recommendations(_recs("rec-2"))).run()

        [entry] = await queue.list_pending()
        assert entry.artist == "Bola"
        assert entry.cover_url is None

    @pytest.mark.asyncio
    async def test_one_failing_recording_does_not_stop_the_run(
        self, make_settings, catalog, queue, registry
    ) -> None:
        class _FlakyDatabase(StubMusicDatabase):
            async def resolve_recording(self, recording_mbid, cancel_token=None):
                if recording_mbid == "rec-1":
                    raise RuntimeError("unexpected payload")
                return await super().resolve_recording(recording_mbid, cancel_token)

        settings = make_settings(listenbrainz_username="digger", recommendation_mode="track")
        music_db = _FlakyDatabase(tracks=TRACKS)

        report = await _build(
            settings, catalog, queue, registry, _recommendations(_recs("rec-1", "rec-3")), music_db
        ).run()

        assert report.added_count == 1
        assert [p.mbid for p in await queue.list_pending()] == ["rec-3"]
        assert await catalog.is_processed("rec-1", "listenbrainz") is False

    @pytest.mark.asyncio
    async def test_unresolvable_recording_is_skipped(self, make_settings, catalog, queue, registry) -> None:
        settings = make_settings(listenbrainz_username="digger", recommendation_mode="track")

        report = await _build(settings, catalog, queue, registry, _recommendations(_recs("rec-404"))).run()

        assert report.added_count == 0
        assert await catalog.is_processed("rec-404", "listenbrainz") is False


# ======================================================================
# Cancellation
# ======================================================================


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_before_fetch(self, make_settings, catalog, queue, registry) -> None:
        token = registry.start(JOB_LISTENBRAINZ_FETCH)
        registry.request_cancel(JOB_LISTENBRAINZ_FETCH)
        recommendations = _recommendations(_recs("rec-1"))
        settings = make_settings(listenbrainz_username="digger")

        with pytest.raises(OperationCancelledError):
            await _build(settings, catalog, queue, registry, recommendations).run(token)

        recommendations.find_weekly_exploration_playlist.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_between_recordings(self, make_settings, catalog, queue, registry) -> None:
        token = registry.start(JOB_LISTENBRAINZ_FETCH)

        class _CancellingDatabase(StubMusicDatabase):
            async def resolve_recording_to_album(self, recording_mbid, cancel_token=None):
                registry.request_cancel(JOB_LISTENBRAINZ_FETCH)
                return await super().resolve_recording_to_album(recording_mbid, cancel_token)

        settings = make_settings(listenbrainz_username="digger")
        music_db = _CancellingDatabase(recording_albums=ALBUMS)

        with pytest.raises(OperationCancelledError):
            await _build(
                settings, catalog, queue, registry, _recommendations(_recs("rec-1", "rec-3")), music_db
            ).run(token)

        assert ("resolve_recording_to_album", "rec-3") not in music_db.calls
        assert [p.mbid for p in await queue.list_pending()] == ["rg-a"]
