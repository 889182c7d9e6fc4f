"""ListenBrainz recommendation fetch job.

Pulls recommended recordings for one ListenBrainz user, resolves each one
through MusicBrainz and queues the result for approval.  Two sources:

- ``collaborative``   -- CF recommendations, needs a user token;
- ``weekly_playlist`` -- the user's weekly exploration playlist, public.

and two modes:

- ``track`` -- queue the recording itself;
- ``album`` -- queue the album the recording belongs to, once per run.

A single bad recording never stops the run; it is logged and skipped.
"""

from __future__ import annotations

import structlog

from cratedigger.config.settings import Settings
from cratedigger.interfaces.catalog_store import ICatalogStore
from cratedigger.interfaces.cover_art_provider import ICoverArtProvider
from cratedigger.interfaces.job_control import JOB_LISTENBRAINZ_FETCH, IJobControl
from cratedigger.interfaces.music_db_provider import IMusicDatabaseProvider
from cratedigger.interfaces.pending_queue import IPendingQueue
from cratedigger.interfaces.recommendation_provider import (
    IRecommendationProvider,
    RecordingRecommendation,
)
from cratedigger.models.catalog import utc_now
from cratedigger.models.discovery import JobOutcome, RecommendationReport
from cratedigger.models.queue import EntrySource, EntryType, PendingEntry
from cratedigger.services.ranking import normalize_to_percent
from cratedigger.utils.cancellation import CancellationToken
from cratedigger.utils.errors import OperationCancelledError
from cratedigger.utils.logging import get_logger
from cratedigger.utils.text_normalizer import extract_playlist_mbid

SOURCE_COLLABORATIVE = "collaborative"
SOURCE_WEEKLY_PLAYLIST = "weekly_playlist"
MODE_ALBUM = "album"
MODE_TRACK = "track"

# Processed-recording markers are namespaced by the source that produced them.
_PROCESSED_SOURCE = "listenbrainz"


class ListenBrainzFetchJob:
    """Fetches ListenBrainz recommendations and queues tracks or albums."""

    job_name = JOB_LISTENBRAINZ_FETCH

    def __init__(
        self,
        settings: Settings,
        recommendations: IRecommendationProvider,
        music_db: IMusicDatabaseProvider,
        catalog: ICatalogStore,
        queue: IPendingQueue,
        cover_art: ICoverArtProvider,
        job_control: IJobControl,
    ) -> None:
        self._settings = settings
        self._recommendations = recommendations
        self._music_db = music_db
        self._catalog = catalog
        self._queue = queue
        self._cover_art = cover_art
        self._job_control = job_control
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def run(self, cancel_token: CancellationToken | None = None) -> RecommendationReport:
        """Run one fetch.

        Raises
        ------
        OperationCancelledError
            If the job was cancelled between two recordings.
        """
        token = cancel_token or CancellationToken()
        username = self._settings.listenbrainz_username

        if not username:
            self._logger.info("listenbrainz_fetch_skipped", reason="no username configured")
            return RecommendationReport(
                outcome=JobOutcome.SKIPPED,
                message="ListenBrainz username is not configured",
            )

        source_type = self._settings.listenbrainz_source_type or SOURCE_WEEKLY_PLAYLIST
        if source_type == SOURCE_COLLABORATIVE and not self._settings.listenbrainz_token:
            self._logger.warning(
                "listenbrainz_token_missing",
                fallback=SOURCE_WEEKLY_PLAYLIST,
            )
            source_type = SOURCE_WEEKLY_PLAYLIST

        mode = self._settings.recommendation_mode or MODE_ALBUM
        self._logger.info(
            "listenbrainz_fetch_started",
            username=username,
            source_type=source_type,
            mode=mode,
        )

        self._check_cancelled(token, "before fetching recommendations")
        recordings = await self._fetch_recordings(username, source_type, token)
        if not recordings:
            self._logger.info("listenbrainz_no_recommendations", source_type=source_type)
            return RecommendationReport(
                source_type=source_type,
                mode=mode,
                message="no recommendations available",
            )

        self._logger.info("listenbrainz_recommendations_received", count=len(recordings))
        if mode == MODE_TRACK:
            added = await self._process_tracks(recordings, token)
        else:
            added = await self._process_albums(recordings, token)

        self._logger.info("listenbrainz_fetch_completed", added=added, mode=mode)
        return RecommendationReport(
            source_type=source_type,
            mode=mode,
            received_count=len(recordings),
            added_count=added,
        )

    # ------------------------------------------------------------------
    # Source selection
    # ------------------------------------------------------------------

    async def _fetch_recordings(
        self, username: str, source_type: str, token: CancellationToken
    ) -> list[RecordingRecommendation]:
        if source_type == SOURCE_COLLABORATIVE:
            return await self._recommendations.fetch_recommendations(
                username,
                self._settings.listenbrainz_token,
                count=self._settings.fetch_count,
                cancel_token=token,
            )

        playlist = await self._recommendations.find_weekly_exploration_playlist(
            username, cancel_token=token
        )
        if playlist is None:
            self._logger.info("weekly_playlist_not_found", username=username)
            return []

        playlist_mbid = extract_playlist_mbid(playlist.identifier)
        if not playlist_mbid:
            self._logger.warning("weekly_playlist_id_unparseable", identifier=playlist.identifier)
            return []

        self._logger.info("weekly_playlist_found", title=playlist.title, mbid=playlist_mbid)
        recordings = await self._recommendations.fetch_playlist_recordings(
            playlist_mbid, cancel_token=token
        )
        return recordings or []

    # ------------------------------------------------------------------
    # Track mode
    # ------------------------------------------------------------------

    async def _process_tracks(
        self, recordings: list[RecordingRecommendation], token: CancellationToken
    ) -> int:
        added = 0
        for rec in self._passing_min_score(recordings):
            self._check_cancelled(token, "while processing recordings")
            try:
                if await self._catalog.is_processed(rec.recording_mbid, _PROCESSED_SOURCE):
                    continue

                await token.sleep(self._settings.rate_limit_delay_seconds)
                track = await self._music_db.resolve_recording(rec.recording_mbid, cancel_token=token)
                if track is None:
                    continue

                cover_url = (
                    self._cover_art.get_cover_url(track.release_group_mbid)
                    if track.release_group_mbid
                    else None
                )

                if self._manual_approval():
                    if await self._queue.is_pending(track.mbid) or await self._queue.is_rejected(
                        track.mbid
                    ):
                        continue
                    await self._queue.add_pending(
                        PendingEntry(
                            mbid=track.mbid,
                            type=EntryType.TRACK,
                            artist=track.artist,
                            title=track.title,
                            score=normalize_to_percent(rec.score),
                            source=EntrySource.LISTENBRAINZ,
                            cover_url=cover_url,
                        )
                    )
                    self._logger.info("track_queued", artist=track.artist, title=track.title)
                else:
                    self._logger.info("track_auto_approved", artist=track.artist, title=track.title)

                await self._catalog.mark_processed(rec.recording_mbid, _PROCESSED_SOURCE, utc_now())
                added += 1
            except OperationCancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                self._logger.error(
                    "recording_processing_failed",
                    recording_mbid=rec.recording_mbid,
                    error=str(exc),
                )
        return added

    # ------------------------------------------------------------------
    # Album mode
    # ------------------------------------------------------------------

    async def _process_albums(
        self, recordings: list[RecordingRecommendation], token: CancellationToken
    ) -> int:
        added = 0
        seen_albums: set[str] = set()

        for rec in self._passing_min_score(recordings):
            self._check_cancelled(token, "while processing recordings")
            try:
                if await self._catalog.is_processed(rec.recording_mbid, _PROCESSED_SOURCE):
                    continue

                await token.sleep(self._settings.rate_limit_delay_seconds)
                album = await self._music_db.resolve_recording_to_album(
                    rec.recording_mbid, cancel_token=token
                )
                if album is None or album.mbid in seen_albums:
                    continue
                seen_albums.add(album.mbid)

                if await self._catalog.is_processed(album.mbid, _PROCESSED_SOURCE):
                    continue
                if await self._queue.is_rejected(album.mbid) or await self._queue.is_pending(
                    album.mbid
                ):
                    continue

                cover_url = self._cover_art.get_cover_url(album.mbid)
                if self._manual_approval():
                    await self._queue.add_pending(
                        PendingEntry(
                            mbid=album.mbid,
                            type=EntryType.ALBUM,
                            artist=album.artist,
                            album=album.title,
                            score=normalize_to_percent(rec.score),
                            source=EntrySource.LISTENBRAINZ,
                            source_track=album.track_title,
                            cover_url=cover_url,
                            year=album.year,
                        )
                    )
                    self._logger.info(
                        "album_queued",
                        artist=album.artist,
                        album=album.title,
                        via_track=album.track_title,
                    )
                else:
                    self._logger.info("album_auto_approved", artist=album.artist, album=album.title)

                await self._catalog.mark_processed(album.mbid, _PROCESSED_SOURCE, utc_now())
                added += 1
            except OperationCancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                self._logger.error(
                    "recording_processing_failed",
                    recording_mbid=rec.recording_mbid,
                    error=str(exc),
                )
        return added

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _passing_min_score(
        self, recordings: list[RecordingRecommendation]
    ) -> list[RecordingRecommendation]:
        """Drop recordings scored below ``min_score``; unscored ones always pass."""
        min_percent = normalize_to_percent(self._settings.min_score) or 0.0
        if min_percent <= 0:
            return recordings

        kept = []
        for rec in recordings:
            percent = normalize_to_percent(rec.score)
            if percent is not None and percent < min_percent:
                continue
            kept.append(rec)
        return kept

    def _manual_approval(self) -> bool:
        return self._settings.listenbrainz_approval_mode != "auto"

    def _check_cancelled(self, token: CancellationToken, where: str) -> None:
        if self._job_control.is_cancelled(self.job_name) or token.cancelled:
            self._logger.info("listenbrainz_fetch_cancelled", where=where)
            raise OperationCancelledError(f"Job cancelled {where}")
