"""Catalog discovery job: library artists in, album suggestions out.

Drives one discovery run through a fixed sequence of phases:

    SYNCING_SOURCES           upsert every library artist into the catalog
    RESOLVING_EXTERNAL_IDS    look up missing MusicBrainz ids, one per second
    PARTITIONING_CACHE        split artists into stale / cached by fetch age
    FETCHING_STALE            fan out to all providers for each stale artist
    AGGREGATING               fold cached similarity rows per candidate
    RANKING_AND_FILTERING     drop discovered / weak candidates, sort, cap
    ENRICHING_TOP_CANDIDATES  fetch albums, queue them, mark candidates

Cancellation is checked before every unit of work that talks to the
outside world and surfaces as :class:`OperationCancelledError`, so the job
runner can tell a cancelled run from one that found nothing.  Everything
written along the way (catalog rows, cache rows, markers, queue entries)
is idempotent, so a failed or cancelled run leaves a state the next run
resumes from.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from cratedigger.config.settings import Settings
from cratedigger.interfaces.catalog_store import ICatalogStore
from cratedigger.interfaces.cover_art_provider import ICoverArtProvider
from cratedigger.interfaces.job_control import (
    JOB_CATALOG_DISCOVERY,
    JOB_LISTENBRAINZ_FETCH,
    IJobControl,
)
from cratedigger.interfaces.library_provider import ILibraryProvider
from cratedigger.interfaces.music_db_provider import IMusicDatabaseProvider
from cratedigger.interfaces.pending_queue import IPendingQueue
from cratedigger.interfaces.similarity_provider import ISimilarityProvider
from cratedigger.models.catalog import CatalogArtist, LibraryArtist, utc_now
from cratedigger.models.discovery import (
    DiscoveryPhase,
    DiscoveryReport,
    JobOutcome,
    RankedCandidate,
)
from cratedigger.models.queue import EntrySource, EntryType, PendingEntry
from cratedigger.services.cache_partitioner import partition_by_cache_status
from cratedigger.services.fan_out_fetcher import fetch_from_all
from cratedigger.services.ranking import rank_candidates
from cratedigger.services.score_aggregator import aggregate_similar
from cratedigger.utils.cancellation import CancellationToken
from cratedigger.utils.errors import OperationCancelledError
from cratedigger.utils.logging import get_logger
from cratedigger.utils.text_normalizer import parse_year

_ALBUM_TYPE = "Album"


class CatalogDiscoveryJob:
    """Orchestrates one catalog discovery run.

    All collaborators are injected; the job owns no global state and
    holds nothing between runs except what the collaborators persist.
    """

    job_name = JOB_CATALOG_DISCOVERY

    def __init__(
        self,
        settings: Settings,
        library: ILibraryProvider,
        catalog: ICatalogStore,
        music_db: IMusicDatabaseProvider,
        providers: Sequence[ISimilarityProvider],
        queue: IPendingQueue,
        cover_art: ICoverArtProvider,
        job_control: IJobControl,
    ) -> None:
        self._settings = settings
        self._library = library
        self._catalog = catalog
        self._music_db = music_db
        self._providers = list(providers)
        self._queue = queue
        self._cover_art = cover_art
        self._job_control = job_control
        self._phase = DiscoveryPhase.PENDING
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def phase(self) -> DiscoveryPhase:
        return self._phase

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self, cancel_token: CancellationToken | None = None) -> DiscoveryReport:
        """Run discovery once.

        Returns
        -------
        DiscoveryReport
            ``completed`` (possibly with zero candidates), ``skipped`` when
            disabled or unconfigured, or ``deferred`` while the ListenBrainz
            fetch job holds MusicBrainz.

        Raises
        ------
        OperationCancelledError
            If the run was cancelled; nothing after the cancel point ran.
        ProviderUnavailableError
            If the library server could not be listed.
        """
        token = cancel_token or CancellationToken()
        self._phase = DiscoveryPhase.PENDING

        skip_reason = self._skip_reason()
        if skip_reason:
            self._logger.info("catalog_discovery_skipped", reason=skip_reason)
            return DiscoveryReport(outcome=JobOutcome.SKIPPED, phase=self._phase, message=skip_reason)

        # Both jobs share the MusicBrainz rate limit.
        if self._job_control.is_running(JOB_LISTENBRAINZ_FETCH):
            self._logger.info("catalog_discovery_deferred", running_job=JOB_LISTENBRAINZ_FETCH)
            return DiscoveryReport(
                outcome=JobOutcome.DEFERRED,
                phase=self._phase,
                message=f"{JOB_LISTENBRAINZ_FETCH} is running",
            )

        providers = [p for p in self._providers if p.is_configured()]
        self._logger.info(
            "catalog_discovery_started",
            providers=[p.get_provider_name() for p in providers],
        )

        try:
            return await self._run_phases(providers, token)
        except OperationCancelledError:
            self._enter(DiscoveryPhase.CANCELLED)
            raise
        except Exception:
            self._enter(DiscoveryPhase.FAILED)
            raise

    def _skip_reason(self) -> str:
        if not self._settings.catalog_discovery_enabled:
            return "catalog discovery is disabled"
        if not self._library.is_configured():
            return "library server is not configured"
        if not any(p.is_configured() for p in self._providers):
            return "no similarity providers configured"
        return ""

    async def _run_phases(
        self, providers: list[ISimilarityProvider], token: CancellationToken
    ) -> DiscoveryReport:
        self._check_cancelled(token, "before syncing library")

        self._enter(DiscoveryPhase.SYNCING_SOURCES)
        library_names = await self._sync_library(token)

        self._enter(DiscoveryPhase.RESOLVING_EXTERNAL_IDS)
        resolved_count = await self._resolve_missing_mbids(library_names, token)

        self._enter(DiscoveryPhase.PARTITIONING_CACHE)
        current = await self._catalog.list_artists(library_names)
        partition = partition_by_cache_status(current, self._settings.similarity_cache_ttl_ms())
        self._logger.info(
            "similarity_cache_partitioned",
            cached=len(partition.cached),
            stale=len(partition.stale),
        )

        self._enter(DiscoveryPhase.FETCHING_STALE)
        fetched_count, aborted = await self._fetch_stale(partition.stale, providers, token)

        self._enter(DiscoveryPhase.AGGREGATING)
        rows = await self._catalog.list_similar([artist.id for artist in current])
        name_by_id = {artist.id: artist.name for artist in current}
        aggregated = aggregate_similar(rows, set(library_names), name_by_id)
        self._logger.info("similar_artists_aggregated", candidate_count=len(aggregated))

        self._enter(DiscoveryPhase.RANKING_AND_FILTERING)
        discovered = await self._catalog.discovered_names(aggregated.keys())
        candidates = rank_candidates(
            aggregated,
            discovered,
            min_similarity=self._settings.min_similarity,
            max_candidates=self._settings.max_artists_per_run,
            similar_artist_limit=self._settings.similar_artist_limit,
        )
        self._logger.info("candidates_selected", selected=len(candidates))

        added_count = 0
        if candidates:
            self._enter(DiscoveryPhase.ENRICHING_TOP_CANDIDATES)
            added_count = await self._enrich_candidates(candidates, token)

        self._enter(DiscoveryPhase.DONE)
        self._logger.info(
            "catalog_discovery_completed",
            added=added_count,
            candidates=len(candidates),
        )
        return DiscoveryReport(
            outcome=JobOutcome.COMPLETED,
            phase=self._phase,
            library_artist_count=len(library_names),
            resolved_mbid_count=resolved_count,
            cached_artist_count=len(partition.cached),
            fetched_artist_count=fetched_count,
            fetch_aborted_early=aborted,
            candidates=candidates,
            added_count=added_count,
            message="" if candidates else "no new artists to discover",
        )

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _sync_library(self, token: CancellationToken) -> list[str]:
        """Upsert library artists and return their normalized names."""
        artists = await token.run(self._library.list_artists(token))

        by_name: dict[str, LibraryArtist] = {}
        for artist in artists:
            by_name.setdefault(artist.name_lower, artist)

        synced_at = utc_now()
        for name_lower, artist in by_name.items():
            await self._catalog.upsert_artist(artist.library_id, artist.name, name_lower, synced_at)

        self._logger.info("library_synced", artist_count=len(by_name))
        return list(by_name)

    async def _resolve_missing_mbids(
        self, library_names: list[str], token: CancellationToken
    ) -> int:
        unresolved = await self._catalog.list_unresolved(library_names)
        if not unresolved:
            return 0

        self._logger.info("mbid_resolution_started", unresolved=len(unresolved))
        resolved = 0
        for index, artist in enumerate(unresolved):
            self._check_cancelled(token, "while resolving MBIDs")
            if index:
                await token.sleep(self._settings.rate_limit_delay_seconds)

            matches = await self._music_db.search_artists(artist.name, limit=1, cancel_token=token)
            if matches:
                await self._catalog.set_mbid(artist.id, matches[0].mbid)
                resolved += 1
                self._logger.debug("mbid_resolved", artist=artist.name, mbid=matches[0].mbid)

        self._logger.info("mbid_resolution_completed", resolved=resolved, attempted=len(unresolved))
        return resolved

    async def _fetch_stale(
        self,
        stale: list[CatalogArtist],
        providers: list[ISimilarityProvider],
        token: CancellationToken,
    ) -> tuple[int, bool]:
        """Fetch and cache similarity data for *stale* artists.

        Returns the number of artists fetched and whether the
        consecutive-empty circuit breaker cut the phase short.
        """
        if not stale:
            return 0, False

        max_empty = self._settings.max_consecutive_empty_fetches
        consecutive_empty = 0
        fetched = 0

        for index, artist in enumerate(stale):
            self._check_cancelled(token, "while fetching similar artists")
            if index:
                await token.sleep(self._settings.rate_limit_delay_seconds)

            results = await fetch_from_all(
                providers,
                artist.name,
                artist.mbid,
                self._settings.similar_artist_limit,
                self._settings.provider_timeout_ms,
                cancel_token=token,
            )
            # Results gathered while a cancel landed are dropped, not written.
            self._check_cancelled(token, "while fetching similar artists")
            fetched += 1

            if results:
                consecutive_empty = 0
            else:
                consecutive_empty += 1
                if max_empty and consecutive_empty >= max_empty:
                    self._logger.warning(
                        "similarity_fetch_aborted",
                        consecutive_empty=consecutive_empty,
                        remaining=len(stale) - fetched,
                    )
                    return fetched, True

            fetched_at = utc_now()
            await self._catalog.upsert_similar(artist.id, results, fetched_at)
            await self._catalog.mark_fetched(artist.id, fetched_at)

        self._logger.info("similarity_fetch_completed", fetched=fetched)
        return fetched, False

    async def _enrich_candidates(
        self, candidates: list[RankedCandidate], token: CancellationToken
    ) -> int:
        manual = self._settings.approval_mode != "auto"
        added = 0

        for candidate in candidates:
            self._check_cancelled(token, "while processing candidates")
            self._logger.info(
                "discovering_artist",
                artist=candidate.name,
                avg_match=candidate.avg_match_percent,
                weighted=candidate.weighted_score,
                sources=candidate.source_count,
                providers="+".join(candidate.providers),
            )

            await token.sleep(self._settings.rate_limit_delay_seconds)
            albums = await self._music_db.search_release_groups(
                candidate.name,
                primary_type=_ALBUM_TYPE,
                limit=self._settings.albums_per_artist,
                cancel_token=token,
            )

            for album in albums:
                if await self._queue.is_pending(album.mbid) or await self._queue.is_rejected(album.mbid):
                    continue

                await token.sleep(self._settings.cover_art_delay_seconds)
                cover_url = self._cover_art.get_cover_url(album.mbid)

                if manual:
                    await self._queue.add_pending(
                        PendingEntry(
                            mbid=album.mbid,
                            type=EntryType.ALBUM,
                            artist=candidate.name,
                            album=album.title,
                            score=candidate.weighted_score,
                            source=EntrySource.CATALOG,
                            similar_to=candidate.similar_to,
                            cover_url=cover_url,
                            year=parse_year(album.first_release_date),
                        )
                    )
                    self._logger.info("album_queued", artist=candidate.name, album=album.title)
                else:
                    # Auto approval has no wishlist to write to yet; it only logs.
                    self._logger.info("album_auto_approved", artist=candidate.name, album=album.title)
                added += 1

            await self._catalog.mark_discovered(candidate.name_lower, utc_now())

        return added

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _enter(self, phase: DiscoveryPhase) -> None:
        previous, self._phase = self._phase, phase
        self._logger.debug(
            "discovery_phase_changed",
            previous=previous.value,
            phase=phase.value,
        )

    def _check_cancelled(self, token: CancellationToken, where: str) -> None:
        if self._job_control.is_cancelled(self.job_name) or token.cancelled:
            self._logger.info("catalog_discovery_cancelled", where=where)
            raise OperationCancelledError(f"Job cancelled {where}")
