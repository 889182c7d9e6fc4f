"""CrateDigger composition root.

Wires providers, stores and jobs together from :class:`Settings`.  Nothing
here runs at import time; callers (the CLI, a scheduler, tests) build a
:class:`Components` bundle, run jobs through :func:`run_job` and close the
bundle when done.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx
import structlog

from cratedigger.config.settings import Settings
from cratedigger.interfaces.job_control import JOB_CATALOG_DISCOVERY, JOB_LISTENBRAINZ_FETCH
from cratedigger.interfaces.similarity_provider import ISimilarityProvider
from cratedigger.models.discovery import JobRunResult
from cratedigger.pipeline.catalog_discovery import CatalogDiscoveryJob
from cratedigger.pipeline.job_runner import run_job
from cratedigger.pipeline.recommendation_fetch import ListenBrainzFetchJob
from cratedigger.providers.catalog.sqlite_catalog_store import SQLiteCatalogStore
from cratedigger.providers.cover_art.cover_art_archive_provider import CoverArtArchiveProvider
from cratedigger.providers.jobs.memory_job_registry import MemoryJobRegistry
from cratedigger.providers.library.subsonic_provider import SubsonicLibraryProvider
from cratedigger.providers.music_db.musicbrainz_provider import MusicBrainzProvider
from cratedigger.providers.queue.sqlite_pending_queue import SQLitePendingQueue
from cratedigger.providers.recommendation.listenbrainz_recommendation_provider import (
    ListenBrainzRecommendationProvider,
)
from cratedigger.providers.similarity.lastfm_provider import LastFmSimilarityProvider
from cratedigger.providers.similarity.listenbrainz_provider import ListenBrainzSimilarityProvider
from cratedigger.utils.logging import get_logger
from cratedigger.utils.retry import RetryingExecutor, RetryPolicy

_HTTP_TIMEOUT = 30.0

_logger: structlog.BoundLogger = get_logger(__name__)


@dataclass
class Components:
    """Everything a job run needs, built once per process."""

    settings: Settings
    http_client: httpx.AsyncClient
    registry: MemoryJobRegistry
    catalog: SQLiteCatalogStore
    queue: SQLitePendingQueue
    catalog_discovery: CatalogDiscoveryJob
    listenbrainz_fetch: ListenBrainzFetchJob
    similarity_providers: list[ISimilarityProvider] = field(default_factory=list)
    # False when the caller passed its own client; the caller closes it.
    owns_http_client: bool = True

    async def aclose(self) -> None:
        if self.owns_http_client:
            await self.http_client.aclose()


def _build_retry(app_settings: Settings, max_attempts: int) -> RetryingExecutor:
    return RetryingExecutor(
        RetryPolicy(
            max_attempts=max_attempts,
            base_delay=app_settings.retry_base_delay_ms / 1000,
        )
    )


async def build_components(
    app_settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> Components:
    """Construct every provider, store and job, and initialize the databases.

    A caller-supplied *http_client* is shared as is and stays open after
    :meth:`Components.aclose`; only a client built here is closed there.
    """
    # -- Shared resources --
    client = http_client or httpx.AsyncClient(timeout=_HTTP_TIMEOUT)
    retry = _build_retry(app_settings, app_settings.retry_max_attempts)
    registry = MemoryJobRegistry()

    # -- Storage --
    catalog = SQLiteCatalogStore(db_path=app_settings.catalog_db_path)
    queue = SQLitePendingQueue(db_path=app_settings.queue_db_path)
    await catalog.initialize()
    await queue.initialize()

    # -- Registries --
    music_db = MusicBrainzProvider(
        http_client=client,
        settings=app_settings,
        retry=retry,
        min_interval=app_settings.rate_limit_delay_seconds,
    )
    library = SubsonicLibraryProvider(
        http_client=client,
        host=app_settings.subsonic_host,
        username=app_settings.subsonic_username,
        password=app_settings.subsonic_password,
        retry=retry,
    )
    cover_art = CoverArtArchiveProvider()

    # -- Similarity providers (order is the merge order of fan-out results) --
    similarity_providers: list[ISimilarityProvider] = [
        LastFmSimilarityProvider(
            http_client=client,
            api_key=app_settings.lastfm_api_key,
            retry=_build_retry(app_settings, app_settings.lastfm_retry_max_attempts),
        ),
        ListenBrainzSimilarityProvider(
            http_client=client,
            music_db=music_db,
            retry=retry,
            enabled=app_settings.listenbrainz_similarity_enabled,
        ),
    ]
    _logger.info(
        "similarity_providers_built",
        configured=[p.get_provider_name() for p in similarity_providers if p.is_configured()],
    )

    # -- Jobs --
    catalog_discovery = CatalogDiscoveryJob(
        settings=app_settings,
        library=library,
        catalog=catalog,
        music_db=music_db,
        providers=similarity_providers,
        queue=queue,
        cover_art=cover_art,
        job_control=registry,
    )
    listenbrainz_fetch = ListenBrainzFetchJob(
        settings=app_settings,
        recommendations=ListenBrainzRecommendationProvider(http_client=client, retry=retry),
        music_db=music_db,
        catalog=catalog,
        queue=queue,
        cover_art=cover_art,
        job_control=registry,
    )

    return Components(
        settings=app_settings,
        http_client=client,
        registry=registry,
        catalog=catalog,
        queue=queue,
        catalog_discovery=catalog_discovery,
        listenbrainz_fetch=listenbrainz_fetch,
        similarity_providers=similarity_providers,
        owns_http_client=http_client is None,
    )


async def run_catalog_discovery(components: Components) -> JobRunResult:
    return await run_job(
        JOB_CATALOG_DISCOVERY,
        components.catalog_discovery.run,
        components.registry,
    )


async def run_listenbrainz_fetch(components: Components) -> JobRunResult:
    return await run_job(
        JOB_LISTENBRAINZ_FETCH,
        components.listenbrainz_fetch.run,
        components.registry,
    )
