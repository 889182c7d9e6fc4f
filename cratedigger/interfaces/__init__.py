"""Public interface definitions for all external collaborators.

Every external API, store or scheduler is accessed exclusively through the
abstract base classes defined here, so implementations can be swapped (or
replaced by test doubles) without touching the discovery pipeline.
"""

from cratedigger.interfaces.catalog_store import ICatalogStore
from cratedigger.interfaces.cover_art_provider import ICoverArtProvider
from cratedigger.interfaces.job_control import (
    JOB_CATALOG_DISCOVERY,
    JOB_LISTENBRAINZ_FETCH,
    IJobControl,
)
from cratedigger.interfaces.library_provider import ILibraryProvider
from cratedigger.interfaces.music_db_provider import (
    AlbumInfo,
    ArtistSearchResult,
    IMusicDatabaseProvider,
    ReleaseGroup,
    TrackInfo,
)
from cratedigger.interfaces.pending_queue import IPendingQueue
from cratedigger.interfaces.recommendation_provider import (
    IRecommendationProvider,
    PlaylistSummary,
    RecordingRecommendation,
)
from cratedigger.interfaces.similarity_provider import ISimilarityProvider

__all__ = [
    "JOB_CATALOG_DISCOVERY",
    "JOB_LISTENBRAINZ_FETCH",
    "AlbumInfo",
    "ArtistSearchResult",
    "ICatalogStore",
    "ICoverArtProvider",
    "IJobControl",
    "ILibraryProvider",
    "IMusicDatabaseProvider",
    "IPendingQueue",
    "IRecommendationProvider",
    "ISimilarityProvider",
    "PlaylistSummary",
    "RecordingRecommendation",
    "ReleaseGroup",
    "TrackInfo",
]
