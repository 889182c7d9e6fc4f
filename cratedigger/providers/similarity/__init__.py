"""Artist-similarity provider implementations.

Two concrete implementations of ISimilarityProvider, queried concurrently by
the fan-out fetcher for every stale library artist:

    1. LastFmSimilarityProvider      -- Last.fm ``artist.getSimilar`` (requires
       LASTFM_API_KEY).  Queried by name, two attempts per call.
    2. ListenBrainzSimilarityProvider -- ListenBrainz Labs similar-artists
       dataset (no key).  Needs an artist MBID and resolves missing ones
       through MusicBrainz, caching them per instance.

Both tag every result with their provider name so the ranking pass can
reward candidates found by more than one provider.
"""

from cratedigger.providers.similarity.lastfm_provider import LastFmSimilarityProvider
from cratedigger.providers.similarity.listenbrainz_provider import ListenBrainzSimilarityProvider

__all__ = [
    "LastFmSimilarityProvider",
    "ListenBrainzSimilarityProvider",
]
