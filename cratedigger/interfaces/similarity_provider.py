"""Abstract base class for artist-similarity providers.

Defines the capability contract every similarity source implements (e.g.
Last.fm, ListenBrainz).  The fan-out fetcher only ever talks to this
interface, so providers are interchangeable and independently testable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from cratedigger.models.catalog import CandidateResult
from cratedigger.utils.cancellation import CancellationToken


class ISimilarityProvider(ABC):
    """Contract for services that suggest artists similar to a given one."""

    @abstractmethod
    async def get_similar_artists(
        self,
        artist_name: str,
        artist_mbid: str | None = None,
        limit: int = 10,
        cancel_token: CancellationToken | None = None,
    ) -> list[CandidateResult]:
        """Return up to *limit* artists similar to *artist_name*.

        Parameters
        ----------
        artist_name:
            Display name of the library artist.
        artist_mbid:
            MusicBrainz id of the artist when already known.  Providers that
            need one resolve it themselves when it is ``None``.
        limit:
            Maximum number of results to return.
        cancel_token:
            Aborts in-flight work when fired.

        Returns
        -------
        list[CandidateResult]
            Results tagged with :meth:`get_provider_name`.  Never raises on a
            provider-side failure: returns an empty list instead.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the identity string used to tag results, e.g. ``"lastfm"``."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Return ``True`` if the provider has everything it needs to run."""
