"""Abstract base class for the music library server (source registry).

The library is the origin of every tracked source entity: discovery asks it
which artists the user already owns, and never suggests those artists back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from cratedigger.models.catalog import LibraryArtist
from cratedigger.utils.cancellation import CancellationToken


class ILibraryProvider(ABC):
    """Contract for library servers that can list their artists."""

    @abstractmethod
    async def list_artists(
        self, cancel_token: CancellationToken | None = None
    ) -> list[LibraryArtist]:
        """Return every artist in the library.

        Raises
        ------
        cratedigger.utils.errors.ProviderUnavailableError
            If the server cannot be reached or rejects the request.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"subsonic"``."""

    @abstractmethod
    def is_configured(self) -> bool:
        """Return ``True`` if host and credentials are present."""
