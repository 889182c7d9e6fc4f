"""Abstract base class for cover-art lookup."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ICoverArtProvider(ABC):
    """Contract for resolving cover images by release-group id.

    Implementations may be a plain URL template: no network call is required
    by the contract.
    """

    @abstractmethod
    def get_cover_url(self, release_group_mbid: str) -> str | None:
        """Return a cover image URL for *release_group_mbid*, or ``None``."""
