"""Abstract base class for track-recommendation services (ListenBrainz)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from cratedigger.utils.cancellation import CancellationToken


@dataclass(frozen=True)
class RecordingRecommendation:
    """A recommended recording.  Weekly playlists carry no score."""

    recording_mbid: str
    score: float | None = None


@dataclass(frozen=True)
class PlaylistSummary:
    """Identifier and title of a playlist generated for a user."""

    identifier: str
    title: str
    # True for the weekly exploration playlist.
    weekly: bool = False


class IRecommendationProvider(ABC):
    """Contract for services that recommend recordings to a user."""

    @abstractmethod
    async def fetch_recommendations(
        self,
        username: str,
        token: str,
        count: int = 100,
        cancel_token: CancellationToken | None = None,
    ) -> list[RecordingRecommendation]:
        """Return collaborative-filtering recommendations (empty on error)."""

    @abstractmethod
    async def find_weekly_exploration_playlist(
        self,
        username: str,
        cancel_token: CancellationToken | None = None,
    ) -> PlaylistSummary | None:
        """Return the user's weekly exploration playlist, if one exists."""

    @abstractmethod
    async def fetch_playlist_recordings(
        self,
        playlist_mbid: str,
        cancel_token: CancellationToken | None = None,
    ) -> list[RecordingRecommendation] | None:
        """Return one recording per playlist track, or ``None`` on error."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"listenbrainz"``."""
