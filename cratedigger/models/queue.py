"""Pending-queue models.

A ``PendingEntry`` is what discovery hands off for manual approval.  Once a
user approves it, the downstream download handling takes over; that part is
outside this package.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from cratedigger.models.catalog import utc_now


class EntryType(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    ALBUM = "album"
    TRACK = "track"


class EntrySource(str, Enum):  # noqa: UP042
    CATALOG = "catalog"
    LISTENBRAINZ = "listenbrainz"


class PendingEntry(BaseModel):
    """An album or track waiting for approval, keyed by its MusicBrainz id."""

    model_config = ConfigDict(frozen=True)

    mbid: str
    type: EntryType
    artist: str
    album: str | None = None
    title: str | None = None
    # 0-100 scale; None when the source had no score (weekly playlists).
    score: float | None = None
    source: EntrySource
    # Library artists that led to this suggestion, sorted for display.
    similar_to: list[str] = Field(default_factory=list)
    # Title of the recommended track an album was resolved from.
    source_track: str | None = None
    cover_url: str | None = None
    year: int | None = None
    added_at: datetime = Field(default_factory=utc_now)
