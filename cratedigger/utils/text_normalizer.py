"""Text normalization for artist names and MusicBrainz identifiers.

The normalized form is the dedupe/lookup key shared by library artists,
similarity cache rows and discovered markers, so every component must go
through :func:`normalize_name` rather than calling ``str.lower`` directly.
"""

import re

_WHITESPACE_RE = re.compile(r"\s+")
_RECORDING_URL_RE = re.compile(r"/recording/([a-f0-9-]+)$", re.IGNORECASE)
_PLAYLIST_URL_RE = re.compile(r"/playlist/([a-f0-9-]+)$", re.IGNORECASE)


def normalize_name(name: str) -> str:
    """Return the lowercase lookup key for an artist name.

    Collapses runs of whitespace and strips the ends, so that
    ``"  Boards  of Canada "`` and ``"boards of canada"`` share one key.
    """
    return _WHITESPACE_RE.sub(" ", name).strip().lower()


def extract_recording_mbid(identifier: str) -> str | None:
    """Extract the recording MBID from a MusicBrainz recording URL.

    ``"https://musicbrainz.org/recording/abc-123"`` -> ``"abc-123"``.
    URLs with a trailing slash or pointing at other entity types yield None.
    """
    match = _RECORDING_URL_RE.search(identifier)
    return match.group(1) if match else None


def extract_playlist_mbid(identifier: str) -> str | None:
    """Extract the playlist MBID from a ListenBrainz playlist URL."""
    match = _PLAYLIST_URL_RE.search(identifier)
    return match.group(1) if match else None


def parse_year(date_str: str | None) -> int | None:
    """Return the year from a ``YYYY`` / ``YYYY-MM-DD`` string, or None."""
    if not date_str or len(date_str) < 4:
        return None
    try:
        return int(date_str[:4])
    except ValueError:
        return None
