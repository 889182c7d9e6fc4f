"""Cover Art Archive lookup.

The archive serves release-group front covers at a stable URL and
redirects to the image of the group's representative release, so the
lookup is a template and needs no network round trip.
"""

from __future__ import annotations

from cratedigger.interfaces.cover_art_provider import ICoverArtProvider

_BASE_URL = "https://coverartarchive.org"
_DEFAULT_SIZE = 250


class CoverArtArchiveProvider(ICoverArtProvider):
    def __init__(self, base_url: str = _BASE_URL, size: int = _DEFAULT_SIZE) -> None:
        self._base_url = base_url.rstrip("/")
        self._size = size

    def get_cover_url(self, release_group_mbid: str) -> str | None:
        if not release_group_mbid:
            return None
        return f"{self._base_url}/release-group/{release_group_mbid}/front-{self._size}"
