"""Split tracked artists into stale (refetch) and cached (within TTL)."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from cratedigger.models.catalog import CatalogArtist


@dataclass(frozen=True)
class CachePartition:
    stale: list[CatalogArtist] = field(default_factory=list)
    cached: list[CatalogArtist] = field(default_factory=list)


def partition_by_cache_status(
    artists: Sequence[CatalogArtist],
    ttl_ms: int,
    now: datetime | None = None,
) -> CachePartition:
    """Partition *artists* by the age of their last similarity fetch.

    An artist is stale when ``ttl_ms`` is 0 (cache bypass), when it has
    never been fetched, or when its last fetch is more than ``ttl_ms`` old.
    Every artist lands in exactly one list, and input order is kept within
    each list.
    """
    now = now or datetime.now(tz=timezone.utc)  # noqa: UP017
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)  # noqa: UP017
    ttl = timedelta(milliseconds=ttl_ms)

    stale: list[CatalogArtist] = []
    cached: list[CatalogArtist] = []
    for artist in artists:
        fetched_at = artist.last_similar_fetched_at
        if fetched_at is not None and fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)  # noqa: UP017
        if ttl_ms == 0 or fetched_at is None or now - fetched_at > ttl:
            stale.append(artist)
        else:
            cached.append(artist)
    return CachePartition(stale=stale, cached=cached)
