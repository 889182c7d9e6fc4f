"""SQLite-backed catalog store.

Persists library artists, the similarity cache, discovered markers and
processed recordings to a local SQLite database at ``data/catalog.db``.
Uses ``aiosqlite`` for async I/O; every method opens its own short-lived
connection, and every write is an upsert or insert-or-ignore so that a run
interrupted half-way can simply be repeated.

Timestamps are stored as ISO-8601 strings in UTC.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from cratedigger.interfaces.catalog_store import ICatalogStore
from cratedigger.models.catalog import CandidateResult, CatalogArtist, SimilarityCacheRow
from cratedigger.utils.text_normalizer import normalize_name

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/catalog.db")

# Stay well below SQLITE_MAX_VARIABLE_NUMBER on older builds.
_IN_CHUNK_SIZE = 500

_CREATE_CATALOG_ARTISTS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS catalog_artists (
    id                      INTEGER PRIMARY KEY AUTOINCREMENT,
    library_id              TEXT,
    name                    TEXT    NOT NULL,
    name_lower              TEXT    NOT NULL UNIQUE,
    mbid                    TEXT,
    last_synced_at          TEXT,
    last_similar_fetched_at TEXT
);
"""

_CREATE_SIMILAR_ARTISTS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS similar_artists (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    catalog_artist_id INTEGER NOT NULL REFERENCES catalog_artists(id) ON DELETE CASCADE,
    name              TEXT    NOT NULL,
    name_lower        TEXT    NOT NULL,
    mbid              TEXT,
    score             REAL    NOT NULL,
    provider          TEXT    NOT NULL,
    fetched_at        TEXT    NOT NULL,
    UNIQUE(catalog_artist_id, name_lower, provider)
);
"""

_CREATE_DISCOVERED_ARTISTS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS discovered_artists (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    name_lower    TEXT    NOT NULL UNIQUE,
    discovered_at TEXT    NOT NULL
);
"""

_CREATE_PROCESSED_RECORDINGS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS processed_recordings (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    mbid         TEXT    NOT NULL,
    source       TEXT    NOT NULL,
    processed_at TEXT    NOT NULL,
    UNIQUE(mbid, source)
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_catalog_artists_mbid ON catalog_artists(mbid);",
    "CREATE INDEX IF NOT EXISTS idx_similar_artists_source ON similar_artists(catalog_artist_id);",
    "CREATE INDEX IF NOT EXISTS idx_similar_artists_name ON similar_artists(name_lower);",
]

_UPSERT_ARTIST_SQL = """\
INSERT INTO catalog_artists (library_id, name, name_lower, last_synced_at)
VALUES (?, ?, ?, ?)
ON CONFLICT(name_lower)
DO UPDATE SET library_id     = excluded.library_id,
              name           = excluded.name,
              last_synced_at = excluded.last_synced_at;
"""

_SELECT_ARTISTS_SQL = """\
SELECT id, library_id, name, name_lower, mbid, last_synced_at, last_similar_fetched_at
FROM catalog_artists
"""

_UPSERT_SIMILAR_SQL = """\
INSERT INTO similar_artists
    (catalog_artist_id, name, name_lower, mbid, score, provider, fetched_at)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(catalog_artist_id, name_lower, provider)
DO UPDATE SET name       = excluded.name,
              mbid       = excluded.mbid,
              score      = excluded.score,
              fetched_at = excluded.fetched_at;
"""

_SELECT_SIMILAR_SQL = """\
SELECT catalog_artist_id, name, name_lower, mbid, score, provider, fetched_at
FROM similar_artists
WHERE catalog_artist_id IN ({placeholders})
ORDER BY id;
"""

_INSERT_DISCOVERED_SQL = """\
INSERT OR IGNORE INTO discovered_artists (name_lower, discovered_at)
VALUES (?, ?);
"""

_INSERT_PROCESSED_SQL = """\
INSERT OR IGNORE INTO processed_recordings (mbid, source, processed_at)
VALUES (?, ?, ?);
"""


def _to_db_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)  # noqa: UP017
    return value.astimezone(timezone.utc).isoformat()  # noqa: UP017


def _from_db_time(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)  # noqa: UP017
    return parsed


def _chunks(values: list[Any], size: int = _IN_CHUNK_SIZE) -> Iterator[list[Any]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def _row_to_artist(row: aiosqlite.Row) -> CatalogArtist:
    return CatalogArtist(
        id=row["id"],
        library_id=row["library_id"],
        name=row["name"],
        name_lower=row["name_lower"],
        mbid=row["mbid"],
        last_synced_at=_from_db_time(row["last_synced_at"]),
        last_similar_fetched_at=_from_db_time(row["last_similar_fetched_at"]),
    )


class SQLiteCatalogStore(ICatalogStore):
    """SQLite-backed catalog persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the catalog tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_CATALOG_ARTISTS_TABLE_SQL)
            await db.execute(_CREATE_SIMILAR_ARTISTS_TABLE_SQL)
            await db.execute(_CREATE_DISCOVERED_ARTISTS_TABLE_SQL)
            await db.execute(_CREATE_PROCESSED_RECORDINGS_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("catalog_db_initialized", path=str(self._db_path))

    # -- Catalog artists -------------------------------------------------------

    async def upsert_artist(
        self, library_id: str, name: str, name_lower: str, synced_at: datetime
    ) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _UPSERT_ARTIST_SQL,
                (library_id, name, name_lower, _to_db_time(synced_at)),
            )
            await db.commit()

    async def list_artists(self, names_lower: Iterable[str] | None = None) -> list[CatalogArtist]:
        """Return catalog artists ordered by id, optionally restricted by name."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            if names_lower is None:
                cursor = await db.execute(_SELECT_ARTISTS_SQL + "ORDER BY id;")
                rows = list(await cursor.fetchall())
            else:
                rows = []
                for chunk in _chunks(sorted(set(names_lower))):
                    cursor = await db.execute(
                        _SELECT_ARTISTS_SQL + f"WHERE name_lower IN ({_placeholders(len(chunk))});",
                        chunk,
                    )
                    rows.extend(await cursor.fetchall())
        artists = [_row_to_artist(row) for row in rows]
        artists.sort(key=lambda artist: artist.id)
        return artists

    async def list_unresolved(self, names_lower: Iterable[str]) -> list[CatalogArtist]:
        return [artist for artist in await self.list_artists(names_lower) if not artist.mbid]

    async def set_mbid(self, artist_id: int, mbid: str) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "UPDATE catalog_artists SET mbid = ? WHERE id = ?",
                (mbid, artist_id),
            )
            await db.commit()

    async def mark_fetched(self, artist_id: int, fetched_at: datetime) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "UPDATE catalog_artists SET last_similar_fetched_at = ? WHERE id = ?",
                (_to_db_time(fetched_at), artist_id),
            )
            await db.commit()

    # -- Similarity cache ------------------------------------------------------

    async def upsert_similar(
        self, artist_id: int, results: Iterable[CandidateResult], fetched_at: datetime
    ) -> None:
        """Write *results* for *artist_id* in one transaction."""
        fetched = _to_db_time(fetched_at)
        params = [
            (
                artist_id,
                result.name,
                normalize_name(result.name),
                result.mbid,
                result.match,
                result.provider,
                fetched,
            )
            for result in results
        ]
        if not params:
            return
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.executemany(_UPSERT_SIMILAR_SQL, params)
            await db.commit()

    async def list_similar(self, artist_ids: Iterable[int]) -> list[SimilarityCacheRow]:
        ids = sorted(set(artist_ids))
        if not ids:
            return []
        rows: list[aiosqlite.Row] = []
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            for chunk in _chunks(ids):
                cursor = await db.execute(
                    _SELECT_SIMILAR_SQL.format(placeholders=_placeholders(len(chunk))),
                    chunk,
                )
                rows.extend(await cursor.fetchall())
        return [
            SimilarityCacheRow(
                catalog_artist_id=row["catalog_artist_id"],
                name=row["name"],
                name_lower=row["name_lower"],
                mbid=row["mbid"],
                score=row["score"],
                provider=row["provider"],
                fetched_at=_from_db_time(row["fetched_at"]),
            )
            for row in rows
        ]

    # -- Discovered markers ----------------------------------------------------

    async def discovered_names(self, names_lower: Iterable[str]) -> set[str]:
        names = sorted(set(names_lower))
        found: set[str] = set()
        if not names:
            return found
        async with aiosqlite.connect(str(self._db_path)) as db:
            for chunk in _chunks(names):
                cursor = await db.execute(
                    "SELECT name_lower FROM discovered_artists "
                    f"WHERE name_lower IN ({_placeholders(len(chunk))})",
                    chunk,
                )
                found.update(row[0] for row in await cursor.fetchall())
        return found

    async def mark_discovered(self, name_lower: str, discovered_at: datetime) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_INSERT_DISCOVERED_SQL, (name_lower, _to_db_time(discovered_at)))
            await db.commit()

    # -- Processed recordings --------------------------------------------------

    async def is_processed(self, mbid: str, source: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT 1 FROM processed_recordings WHERE mbid = ? AND source = ?",
                (mbid, source),
            )
            row = await cursor.fetchone()
        return row is not None

    async def mark_processed(self, mbid: str, source: str, processed_at: datetime) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_INSERT_PROCESSED_SQL, (mbid, source, _to_db_time(processed_at)))
            await db.commit()
