"""SQLite-backed pending-approval queue.

Persists items waiting for approval, plus the list of mbids a user has
rejected, to ``data/queue.db``.  Discovery jobs only ever add; approval
and rejection belong to whoever reviews the queue.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite
import structlog

from cratedigger.interfaces.pending_queue import IPendingQueue
from cratedigger.models.queue import EntrySource, EntryType, PendingEntry

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/queue.db")

_CREATE_PENDING_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS pending_items (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    mbid          TEXT    NOT NULL UNIQUE,
    type          TEXT    NOT NULL,
    artist        TEXT    NOT NULL,
    album         TEXT,
    title         TEXT,
    score         REAL,
    source        TEXT    NOT NULL,
    similar_to    TEXT    NOT NULL DEFAULT '[]',
    source_track  TEXT,
    cover_url     TEXT,
    year          INTEGER,
    added_at      TEXT    NOT NULL
);
"""

_CREATE_REJECTED_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS rejected_items (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    mbid        TEXT    NOT NULL UNIQUE,
    rejected_at TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_INSERT_PENDING_SQL = """\
INSERT OR IGNORE INTO pending_items
    (mbid, type, artist, album, title, score, source, similar_to,
     source_track, cover_url, year, added_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_PENDING_SQL = """\
SELECT mbid, type, artist, album, title, score, source, similar_to,
       source_track, cover_url, year, added_at
FROM pending_items
ORDER BY id;
"""


class SQLitePendingQueue(IPendingQueue):
    """SQLite-backed pending queue and rejection list."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the pending and rejected tables if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_PENDING_TABLE_SQL)
            await db.execute(_CREATE_REJECTED_TABLE_SQL)
            await db.commit()
        logger.info("queue_db_initialized", path=str(self._db_path))

    async def _exists(self, table: str, mbid: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(f"SELECT 1 FROM {table} WHERE mbid = ?", (mbid,))  # noqa: S608
            row = await cursor.fetchone()
        return row is not None

    async def is_pending(self, mbid: str) -> bool:
        return await self._exists("pending_items", mbid)

    async def is_rejected(self, mbid: str) -> bool:
        return await self._exists("rejected_items", mbid)

    async def add_pending(self, entry: PendingEntry) -> None:
        added_at = entry.added_at
        if added_at.tzinfo is None:
            added_at = added_at.replace(tzinfo=timezone.utc)  # noqa: UP017
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                _INSERT_PENDING_SQL,
                (
                    entry.mbid,
                    entry.type.value,
                    entry.artist,
                    entry.album,
                    entry.title,
                    entry.score,
                    entry.source.value,
                    json.dumps(entry.similar_to),
                    entry.source_track,
                    entry.cover_url,
                    entry.year,
                    added_at.isoformat(),
                ),
            )
            await db.commit()
            inserted = cursor.rowcount > 0

        if inserted:
            logger.info(
                "pending_item_added",
                mbid=entry.mbid,
                type=entry.type.value,
                artist=entry.artist,
                album=entry.album,
                title=entry.title,
                source=entry.source.value,
            )

    async def reject(self, mbid: str) -> None:
        """Move *mbid* to the rejection list so it is never suggested again."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("DELETE FROM pending_items WHERE mbid = ?", (mbid,))
            await db.execute("INSERT OR IGNORE INTO rejected_items (mbid) VALUES (?)", (mbid,))
            await db.commit()
        logger.info("pending_item_rejected", mbid=mbid)

    async def list_pending(self) -> list[PendingEntry]:
        """Return every pending entry in insertion order."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_PENDING_SQL)
            rows = await cursor.fetchall()
        return [
            PendingEntry(
                mbid=row["mbid"],
                type=EntryType(row["type"]),
                artist=row["artist"],
                album=row["album"],
                title=row["title"],
                score=row["score"],
                source=EntrySource(row["source"]),
                similar_to=json.loads(row["similar_to"] or "[]"),
                source_track=row["source_track"],
                cover_url=row["cover_url"],
                year=row["year"],
                added_at=datetime.fromisoformat(row["added_at"]),
            )
            for row in rows
        ]
