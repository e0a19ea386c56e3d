"""
Durable local queue using async SQLite for buffering InfluxDB line-protocol
batches before they are written.

Every poll cycle's points are spooled before any write attempt and removed only
after InfluxDB acknowledges them, so an outage of the database (or of the
network to it) loses nothing.  The queue is a SQLite file in WAL mode and
survives restarts of the daemon.

Operations:
- enqueue(payload): store one line-protocol batch.
- peek(n): up to n oldest batches with their rowids (FIFO).
- ack(rowids): delete only the given rows.
- count(): number of pending batches.
- close(): close the connection.

CHANGELOG:
- 2026-10-14: Store line-protocol text instead of JSON samples
- 2026-10-11: Initial creation (STORY-009)

TODO:
- None
"""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS spool (
    rowid INTEGER PRIMARY KEY AUTOINCREMENT,
    measurement TEXT NOT NULL,
    payload TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_INSERT_SQL = "INSERT INTO spool (measurement, payload) VALUES (?, ?);"

_PEEK_SQL = """\
SELECT rowid, payload
FROM spool
ORDER BY rowid ASC
LIMIT ?;
"""

_COUNT_SQL = "SELECT COUNT(*) FROM spool;"


class SpoolClosedError(RuntimeError):
    """Raised when the spool is used before :meth:`Spool.open`."""


class Spool:
    """Async FIFO of line-protocol payloads backed by SQLite.

    Payloads are opaque TEXT.  The ``measurement`` column only records which
    point(s) a row carries, for inspection with the sqlite3 shell.

    Args:
        path: Filesystem path for the SQLite database file.

    Usage::

        async with Spool(path="/data/spool.db") as spool:
            await spool.enqueue("inverter,host=inverter load=12i 1700000000")
            rows = await spool.peek(10)
            await spool.ack([rowid for rowid, _ in rows])
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._db: aiosqlite.Connection | None = None

    async def open(self) -> None:
        """Open the connection, enable WAL and create the table if missing."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(str(self._path))
        await self._db.execute("PRAGMA journal_mode=WAL;")
        await self._db.execute(_CREATE_TABLE_SQL)
        await self._db.commit()
        logger.debug("Spool opened at %s", self._path)

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> Spool:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise SpoolClosedError("Spool not opened. Call open() or use async with.")
        return self._db

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def enqueue(self, payload: str) -> None:
        """Store one line-protocol payload (one or more newline-separated points).

        Empty payloads are ignored.
        """
        if not payload.strip():
            return
        db = self._conn()
        measurement = ",".join(
            sorted({line.split(",", 1)[0].split(" ", 1)[0] for line in payload.splitlines() if line})
        )
        await db.execute(_INSERT_SQL, (measurement, payload))
        await db.commit()

    async def peek(self, n: int) -> list[tuple[int, str]]:
        """Return up to *n* oldest payloads as ``(rowid, payload)`` without removing them."""
        db = self._conn()
        if n < 1:
            return []
        cursor = await db.execute(_PEEK_SQL, (n,))
        rows = await cursor.fetchall()
        return [(row[0], row[1]) for row in rows]

    async def ack(self, rowids: list[int]) -> None:
        """Delete the rows in *rowids*.  Unknown rowids are ignored."""
        db = self._conn()
        if not rowids:
            return
        placeholders = ",".join("?" for _ in rowids)
        sql = f"DELETE FROM spool WHERE rowid IN ({placeholders});"  # noqa: S608
        await db.execute(sql, rowids)
        await db.commit()

    async def count(self) -> int:
        """Return the number of pending payloads."""
        db = self._conn()
        cursor = await db.execute(_COUNT_SQL)
        row = await cursor.fetchone()
        return row[0]
