import logging
from datetime import UTC, datetime

import aiosqlite

from symcheck.config import DATABASE_PATH

logger = logging.getLogger(__name__)

# One row per named slot; value holds the JSON-encoded collection.
SQLITE_SCHEMA = """
    CREATE TABLE IF NOT EXISTS local_slots (
        name TEXT PRIMARY KEY,
        value TEXT NOT NULL DEFAULT '[]',
        updated_at TEXT NOT NULL
    );
"""


class SlotDatabase:
    """Raw slot rows on a single aiosqlite connection. Values are opaque text."""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn

    async def create_schema(self) -> None:
        await self.conn.executescript(SQLITE_SCHEMA)
        await self.conn.commit()

    async def read_slot(self, name: str) -> str | None:
        cursor = await self.conn.execute("SELECT value FROM local_slots WHERE name = ?", (name,))
        row = await cursor.fetchone()
        return row["value"] if row else None

    async def write_slot(self, name: str, value: str) -> None:
        try:
            await self.conn.execute(
                "INSERT INTO local_slots (name, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(name) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                (name, value, datetime.now(UTC).isoformat()),
            )
            await self.conn.commit()
        except aiosqlite.Error:
            await self.conn.rollback()
            raise

    async def close(self) -> None:
        await self.conn.close()


_db: SlotDatabase | None = None


async def get_db() -> SlotDatabase:
    global _db
    if _db is None:
        conn = await aiosqlite.connect(DATABASE_PATH)
        conn.row_factory = aiosqlite.Row
        _db = SlotDatabase(conn)
        logger.info("Connected to SQLite database at %s", DATABASE_PATH)
    return _db


async def init_db() -> None:
    db = await get_db()
    await db.create_schema()


async def close_db() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None
