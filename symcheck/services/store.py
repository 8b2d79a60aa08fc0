"""Client-local durable storage organised as named slots.

Each slot holds one ordered JSON collection. ``append`` is a read-modify-write
of the whole collection and is serialised with an asyncio lock so two saves
triggered back to back never lose an update.
"""

import asyncio
import copy
import json
import logging
from typing import Protocol

from symcheck.database import SlotDatabase, get_db

logger = logging.getLogger(__name__)


class SlotStore(Protocol):
    async def get(self, slot: str) -> list[dict]:
        ...

    async def set(self, slot: str, items: list[dict]) -> None:
        ...

    async def append(self, slot: str, item: dict) -> list[dict]:
        ...


class MemorySlotStore:
    """In-process store used in tests and when no database is configured."""

    def __init__(self) -> None:
        self._slots: dict[str, list[dict]] = {}
        self._lock = asyncio.Lock()

    async def get(self, slot: str) -> list[dict]:
        return copy.deepcopy(self._slots.get(slot, []))

    async def set(self, slot: str, items: list[dict]) -> None:
        self._slots[slot] = copy.deepcopy(list(items))

    async def append(self, slot: str, item: dict) -> list[dict]:
        async with self._lock:
            items = await self.get(slot)
            items.append(item)
            await self.set(slot, items)
            return items


class SQLiteSlotStore:
    """Slots persisted as JSON rows in the ``local_slots`` table."""

    def __init__(self, db: SlotDatabase | None = None) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def _conn(self) -> SlotDatabase:
        if self._db is None:
            self._db = await get_db()
        return self._db

    async def get(self, slot: str) -> list[dict]:
        db = await self._conn()
        raw = await db.read_slot(slot)
        if raw is None:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Slot %s holds invalid JSON, treating as empty", slot)
            return []
        if not isinstance(items, list):
            logger.warning("Slot %s does not hold a list, treating as empty", slot)
            return []
        return items

    async def set(self, slot: str, items: list[dict]) -> None:
        db = await self._conn()
        await db.write_slot(slot, json.dumps(items))

    async def append(self, slot: str, item: dict) -> list[dict]:
        async with self._lock:
            items = await self.get(slot)
            items.append(item)
            await self.set(slot, items)
            return items
