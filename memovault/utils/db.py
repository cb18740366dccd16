"""Record store for notes and folders."""

import json
import logging
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import aiosqlite

logger = logging.getLogger(__name__)

COLLECTIONS = ("notes", "folders")


class RecordStore:
    """
    Durable id -> record persistence for the "notes" and "folders" collections.

    Each collection is its own SQLite table holding whole JSON snapshots keyed
    by id. Both collections are materialized into memory by initialize(); reads
    are served from memory and every write goes to SQLite first.

    The store does not enforce any relation between the two collections: a note
    may reference a folder id that no longer exists.
    """

    def __init__(self, db_path: Path):
        """
        Initialize the record store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._cache: dict[str, dict[str, dict[str, Any]]] = {name: {} for name in COLLECTIONS}

    async def initialize(self) -> None:
        """Create the schema if needed and load both collections into memory."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        async with aiosqlite.connect(self.db_path) as db:
            for collection in COLLECTIONS:
                await db.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {collection} (
                        id TEXT PRIMARY KEY,
                        data TEXT NOT NULL,
                        updated_at REAL NOT NULL
                    )
                    """
                )
            await db.commit()

            for collection in COLLECTIONS:
                records = {}
                async with db.execute(f"SELECT id, data FROM {collection}") as cursor:
                    async for row in cursor:
                        try:
                            records[row[0]] = json.loads(row[1])
                        except json.JSONDecodeError as e:
                            logger.warning(f"Skipping unreadable {collection} record {row[0]}: {e}")
                self._cache[collection] = records

        logger.debug(
            f"Record store loaded from {self.db_path} "
            f"({len(self._cache['notes'])} notes, {len(self._cache['folders'])} folders)"
        )

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        if name not in self._cache:
            raise ValueError(f"Unknown collection '{name}'. Must be one of: {', '.join(COLLECTIONS)}")
        return self._cache[name]

    async def get_all(self, collection: str) -> list[dict[str, Any]]:
        """Return a point-in-time copy of every record in a collection."""
        return [dict(record) for record in self._collection(collection).values()]

    async def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        record = self._collection(collection).get(record_id)
        return dict(record) if record is not None else None

    async def put(self, collection: str, record: dict[str, Any]) -> None:
        """
        Insert or replace a whole record.

        Args:
            collection: "notes" or "folders"
            record: Snapshot dictionary; must carry an "id"
        """
        await self.apply_batch(puts={collection: [record]})

    async def delete(self, collection: str, record_id: str) -> None:
        await self.apply_batch(deletes={collection: [record_id]})

    async def apply_batch(
        self,
        puts: dict[str, Iterable[dict[str, Any]]] | None = None,
        deletes: dict[str, Iterable[str]] | None = None,
    ) -> None:
        """
        Apply deletes then upserts across collections in a single transaction.

        Either every change lands or none does; the in-memory view is only
        updated after the commit succeeds.
        """
        puts = {name: list(records) for name, records in (puts or {}).items()}
        deletes = {name: list(ids) for name, ids in (deletes or {}).items()}
        for name in (*puts, *deletes):
            self._collection(name)
        for name, records in puts.items():
            for record in records:
                if not record.get("id"):
                    raise ValueError(f"Cannot store a {name} record without an id")

        now = time.time()
        async with aiosqlite.connect(self.db_path) as db:
            try:
                for name, ids in deletes.items():
                    await db.executemany(f"DELETE FROM {name} WHERE id = ?", [(record_id,) for record_id in ids])
                for name, records in puts.items():
                    await db.executemany(
                        f"""
                        INSERT INTO {name} (id, data, updated_at) VALUES (?, ?, ?)
                        ON CONFLICT(id) DO UPDATE SET
                            data = excluded.data,
                            updated_at = excluded.updated_at
                        """,
                        [(str(record["id"]), json.dumps(record, ensure_ascii=False), now) for record in records],
                    )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        for name, ids in deletes.items():
            for record_id in ids:
                self._cache[name].pop(record_id, None)
        for name, records in puts.items():
            for record in records:
                self._cache[name][str(record["id"])] = dict(record)

    async def clear(self) -> None:
        """Delete every record from both collections."""
        async with aiosqlite.connect(self.db_path) as db:
            for collection in COLLECTIONS:
                await db.execute(f"DELETE FROM {collection}")
            await db.commit()
        for collection in COLLECTIONS:
            self._cache[collection] = {}
        logger.info("Cleared all notes and folders from the record store")
