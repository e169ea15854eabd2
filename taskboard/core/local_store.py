"""Device-local record store backed by SQLite.

Mirrors the :class:`~taskboard.core.store.Store` contract for data that should
never leave the process host (drafts, per-device preferences). Records live in
a single string-keyed table; keys are ``{prefix}::{table}::{id}`` and values
are JSON documents.

All keys under the prefix are loaded into memory on first access. Every
mutation is written to SQLite in the same call that updates memory, before the
change event is published.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from taskboard.core.errors import StoreWriteError
from taskboard.core.events import ChangeEvent, EventChannel
from taskboard.core.store import TableRef, get_table_name

logger = logging.getLogger(__name__)

ItemRecord = Dict[str, Any]

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS kv (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class LocalStore:
    """Persistent local key/value record store.

    Parameters
    ----------
    db_path:
        Path of the SQLite file, or ``":memory:"``.
    prefix:
        Namespace prepended to every key so several stores can share one file.
    """

    def __init__(self, db_path: str | Path, prefix: str = "taskboard") -> None:
        self._db_path = str(db_path)
        self.key_base = f"{prefix}::"
        self._data: Dict[str, ItemRecord] = {}
        self._loaded = False
        self._conn: Optional[sqlite3.Connection] = None
        self.events: EventChannel[ChangeEvent] = EventChannel("local_store")

    # -- bootstrap ------------------------------------------------------------

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            logger.info("Opening local store at %s", self._db_path)
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            with self._conn:
                self._conn.executescript(_SCHEMA)
        return self._conn

    def _load(self) -> None:
        cursor = self._connection().execute(
            "SELECT key, value FROM kv WHERE substr(key, 1, ?) = ?",
            (len(self.key_base), self.key_base),
        )
        for key, raw in cursor.fetchall():
            try:
                self._data[key] = json.loads(raw)
            except json.JSONDecodeError:
                logger.error("Unable to load store item[%s]", key)
        self._loaded = True
        logger.debug("Loaded %d local store items.", len(self._data))

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._load()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # -- keys -----------------------------------------------------------------

    def get_item_key(self, table: str, id: str) -> str:
        return f"{self.key_base}{table}::{id}"

    def get_table_key(self, table: str) -> str:
        return f"{self.key_base}{table}::"

    # -- durable writes -------------------------------------------------------

    def _write(self, key: str, value: ItemRecord) -> None:
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, json.dumps(value, default=str)),
            )

    def _remove(self, key: str) -> None:
        with self._connection() as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))

    # -- key/value API --------------------------------------------------------

    async def get_item(self, table: TableRef, id: str) -> Optional[ItemRecord]:
        """Return the item stored under table/id, or None"""
        self._ensure_loaded()
        item = self._data.get(self.get_item_key(get_table_name(table), id))
        return None if item is None else dict(item)

    async def set_item(self, table: TableRef, id: str, value: Optional[ItemRecord]) -> Optional[ItemRecord]:
        """Store an item. A None or non-dict value deletes the item instead."""
        self._ensure_loaded()
        if not isinstance(value, dict):
            await self.delete_item(table, id)
            return None

        table_name = get_table_name(table)
        key = self.get_item_key(table_name, id)
        previous = self._data.get(key)
        stored = dict(value)
        self._data[key] = stored
        self._write(key, stored)
        self.events.publish(ChangeEvent(
            type="set",
            table=table_name,
            id=id,
            value=dict(stored),
            previous_value=previous,
        ))
        return dict(stored)

    async def delete_item(self, table: TableRef, id: str) -> Optional[ItemRecord]:
        """Delete an item and return its previous value"""
        self._ensure_loaded()
        table_name = get_table_name(table)
        key = self.get_item_key(table_name, id)
        previous = self._data.pop(key, None)
        self._remove(key)
        self.events.publish(ChangeEvent(
            type="delete",
            table=table_name,
            id=id,
            value=None,
            previous_value=previous,
        ))
        return previous

    async def select(
        self,
        table: TableRef,
        filter: Optional[Callable[[ItemRecord, str], bool]] = None,
    ) -> List[ItemRecord]:
        """All items of a table, optionally narrowed by ``filter(item, id)``"""
        self._ensure_loaded()
        table_key = self.get_table_key(get_table_name(table))
        items = []
        for key, item in self._data.items():
            if not key.startswith(table_key):
                continue
            if filter is not None:
                try:
                    if filter(item, key[len(table_key):]) is False:
                        continue
                except Exception:
                    logger.exception("select filter error for %s", key)
                    continue
            items.append(dict(item))
        return items

    async def clear(self) -> None:
        """Remove every item under this store's prefix, publishing a delete for each"""
        self._ensure_loaded()
        removed = list(self._data.items())
        self._data.clear()
        with self._connection() as conn:
            conn.execute(
                "DELETE FROM kv WHERE substr(key, 1, ?) = ?",
                (len(self.key_base), self.key_base),
            )
        for key, previous in removed:
            table_name, _, id = key[len(self.key_base):].partition("::")
            self.events.publish(ChangeEvent(
                type="delete",
                table=table_name,
                id=id,
                value=None,
                previous_value=previous,
            ))

    # -- Store-compatible API -------------------------------------------------

    async def select_first_by_id(self, table: TableRef, id: str) -> Optional[ItemRecord]:
        return await self.get_item(table, id)

    async def select_matching(
        self,
        table: TableRef,
        match: ItemRecord,
        *,
        limit: Optional[int] = None,
        offset: int = 0,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[ItemRecord]:
        items = await self.select(
            table,
            lambda item, _id: all(item.get(k) == v for k, v in match.items()),
        )
        if order_by is not None:
            # Missing values sort last ascending
            items.sort(key=lambda item: (item.get(order_by) is None, str(item.get(order_by) or "")), reverse=descending)
        end = None if limit is None else offset + limit
        return items[offset:end]

    async def select_first_matching(self, table: TableRef, match: ItemRecord, **options) -> Optional[ItemRecord]:
        options["limit"] = 1
        rows = await self.select_matching(table, match, **options)
        return rows[0] if rows else None

    async def insert(self, table: TableRef, record: ItemRecord) -> ItemRecord:
        row = dict(record)
        row.setdefault("id", str(uuid.uuid4()))
        return await self.set_item(table, str(row["id"]), row)

    async def upsert(self, table: TableRef, record: ItemRecord) -> ItemRecord:
        return await self.insert(table, record)

    async def update(
        self,
        table: TableRef,
        id: str,
        fields: ItemRecord,
        previous: Optional[ItemRecord] = None,
    ) -> ItemRecord:
        current = await self.get_item(table, id)
        if current is None:
            table_name = get_table_name(table)
            logger.error("Update item failed. table=%s id=%s", table_name, id)
            raise StoreWriteError("update", table_name, id)
        return await self.set_item(table, id, {**current, **fields})

    async def delete(self, table: TableRef, id: str) -> Optional[ItemRecord]:
        return await self.delete_item(table, id)
