"""
Record store over the Supabase relational tables.

Every call is a single PostgREST round trip; results are not cached and
failures are not retried. Successful writes are broadcast on ``Store.events``
so open views (the events WebSocket, session controllers) can react to them.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, Union

from supabase import Client

from taskboard.core.errors import StoreWriteError
from taskboard.core.events import ChangeEvent, EventChannel

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
TableRef = Union[str, Type[Any]]


def utc_now() -> str:
    """Current UTC time as the ISO-8601 string stored in timestamp columns"""
    return datetime.now(timezone.utc).isoformat()


def get_table_name(table: TableRef) -> str:
    """Accept a table name or a schema model class declaring ``table_name``"""
    if isinstance(table, str):
        return table
    name = getattr(table, "table_name", None)
    if not name:
        raise ValueError(f"{table!r} does not declare a table_name")
    return name


class Store:
    def __init__(self, client: Client, default_limit: int = 1000):
        self.client = client
        self.default_limit = default_limit
        self.events: EventChannel[ChangeEvent] = EventChannel("store")

    async def _execute(self, query):
        # supabase-py is synchronous; keep the event loop free while the request is in flight
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, query.execute)

    async def select_first_by_id(self, table: TableRef, id: str) -> Optional[Record]:
        """
        Gets an item from a table by id. None is returned if no item exists
        in the table with the given id.
        """
        query = self.client.table(get_table_name(table))\
            .select("*")\
            .eq("id", id)\
            .limit(1)
        result = await self._execute(query)
        return result.data[0] if result.data else None

    async def select_matching(
        self,
        table: TableRef,
        match: Record,
        *,
        limit: Optional[int] = None,
        offset: int = 0,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Record]:
        """Selects all items whose fields equal the values in match"""
        limit = self.default_limit if limit is None else limit
        query = self.client.table(get_table_name(table))\
            .select("*")\
            .match(match)
        if order_by is not None:
            query = query.order(order_by, desc=descending)
        query = query.range(offset, offset + limit - 1)
        result = await self._execute(query)
        return result.data or []

    async def select_first_matching(self, table: TableRef, match: Record, **options) -> Optional[Record]:
        options["limit"] = 1
        rows = await self.select_matching(table, match, **options)
        return rows[0] if rows else None

    async def update(
        self,
        table: TableRef,
        id: str,
        fields: Record,
        previous: Optional[Record] = None,
    ) -> Record:
        """
        Applies a partial update to the item with the given id and returns the
        updated row. ``previous`` is the caller's copy of the row before the
        update and is forwarded as the event's previous_value.
        """
        table_name = get_table_name(table)
        query = self.client.table(table_name)\
            .update(fields)\
            .eq("id", id)
        result = await self._execute(query)
        if not result.data:
            logger.error(f"Update item failed. table={table_name} id={id} fields={list(fields)}")
            raise StoreWriteError("update", table_name, id)

        row = result.data[0]
        self.events.publish(ChangeEvent(
            type="set",
            table=table_name,
            id=id,
            value=row,
            previous_value=dict(previous) if previous is not None else None,
        ))
        return row

    async def insert(self, table: TableRef, record: Record) -> Record:
        table_name = get_table_name(table)
        query = self.client.table(table_name).insert(record)
        result = await self._execute(query)
        return self._publish_inserted("insert", table_name, result.data)

    async def upsert(self, table: TableRef, record: Record) -> Record:
        """Insert or replace by primary key; used for first-login rows keyed by the auth user id"""
        table_name = get_table_name(table)
        query = self.client.table(table_name).upsert(record)
        result = await self._execute(query)
        return self._publish_inserted("upsert", table_name, result.data)

    def _publish_inserted(self, operation: str, table_name: str, data: Optional[List[Record]]) -> Record:
        if not data:
            logger.error(f"{operation.capitalize()} item failed. table={table_name}")
            raise StoreWriteError(operation, table_name)
        row = data[0]
        self.events.publish(ChangeEvent(
            type="set",
            table=table_name,
            id=str(row.get("id")),
            value=row,
            previous_value=None,
        ))
        return row

    async def delete(self, table: TableRef, id: str) -> Optional[Record]:
        """Deletes an item and returns its value before deletion, or None if it did not exist"""
        table_name = get_table_name(table)
        query = self.client.table(table_name)\
            .delete()\
            .eq("id", id)
        result = await self._execute(query)
        previous = result.data[0] if result.data else None
        self.events.publish(ChangeEvent(
            type="delete",
            table=table_name,
            id=id,
            value=None,
            previous_value=previous,
        ))
        return previous
