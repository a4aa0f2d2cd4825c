"""
Structured key-value storage.

Values are JSON documents addressed by (table, key). Tables must be
registered before use. Every call is bounded by a timeout; the storage is an
optional capability, so callers treat a missing instance as "memory only".
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, List, Optional, Protocol, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hooksync.models.storage import StorageEntry, StorageTable

logger = logging.getLogger("hooksync")

T = TypeVar("T")

SUBSCRIPTIONS_TABLE = "github_subscriptions"


class StorageError(Exception):
    """Raised when a storage call fails, times out or targets an unknown table."""


@dataclass
class StorageTableSchema:
    description: str = ""
    version: int = 1


SUBSCRIPTIONS_SCHEMA = StorageTableSchema(
    description="GitHub repo webhook subscriptions, keyed by owner/repo string",
    version=1,
)


class StorageAPI(Protocol):
    async def register(self, table: str, schema: StorageTableSchema) -> None: ...

    async def get(self, table: str, key: str) -> Optional[Any]: ...

    async def put(self, table: str, key: str, value: Any) -> None: ...

    async def list(self, table: str) -> List[Any]: ...

    async def delete(self, table: str, key: str) -> None: ...


class SqlStorage:
    """StorageAPI on top of an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], timeout: float = 10.0):
        self._session_factory = session_factory
        self._timeout = timeout
        self._tables: set[str] = set()

    async def _bounded(self, op: str, coro: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(coro, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise StorageError(f"Storage {op} timed out after {self._timeout}s") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Storage {op} failed: {e}") from e

    def _require(self, table: str) -> None:
        if table not in self._tables:
            raise StorageError(f"Storage table not registered: {table}")

    async def register(self, table: str, schema: StorageTableSchema) -> None:
        async def _register() -> None:
            async with self._session_factory() as session:
                row = await session.get(StorageTable, table)
                if row is None:
                    session.add(StorageTable(name=table, description=schema.description, version=schema.version))
                else:
                    row.description = schema.description
                    row.version = schema.version
                await session.commit()

        await self._bounded("register", _register())
        self._tables.add(table)

    async def get(self, table: str, key: str) -> Optional[Any]:
        self._require(table)

        async def _get() -> Optional[Any]:
            async with self._session_factory() as session:
                row = await session.get(StorageEntry, (table, key))
                return None if row is None else row.value

        return await self._bounded("get", _get())

    async def put(self, table: str, key: str, value: Any) -> None:
        self._require(table)

        async def _put() -> None:
            async with self._session_factory() as session:
                row = await session.get(StorageEntry, (table, key))
                if row is None:
                    session.add(StorageEntry(table_name=table, key=key, value=value))
                else:
                    row.value = value
                await session.commit()

        await self._bounded("put", _put())

    async def list(self, table: str) -> List[Any]:
        self._require(table)

        async def _list() -> List[Any]:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(StorageEntry.value)
                    .where(StorageEntry.table_name == table)
                    .order_by(StorageEntry.key)
                )
                return list(result.scalars().all())

        return await self._bounded("list", _list())

    async def delete(self, table: str, key: str) -> None:
        """Delete a value; a missing key is not an error."""
        self._require(table)

        async def _delete() -> None:
            async with self._session_factory() as session:
                await session.execute(
                    delete(StorageEntry).where(
                        StorageEntry.table_name == table,
                        StorageEntry.key == key,
                    )
                )
                await session.commit()

        await self._bounded("delete", _delete())
