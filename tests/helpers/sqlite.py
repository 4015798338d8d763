"""SQLite helpers for adapter and application tests."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from clinrecon.adapters.sqlalchemy.store import SqlAlchemyRecordStore, shutdown, startup

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from clinrecon.domain.model import Record

MEMORY_URI = "sqlite+aiosqlite:///:memory:"


def run_with_sqlite_store[T](operation: Callable[[SqlAlchemyRecordStore], Awaitable[T]]) -> T:
    """Start the adapter on a private engine, run ``operation`` and dispose everything.

    Engine and connections live inside a single event loop.
    """

    async def _run() -> T:
        engine = create_async_engine(MEMORY_URI, poolclass=StaticPool)
        await startup(engine=engine, force=True)
        try:
            return await operation(SqlAlchemyRecordStore())
        finally:
            await shutdown()

    return asyncio.run(_run())


def seed_database(*records: Record) -> None:
    """Insert ``records`` into the database configured through the environment."""

    async def _run() -> None:
        await startup(force=True)
        try:
            store = SqlAlchemyRecordStore()
            for record in records:
                await store.create(record)
        finally:
            await shutdown()

    asyncio.run(_run())
