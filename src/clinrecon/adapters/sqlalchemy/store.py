"""``RecordStore`` implementation on SQLAlchemy's asyncio extension."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import Uuid, delete, func, select, update
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from clinrecon.config.storage import get_database_config
from clinrecon.domain.errors import StoreUnavailable, WriteConflictError
from clinrecon.domain.ports import Operator

from .mappings import create_all_tables, start_mappers, table_for

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from sqlalchemy import ColumnElement, CursorResult, Table
    from sqlalchemy.ext.asyncio import AsyncEngine
    from sqlalchemy.sql.elements import KeyedColumnElement

    from clinrecon.domain.model import Record
    from clinrecon.domain.ports import Criterion, OrderBy, Patch, Where


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy store is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: AsyncEngine | None = None
    _session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine | None:
        return self._engine

    @engine.setter
    def engine(self, value: AsyncEngine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call clinrecon.adapters.sqlalchemy."
                "store.startup() before requesting a store."
            )
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


async def startup(
    *,
    engine: AsyncEngine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the async engine, mappers, tables and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_async_engine(
        database_uri or get_database_config().uri
    )
    start_mappers()
    try:
        async with resolved_engine.begin() as connection:
            await connection.run_sync(create_all_tables)
    except OperationalError as exc:
        raise StoreUnavailable(f"Cannot reach the database: {exc}") from exc

    _STATE.engine = resolved_engine


def configured_engine() -> AsyncEngine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


async def shutdown() -> None:
    """Dispose the managed engine and reset state."""

    if _STATE.engine is not None:
        await _STATE.engine.dispose()
    _STATE.engine = None


@contextmanager
def _reading() -> Iterator[None]:
    try:
        yield
    except DBAPIError as exc:
        raise StoreUnavailable(str(exc)) from exc


@contextmanager
def _writing() -> Iterator[None]:
    try:
        yield
    except OperationalError as exc:
        raise StoreUnavailable(str(exc)) from exc
    except DBAPIError as exc:
        raise WriteConflictError(str(exc.orig or exc)) from exc


def _coerce(column: KeyedColumnElement[Any], value: object) -> object:
    if isinstance(column.type, Uuid) and isinstance(value, str):
        return uuid.UUID(value)
    return value


def _condition(table: Table, criterion: Criterion) -> ColumnElement[bool]:
    column = table.c[criterion.field]
    match criterion.op:
        case Operator.EQ:
            if criterion.value is None:
                return column.is_(None)
            return column == _coerce(column, criterion.value)
        case Operator.IN:
            values = cast("Sequence[object]", criterion.value)
            return column.in_([_coerce(column, value) for value in values])
        case Operator.GT:
            return column > criterion.value
        case Operator.GTE:
            return column >= criterion.value
        case Operator.LT:
            return column < criterion.value
        case Operator.LTE:
            return column <= criterion.value
        case Operator.IS_NULL:
            return column.is_(None)
        case Operator.NOT_NULL:
            return column.is_not(None)


def _conditions(table: Table, where: Where) -> list[ColumnElement[bool]]:
    return [_condition(table, criterion) for criterion in where]


def _ids(table: Table, ids: Sequence[object]) -> list[object]:
    return [_coerce(table.c.id, record_id) for record_id in ids]


class SqlAlchemyRecordStore:
    """Each call runs in its own session and commits before returning."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self.session_factory = session_factory or _STATE.session_factory

    async def find_many[TRecord: Record](
        self,
        kind: type[TRecord],
        *,
        where: Where = (),
        order_by: OrderBy = (),
    ) -> list[TRecord]:
        table = table_for(kind)
        stmt = select(kind).where(*_conditions(table, where))
        for ordering in order_by:
            column = table.c[ordering.field]
            stmt = stmt.order_by(column.desc() if ordering.descending else column.asc())
        with _reading():
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())

    async def count(self, kind: type[Record], *, where: Where = ()) -> int:
        table = table_for(kind)
        stmt = select(func.count()).select_from(table).where(*_conditions(table, where))
        with _reading():
            async with self.session_factory() as session:
                return int((await session.execute(stmt)).scalar_one())

    async def create[TRecord: Record](self, record: TRecord) -> TRecord:
        with _writing():
            async with self.session_factory() as session:
                session.add(record)
                await session.commit()
        return record

    async def update(self, kind: type[Record], record_id: object, patch: Patch) -> None:
        updated = await self.update_many(kind, [record_id], patch)
        if updated == 0:
            raise WriteConflictError(f"No {kind.__name__} row with id {record_id}")

    async def update_many(self, kind: type[Record], ids: Sequence[object], patch: Patch) -> int:
        if not ids:
            return 0
        table = table_for(kind)
        stmt = update(table).where(table.c.id.in_(_ids(table, ids))).values(**patch)
        with _writing():
            async with self.session_factory() as session:
                result = cast("CursorResult[Any]", await session.execute(stmt))
                await session.commit()
        return result.rowcount

    async def delete_many(self, kind: type[Record], ids: Sequence[object]) -> int:
        if not ids:
            return 0
        table = table_for(kind)
        stmt = delete(table).where(table.c.id.in_(_ids(table, ids)))
        with _writing():
            async with self.session_factory() as session:
                result = cast("CursorResult[Any]", await session.execute(stmt))
                await session.commit()
        return result.rowcount


if TYPE_CHECKING:
    from clinrecon.domain.ports import RecordStore

    _store_check: RecordStore = SqlAlchemyRecordStore()
