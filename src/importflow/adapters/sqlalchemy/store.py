"""SQLAlchemy-backed record store and its engine lifecycle."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, create_engine, insert, select, text, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from importflow.config.storage import get_database_config
from importflow.domain.errors import RecordWriteError, StoreUnavailableError

from .tables import create_all_tables, metadata

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy import ColumnElement, Connection, Select, Table
    from sqlalchemy.engine import Engine

    from importflow.domain.ports.persistence import Record

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy store is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None


_STATE = _AdapterState()


def create_store_engine(database_uri: str) -> Engine:
    """Create an engine whose connections may be used from worker threads."""

    url = make_url(database_uri)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # One shared connection, otherwise every thread sees its own empty database.
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url)


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> Engine:
    """Initialise the SQLAlchemy engine and create the workflow tables."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy store already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_store_engine(database_uri or get_database_config().uri)
    create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine
    return resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class SqlAlchemyRecordStore:
    """Record store over SQLAlchemy Core; every write runs in its own transaction.

    Each unit of work runs in a worker thread so the event loop keeps serving
    other tasks (progress, ``close()``) while the database is busy.
    """

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        engine = self._engine or _STATE.engine
        if engine is None:
            raise StartupError(
                "SQLAlchemy store not initialised. Call importflow.adapters.sqlalchemy."
                "store.startup() or pass an engine."
            )
        return engine

    async def ping(self) -> None:
        try:
            await asyncio.to_thread(self._ping)
        except (StartupError, SQLAlchemyError) as exc:
            raise StoreUnavailableError(f"Database unavailable: {exc}") from exc

    async def insert(self, table: str, values: Mapping[str, object]) -> Record:
        target = _table(table)
        try:
            return await asyncio.to_thread(self._insert, target, dict(values))
        except SQLAlchemyError as exc:
            raise RecordWriteError(_describe(exc), table=table) from exc

    async def update(
        self,
        table: str,
        *,
        match: Mapping[str, object],
        values: Mapping[str, object],
    ) -> Sequence[Record]:
        if not match:
            raise RecordWriteError("Refusing to update without a match filter", table=table)
        target = _table(table)
        condition = _where(target, match)
        try:
            return await asyncio.to_thread(self._update, target, condition, dict(values))
        except SQLAlchemyError as exc:
            raise RecordWriteError(_describe(exc), table=table) from exc

    async def select(
        self,
        table: str,
        *,
        match: Mapping[str, object] | None = None,
    ) -> Sequence[Record]:
        target = _table(table)
        statement = select(target)
        if match:
            statement = statement.where(_where(target, match))
        try:
            return await asyncio.to_thread(self._select, statement)
        except StartupError as exc:
            raise StoreUnavailableError(str(exc)) from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Could not read {table}: {exc}") from exc

    def _ping(self) -> None:
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    def _insert(self, target: Table, row: dict[str, object]) -> Record:
        with self.engine.begin() as connection:
            result = connection.execute(insert(target).values(**row))
            primary_key = result.inserted_primary_key
            if primary_key is None:
                raise RecordWriteError(
                    f"No primary key returned for {target.name}", table=target.name
                )
            return _fetch_one(connection, target, primary_key[0])

    def _update(
        self,
        target: Table,
        condition: ColumnElement[bool],
        values: dict[str, object],
    ) -> list[Record]:
        with self.engine.begin() as connection:
            ids = list(connection.scalars(select(target.c.id).where(condition)))
            if not ids:
                return []
            connection.execute(update(target).where(target.c.id.in_(ids)).values(**values))
            rows = connection.execute(select(target).where(target.c.id.in_(ids)))
            return [dict(row._mapping) for row in rows]  # noqa: SLF001

    def _select(self, statement: Select[Any]) -> list[Record]:
        with self.engine.connect() as connection:
            return [dict(row._mapping) for row in connection.execute(statement)]  # noqa: SLF001


def _table(name: str) -> Table:
    try:
        return metadata.tables[name]
    except KeyError as exc:
        raise RecordWriteError(f"Unknown table: {name}", table=name) from exc


def _where(target: Table, match: Mapping[str, object]) -> ColumnElement[bool]:
    missing = [name for name in match if name not in target.c]
    if missing:
        raise RecordWriteError(
            f"Unknown column(s) for {target.name}: {', '.join(missing)}",
            table=target.name,
        )
    return and_(*(target.c[name] == value for name, value in match.items()))


def _fetch_one(connection: Connection, target: Table, record_id: object) -> Record:
    row = connection.execute(select(target).where(target.c.id == record_id)).one()
    return dict(row._mapping)  # noqa: SLF001


def _describe(exc: SQLAlchemyError) -> str:
    original = getattr(exc, "orig", None)
    return str(original) if original is not None else str(exc)


if TYPE_CHECKING:
    from importflow.domain.ports.persistence import RecordStore

    _check: RecordStore = SqlAlchemyRecordStore()
