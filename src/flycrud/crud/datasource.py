# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""SQLAlchemy async Core implementation of :class:`DataSourcePort`."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import structlog
from sqlalchemy import Executable
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from flycrud.crud.ports import DataSourcePort, Row, WriteResult
from flycrud.kernel.exceptions import DataIntegrityException, TransactionException

R = TypeVar("R")

logger = structlog.get_logger("flycrud.crud.datasource")


class SqlAlchemyDataSource:
    """Runs CRUD statements on an ``AsyncEngine`` or an ``AsyncConnection``.

    Bound to an engine, every statement checks out its own pooled connection
    and commits on its own, so independent statements may run concurrently.
    Bound to a connection (a transaction scope), statements share that
    connection and are serialized, since a DBAPI connection cannot run two
    statements at once.
    """

    def __init__(self, bind: AsyncEngine | AsyncConnection) -> None:
        self._bind = bind
        self._lock = asyncio.Lock()

    @property
    def bind(self) -> AsyncEngine | AsyncConnection:
        return self._bind

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[AsyncConnection]:
        if isinstance(self._bind, AsyncConnection):
            async with self._lock:
                yield self._bind
        else:
            async with self._bind.begin() as conn:
                yield conn

    async def fetch_all(self, statement: Executable) -> list[Row]:
        """Run a SELECT and return its rows as dicts."""
        async with self._connection() as conn:
            result = await conn.execute(statement)
            return [dict(row) for row in result.mappings().all()]

    async def fetch_scalar(self, statement: Executable) -> Any:
        """Run a SELECT returning a single value (e.g. COUNT)."""
        async with self._connection() as conn:
            result = await conn.execute(statement)
            return result.scalar()

    async def execute(self, statement: Executable) -> WriteResult:
        """Run an INSERT, UPDATE or DELETE."""
        async with self._connection() as conn:
            try:
                result = await conn.execute(statement)
            except IntegrityError as exc:
                raise DataIntegrityException(
                    f"Integrity constraint violated: {exc.orig}",
                    context={"statement": type(statement).__name__},
                ) from exc

            if result.returns_rows:
                rows = [dict(row) for row in result.mappings().all()]
                return WriteResult(rows=rows, affected_count=len(rows))

            generated_id = None
            if getattr(statement, "is_insert", False):
                inserted = result.inserted_primary_key
                if inserted:
                    generated_id = inserted[0]
            return WriteResult(affected_count=result.rowcount, generated_id=generated_id)

    async def transaction(self, work: Callable[[DataSourcePort], Awaitable[R]]) -> R:
        """Run ``work`` inside a transaction; commit on return, roll back on error.

        On a connection that is already inside a transaction the work runs in
        a SAVEPOINT instead, so a failure undoes only what ``work`` wrote and
        leaves the enclosing transaction usable.
        """
        if isinstance(self._bind, AsyncConnection):
            return await self._run_in_transaction(self._bind, work, nested=self._bind.in_transaction())

        async with self._bind.connect() as conn:
            return await self._run_in_transaction(conn, work)

    @staticmethod
    async def _run_in_transaction(
        conn: AsyncConnection,
        work: Callable[[DataSourcePort], Awaitable[R]],
        nested: bool = False,
    ) -> R:
        trans = await (conn.begin_nested() if nested else conn.begin())
        scoped = SqlAlchemyDataSource(conn)
        try:
            result = await work(scoped)
        except BaseException:
            await trans.rollback()
            logger.debug("transaction_rolled_back", savepoint=nested)
            raise
        try:
            await trans.commit()
        except SQLAlchemyError as exc:
            raise TransactionException("Transaction commit failed") from exc
        return result


def as_data_source(handle: Any) -> DataSourcePort:
    """Normalize an engine, a connection, or an existing port into a :class:`DataSourcePort`."""
    if isinstance(handle, (AsyncEngine, AsyncConnection)):
        return SqlAlchemyDataSource(handle)
    if isinstance(handle, DataSourcePort):
        return handle
    raise TypeError(
        f"Unsupported data source {type(handle).__name__}: expected AsyncEngine, AsyncConnection or DataSourcePort"
    )
