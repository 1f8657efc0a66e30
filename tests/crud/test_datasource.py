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
"""Tests for the SQLAlchemy data source adapter."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import func, insert, select, update

from flycrud.crud.datasource import SqlAlchemyDataSource, as_data_source
from flycrud.crud.ports import DataSourcePort, WriteResult
from flycrud.kernel.exceptions import DataIntegrityException
from tests.crud.support import users


class TestAsDataSource:
    def test_wraps_engine(self, engine):
        source = as_data_source(engine)
        assert isinstance(source, SqlAlchemyDataSource)
        assert source.bind is engine

    def test_port_is_returned_as_is(self, engine):
        source = SqlAlchemyDataSource(engine)
        assert as_data_source(source) is source

    def test_rejects_other_objects(self):
        with pytest.raises(TypeError, match="Unsupported data source"):
            as_data_source("postgresql://localhost/db")

    def test_adapter_satisfies_port(self, engine):
        assert isinstance(SqlAlchemyDataSource(engine), DataSourcePort)


class TestWriteResult:
    def test_rows_decide_success(self):
        assert WriteResult(rows=[{"id": 1}]).succeeded is True
        assert WriteResult(rows=[], affected_count=3).succeeded is False

    def test_affected_count_without_rows(self):
        assert WriteResult(affected_count=1).succeeded is True
        assert WriteResult().succeeded is False


class TestSqlAlchemyDataSource:
    @pytest.mark.asyncio
    async def test_execute_without_returning_reports_generated_id(self, engine):
        source = SqlAlchemyDataSource(engine)
        result = await source.execute(insert(users).values(name="Ann"))
        assert result.rows is None
        assert result.generated_id is not None
        assert result.affected_count == 1

    @pytest.mark.asyncio
    async def test_execute_with_returning(self, engine):
        source = SqlAlchemyDataSource(engine)
        result = await source.execute(insert(users).values(name="Ann").returning(users.c.id, users.c.name))
        assert result.rows is not None
        assert result.rows[0]["name"] == "Ann"
        assert result.succeeded is True

    @pytest.mark.asyncio
    async def test_update_of_nothing_does_not_succeed(self, engine):
        source = SqlAlchemyDataSource(engine)
        result = await source.execute(update(users).where(users.c.id == 42).values(name="x"))
        assert result.succeeded is False

    @pytest.mark.asyncio
    async def test_fetch_all_and_scalar(self, engine):
        source = SqlAlchemyDataSource(engine)
        await source.execute(insert(users).values(name="Ann"))
        rows = await source.fetch_all(select(users.c.name))
        assert rows == [{"name": "Ann"}]
        assert await source.fetch_scalar(select(func.count()).select_from(users)) == 1

    @pytest.mark.asyncio
    async def test_integrity_error_is_translated(self, engine):
        source = SqlAlchemyDataSource(engine)
        await source.execute(insert(users).values(name="Ann", email="a@example.com"))
        with pytest.raises(DataIntegrityException):
            await source.execute(insert(users).values(name="Bob", email="a@example.com"))

    @pytest.mark.asyncio
    async def test_transaction_commits(self, engine):
        source = SqlAlchemyDataSource(engine)

        async def work(scope):
            await scope.execute(insert(users).values(name="Ann"))
            await scope.execute(insert(users).values(name="Bob"))
            return "done"

        assert await source.transaction(work) == "done"
        assert await source.fetch_scalar(select(func.count()).select_from(users)) == 2

    @pytest.mark.asyncio
    async def test_transaction_rolls_back_on_error(self, engine):
        source = SqlAlchemyDataSource(engine)

        async def work(scope):
            await scope.execute(insert(users).values(name="Ann"))
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await source.transaction(work)
        assert await source.fetch_scalar(select(func.count()).select_from(users)) == 0

    @pytest.mark.asyncio
    async def test_connection_scope_serializes_concurrent_statements(self, engine):
        async with engine.connect() as conn:
            source = SqlAlchemyDataSource(conn)
            await source.execute(insert(users).values(name="Ann"))
            rows, total = await asyncio.gather(
                source.fetch_all(select(users.c.name)),
                source.fetch_scalar(select(func.count()).select_from(users)),
            )
            await conn.commit()
        assert rows == [{"name": "Ann"}]
        assert total == 1

    @pytest.mark.asyncio
    async def test_transaction_inside_open_transaction_uses_savepoint(self, engine):
        async with engine.connect() as conn:
            await conn.begin()
            source = SqlAlchemyDataSource(conn)
            await source.execute(insert(users).values(name="Ann"))

            async def work(scope):
                await scope.execute(insert(users).values(name="Bob"))
                raise RuntimeError("boom")

            with pytest.raises(RuntimeError):
                await source.transaction(work)
            assert conn.in_transaction()
            await conn.commit()

        rows = await SqlAlchemyDataSource(engine).fetch_all(select(users.c.name))
        assert rows == [{"name": "Ann"}]
