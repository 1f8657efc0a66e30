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
"""Shared fixtures for the CRUD engine tests: a SQLite users table and a concrete service."""

from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine

from flycrud.crud.datasource import SqlAlchemyDataSource
from flycrud.crud.module import create_crud_service
from tests.crud.support import RecordingDataSource, UserService, metadata, users


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'crud.db'}")

    # pysqlite's implicit transactions break SAVEPOINT; let SQLAlchemy emit BEGIN itself.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def recorder(engine):
    return RecordingDataSource(SqlAlchemyDataSource(engine))


@pytest.fixture
def make_service(engine):
    def factory(data_source: Any = None, **overrides: Any) -> UserService:
        config = {"data_source": data_source or engine, "table": users, **overrides}
        return create_crud_service(UserService, config)

    return factory


@pytest.fixture
def service(make_service):
    return make_service()
