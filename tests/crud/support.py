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
"""Users table, DTOs, a concrete service and in-memory data sources shared by the CRUD tests."""

from __future__ import annotations

import asyncio
from typing import Any

from pydantic import BaseModel
from sqlalchemy import JSON, Column, DateTime, Integer, MetaData, String, Table

from flycrud.crud.ports import WriteResult
from flycrud.crud.service import CrudService
from flycrud.kernel.exceptions import ValidationException

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("email", String(255), unique=True),
    Column("age", Integer),
    Column("meta", JSON),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
    Column("deleted_at", DateTime(timezone=True)),
)


class UserCreate(BaseModel):
    name: str
    email: str | None = None
    age: int | None = None


class UserUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    age: int | None = None


class UserService(CrudService[UserCreate, UserUpdate]):
    async def validate_create(self, dto: UserCreate) -> None:
        if not dto.name:
            raise ValidationException("name is required", context={"field": "name"})

    async def validate_update(self, id: Any, dto: UserUpdate) -> None:
        if dto.name is not None and not dto.name:
            raise ValidationException("name must not be blank", context={"field": "name"})

    def map_create_dto_to_entity(self, dto: UserCreate) -> dict[str, Any]:
        return dto.model_dump()

    def map_update_dto_to_entity(self, dto: UserUpdate) -> dict[str, Any]:
        return dto.model_dump(exclude_unset=True)


class RecordingDataSource:
    """Delegating data source that records every statement it runs."""

    def __init__(self, inner: Any, statements: list[Any] | None = None) -> None:
        self._inner = inner
        self.statements: list[Any] = statements if statements is not None else []

    async def fetch_all(self, statement: Any) -> list[dict[str, Any]]:
        self.statements.append(statement)
        return await self._inner.fetch_all(statement)

    async def fetch_scalar(self, statement: Any) -> Any:
        self.statements.append(statement)
        return await self._inner.fetch_scalar(statement)

    async def execute(self, statement: Any) -> WriteResult:
        self.statements.append(statement)
        return await self._inner.execute(statement)

    async def transaction(self, work: Any) -> Any:
        return await self._inner.transaction(lambda scope: work(RecordingDataSource(scope, self.statements)))


class StubDataSource:
    """In-memory data source returning canned rows; never touches a database."""

    def __init__(self, rows: list[dict[str, Any]] | None = None) -> None:
        self.rows = rows or []
        self.statements: list[Any] = []

    async def fetch_all(self, statement: Any) -> list[dict[str, Any]]:
        self.statements.append(statement)
        return list(self.rows)

    async def fetch_scalar(self, statement: Any) -> Any:
        self.statements.append(statement)
        return len(self.rows)

    async def execute(self, statement: Any) -> WriteResult:
        self.statements.append(statement)
        return WriteResult(affected_count=1)

    async def transaction(self, work: Any) -> Any:
        return await work(self)


class RendezvousDataSource(StubDataSource):
    """Stub whose row fetch blocks until the count query has started.

    A caller that awaits the two queries one after the other never gets past
    ``fetch_all``.
    """

    def __init__(self, rows: list[dict[str, Any]] | None = None) -> None:
        super().__init__(rows)
        self.count_started = asyncio.Event()

    async def fetch_all(self, statement: Any) -> list[dict[str, Any]]:
        await self.count_started.wait()
        return await super().fetch_all(statement)

    async def fetch_scalar(self, statement: Any) -> Any:
        self.count_started.set()
        return await super().fetch_scalar(statement)
