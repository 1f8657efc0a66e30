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
"""Outbound and inbound ports of the CRUD engine.

:class:`DataSourcePort` is the capability set the engine needs from a
database: run a SELECT, run a COUNT, run a write (with or without
RETURNING), and scope work inside a transaction. :class:`CrudOperations`
is the interface every entity service exposes to its callers.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from sqlalchemy import Executable

if TYPE_CHECKING:
    from flycrud.crud.options import OperationOptions, PaginationRequest
    from flycrud.crud.page import PageResult, SearchResult

R = TypeVar("R")
CreateDtoT = TypeVar("CreateDtoT", contravariant=True)
UpdateDtoT = TypeVar("UpdateDtoT", contravariant=True)

Row = dict[str, Any]


@dataclass(frozen=True)
class WriteResult:
    """Outcome of an INSERT, UPDATE or DELETE.

    Attributes:
        rows: Rows yielded by a RETURNING clause, ``None`` without one.
        affected_count: Number of rows the statement touched.
        generated_id: Primary key of an inserted row when no RETURNING was used.
    """

    rows: list[Row] | None = None
    affected_count: int = 0
    generated_id: Any = None

    @property
    def succeeded(self) -> bool:
        """Whether at least one row was written."""
        if self.rows is not None:
            return len(self.rows) > 0
        return self.affected_count > 0


@runtime_checkable
class DataSourcePort(Protocol):
    """Capability set the CRUD engine executes statements through."""

    async def fetch_all(self, statement: Executable) -> list[Row]: ...

    async def fetch_scalar(self, statement: Executable) -> Any: ...

    async def execute(self, statement: Executable) -> WriteResult: ...

    async def transaction(self, work: Callable[[DataSourcePort], Awaitable[R]]) -> R:
        """Run ``work(scope)`` atomically; nested inside an open transaction it must use a savepoint."""
        ...



@runtime_checkable
class CrudOperations(Protocol[CreateDtoT, UpdateDtoT]):
    """Standard entity service operations."""

    async def find(self, id: Any, options: OperationOptions | None = None) -> Row | None: ...

    async def find_one(self, example: Any, options: OperationOptions | None = None) -> Row | None: ...

    async def find_all(
        self,
        filters: Mapping[str, Any] | None = None,
        pagination: PaginationRequest | None = None,
        options: OperationOptions | None = None,
    ) -> PageResult[Row]: ...

    async def create(self, dto: CreateDtoT, options: OperationOptions | None = None) -> Row: ...

    async def update(self, id: Any, dto: UpdateDtoT, options: OperationOptions | None = None) -> Row: ...

    async def soft_delete(self, id: Any, options: OperationOptions | None = None) -> bool: ...

    async def restore(self, id: Any, options: OperationOptions | None = None) -> Row: ...

    async def delete(self, id: Any, options: OperationOptions | None = None) -> bool: ...

    async def exists(self, id: Any, options: OperationOptions | None = None) -> bool: ...

    async def count(
        self, filters: Mapping[str, Any] | None = None, options: OperationOptions | None = None
    ) -> int: ...

    async def full_text_search(
        self,
        term: str,
        columns: Sequence[str],
        pagination: PaginationRequest | None = None,
        options: OperationOptions | None = None,
    ) -> SearchResult[Row]: ...

    async def mass_create(self, dtos: Sequence[CreateDtoT], options: OperationOptions | None = None) -> list[Row]: ...

    async def mass_update(
        self, ids: Sequence[Any], dto: UpdateDtoT, options: OperationOptions | None = None
    ) -> list[Row]: ...

    async def mass_soft_delete(self, ids: Sequence[Any], options: OperationOptions | None = None) -> bool: ...

    async def mass_restore(self, ids: Sequence[Any], options: OperationOptions | None = None) -> list[Row]: ...

    async def mass_delete(self, ids: Sequence[Any], options: OperationOptions | None = None) -> bool: ...
