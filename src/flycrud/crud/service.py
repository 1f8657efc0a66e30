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
"""Generic CRUD service over a relational table.

Subclass :class:`CrudService` once per entity, supplying validation and
DTO mapping; everything else (lookups, filtering, pagination, soft delete,
RETURNING fallbacks, bulk transactions) comes from the base class.

Usage::

    class UserService(CrudService[UserCreate, UserUpdate]):
        async def validate_create(self, dto: UserCreate) -> None:
            if not dto.email:
                raise ValidationException("email is required")

        async def validate_update(self, id: int, dto: UserUpdate) -> None:
            pass

        def map_create_dto_to_entity(self, dto: UserCreate) -> dict[str, Any]:
            return dto.model_dump()

        def map_update_dto_to_entity(self, dto: UserUpdate) -> dict[str, Any]:
            return dto.model_dump(exclude_unset=True)

    users = create_crud_service(UserService, {"data_source": engine, "table": users_table})
    page = await users.find_all({"name": "ali"}, PaginationRequest(page=2, limit=10))
"""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

import structlog
from sqlalchemy import ColumnElement, Select, and_, delete, func, insert, select, update

from flycrud.config.properties import CrudProperties
from flycrud.crud.bulk import run_batch
from flycrud.crud.conditions import Condition, Equals, NullCheck, conjoin, parse_example, parse_filter
from flycrud.crud.config import ServiceConfiguration, resolve_configuration
from flycrud.crud.datasource import as_data_source
from flycrud.crud.dialect import PrimaryKeyKind
from flycrud.crud.hooks import LifecycleHooks, run_hook
from flycrud.crud.options import LockMode, OperationOptions, PaginationRequest
from flycrud.crud.page import PageResult, SearchResult
from flycrud.crud.ports import DataSourcePort, Row
from flycrud.crud.search import build_search_expression
from flycrud.kernel.exceptions import (
    EntityNotFoundException,
    InvalidRequestException,
    OperationFailedException,
    OperationNotSupportedException,
)

CreateDtoT = TypeVar("CreateDtoT")
UpdateDtoT = TypeVar("UpdateDtoT")

logger = structlog.get_logger("flycrud.crud.service")

_DEFAULT_OPTIONS = OperationOptions()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CrudService(ABC, Generic[CreateDtoT, UpdateDtoT]):
    """Abstract entity service implementing :class:`~flycrud.crud.ports.CrudOperations`.

    Rows are returned as ``dict`` keyed by column name.

    Args:
        config: Service configuration (a mapping or a ``ServiceConfiguration``),
            resolved against ``defaults``.
        hooks: Lifecycle callbacks; no-ops when omitted.
        defaults: Global defaults the configuration is layered over.
    """

    def __init__(
        self,
        config: Mapping[str, Any] | ServiceConfiguration,
        hooks: LifecycleHooks | None = None,
        defaults: CrudProperties | None = None,
    ) -> None:
        self._config = resolve_configuration(config, defaults)
        self._hooks = hooks or LifecycleHooks()

    @property
    def config(self) -> ServiceConfiguration:
        return self._config

    @property
    def hooks(self) -> LifecycleHooks:
        return self._hooks

    @property
    def entity_name(self) -> str:
        return self._config.entity_name

    # ------------------------------------------------------------------
    # Extension points
    # ------------------------------------------------------------------

    @abstractmethod
    async def validate_create(self, dto: CreateDtoT) -> None:
        """Reject an invalid create DTO by raising."""

    @abstractmethod
    async def validate_update(self, id: Any, dto: UpdateDtoT) -> None:
        """Reject an invalid update DTO by raising."""

    @abstractmethod
    def map_create_dto_to_entity(self, dto: CreateDtoT) -> Mapping[str, Any]:
        """Map a create DTO to column values."""

    @abstractmethod
    def map_update_dto_to_entity(self, dto: UpdateDtoT) -> Mapping[str, Any]:
        """Map an update DTO to the column values to change."""

    def apply_relations(self, statement: Select[Any], relations: Sequence[str]) -> Select[Any]:
        """Extend a SELECT to load ``relations``.

        The base implementation loads nothing; override to add joins.
        """
        logger.debug("relations_not_loaded", entity=self.entity_name, relations=list(relations))
        return statement

    # ------------------------------------------------------------------
    # Statement helpers
    # ------------------------------------------------------------------

    def _source(self, options: OperationOptions) -> DataSourcePort:
        if options.transaction is not None:
            return as_data_source(options.transaction)
        return self._config.data_source

    def _not_deleted(self) -> list[Condition]:
        if self._config.soft_delete.enabled:
            return [NullCheck(self._config.soft_delete.column, is_null=True)]
        return []

    def _where(self, conditions: list[Condition]) -> ColumnElement[bool]:
        return conjoin(conditions, self._config.table)

    def _filter_conditions(self, filters: Mapping[str, Any] | None) -> list[Condition]:
        sql = self._config.sql
        conditions = parse_filter(
            filters,
            self._config.table.c.keys(),
            case_sensitive=sql.case_sensitive,
            json_support=sql.json_support,
        )
        return conditions + self._not_deleted()

    def _select(self, options: OperationOptions) -> Select[Any]:
        table = self._config.table
        columns = [table.c[name] for name in options.select if name in table.c]
        stmt = select(*columns) if columns else select(table)
        if options.relations:
            stmt = self.apply_relations(stmt, options.relations)
        return stmt

    def _pk_clause(self, id: Any) -> ColumnElement[bool]:
        return self._config.column(self._config.primary_key) == id

    def _paginate(self, pagination: PaginationRequest | None) -> tuple[PaginationRequest, int, int]:
        pagination = pagination or PaginationRequest()
        policy = self._config.pagination
        limit = pagination.effective_limit(policy.default_limit, policy.max_limit)
        return pagination, limit, pagination.offset(limit)

    def _count_statement(self, where: ColumnElement[bool]) -> Select[Any]:
        return select(func.count()).select_from(self._config.table).where(where)

    def _touch(self, values: dict[str, Any], now: datetime, *, created: bool = False) -> None:
        timestamps = self._config.timestamps
        if timestamps is None:
            return
        if created and timestamps.created_at:
            values[timestamps.created_at] = now
        if timestamps.updated_at:
            values[timestamps.updated_at] = now

    def _require_soft_delete(self) -> None:
        if not self._config.soft_delete.enabled:
            raise OperationNotSupportedException(
                f"Soft delete is not enabled for {self.entity_name}",
                context={"entity": self.entity_name},
            )

    async def _before(self, hook: Callable[..., Any], *args: Any) -> Any:
        replacement = await run_hook(hook, *args)
        return args[-1] if replacement is None else replacement

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _first(self, conditions: list[Condition], options: OperationOptions) -> Row | None:
        stmt = self._select(options).where(self._where(conditions))
        if options.lock == LockMode.UPDATE:
            stmt = stmt.with_for_update()
        elif options.lock == LockMode.SHARE:
            stmt = stmt.with_for_update(read=True)
        rows = await self._source(options).fetch_all(stmt.limit(1))
        return rows[0] if rows else None

    async def find(self, id: Any, options: OperationOptions | None = None) -> Row | None:
        """Find a live (not soft-deleted) row by primary key, or ``None``."""
        options = options or _DEFAULT_OPTIONS
        conditions: list[Condition] = [Equals(self._config.primary_key, id), *self._not_deleted()]
        return await self._first(conditions, options)

    async def find_one(self, example: Any, options: OperationOptions | None = None) -> Row | None:
        """Find the first live row whose columns equal the non-``None`` fields of ``example``."""
        options = options or _DEFAULT_OPTIONS
        conditions = parse_example(example, self._config.table.c.keys()) + self._not_deleted()
        return await self._first(conditions, options)

    async def find_all(
        self,
        filters: Mapping[str, Any] | None = None,
        pagination: PaginationRequest | None = None,
        options: OperationOptions | None = None,
    ) -> PageResult[Row]:
        """Find one page of live rows matching ``filters``.

        The page size is capped at the configured ``max_limit``. Sorting is
        applied only when ``sort_by`` names a column. The page and the total
        count are queried concurrently.
        """
        options = options or _DEFAULT_OPTIONS
        pagination, limit, offset = self._paginate(pagination)
        where = self._where(self._filter_conditions(filters))

        data_stmt = self._select(options).where(where)
        table = self._config.table
        if pagination.sort_by and pagination.sort_by in table.c:
            column = table.c[pagination.sort_by]
            data_stmt = data_stmt.order_by(column.desc() if pagination.sort_order == "desc" else column.asc())
        data_stmt = data_stmt.limit(limit).offset(offset)

        source = self._source(options)
        data, total = await asyncio.gather(
            source.fetch_all(data_stmt),
            source.fetch_scalar(self._count_statement(where)),
        )
        return PageResult(data=data, total=int(total or 0), page=pagination.page, limit=limit)

    async def exists(self, id: Any, options: OperationOptions | None = None) -> bool:
        """Whether a live row with this primary key exists."""
        options = options or _DEFAULT_OPTIONS
        return await self.find(id, options.with_select(self._config.primary_key)) is not None

    async def count(self, filters: Mapping[str, Any] | None = None, options: OperationOptions | None = None) -> int:
        """Count live rows matching ``filters``."""
        options = options or _DEFAULT_OPTIONS
        where = self._where(self._filter_conditions(filters))
        total = await self._source(options).fetch_scalar(self._count_statement(where))
        return int(total or 0)

    async def full_text_search(
        self,
        term: str,
        columns: Sequence[str],
        pagination: PaginationRequest | None = None,
        options: OperationOptions | None = None,
    ) -> SearchResult[Row]:
        """Relevance-ranked search for ``term`` across ``columns``.

        Raises:
            OperationNotSupportedException: Full-text search is not enabled.
            InvalidRequestException: None of ``columns`` is a table column.
        """
        config = self._config
        if not config.sql.full_text_search:
            raise OperationNotSupportedException(
                f"Full-text search is not enabled for {self.entity_name}",
                context={"entity": self.entity_name, "dialect": config.dialect.value},
            )
        search_columns = [config.table.c[name] for name in columns if name in config.table.c]
        if not search_columns:
            raise InvalidRequestException(
                "No searchable columns given",
                context={"entity": self.entity_name, "columns": list(columns)},
            )

        options = options or _DEFAULT_OPTIONS
        _, limit, offset = self._paginate(pagination)
        expression = build_search_expression(config.dialect, search_columns, term, config.sql.text_search_language)
        where = and_(expression.predicate, self._where(self._not_deleted()))

        data_stmt = self._select(options).where(where).order_by(expression.rank.desc()).limit(limit).offset(offset)
        source = self._source(options)
        data, total = await asyncio.gather(
            source.fetch_all(data_stmt),
            source.fetch_scalar(self._count_statement(where)),
        )
        return SearchResult(data=data, total=int(total or 0))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, dto: CreateDtoT, options: OperationOptions | None = None) -> Row:
        """Validate, insert and return a new row.

        Raises:
            OperationFailedException: The insert succeeded but the row cannot be read back.
        """
        options = options or _DEFAULT_OPTIONS
        config = self._config
        await self.validate_create(dto)
        processed = dto if options.hooks.skip_before else await self._before(self._hooks.before_create, dto)

        values = dict(self.map_create_dto_to_entity(processed))
        self._touch(values, _utcnow(), created=True)
        if config.primary_key_kind is PrimaryKeyKind.UUID and values.get(config.primary_key) is None:
            values[config.primary_key] = uuid.uuid4()

        stmt = insert(config.table).values(values)
        source = self._source(options)
        if config.sql.use_returning:
            result = await source.execute(stmt.returning(*config.table.c))
            entity = result.rows[0] if result.rows else None
        else:
            result = await source.execute(stmt)
            generated_id = result.generated_id if result.generated_id is not None else values.get(config.primary_key)
            entity = await self.find(generated_id, options)
        if entity is None:
            raise OperationFailedException(
                f"Failed to create {self.entity_name}", context={"entity": self.entity_name}
            )

        if not options.hooks.skip_after:
            await run_hook(self._hooks.after_create, entity)
        logger.debug("entity_created", entity=self.entity_name, id=entity.get(config.primary_key))
        return entity

    async def update(self, id: Any, dto: UpdateDtoT, options: OperationOptions | None = None) -> Row:
        """Validate and apply ``dto`` to an existing live row.

        Raises:
            EntityNotFoundException: No live row has this primary key.
            OperationFailedException: The update succeeded but the row cannot be read back.
        """
        options = options or _DEFAULT_OPTIONS
        config = self._config
        existing = await self.find(id, options)
        if existing is None:
            raise EntityNotFoundException(self.entity_name, id)

        await self.validate_update(id, dto)
        processed = dto if options.hooks.skip_before else await self._before(self._hooks.before_update, id, dto)
        values = dict(self.map_update_dto_to_entity(processed))
        self._touch(values, _utcnow())

        if not values:
            entity: Row | None = existing
        else:
            stmt = update(config.table).where(self._pk_clause(id)).values(values)
            source = self._source(options)
            if config.sql.use_returning:
                result = await source.execute(stmt.returning(*config.table.c))
                entity = result.rows[0] if result.rows else None
            else:
                await source.execute(stmt)
                entity = await self.find(id, options)
        if entity is None:
            raise OperationFailedException(
                f"Failed to update {self.entity_name}", context={"entity": self.entity_name, "id": id}
            )

        if not options.hooks.skip_after:
            await run_hook(self._hooks.after_update, entity)
        logger.debug("entity_updated", entity=self.entity_name, id=id)
        return entity

    async def soft_delete(self, id: Any, options: OperationOptions | None = None) -> bool:
        """Mark a live row as deleted. Returns whether a row was changed.

        Raises:
            OperationNotSupportedException: Soft delete is disabled.
            EntityNotFoundException: No live row has this primary key.
        """
        self._require_soft_delete()
        options = options or _DEFAULT_OPTIONS
        config = self._config
        if await self.find(id, options) is None:
            raise EntityNotFoundException(self.entity_name, id)

        if not options.hooks.skip_before:
            await run_hook(self._hooks.before_soft_delete, id)

        now = _utcnow()
        values: dict[str, Any] = {config.soft_delete.column: now}
        self._touch(values, now)
        stmt = update(config.table).where(self._pk_clause(id)).values(values)
        if config.sql.use_returning:
            stmt = stmt.returning(config.column(config.primary_key))
        result = await self._source(options).execute(stmt)

        if result.succeeded and not options.hooks.skip_after:
            await run_hook(self._hooks.after_soft_delete, id)
        logger.debug("entity_soft_deleted", entity=self.entity_name, id=id, success=result.succeeded)
        return result.succeeded

    async def restore(self, id: Any, options: OperationOptions | None = None) -> Row:
        """Clear the soft-delete mark of a row and return it.

        No existence check runs first: the target row is expected to be
        soft-deleted, which ``find`` would not see.

        Raises:
            OperationNotSupportedException: Soft delete is disabled.
            EntityNotFoundException: No row has this primary key.
        """
        self._require_soft_delete()
        options = options or _DEFAULT_OPTIONS
        config = self._config
        if not options.hooks.skip_before:
            await run_hook(self._hooks.before_restore, id)

        values: dict[str, Any] = {config.soft_delete.column: None}
        self._touch(values, _utcnow())
        stmt = update(config.table).where(self._pk_clause(id)).values(values)
        source = self._source(options)
        if config.sql.use_returning:
            result = await source.execute(stmt.returning(*config.table.c))
            entity = result.rows[0] if result.rows else None
        else:
            await source.execute(stmt)
            entity = await self.find(id, options)
        if entity is None:
            raise EntityNotFoundException(self.entity_name, id)

        if not options.hooks.skip_after:
            await run_hook(self._hooks.after_restore, entity)
        logger.debug("entity_restored", entity=self.entity_name, id=id)
        return entity

    async def delete(self, id: Any, options: OperationOptions | None = None) -> bool:
        """Permanently remove a live row. Returns whether a row was removed.

        Raises:
            EntityNotFoundException: No live row has this primary key.
        """
        options = options or _DEFAULT_OPTIONS
        if await self.find(id, options) is None:
            raise EntityNotFoundException(self.entity_name, id)

        if not options.hooks.skip_before:
            await run_hook(self._hooks.before_delete, id)

        stmt = delete(self._config.table).where(self._pk_clause(id))
        result = await self._source(options).execute(stmt)

        if result.succeeded and not options.hooks.skip_after:
            await run_hook(self._hooks.after_delete, id)
        logger.debug("entity_deleted", entity=self.entity_name, id=id, success=result.succeeded)
        return result.succeeded

    # ------------------------------------------------------------------
    # Bulk writes
    # ------------------------------------------------------------------

    async def mass_create(self, dtos: Sequence[CreateDtoT], options: OperationOptions | None = None) -> list[Row]:
        """Create every DTO in one transaction; failures are reported by index."""
        options = options or _DEFAULT_OPTIONS
        return await run_batch(
            self._config.data_source,
            options.transaction,
            dtos,
            lambda dto, tx: self.create(dto, options.with_transaction(tx)),
            operation="create",
            report_by_index=True,
        )

    async def mass_update(
        self, ids: Sequence[Any], dto: UpdateDtoT, options: OperationOptions | None = None
    ) -> list[Row]:
        """Apply the same DTO to every id in one transaction."""
        options = options or _DEFAULT_OPTIONS
        return await run_batch(
            self._config.data_source,
            options.transaction,
            ids,
            lambda id, tx: self.update(id, dto, options.with_transaction(tx)),
            operation="update",
        )

    async def mass_soft_delete(self, ids: Sequence[Any], options: OperationOptions | None = None) -> bool:
        """Soft-delete every id in one transaction."""
        self._require_soft_delete()
        options = options or _DEFAULT_OPTIONS
        await run_batch(
            self._config.data_source,
            options.transaction,
            ids,
            lambda id, tx: self.soft_delete(id, options.with_transaction(tx)),
            operation="soft delete",
        )
        return True

    async def mass_restore(self, ids: Sequence[Any], options: OperationOptions | None = None) -> list[Row]:
        """Restore every id in one transaction."""
        self._require_soft_delete()
        options = options or _DEFAULT_OPTIONS
        return await run_batch(
            self._config.data_source,
            options.transaction,
            ids,
            lambda id, tx: self.restore(id, options.with_transaction(tx)),
            operation="restore",
        )

    async def mass_delete(self, ids: Sequence[Any], options: OperationOptions | None = None) -> bool:
        """Hard-delete every id in one transaction."""
        options = options or _DEFAULT_OPTIONS
        await run_batch(
            self._config.data_source,
            options.transaction,
            ids,
            lambda id, tx: self.delete(id, options.with_transaction(tx)),
            operation="delete",
        )
        return True
