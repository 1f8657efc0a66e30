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
"""Per-entity service configuration and its resolver.

A :class:`ServiceConfiguration` is resolved once, when a service is built,
and never changes afterwards. :func:`resolve_configuration` layers the
caller's values over the global :class:`CrudProperties` defaults and
validates the result against the table.

Nested policies given as mappings are deep-merged: overriding only
``{"pagination": {"max_limit": 50}}`` keeps the default ``default_limit``.
Policy instances are complete values and replace the default wholesale.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlalchemy import Table

from flycrud.config.properties import CrudProperties
from flycrud.crud.datasource import as_data_source
from flycrud.crud.dialect import Dialect, PrimaryKeyKind
from flycrud.crud.ports import DataSourcePort
from flycrud.kernel.exceptions import ConfigurationError

logger = structlog.get_logger("flycrud.crud.config")


@dataclass(frozen=True)
class SoftDeletePolicy:
    """Rows are hidden by stamping ``column`` instead of being removed."""

    enabled: bool = True
    column: str = "deleted_at"


@dataclass(frozen=True)
class TimestampPolicy:
    """Columns stamped on create/update; ``None`` disables a column."""

    created_at: str | None = "created_at"
    updated_at: str | None = "updated_at"


@dataclass(frozen=True)
class PaginationPolicy:
    default_limit: int = 20
    max_limit: int = 100


@dataclass(frozen=True)
class DialectCapabilities:
    """SQL features the target database offers.

    Attributes:
        case_sensitive: When ``False``, plain string filters become
            case-insensitive substring searches.
        use_returning: Read written rows back from the write statement itself.
        json_support: Allow ``"column.path"`` filters on JSON columns.
        full_text_search: Enable :meth:`CrudService.full_text_search`.
        text_search_language: Text search configuration (PostgreSQL only).
    """

    case_sensitive: bool = False
    use_returning: bool = True
    json_support: bool = True
    full_text_search: bool = False
    text_search_language: str = "english"


@dataclass(frozen=True)
class ServiceConfiguration:
    """Resolved configuration of one entity service."""

    data_source: DataSourcePort
    table: Table
    dialect: Dialect = Dialect.POSTGRESQL
    entity_name: str = "Entity"
    primary_key: str = "id"
    primary_key_kind: PrimaryKeyKind = PrimaryKeyKind.SERIAL
    soft_delete: SoftDeletePolicy = field(default_factory=SoftDeletePolicy)
    timestamps: TimestampPolicy | None = field(default_factory=TimestampPolicy)
    pagination: PaginationPolicy = field(default_factory=PaginationPolicy)
    sql: DialectCapabilities = field(default_factory=DialectCapabilities)

    @property
    def soft_delete_enabled(self) -> bool:
        return self.soft_delete.enabled

    def column(self, name: str) -> Any:
        """Return the table column called ``name``."""
        return self.table.c[name]


def _defaults_from_properties(properties: CrudProperties) -> dict[str, Any]:
    return {
        "dialect": Dialect(properties.dialect),
        "primary_key": "id",
        "primary_key_kind": PrimaryKeyKind.SERIAL,
        "soft_delete": SoftDeletePolicy(enabled=properties.soft_delete, column=properties.soft_delete_column),
        "timestamps": (
            TimestampPolicy(created_at=properties.created_at_column, updated_at=properties.updated_at_column)
            if properties.timestamps
            else None
        ),
        "pagination": PaginationPolicy(default_limit=properties.default_limit, max_limit=properties.max_limit),
        "sql": DialectCapabilities(
            case_sensitive=properties.case_sensitive,
            use_returning=properties.use_returning,
            json_support=properties.json_support,
            full_text_search=properties.full_text_search,
            text_search_language=properties.text_search_language,
        ),
    }


def _merge_policy(default: Any, override: Any, policy_cls: type) -> Any:
    """Deep-merge a mapping override into a policy dataclass."""
    if override is None or isinstance(override, policy_cls):
        return override
    if isinstance(override, Mapping):
        base = default if default is not None else policy_cls()
        unknown = set(override) - {f.name for f in dataclasses.fields(policy_cls)}
        if unknown:
            raise ConfigurationError(
                f"Unknown {policy_cls.__name__} field(s): {', '.join(sorted(unknown))}",
                context={"fields": sorted(unknown)},
            )
        return dataclasses.replace(base, **override)
    raise ConfigurationError(f"Expected {policy_cls.__name__} or mapping, got {type(override).__name__}")


def _coerce_soft_delete(default: SoftDeletePolicy, override: Any) -> SoftDeletePolicy:
    if override is None or override is False:
        return dataclasses.replace(default, enabled=False)
    if override is True:
        return dataclasses.replace(default, enabled=True)
    return _merge_policy(default, override, SoftDeletePolicy)


def _coerce_table(table: Any) -> Table:
    # Declarative classes carry their Table on __table__
    resolved = getattr(table, "__table__", table)
    if not isinstance(resolved, Table):
        raise ConfigurationError(f"Unsupported table schema {type(table).__name__}: expected a SQLAlchemy Table")
    return resolved


def resolve_configuration(
    config: Mapping[str, Any] | ServiceConfiguration,
    defaults: CrudProperties | None = None,
) -> ServiceConfiguration:
    """Build a complete, validated :class:`ServiceConfiguration`.

    Args:
        config: Caller values. ``data_source`` and ``table`` are required.
        defaults: Global defaults; the built-in defaults are used when omitted.

    Raises:
        ConfigurationError: Required fields are missing or inconsistent.
    """
    if isinstance(config, ServiceConfiguration):
        config = {f.name: getattr(config, f.name) for f in dataclasses.fields(config)}

    base = _defaults_from_properties(defaults or CrudProperties())

    if config.get("data_source") is None:
        raise ConfigurationError("Database instance is required")
    if config.get("table") is None:
        raise ConfigurationError("Table configuration is required")

    table = _coerce_table(config["table"])
    try:
        dialect = Dialect(config.get("dialect", base["dialect"]))
        primary_key_kind = PrimaryKeyKind(config.get("primary_key_kind", base["primary_key_kind"]))
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    soft_delete = _coerce_soft_delete(base["soft_delete"], config.get("soft_delete", base["soft_delete"]))
    timestamps = _merge_policy(base["timestamps"], config.get("timestamps", base["timestamps"]), TimestampPolicy)
    pagination = _merge_policy(base["pagination"], config.get("pagination") or base["pagination"], PaginationPolicy)
    sql = _merge_policy(base["sql"], config.get("sql") or base["sql"], DialectCapabilities)

    if sql.use_returning and not dialect.supports_returning:
        logger.warning("returning_clause_disabled", dialect=dialect.value, table=table.name)
        sql = dataclasses.replace(sql, use_returning=False)

    resolved = ServiceConfiguration(
        data_source=as_data_source(config["data_source"]),
        table=table,
        dialect=dialect,
        entity_name=config.get("entity_name") or table.name,
        primary_key=config.get("primary_key", base["primary_key"]),
        primary_key_kind=primary_key_kind,
        soft_delete=soft_delete,
        timestamps=timestamps,
        pagination=pagination,
        sql=sql,
    )
    _validate(resolved)
    return resolved


def _validate(config: ServiceConfiguration) -> None:
    columns = config.table.c
    required = [("primary key", config.primary_key)]
    if config.soft_delete.enabled:
        required.append(("soft delete", config.soft_delete.column))
    if config.timestamps is not None:
        required.append(("created_at timestamp", config.timestamps.created_at))
        required.append(("updated_at timestamp", config.timestamps.updated_at))

    for role, name in required:
        if name is not None and name not in columns:
            raise ConfigurationError(
                f"{role.capitalize()} column '{name}' does not exist in table '{config.table.name}'",
                context={"table": config.table.name, "column": name},
            )

    if config.pagination.default_limit < 1:
        raise ConfigurationError("pagination.default_limit must be >= 1")
    if config.pagination.max_limit < config.pagination.default_limit:
        raise ConfigurationError("pagination.max_limit must be >= pagination.default_limit")
