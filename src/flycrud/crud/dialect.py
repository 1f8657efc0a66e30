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
"""SQL dialect identifiers and dialect-specific expression helpers."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, ColumnElement, type_coerce


class Dialect(StrEnum):
    """Relational engines the CRUD engine knows the quirks of."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"

    @property
    def supports_returning(self) -> bool:
        """Whether INSERT/UPDATE ... RETURNING is available."""
        return self is Dialect.POSTGRESQL


class PrimaryKeyKind(StrEnum):
    """How primary key values are generated."""

    SERIAL = "serial"
    BIGSERIAL = "bigserial"
    INT = "int"
    BIGINT = "bigint"
    UUID = "uuid"


def json_extract(column: Any, path: str) -> ColumnElement[str]:
    """Return the text value stored at ``path`` inside a JSON column.

    ``path`` uses dots for nesting (``address.city``). Rendering is left to
    the dialect: ``->>``/``#>>`` on PostgreSQL, ``JSON_UNQUOTE(JSON_EXTRACT())``
    on MySQL.
    """
    keys = path.split(".")
    document = type_coerce(column, JSON())
    if len(keys) == 1:
        return document[keys[0]].as_string()
    return document[tuple(keys)].as_string()
