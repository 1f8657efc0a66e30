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
"""Condition AST and the parsers that build it from loosely-typed filters.

Two entry points produce a list of conditions that are ANDed together:

* :func:`parse_example`: query by example; every non-``None`` field of a
  partial entity becomes an equality test.
* :func:`parse_filter`: filter expressions, where each value's shape picks
  the predicate::

      parse_filter(
          {
              "status": ["new", "paid"],            # IN
              "name": "ali",                        # contains "ali", any case
              "age": {"gte": 18, "lt": 65},         # >= AND <
              "deleted_by": {"isNull": True},       # IS NULL
          },
          columns=table.c.keys(),
      )

Conditions are compiled to SQLAlchemy clauses by :func:`to_clause` /
:func:`conjoin`. Filter keys that are not table columns and unrecognized
operator keys are skipped silently.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from sqlalchemy import ColumnElement, Table, and_, true

from flycrud.crud.dialect import json_extract


class RangeOperator(StrEnum):
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class NotEquals:
    field: str
    value: Any


@dataclass(frozen=True)
class Range:
    field: str
    operator: RangeOperator
    value: Any


@dataclass(frozen=True)
class Membership:
    field: str
    values: tuple[Any, ...]


@dataclass(frozen=True)
class NullCheck:
    field: str
    is_null: bool = True


@dataclass(frozen=True)
class Substring:
    """``field`` contains ``value``.

    ``%`` and ``_`` in ``value`` match literally unless ``wildcards`` is set,
    as it is for the explicit ``like``/``ilike`` operators.
    """

    field: str
    value: str
    case_sensitive: bool = False
    wildcards: bool = False


Condition = Equals | NotEquals | Range | Membership | NullCheck | Substring

_COLLECTION_TYPES = (list, tuple, set, frozenset)


def _null_check(field: str, value: Any, *, negate: bool) -> NullCheck:
    # {"isNull": False} reads as "is not null"
    return NullCheck(field, is_null=bool(value) != negate)


def _parse_operator(field: str, operator: str, value: Any) -> Condition | None:
    if operator in ("gt", "gte", "lt", "lte"):
        return Range(field, RangeOperator(operator), value)
    if operator == "eq":
        return Equals(field, value)
    if operator == "neq":
        return NotEquals(field, value)
    if operator == "like":
        return Substring(field, str(value), case_sensitive=True, wildcards=True)
    if operator == "ilike":
        return Substring(field, str(value), case_sensitive=False, wildcards=True)
    if operator == "in":
        values = value if isinstance(value, _COLLECTION_TYPES) else (value,)
        return Membership(field, tuple(values))
    if operator in ("isNull", "is_null"):
        return _null_check(field, value, negate=False)
    if operator in ("isNotNull", "is_not_null"):
        return _null_check(field, value, negate=True)
    return None


def _is_known_field(key: str, columns: Collection[str], json_support: bool) -> bool:
    if key in columns:
        return True
    if json_support and "." in key:
        return key.split(".", 1)[0] in columns
    return False


def parse_filter(
    filters: Mapping[str, Any] | None,
    columns: Collection[str],
    case_sensitive: bool = False,
    json_support: bool = False,
) -> list[Condition]:
    """Parse a filter expression into conditions.

    Args:
        filters: Field name to value, collection, or operator mapping.
        columns: Column names of the target table.
        case_sensitive: When ``False``, plain strings match as
            case-insensitive substrings rather than exact values.
        json_support: Accept ``"column.path"`` keys addressing JSON members.
    """
    if not filters:
        return []

    conditions: list[Condition] = []
    for key, value in filters.items():
        if value is None or not _is_known_field(key, columns, json_support):
            continue

        if isinstance(value, _COLLECTION_TYPES):
            conditions.append(Membership(key, tuple(value)))
        elif isinstance(value, str) and not case_sensitive:
            conditions.append(Substring(key, value, case_sensitive=False))
        elif isinstance(value, Mapping):
            for operator, operand in value.items():
                condition = _parse_operator(key, operator, operand)
                if condition is not None:
                    conditions.append(condition)
        else:
            conditions.append(Equals(key, value))
    return conditions


def _example_fields(example: Any) -> dict[str, Any]:
    if isinstance(example, Mapping):
        return dict(example)
    if dataclasses.is_dataclass(example) and not isinstance(example, type):
        return {f.name: getattr(example, f.name) for f in dataclasses.fields(example)}
    model_dump = getattr(example, "model_dump", None)
    if callable(model_dump):
        return model_dump(exclude_unset=True)
    return vars(example)


def parse_example(example: Any, columns: Collection[str]) -> list[Condition]:
    """Build equality conditions from a partial entity.

    Accepts a mapping, a dataclass, a pydantic model, or any object with
    ``__dict__``. ``None`` fields are skipped, so this path cannot express
    ``IS NULL``; use ``parse_filter`` with ``{"isNull": True}`` for that.
    """
    if example is None:
        return []
    return [
        Equals(name, value)
        for name, value in _example_fields(example).items()
        if value is not None and name in columns
    ]


def resolve_field(table: Table, field: str) -> Any:
    """Return the column (or JSON member expression) a condition targets."""
    if field in table.c:
        return table.c[field]
    column_name, path = field.split(".", 1)
    return json_extract(table.c[column_name], path)


def to_clause(condition: Condition, table: Table) -> ColumnElement[bool]:
    """Compile one condition to a SQLAlchemy boolean clause."""
    column = resolve_field(table, condition.field)

    if isinstance(condition, Equals):
        return column == condition.value
    if isinstance(condition, NotEquals):
        return column != condition.value
    if isinstance(condition, Range):
        if condition.operator is RangeOperator.GT:
            return column > condition.value
        if condition.operator is RangeOperator.GTE:
            return column >= condition.value
        if condition.operator is RangeOperator.LT:
            return column < condition.value
        return column <= condition.value
    if isinstance(condition, Membership):
        return column.in_(condition.values)
    if isinstance(condition, NullCheck):
        return column.is_(None) if condition.is_null else column.is_not(None)
    if isinstance(condition, Substring):
        if condition.wildcards:
            pattern = f"%{condition.value}%"
            return column.like(pattern) if condition.case_sensitive else column.ilike(pattern)
        if condition.case_sensitive:
            return column.contains(condition.value, autoescape=True)
        return column.icontains(condition.value, autoescape=True)
    raise TypeError(f"Unsupported condition {type(condition).__name__}")


def conjoin(conditions: Iterable[Condition], table: Table) -> ColumnElement[bool]:
    """AND-combine conditions. Returns ``TRUE`` when there are none."""
    clauses = [to_clause(c, table) for c in conditions]
    if not clauses:
        return true()
    return and_(*clauses)
