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
"""Full-text search expressions per dialect.

PostgreSQL matches ``to_tsvector(col_1) || ... @@ plainto_tsquery(term)`` and
ranks with ``ts_rank``; MySQL uses ``MATCH (cols) AGAINST (term)``, whose
value is the relevance score.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import Any

from sqlalchemy import ColumnElement, func
from sqlalchemy.dialects.mysql import match

from flycrud.crud.dialect import Dialect


@dataclass(frozen=True)
class SearchExpression:
    """Predicate selecting matching rows and the score ordering them."""

    predicate: ColumnElement[bool]
    rank: ColumnElement[Any]


def build_search_expression(
    dialect: Dialect,
    columns: list[Any],
    term: str,
    language: str = "english",
) -> SearchExpression:
    """Build the match predicate and relevance rank for ``term`` across ``columns``."""
    if not columns:
        raise ValueError("At least one column is required for full-text search")

    if dialect is Dialect.MYSQL:
        expr = match(*columns, against=term).in_natural_language_mode()
        return SearchExpression(predicate=expr, rank=expr)

    vectors = [func.to_tsvector(language, column) for column in columns]
    vector = reduce(lambda left, right: left.op("||")(right), vectors)
    query = func.plainto_tsquery(language, term)
    return SearchExpression(
        predicate=vector.op("@@", is_comparison=True)(query),
        rank=func.ts_rank(vector, query),
    )
