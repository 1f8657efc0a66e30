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
"""Per-call options: transaction scope, projection, hook skipping, pagination."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Literal


class LockMode(StrEnum):
    """Row lock requested for single-row reads."""

    UPDATE = "update"
    SHARE = "share"
    NONE = "none"


@dataclass(frozen=True)
class HookSkip:
    """Which lifecycle hooks to bypass for one call."""

    skip_before: bool = False
    skip_after: bool = False


@dataclass(frozen=True)
class OperationOptions:
    """Options accepted by every CRUD operation.

    Attributes:
        transaction: Transaction handle to run on instead of the configured
            data source (an ``AsyncConnection`` or a ``DataSourcePort``).
        relations: Relation names to load alongside the entity.
        select: Column names to restrict the result to.
        hooks: Lifecycle hooks to skip.
        lock: Row lock for single-row reads.
    """

    transaction: Any = None
    relations: tuple[str, ...] = ()
    select: tuple[str, ...] = ()
    hooks: HookSkip = field(default_factory=HookSkip)
    lock: LockMode = LockMode.NONE

    def with_transaction(self, transaction: Any) -> OperationOptions:
        """Return a copy of these options bound to ``transaction``."""
        return dataclasses.replace(self, transaction=transaction)

    def with_select(self, *columns: str) -> OperationOptions:
        """Return a copy of these options selecting only ``columns``."""
        return dataclasses.replace(self, select=tuple(columns))


@dataclass(frozen=True)
class PaginationRequest:
    """Page, page size, and ordering of a list query.

    ``limit`` left as ``None`` uses the service's configured default limit.
    ``sort_by`` naming something other than a table column is ignored.
    """

    page: int = 1
    limit: int | None = None
    sort_by: str | None = None
    sort_order: Literal["asc", "desc"] = "desc"

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.limit is not None and self.limit < 1:
            raise ValueError(f"limit must be >= 1, got {self.limit}")
        if self.sort_order not in ("asc", "desc"):
            raise ValueError(f"sort_order must be 'asc' or 'desc', got {self.sort_order!r}")

    def effective_limit(self, default_limit: int, max_limit: int) -> int:
        """Requested limit (or the default), capped at ``max_limit``."""
        requested = self.limit if self.limit is not None else default_limit
        return min(requested, max_limit)

    def offset(self, effective_limit: int) -> int:
        return (self.page - 1) * effective_limit
