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
"""Transactional batch runner shared by the ``mass_*`` operations.

Every item runs sequentially inside one transaction, each in its own
savepoint. A failing item does not stop the batch: its statements are
rolled back to the item's savepoint and its error is recorded. When any
item failed, a :class:`BulkOperationException` carrying every error is
raised and the batch transaction is rolled back.
A batch joining a caller's transaction runs in a savepoint of its own, so
the batch is discarded even when the caller catches the exception and
commits. Either the whole batch lands or none of it does; the itemized
errors only say *which* items would have failed.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

import structlog
from structlog.contextvars import bound_contextvars

from flycrud.crud.datasource import as_data_source
from flycrud.crud.ports import DataSourcePort
from flycrud.kernel.exceptions import BulkItemError, BulkOperationException

T = TypeVar("T")
R = TypeVar("R")

logger = structlog.get_logger("flycrud.crud.bulk")


async def run_batch(
    data_source: DataSourcePort,
    transaction: Any,
    items: Sequence[T],
    apply: Callable[[T, DataSourcePort], Awaitable[R]],
    *,
    operation: str,
    report_by_index: bool = False,
) -> list[R]:
    """Apply ``apply`` to each item inside a single transaction.

    Args:
        data_source: Source used to open the transaction.
        transaction: Caller-supplied transaction to join instead, if any.
        items: Inputs, processed in order.
        apply: Coroutine function receiving an item and the transaction scope.
        operation: Name used in the aggregate error message ("create", ...).
        report_by_index: Report failures by input position rather than by the
            item itself (used when items are DTOs rather than ids).

    Raises:
        BulkOperationException: One or more items failed.
    """

    async def batch(scope: DataSourcePort) -> list[R]:
        results: list[R] = []
        errors: list[BulkItemError] = []
        for index, item in enumerate(items):
            try:
                results.append(await scope.transaction(lambda item_scope, item=item: apply(item, item_scope)))
            except Exception as exc:
                if report_by_index:
                    errors.append(BulkItemError(error=exc, index=index))
                else:
                    errors.append(BulkItemError(error=exc, id=item))

        if errors:
            logger.warning(
                "bulk_operation_failed",
                operation=operation,
                attempted=len(items),
                failed=len(errors),
            )
            raise BulkOperationException(f"Mass {operation} errors", errors, results)
        return results

    source = as_data_source(transaction) if transaction is not None else data_source
    with bound_contextvars(bulk_operation=operation):
        return await source.transaction(batch)
