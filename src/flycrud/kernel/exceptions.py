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
"""Unified exception hierarchy for flycrud.

All errors raised by the CRUD engine inherit from :class:`FlyCrudException`
and carry a stable machine-readable ``code`` so callers can branch on the
error kind without inspecting messages.

Categories:
- BusinessException: expected, caller-facing failures (not found, validation,
  unsupported operations, bulk failures)
- InfrastructureException: the data source misbehaved
- ConfigurationError: a service was constructed with an unusable configuration
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# =============================================================================
# Base Exception
# =============================================================================


class FlyCrudException(Exception):
    """Base exception for all flycrud errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "ENTITY_NOT_FOUND").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    default_code: str | None = None

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code if code is not None else self.default_code
        self.context: dict = context if context is not None else {}


class ConfigurationError(FlyCrudException):
    """A service configuration is missing required fields or is inconsistent."""

    default_code = "CONFIGURATION_ERROR"


# =============================================================================
# Business Exceptions
# =============================================================================


class BusinessException(FlyCrudException):
    """Domain rule violations and caller-facing errors."""


class ValidationException(BusinessException):
    """Input validation failures, usually raised by entity validators."""

    default_code = "VALIDATION_FAILED"


class ResourceNotFoundException(BusinessException):
    """Requested resource does not exist."""

    default_code = "NOT_FOUND"


class EntityNotFoundException(ResourceNotFoundException):
    """No live row matches the given primary key."""

    default_code = "ENTITY_NOT_FOUND"

    def __init__(self, entity_name: str, id: Any) -> None:
        super().__init__(
            f"{entity_name} with id {id} not found",
            context={"entity": entity_name, "id": id},
        )
        self.entity_name = entity_name
        self.id = id


class InvalidRequestException(BusinessException):
    """Request is syntactically valid but semantically incorrect."""

    default_code = "INVALID_REQUEST"


class OperationNotSupportedException(BusinessException):
    """The operation is disabled for this entity (soft delete, full-text search)."""

    default_code = "OPERATION_NOT_SUPPORTED"


class ConflictException(BusinessException):
    """Operation conflicts with current state (e.g. duplicate)."""

    default_code = "CONFLICT"


class DuplicateEntityException(ConflictException):
    """An entity with the same unique value already exists."""

    default_code = "DUPLICATE_ENTITY"

    def __init__(self, entity_name: str, field: str, value: Any) -> None:
        super().__init__(
            f"{entity_name} with {field} '{value}' already exists",
            context={"entity": entity_name, "field": field, "value": value},
        )


class DataIntegrityException(BusinessException):
    """Data integrity constraint violated."""

    default_code = "DATA_INTEGRITY_VIOLATION"


@dataclass(frozen=True)
class BulkItemError:
    """A single failed item of a bulk operation.

    ``index`` is set for mass create (position in the input list), ``id`` for
    the bulk operations that take primary keys.
    """

    error: Exception
    index: int | None = None
    id: Any = None

    def to_dict(self) -> dict[str, Any]:
        key = "index" if self.index is not None else "id"
        value = self.index if self.index is not None else self.id
        return {
            key: value,
            "error": str(self.error),
            "code": getattr(self.error, "code", None) or type(self.error).__name__,
        }


class BulkOperationException(BusinessException):
    """Aggregate failure of a bulk operation.

    Raised after every item of the batch was attempted. The enclosing
    transaction is rolled back, so ``results`` only describes what would have
    been written.
    """

    default_code = "BULK_OPERATION_FAILED"

    def __init__(
        self,
        message: str,
        errors: list[BulkItemError],
        results: list[Any] | None = None,
    ) -> None:
        super().__init__(
            f"{message}. {len(errors)} error(s) occurred.",
            context={"errors": [e.to_dict() for e in errors]},
        )
        self.errors = errors
        self.results: list[Any] = results if results is not None else []


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(FlyCrudException):
    """Data source failures."""


class OperationFailedException(InfrastructureException):
    """The data source reported success but the written row is unobservable."""

    default_code = "OPERATION_FAILED"


class TransactionException(InfrastructureException):
    """A transaction could not be opened or completed."""

    default_code = "TRANSACTION_FAILED"
