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
"""flycrud CRUD engine — generic entity services over SQLAlchemy Core.

A service subclass supplies validation and DTO mapping; the engine supplies
lookup, filtering, pagination, soft delete, full-text search and
transactional bulk operations against PostgreSQL or MySQL.
"""

from flycrud.crud.conditions import (
    Condition,
    Equals,
    Membership,
    NotEquals,
    NullCheck,
    Range,
    RangeOperator,
    Substring,
    parse_example,
    parse_filter,
)
from flycrud.crud.config import (
    DialectCapabilities,
    PaginationPolicy,
    ServiceConfiguration,
    SoftDeletePolicy,
    TimestampPolicy,
    resolve_configuration,
)
from flycrud.crud.datasource import SqlAlchemyDataSource, as_data_source
from flycrud.crud.dialect import Dialect, PrimaryKeyKind
from flycrud.crud.hooks import LifecycleHooks
from flycrud.crud.module import CrudModule, create_crud_service
from flycrud.crud.options import HookSkip, LockMode, OperationOptions, PaginationRequest
from flycrud.crud.page import PageResult, SearchResult
from flycrud.crud.ports import CrudOperations, DataSourcePort, Row, WriteResult
from flycrud.crud.service import CrudService

__all__ = [
    "Condition",
    "CrudModule",
    "CrudOperations",
    "CrudService",
    "DataSourcePort",
    "Dialect",
    "DialectCapabilities",
    "Equals",
    "HookSkip",
    "LifecycleHooks",
    "LockMode",
    "Membership",
    "NotEquals",
    "NullCheck",
    "OperationOptions",
    "PageResult",
    "PaginationPolicy",
    "PaginationRequest",
    "PrimaryKeyKind",
    "Range",
    "RangeOperator",
    "Row",
    "SearchResult",
    "ServiceConfiguration",
    "SoftDeletePolicy",
    "SqlAlchemyDataSource",
    "Substring",
    "TimestampPolicy",
    "WriteResult",
    "as_data_source",
    "create_crud_service",
    "parse_example",
    "parse_filter",
    "resolve_configuration",
]
