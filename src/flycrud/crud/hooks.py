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
"""Lifecycle callbacks run around single-entity writes.

Hooks are plain callables, sync or async. ``before_create`` and
``before_update`` may return a replacement DTO; every other hook's return
value is ignored.

Usage::

    async def audit(entity):
        await audit_log.record("created", entity["id"])

    service = create_crud_service(UserService, config, hooks=LifecycleHooks(after_create=audit))
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


def _keep_dto(*args: Any) -> Any:
    return args[-1]


def _noop(*args: Any) -> None:
    return None


@dataclass(frozen=True)
class LifecycleHooks:
    """Callbacks invoked by :class:`~flycrud.crud.service.CrudService`.

    Signatures:
        before_create(dto) -> dto
        after_create(entity)
        before_update(id, dto) -> dto
        after_update(entity)
        before_delete(id) / after_delete(id)
        before_soft_delete(id) / after_soft_delete(id)
        before_restore(id)
        after_restore(entity)
    """

    before_create: Callable[..., Any] = _keep_dto
    after_create: Callable[..., Any] = _noop
    before_update: Callable[..., Any] = _keep_dto
    after_update: Callable[..., Any] = _noop
    before_delete: Callable[..., Any] = _noop
    after_delete: Callable[..., Any] = _noop
    before_soft_delete: Callable[..., Any] = _noop
    after_soft_delete: Callable[..., Any] = _noop
    before_restore: Callable[..., Any] = _noop
    after_restore: Callable[..., Any] = _noop


async def run_hook(hook: Callable[..., Any], *args: Any) -> Any:
    """Call ``hook`` and await its result when it is awaitable."""
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result
