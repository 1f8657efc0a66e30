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
"""Explicit service construction and a small per-application registry."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

import structlog

from flycrud.config.properties import CrudProperties, LoggingProperties
from flycrud.core.config import Config
from flycrud.crud.config import ServiceConfiguration
from flycrud.crud.datasource import as_data_source
from flycrud.crud.hooks import LifecycleHooks
from flycrud.crud.ports import DataSourcePort
from flycrud.crud.service import CrudService
from flycrud.logging.port import LoggingPort
from flycrud.logging.structlog_adapter import StructlogAdapter

S = TypeVar("S", bound=CrudService[Any, Any])

logger = structlog.get_logger("flycrud.crud.module")


def create_crud_service(
    service_cls: type[S],
    config: Mapping[str, Any] | ServiceConfiguration,
    hooks: LifecycleHooks | None = None,
    defaults: CrudProperties | None = None,
) -> S:
    """Instantiate ``service_cls`` with a resolved configuration.

    Raises:
        ConfigurationError: The configuration is incomplete or inconsistent.
    """
    return service_cls(config, hooks=hooks, defaults=defaults)


class CrudModule:
    """Builds and caches entity services sharing one data source and one set of defaults.

    Usage::

        module = CrudModule.from_config(Config.from_file("flycrud.yaml"), engine)
        module.register(UserService, users_table, hooks=user_hooks)
        users = module.get(UserService)
    """

    def __init__(self, data_source: Any, properties: CrudProperties | None = None) -> None:
        self._data_source = as_data_source(data_source)
        self._properties = properties or CrudProperties()
        self._services: dict[type, CrudService[Any, Any]] = {}

    @classmethod
    def from_config(
        cls,
        config: Config,
        data_source: Any,
        logging_port: LoggingPort | None = None,
    ) -> CrudModule:
        """Build a module whose defaults come from the ``flycrud.crud`` section of ``config``.

        Log output is set up from ``flycrud.logging`` through ``logging_port``,
        a :class:`StructlogAdapter` unless another port is given.

        Raises:
            ValueError: A configuration section fails validation.
        """
        properties = config.bind(CrudProperties)
        (logging_port or StructlogAdapter()).configure(config.bind(LoggingProperties))
        return cls(data_source, properties)

    @property
    def data_source(self) -> DataSourcePort:
        return self._data_source

    @property
    def properties(self) -> CrudProperties:
        return self._properties

    def register(
        self,
        service_cls: type[S],
        table: Any,
        hooks: LifecycleHooks | None = None,
        **overrides: Any,
    ) -> S:
        """Build a service for ``table`` and cache it under ``service_cls``.

        ``overrides`` are per-service configuration values (``entity_name``,
        ``soft_delete``, ``pagination``, ...) layered over the module defaults.
        """
        config = {"data_source": self._data_source, "table": table, **overrides}
        service = create_crud_service(service_cls, config, hooks=hooks, defaults=self._properties)
        self._services[service_cls] = service
        logger.debug("service_registered", service=service_cls.__name__, entity=service.entity_name)
        return service

    def get(self, service_cls: type[S]) -> S:
        """Return the registered instance of ``service_cls``.

        Raises:
            KeyError: ``service_cls`` was never registered.
        """
        try:
            return self._services[service_cls]  # type: ignore[return-value]
        except KeyError:
            raise KeyError(f"No service registered for {service_cls.__name__}") from None
