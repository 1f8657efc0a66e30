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
"""Tests for create_crud_service and CrudModule."""

from __future__ import annotations

import logging

import pytest
import structlog

from flycrud.config.properties import CrudProperties, LoggingProperties
from flycrud.core.config import Config
from flycrud.crud.hooks import LifecycleHooks
from flycrud.crud.module import CrudModule, create_crud_service
from flycrud.crud.ports import CrudOperations
from flycrud.kernel.exceptions import ConfigurationError
from tests.crud.support import StubDataSource, UserCreate, UserService, users


class RecordingLoggingPort:
    def __init__(self) -> None:
        self.configured_with: LoggingProperties | None = None

    def configure(self, properties: LoggingProperties) -> None:
        self.configured_with = properties

    def set_level(self, name: str, level: str) -> None:
        pass


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    sql_logger = logging.getLogger("sqlalchemy.engine")
    handlers, root_level, sql_level = root.handlers[:], root.level, sql_logger.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(root_level)
    sql_logger.setLevel(sql_level)


class TestCreateCrudService:
    def test_returns_configured_instance(self):
        service = create_crud_service(UserService, {"data_source": StubDataSource(), "table": users})
        assert isinstance(service, UserService)
        assert service.entity_name == "users"

    def test_satisfies_crud_operations(self):
        service = create_crud_service(UserService, {"data_source": StubDataSource(), "table": users})
        assert isinstance(service, CrudOperations)

    def test_invalid_configuration_fails_at_construction(self):
        with pytest.raises(ConfigurationError):
            create_crud_service(UserService, {"table": users})

    def test_defaults_are_applied(self):
        service = create_crud_service(
            UserService,
            {"data_source": StubDataSource(), "table": users},
            defaults=CrudProperties(default_limit=7),
        )
        assert service.config.pagination.default_limit == 7

    def test_hooks_are_attached(self):
        hooks = LifecycleHooks(after_create=print)
        service = create_crud_service(UserService, {"data_source": StubDataSource(), "table": users}, hooks=hooks)
        assert service.hooks is hooks


class TestCrudModule:
    def test_register_and_get(self):
        module = CrudModule(StubDataSource())
        registered = module.register(UserService, users, entity_name="User")
        assert module.get(UserService) is registered
        assert registered.entity_name == "User"

    def test_get_unregistered(self):
        module = CrudModule(StubDataSource())
        with pytest.raises(KeyError, match="UserService"):
            module.get(UserService)

    def test_services_share_data_source(self):
        source = StubDataSource()
        module = CrudModule(source)
        service = module.register(UserService, users)
        assert service.config.data_source is source
        assert module.data_source is source

    def test_overrides_layer_over_module_defaults(self):
        module = CrudModule(StubDataSource(), CrudProperties(default_limit=10, max_limit=40))
        service = module.register(UserService, users, pagination={"max_limit": 15})
        assert service.config.pagination.default_limit == 10
        assert service.config.pagination.max_limit == 15

    def test_from_config_binds_properties(self):
        config = Config({"flycrud": {"crud": {"dialect": "mysql", "default_limit": 5, "soft_delete": False}}})
        module = CrudModule.from_config(config, StubDataSource())
        service = module.register(UserService, users)
        assert module.properties.default_limit == 5
        assert service.config.soft_delete_enabled is False
        assert service.config.sql.use_returning is False

    def test_from_config_configures_logging_port(self):
        config = Config({"flycrud": {"logging": {"format": "json", "level": {"flycrud.crud": "debug"}}}})
        port = RecordingLoggingPort()
        CrudModule.from_config(config, StubDataSource(), logging_port=port)
        assert port.configured_with is not None
        assert port.configured_with.format == "json"
        assert port.configured_with.module_levels == {"flycrud.crud": "DEBUG"}

    def test_from_config_defaults_to_structlog_adapter(self):
        config = Config({"flycrud": {"logging": {"sql": True, "level": {"flycrud_module.crud": "error"}}}})
        CrudModule.from_config(config, StubDataSource())
        assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
        assert logging.getLogger("flycrud_module.crud").level == logging.ERROR

    def test_from_config_rejects_invalid_properties(self):
        config = Config({"flycrud": {"crud": {"default_limit": 50, "max_limit": 10}}})
        with pytest.raises(ValueError, match="CrudProperties"):
            CrudModule.from_config(config, StubDataSource())

    @pytest.mark.asyncio
    async def test_registered_service_works_end_to_end(self, engine):
        module = CrudModule(engine)
        users_service = module.register(UserService, users)
        created = await users_service.create(UserCreate(name="Ann"))
        assert await module.get(UserService).find(created["id"]) is not None
