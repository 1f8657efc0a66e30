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
"""Global CRUD defaults shared by every entity service of an application."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from flycrud.core.config import config_properties


@config_properties(prefix="flycrud.crud")
class CrudProperties(BaseModel):
    """Configuration for all CRUD services (flycrud.crud.*).

    Per-service configuration is layered over these values when a service is
    resolved. ``use_returning`` is switched off automatically
    for dialects without a RETURNING clause.
    """

    dialect: Literal["postgresql", "mysql"] = "postgresql"
    soft_delete: bool = True
    soft_delete_column: str = "deleted_at"
    timestamps: bool = True
    created_at_column: str = "created_at"
    updated_at_column: str = "updated_at"
    default_limit: int = Field(default=20, ge=1)
    max_limit: int = Field(default=100, ge=1)
    case_sensitive: bool = False
    use_returning: bool = True
    json_support: bool = True
    full_text_search: bool = False
    text_search_language: str = "english"

    @model_validator(mode="after")
    def _check_limits(self) -> CrudProperties:
        if self.max_limit < self.default_limit:
            raise ValueError(f"max_limit ({self.max_limit}) must be >= default_limit ({self.default_limit})")
        return self


@config_properties(prefix="flycrud.logging")
class LoggingProperties(BaseModel):
    """Log output of the CRUD engine (flycrud.logging.*).

    ``level`` maps logger names to levels; ``root`` sets the default.
    ``sql`` echoes every statement through the ``sqlalchemy.engine`` logger.
    """

    level: dict[str, str] = Field(default_factory=lambda: {"root": "INFO"})
    format: Literal["console", "json"] = "console"
    sql: bool = False

    @field_validator("format", mode="before")
    @classmethod
    def _lower_format(cls, value: object) -> object:
        return value.lower() if isinstance(value, str) else value

    @field_validator("level", mode="before")
    @classmethod
    def _upper_levels(cls, value: object) -> object:
        if isinstance(value, dict):
            return {str(name): str(level).upper() for name, level in value.items()}
        return value

    @property
    def root_level(self) -> str:
        return self.level.get("root", "INFO")

    @property
    def module_levels(self) -> dict[str, str]:
        return {name: level for name, level in self.level.items() if name != "root"}
