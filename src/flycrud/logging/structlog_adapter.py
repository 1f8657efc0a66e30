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
"""StructlogAdapter: default LoggingPort rendering engine events with structlog."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

from flycrud.config.properties import LoggingProperties

SQL_LOGGER = "sqlalchemy.engine"


class StructlogAdapter:
    """Renders CRUD events as console lines or JSON objects.

    Events carry the context bound with ``structlog.contextvars`` (for
    example ``bulk_operation`` while a mass operation runs). With
    ``sql`` enabled, SQLAlchemy's statement log is raised to INFO so the
    SQL behind each event is printed alongside it.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self._properties = LoggingProperties()

    @property
    def properties(self) -> LoggingProperties:
        return self._properties

    def configure(self, properties: LoggingProperties) -> None:
        self._properties = properties
        renderer: structlog.types.Processor
        if properties.format == "json":
            renderer = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer()

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                renderer,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
        )
        logging.basicConfig(
            format="%(message)s",
            stream=self._stream or sys.stdout,
            level=self._level(properties.root_level),
            force=True,
        )

        self.set_level(SQL_LOGGER, "INFO" if properties.sql else "WARNING")
        for name, level in properties.module_levels.items():
            self.set_level(name, level)

    def set_level(self, name: str, level: str) -> None:
        logging.getLogger(name).setLevel(self._level(level))

    @staticmethod
    def _level(level: str) -> int:
        value = logging.getLevelName(level.upper())
        return value if isinstance(value, int) else logging.INFO
