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
"""LoggingPort: how a host sets up the CRUD engine's log output."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from flycrud.config.properties import LoggingProperties


@runtime_checkable
class LoggingPort(Protocol):
    """Receives the bound ``flycrud.logging`` section when a module is built.

    Engine modules always log through ``structlog.get_logger``; an adapter
    decides where those events end up and at which level.
    """

    def configure(self, properties: LoggingProperties) -> None: ...
    def set_level(self, name: str, level: str) -> None: ...
