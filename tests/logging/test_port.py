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
"""Tests for the LoggingPort protocol."""

from flycrud.config.properties import LoggingProperties
from flycrud.logging import LoggingPort, StructlogAdapter


class TestLoggingPortProtocol:
    def test_conforming_class_is_instance(self):
        class SilentLogging:
            def configure(self, properties: LoggingProperties) -> None:
                pass

            def set_level(self, name: str, level: str) -> None:
                pass

        assert isinstance(SilentLogging(), LoggingPort)

    def test_non_conforming_class_is_not_instance(self):
        class Incomplete:
            def configure(self, properties: LoggingProperties) -> None:
                pass

        assert not isinstance(Incomplete(), LoggingPort)

    def test_structlog_adapter_conforms(self):
        assert isinstance(StructlogAdapter(), LoggingPort)
