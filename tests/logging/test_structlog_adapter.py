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
"""Tests for StructlogAdapter — default LoggingPort implementation."""

import logging

import pytest
import structlog

from sagaflow.core.config import Config
from sagaflow.logging.port import LoggingPort
from sagaflow.logging.structlog_adapter import StructlogAdapter


@pytest.fixture(autouse=True)
def _restore_logging():
    yield
    structlog.reset_defaults()
    for name in ("sagaflow.saga.engine", "sagaflow.saga.events"):
        logging.getLogger(name).setLevel(logging.NOTSET)
    logging.getLogger().setLevel(logging.WARNING)


class TestStructlogAdapterConformance:
    def test_implements_logging_port(self):
        assert isinstance(StructlogAdapter(), LoggingPort)


class TestStructlogAdapterConfigure:
    def test_configure_with_defaults(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        assert adapter._root_level == "INFO"
        assert adapter._format == "console"
        assert adapter._module_levels == {}

    def test_configure_reads_root_level(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"sagaflow": {"logging": {"level": {"root": "debug"}}}}))
        assert adapter._root_level == "DEBUG"
        assert logging.getLogger().level == logging.DEBUG

    def test_configure_reads_json_format(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({"sagaflow": {"logging": {"format": "json"}}}))
        assert adapter._format == "json"

    def test_configure_applies_per_module_levels(self):
        adapter = StructlogAdapter()
        config = Config({"sagaflow": {"logging": {"level": {"root": "INFO", "sagaflow.saga.engine": "WARNING"}}}})
        adapter.configure(config)
        assert adapter._module_levels == {"sagaflow.saga.engine": "WARNING"}
        assert logging.getLogger("sagaflow.saga.engine").level == logging.WARNING


class TestStructlogAdapterLoggers:
    def test_get_logger_returns_bound_logger(self):
        adapter = StructlogAdapter()
        adapter.configure(Config({}))
        logger = adapter.get_logger("sagaflow.test")
        assert callable(getattr(logger, "info", None))

    def test_set_level(self):
        adapter = StructlogAdapter()
        adapter.set_level("sagaflow.saga.events", "error")
        assert logging.getLogger("sagaflow.saga.events").level == logging.ERROR
