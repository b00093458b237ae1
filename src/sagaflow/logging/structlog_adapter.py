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
"""StructlogAdapter — structlog-backed implementation of LoggingPort."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from sagaflow.core.config import Config

_FORMATS = ("console", "json")


def _level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _pre_chain() -> list[structlog.types.Processor]:
    """Processors shared by structlog loggers and foreign stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


class StructlogAdapter:
    """Routes all SagaFlow logging through one structlog renderer.

    Engine modules use plain ``logging.getLogger(__name__)``; their records
    are rendered by the same console or JSON renderer as structlog loggers.

    Configuration keys::

        sagaflow:
          logging:
            format: console          # or json
            level:
              root: INFO
              sagaflow.saga.engine: DEBUG
    """

    def __init__(self) -> None:
        self._root_level = "INFO"
        self._format = "console"
        self._module_levels: dict[str, str] = {}

    def configure(self, config: Config) -> None:
        levels = {name: str(level).upper() for name, level in config.get_section("sagaflow.logging.level").items()}
        self._root_level = levels.pop("root", "INFO")
        self._module_levels = levels
        fmt = str(config.get("sagaflow.logging.format", "console")).lower()
        self._format = fmt if fmt in _FORMATS else "console"

        self._install()
        for name, level in self._module_levels.items():
            self.set_level(name, level)

    def get_logger(self, name: str) -> Any:
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        logging.getLogger(name).setLevel(_level(level))

    def _renderer(self) -> structlog.types.Processor:
        if self._format == "json":
            return structlog.processors.JSONRenderer()
        return structlog.dev.ConsoleRenderer()

    def _install(self) -> None:
        pre_chain = _pre_chain()
        structlog.configure(
            processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        formatter = structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, self._renderer()],
        )
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logging.basicConfig(handlers=[handler], level=_level(self._root_level), force=True)
