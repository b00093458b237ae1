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
"""Logging port: how an application plugs its log backend into SagaFlow."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from sagaflow.core.config import Config


@runtime_checkable
class LoggingPort(Protocol):
    """Backend that renders SagaFlow's stdlib log records.

    ``configure`` reads the ``sagaflow.logging`` section once at startup;
    ``set_level`` adjusts a single named logger afterwards (for example
    ``sagaflow.saga.events`` while diagnosing one saga).
    """

    def configure(self, config: Config) -> None:
        """Install handlers and levels from *config*."""
        ...

    def get_logger(self, name: str) -> Any:
        """Return a logger bound to *name* for application code."""
        ...

    def set_level(self, name: str, level: str) -> None:
        """Set logger *name* to the level called *level* (e.g. ``"DEBUG"``)."""
        ...
