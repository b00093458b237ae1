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
"""Step definition — immutable metadata for a single saga step."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

DEFAULT_TIME_BUDGET_MS = 30_000


@dataclass(frozen=True)
class StepDefinition:
    """Immutable descriptor holding all metadata for one saga step.

    Attributes:
        name: Unique step identifier within the saga.
        activating_event_type: Event type that runs this step for an instance
            currently positioned at it.
        action: Forward action, called with the activating event.  May be a
            coroutine function or a plain callable.
        compensate: Undo action called with a ``CompensationEvent``, or
            ``None`` when the step is not compensable.
        time_budget_ms: Maximum duration of one ``action`` attempt.  ``None``
            falls back to the engine's configured default.
        max_retries: Additional attempts after the first failure.  ``None``
            falls back to the engine's configured default.
        retry_backoff_ms: Base backoff between attempts, doubled each retry.
        cpu_bound: Run a synchronous ``action`` in the default executor.
            Such an action keeps running after a timeout; only coroutine
            actions are cancelled.
    """

    name: str
    activating_event_type: str
    action: Callable[..., Any]
    compensate: Callable[..., Any] | None = None
    time_budget_ms: int | None = None
    max_retries: int | None = None
    retry_backoff_ms: int = 0
    cpu_bound: bool = False

    @property
    def compensable(self) -> bool:
        return self.compensate is not None
