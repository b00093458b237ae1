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
"""Outbound port protocols for the saga engine.

These ``@runtime_checkable`` ``Protocol`` definitions form the boundary
between the saga engine and its observability / operator adapters.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sagaflow.saga.core.instance import SagaInstance


@runtime_checkable
class SagaEventsPort(Protocol):
    """Port for emitting lifecycle events from the saga engine.

    Adapters integrate with observability back-ends (logs, metrics, audit
    trails) without coupling the engine to any specific vendor.
    """

    async def on_start(self, name: str, instance_id: str) -> None:
        """Fired when a trigger event creates a new saga instance."""
        ...

    async def on_step_success(
        self,
        name: str,
        instance_id: str,
        step_name: str,
        attempts: int,
        latency_ms: float,
    ) -> None:
        """Fired when an individual step completes successfully."""
        ...

    async def on_step_failed(
        self,
        name: str,
        instance_id: str,
        step_name: str,
        error: Exception,
        attempts: int,
        latency_ms: float,
    ) -> None:
        """Fired when a step fails (after all retries are exhausted)."""
        ...

    async def on_compensated(
        self,
        name: str,
        instance_id: str,
        step_name: str,
        error: Exception | None,
    ) -> None:
        """Fired after a compensating action has been executed for a step.

        *error* is ``None`` when the compensation itself succeeded.
        """
        ...

    async def on_completed(self, name: str, instance_id: str, success: bool) -> None:
        """Fired when the instance reaches ``completed`` or ``failed``."""
        ...


@runtime_checkable
class CompensationErrorHandlerPort(Protocol):
    """Port for handling errors that occur *during* compensation.

    The coordinator never aborts the unwind; it delegates each failure to
    this port so adapters can alert operators or dead-letter the instance.
    """

    async def handle(
        self, saga_name: str, step_name: str, error: Exception, instance: SagaInstance
    ) -> None:
        """Handle a compensation failure.

        Args:
            saga_name: Name of the saga whose unwind hit the failure.
            step_name: Step whose compensating action failed.
            error:     The ``CompensationError`` (original error as ``__cause__``).
            instance:  Snapshot of the instance at the time of failure.
        """
        ...
