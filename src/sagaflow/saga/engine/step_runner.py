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
"""Step runner — executes one saga step under its time budget."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sagaflow.eda.types import DomainEvent
from sagaflow.saga.core.instance import SagaInstance
from sagaflow.saga.engine.compensator import CompensationCoordinator
from sagaflow.saga.engine.instance_table import SagaInstanceTable
from sagaflow.saga.engine.step_invoker import StepInvoker
from sagaflow.saga.errors import StepExecutionError, StepTimeoutError
from sagaflow.saga.ports.outbound import SagaEventsPort
from sagaflow.saga.registry.saga_catalog import SagaCatalog
from sagaflow.saga.registry.saga_definition import SagaDefinition
from sagaflow.saga.registry.step_definition import DEFAULT_TIME_BUDGET_MS, StepDefinition
from sagaflow.saga.types import SagaStatus

logger = logging.getLogger(__name__)

DEADLINE_EXCEEDED = "saga deadline exceeded"


def is_overdue(instance: SagaInstance, definition: SagaDefinition, now: datetime | None = None) -> bool:
    """Return ``True`` if *instance* has outlived its saga's overall deadline."""
    if definition.deadline_ms is None:
        return False
    deadline = instance.started_at + timedelta(milliseconds=definition.deadline_ms)
    return (now or datetime.now(UTC)) >= deadline


@dataclass(frozen=True)
class _Attempt:
    attempts: int
    latency_ms: float
    error: StepExecutionError | None = None


class StepRunner:
    """Runs a saga step for one instance and advances or fails the instance.

    Each attempt races the step action against its time budget with
    :func:`asyncio.wait_for`; a coroutine action that overruns is cancelled.
    A failed step (after retries) hands the instance to the
    :class:`CompensationCoordinator` while the instance lock is still held,
    so no other handler can observe it half-way.
    """

    def __init__(
        self,
        catalog: SagaCatalog,
        table: SagaInstanceTable,
        compensator: CompensationCoordinator,
        step_invoker: StepInvoker | None = None,
        events_port: SagaEventsPort | None = None,
        default_time_budget_ms: int = DEFAULT_TIME_BUDGET_MS,
        default_max_retries: int = 0,
    ) -> None:
        self._catalog = catalog
        self._table = table
        self._compensator = compensator
        self._step_invoker = step_invoker or StepInvoker()
        self._events_port = events_port
        self._default_time_budget_ms = default_time_budget_ms
        self._default_max_retries = default_max_retries

    async def run(self, instance_id: str, step: StepDefinition, event: DomainEvent) -> bool:
        """Execute *step* for the instance identified by *instance_id*.

        The step only runs if, once the instance lock is held, the instance
        is still running and positioned at *step*; otherwise this is a no-op.

        Returns:
            ``True`` if the step ran and succeeded.
        """
        async with self._table.lock_for(instance_id):
            instance = self._table.get(instance_id)
            definition = self._catalog.lookup(instance.definition_name)

            if instance.status is not SagaStatus.RUNNING:
                logger.debug("Skipping step '%s': instance %s is %s", step.name, instance_id, instance.status)
                return False
            current = definition.step_at(instance.current_step_index)
            if current.name != step.name:
                logger.debug(
                    "Skipping step '%s': instance %s is positioned at '%s'",
                    step.name,
                    instance_id,
                    current.name,
                )
                return False

            if is_overdue(instance, definition):
                await self._compensator.compensate_locked(instance, definition, DEADLINE_EXCEEDED)
                return False

            return await self._run_locked(instance, definition, step, event)

    def time_budget_ms(self, step: StepDefinition) -> int:
        return step.time_budget_ms or self._default_time_budget_ms

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _run_locked(
        self,
        instance: SagaInstance,
        definition: SagaDefinition,
        step: StepDefinition,
        event: DomainEvent,
    ) -> bool:
        logger.info(
            "Executing step '%s' of saga '%s' for instance %s",
            step.name,
            definition.name,
            instance.id,
        )
        outcome = await self._execute(step, event)

        if outcome.error is not None:
            reason = f"{step.name}: {outcome.error}"
            instance.last_error = reason
            await self._emit(
                "on_step_failed",
                definition.name,
                instance.id,
                step.name,
                outcome.error,
                outcome.attempts,
                outcome.latency_ms,
            )
            await self._compensator.compensate_locked(instance, definition, reason)
            return False

        if step.compensable:
            instance.compensation_stack.append(step.name)
        instance.completed_steps.append(step.name)
        await self._emit(
            "on_step_success",
            definition.name,
            instance.id,
            step.name,
            outcome.attempts,
            outcome.latency_ms,
        )

        if instance.current_step_index >= definition.last_index:
            instance.status = SagaStatus.COMPLETED
            instance.completed_at = datetime.now(UTC)
            logger.info("Saga '%s' instance %s completed", definition.name, instance.id)
            await self._emit("on_completed", definition.name, instance.id, True)
        else:
            instance.current_step_index += 1
        return True

    async def _execute(self, step: StepDefinition, event: DomainEvent) -> _Attempt:
        """Run the action with retries; never raises for action failures."""
        budget_ms = self.time_budget_ms(step)
        max_retries = step.max_retries if step.max_retries is not None else self._default_max_retries
        backoff_ms = float(step.retry_backoff_ms)
        total = max_retries + 1

        error: StepExecutionError | None = None
        latency_ms = 0.0
        for attempt in range(1, total + 1):
            start = time.monotonic()
            try:
                await asyncio.wait_for(
                    self._step_invoker.invoke_action(step, event),
                    timeout=budget_ms / 1000.0,
                )
            except TimeoutError:
                error = StepTimeoutError(step.name, budget_ms)
            except StepExecutionError as exc:
                error = exc
            except Exception as exc:
                error = StepExecutionError(step.name, str(exc) or type(exc).__name__)
                error.__cause__ = exc
            else:
                latency_ms = (time.monotonic() - start) * 1000
                # A blocking action returns before wait_for can time it out.
                if latency_ms <= budget_ms:
                    return _Attempt(attempts=attempt, latency_ms=latency_ms)
                error = StepTimeoutError(step.name, budget_ms)
            latency_ms = (time.monotonic() - start) * 1000

            if attempt < total:
                logger.warning(
                    "Step '%s' attempt %d/%d failed: %s; retrying in %.0fms",
                    step.name,
                    attempt,
                    total,
                    error,
                    backoff_ms,
                )
                await asyncio.sleep(backoff_ms / 1000.0)
                backoff_ms *= 2

        return _Attempt(attempts=total, latency_ms=latency_ms, error=error)

    async def _emit(self, method: str, *args: object) -> None:
        if self._events_port is None:
            return
        try:
            await getattr(self._events_port, method)(*args)
        except Exception:
            logger.error("Saga events port failed on %s", method, exc_info=True)
