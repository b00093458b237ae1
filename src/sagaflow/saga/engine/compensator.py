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
"""Compensation coordinator -- unwinds completed steps of a failed saga.

The unwind is best-effort and strictly sequential: compensable steps are
undone in the exact reverse order of their completion, and a failing undo
action is recorded and skipped rather than halting the walk.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import UTC, datetime

from sagaflow.saga.core.events import CompensationEvent
from sagaflow.saga.core.instance import SagaInstance
from sagaflow.saga.core.report import CompensationRecord, CompensationReport
from sagaflow.saga.engine.instance_table import SagaInstanceTable
from sagaflow.saga.engine.step_invoker import StepInvoker
from sagaflow.saga.errors import CompensationError
from sagaflow.saga.ports.outbound import CompensationErrorHandlerPort, SagaEventsPort
from sagaflow.saga.registry.saga_catalog import SagaCatalog
from sagaflow.saga.registry.saga_definition import SagaDefinition
from sagaflow.saga.registry.step_definition import StepDefinition
from sagaflow.saga.types import SagaStatus

logger = logging.getLogger(__name__)


class CompensationCoordinator:
    """Runs the compensation walk for a failed saga instance.

    Args:
        catalog: Source of saga definitions (and their ``compensate`` callables).
        table: Owner of the instance being unwound.
        step_invoker: Calls compensate callables.
        events_port: Optional lifecycle events sink.
        error_handler: Optional sink for failed undo actions.
        compensation_time_budget_ms: Per-compensation time limit; ``0`` means
            unbounded.
    """

    def __init__(
        self,
        catalog: SagaCatalog,
        table: SagaInstanceTable,
        step_invoker: StepInvoker | None = None,
        events_port: SagaEventsPort | None = None,
        error_handler: CompensationErrorHandlerPort | None = None,
        compensation_time_budget_ms: int = 0,
    ) -> None:
        self._catalog = catalog
        self._table = table
        self._step_invoker = step_invoker or StepInvoker()
        self._events_port = events_port
        self._error_handler = error_handler
        self._compensation_time_budget_ms = compensation_time_budget_ms

    async def compensate(self, instance_id: str, failure_reason: str) -> CompensationReport | None:
        """Fail and unwind the instance identified by *instance_id*.

        Returns:
            The compensation report, or ``None`` if the instance was already
            terminal (terminal instances are never touched again).
        """
        async with self._table.lock_for(instance_id):
            instance = self._table.get(instance_id)
            definition = self._catalog.lookup(instance.definition_name)
            return await self.compensate_locked(instance, definition, failure_reason)

    async def compensate_locked(
        self,
        instance: SagaInstance,
        definition: SagaDefinition,
        failure_reason: str,
    ) -> CompensationReport | None:
        """Unwind *instance*; the caller must hold the instance's lock."""
        if instance.is_terminal:
            logger.debug(
                "Saga instance %s is already %s; ignoring compensation request",
                instance.id,
                instance.status,
            )
            return None

        instance.status = SagaStatus.COMPENSATING
        instance.last_error = failure_reason
        logger.info(
            "Compensating saga '%s' instance %s (%d step(s) to undo): %s",
            definition.name,
            instance.id,
            len(instance.compensation_stack),
            failure_reason,
        )

        records: list[CompensationRecord] = []
        while instance.compensation_stack:
            step_name = instance.compensation_stack.pop()
            step = definition.step_named(step_name)
            if step is None or step.compensate is None:
                continue

            event = CompensationEvent(
                instance_id=instance.id,
                original_aggregate_id=instance.owner_aggregate_id,
                failure_reason=failure_reason,
                step_name=step_name,
            )
            record = await self._compensate_one(instance, definition, step, event)
            records.append(record)
            instance.compensation_trail.append(record)

        failed = [r.step_name for r in records if not r.succeeded]
        instance.status = SagaStatus.FAILED
        instance.failed_at = datetime.now(UTC)
        if failed:
            instance.last_error = f"{failure_reason} (compensation failed for: {', '.join(failed)})"
            logger.warning(
                "Saga '%s' instance %s failed with incomplete compensation: %s",
                definition.name,
                instance.id,
                ", ".join(failed),
            )

        await self._emit("on_completed", definition.name, instance.id, False)

        return CompensationReport(
            instance_id=instance.id,
            saga_name=definition.name,
            failure_reason=failure_reason,
            records=tuple(records),
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _compensate_one(
        self,
        instance: SagaInstance,
        definition: SagaDefinition,
        step: StepDefinition,
        event: CompensationEvent,
    ) -> CompensationRecord:
        budget_ms = self._compensation_time_budget_ms
        start = time.monotonic()
        try:
            call = self._step_invoker.invoke_compensation(step, event)
            if budget_ms > 0:
                await asyncio.wait_for(call, timeout=budget_ms / 1000.0)
                if (time.monotonic() - start) * 1000 > budget_ms:
                    raise TimeoutError
            else:
                await call
        except Exception as exc:
            message = "compensation timed out" if isinstance(exc, TimeoutError) else str(exc) or type(exc).__name__
            error = CompensationError(step.name, message)
            error.__cause__ = exc
            logger.error(
                "Compensation failed for step '%s' in saga '%s' (instance %s): %s",
                step.name,
                definition.name,
                instance.id,
                message,
            )
            await self._emit("on_compensated", definition.name, instance.id, step.name, error)
            await self._report_failure(definition.name, step.name, error, instance)
            return CompensationRecord(step_name=step.name, succeeded=False, error=message)

        await self._emit("on_compensated", definition.name, instance.id, step.name, None)
        return CompensationRecord(step_name=step.name, succeeded=True)

    async def _report_failure(
        self,
        saga_name: str,
        step_name: str,
        error: CompensationError,
        instance: SagaInstance,
    ) -> None:
        if self._error_handler is None:
            return
        try:
            await self._error_handler.handle(saga_name, step_name, error, instance.snapshot())
        except Exception:
            logger.error("Compensation error handler failed for step '%s'", step_name, exc_info=True)

    async def _emit(self, method: str, *args: object) -> None:
        if self._events_port is None:
            return
        try:
            await getattr(self._events_port, method)(*args)
        except Exception:
            logger.error("Saga events port failed on %s", method, exc_info=True)
