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
"""Saga engine — event-driven coordinator wiring catalog, dispatcher, runner and compensator."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta

from sagaflow.core.config import Config
from sagaflow.eda.dispatcher import EventDispatcher
from sagaflow.eda.ports.outbound import EventDispatcherPort, EventHandler
from sagaflow.eda.types import DomainEvent
from sagaflow.saga.config.properties import SagaEngineProperties
from sagaflow.saga.core.instance import SagaInstance
from sagaflow.saga.engine.compensator import CompensationCoordinator
from sagaflow.saga.engine.instance_table import SagaInstanceTable
from sagaflow.saga.engine.step_invoker import StepInvoker
from sagaflow.saga.engine.step_runner import DEADLINE_EXCEEDED, StepRunner, is_overdue
from sagaflow.saga.observability.events import CompositeEventsAdapter, LoggerEventsAdapter
from sagaflow.saga.ports.outbound import CompensationErrorHandlerPort, SagaEventsPort
from sagaflow.saga.registry.saga_catalog import SagaCatalog
from sagaflow.saga.registry.saga_definition import SagaDefinition
from sagaflow.saga.registry.step_definition import StepDefinition
from sagaflow.saga.types import SAGA_INSTANCE_HEADER, MatchingPolicy, SagaStatus

logger = logging.getLogger(__name__)


class SagaEngine:
    """Main saga coordinator driven entirely by inbound domain events.

    Registering a saga subscribes the dispatcher to its trigger event type
    (spawning new instances) and to each activating event type (advancing
    running instances of the event's aggregate).  :meth:`process_event` is
    the single ingress and never raises for step, compensation or handler
    failures; those are recorded on the instances.
    """

    def __init__(
        self,
        catalog: SagaCatalog,
        dispatcher: EventDispatcherPort,
        table: SagaInstanceTable,
        runner: StepRunner,
        compensator: CompensationCoordinator,
        *,
        matching_policy: MatchingPolicy = MatchingPolicy.FAN_OUT,
        events_port: SagaEventsPort | None = None,
        retain_terminal: timedelta = timedelta(hours=24),
    ) -> None:
        self._catalog = catalog
        self._dispatcher = dispatcher
        self._table = table
        self._runner = runner
        self._compensator = compensator
        self._matching_policy = matching_policy
        self._events_port = events_port
        self._retain_terminal = retain_terminal
        self._step_event_types: set[str] = set()

        for definition in catalog.get_all():
            self._subscribe(definition)
        catalog.add_listener(self._subscribe)

    @classmethod
    def create(
        cls,
        properties: SagaEngineProperties | None = None,
        events_port: SagaEventsPort | None = None,
        error_handler: CompensationErrorHandlerPort | None = None,
    ) -> SagaEngine:
        """Build an engine with fresh in-memory collaborators.

        With ``log_lifecycle_events`` set, lifecycle events are also logged
        by a :class:`LoggerEventsAdapter` alongside any given *events_port*.
        """
        properties = properties or SagaEngineProperties()
        if properties.log_lifecycle_events:
            events_port = (
                LoggerEventsAdapter()
                if events_port is None
                else CompositeEventsAdapter(LoggerEventsAdapter(), events_port)
            )

        catalog = SagaCatalog()
        table = SagaInstanceTable()
        invoker = StepInvoker()
        compensator = CompensationCoordinator(
            catalog,
            table,
            step_invoker=invoker,
            events_port=events_port,
            error_handler=error_handler,
            compensation_time_budget_ms=properties.compensation_time_budget_ms,
        )
        runner = StepRunner(
            catalog,
            table,
            compensator,
            step_invoker=invoker,
            events_port=events_port,
            default_time_budget_ms=properties.default_time_budget_ms,
            default_max_retries=properties.default_max_retries,
        )
        return cls(
            catalog,
            EventDispatcher(),
            table,
            runner,
            compensator,
            matching_policy=properties.matching_policy,
            events_port=events_port,
            retain_terminal=timedelta(hours=properties.retain_terminal_hours),
        )

    @classmethod
    def from_config(
        cls,
        config: Config,
        events_port: SagaEventsPort | None = None,
        error_handler: CompensationErrorHandlerPort | None = None,
    ) -> SagaEngine:
        """Build an engine from the ``sagaflow.saga`` configuration section."""
        return cls.create(config.bind(SagaEngineProperties), events_port, error_handler)

    @property
    def matching_policy(self) -> MatchingPolicy:
        return self._matching_policy

    # ── registration ──────────────────────────────────────────

    def register_saga(self, definition: SagaDefinition) -> SagaDefinition:
        """Register *definition*; intended to be called once per saga at startup.

        Raises:
            DuplicateSagaError: If a saga with the same name is registered.
            SagaValidationError: If the definition is malformed.
        """
        return self._catalog.register(definition)

    # ── ingress ───────────────────────────────────────────────

    async def process_event(self, event: DomainEvent) -> None:
        """Dispatch an inbound domain event.  Never raises for saga failures."""
        await self._dispatcher.publish(event)

    # ── operational surface ───────────────────────────────────

    def get_instance(self, instance_id: str) -> SagaInstance:
        """Return a snapshot of the instance.

        Raises:
            SagaInstanceNotFoundError: If no such instance exists.
        """
        return self._table.get(instance_id).snapshot()

    def list_active_instances(self) -> list[SagaInstance]:
        """Snapshots of all running or compensating instances."""
        return [instance.snapshot() for instance in self._table.list_active()]

    async def expire_overdue(self, now: datetime | None = None) -> int:
        """Fail and compensate running instances past their saga's deadline.

        Intended to be called periodically by the host application.

        Returns:
            The number of instances expired.
        """
        expired = 0
        for instance in self._table.list_active():
            if instance.status is not SagaStatus.RUNNING:
                continue
            definition = self._catalog.lookup(instance.definition_name)
            if not is_overdue(instance, definition, now):
                continue
            report = await self._compensator.compensate(instance.id, DEADLINE_EXCEEDED)
            if report is not None:
                expired += 1
                logger.warning(
                    "Saga '%s' instance %s expired after %dms",
                    definition.name,
                    instance.id,
                    definition.deadline_ms,
                )
        return expired

    def purge_terminal(self, older_than: timedelta | None = None, now: datetime | None = None) -> int:
        """Drop terminal instances older than *older_than* (default: retention setting)."""
        retention = older_than if older_than is not None else self._retain_terminal
        return self._table.purge_terminal(retention, now=now)

    # ── handlers ──────────────────────────────────────────────

    def _subscribe(self, definition: SagaDefinition) -> None:
        self._dispatcher.subscribe(definition.trigger_event_type, self._trigger_handler(definition.name))
        for event_type in definition.activating_event_types:
            if event_type not in self._step_event_types:
                self._step_event_types.add(event_type)
                self._dispatcher.subscribe(event_type, self._on_step_event)

    def _trigger_handler(self, saga_name: str) -> EventHandler:
        async def on_trigger(event: DomainEvent) -> None:
            await self._start(saga_name, event)

        on_trigger.__qualname__ = f"SagaEngine.trigger[{saga_name}]"
        return on_trigger

    async def _start(self, saga_name: str, event: DomainEvent) -> None:
        definition = self._catalog.lookup(saga_name)
        instance = self._table.create(definition.name, event.aggregate_id, trigger_event_id=event.event_id)
        if self._events_port is not None:
            try:
                await self._events_port.on_start(definition.name, instance.id)
            except Exception:
                logger.error("Saga events port failed on on_start", exc_info=True)
        await self._runner.run(instance.id, definition.step_at(0), event)

    async def _on_step_event(self, event: DomainEvent) -> None:
        matches = self._match(event)
        if not matches:
            return
        results = await asyncio.gather(
            *(self._runner.run(instance_id, step, event) for instance_id, step in matches),
            return_exceptions=True,
        )
        for (instance_id, step), result in zip(matches, results, strict=True):
            if isinstance(result, Exception):
                logger.error(
                    "Step '%s' dispatch failed for instance %s: %s",
                    step.name,
                    instance_id,
                    result,
                    exc_info=result,
                )

    def _match(self, event: DomainEvent) -> list[tuple[str, StepDefinition]]:
        """Select the running instances whose current step *event* activates."""
        matches: list[tuple[SagaInstance, StepDefinition]] = []
        for instance in self._table.find_running(event.aggregate_id):
            definition = self._catalog.lookup(instance.definition_name)
            step = definition.step_at(instance.current_step_index)
            if step.activating_event_type == event.event_type:
                matches.append((instance, step))

        if self._matching_policy is MatchingPolicy.CORRELATED:
            target = event.headers.get(SAGA_INSTANCE_HEADER)
            if target is not None:
                matches = [(i, s) for i, s in matches if i.id == target]
        elif self._matching_policy is MatchingPolicy.OLDEST_FIRST and matches:
            matches = [min(matches, key=lambda m: m[0].started_at)]

        return [(instance.id, step) for instance, step in matches]
