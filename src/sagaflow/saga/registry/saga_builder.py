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
"""Saga builder — fluent DSL for programmatic saga creation.

Sagas are declared in code at startup with :class:`SagaBuilder`; each
step is configured through a :class:`StepBuilder`.

Example::

    checkout = (
        SagaBuilder("Checkout")
        .trigger("OrderPlaced")
        .step("Reserve").on("ReservationRequested").action(reserve).compensate(release).add()
        .step("Charge").on("ReservationConfirmed").action(charge).compensate(refund)
            .retry(2).backoff_ms(200).add()
        .step("Ship").on("PaymentCaptured").action(ship).time_budget_ms(60_000).add()
        .build()
    )
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from sagaflow.saga.errors import SagaValidationError
from sagaflow.saga.registry.saga_catalog import validate_definition
from sagaflow.saga.registry.saga_definition import SagaDefinition
from sagaflow.saga.registry.step_definition import StepDefinition


class StepBuilder:
    """Collects the settings of one step.

    :meth:`add` appends the finished step to its :class:`SagaBuilder` and
    hands that builder back so the chain can continue.
    """

    def __init__(self, name: str, parent: SagaBuilder) -> None:
        self._name = name
        self._parent = parent
        self._activating_event_type: str | None = None
        self._action_fn: Callable[..., Any] | None = None
        self._compensate_fn: Callable[..., Any] | None = None
        self._time_budget_ms: int | None = None
        self._max_retries: int | None = None
        self._retry_backoff_ms: int = 0
        self._cpu_bound: bool = False

    # ── Fluent setters ────────────────────────────────────────

    def on(self, event_type: str) -> StepBuilder:
        """Set the event type that activates this step."""
        self._activating_event_type = event_type
        return self

    def action(self, func: Callable[..., Any]) -> StepBuilder:
        """Set the forward action for this step."""
        self._action_fn = func
        return self

    def compensate(self, func: Callable[..., Any]) -> StepBuilder:
        """Set the undo action for this step."""
        self._compensate_fn = func
        return self

    def time_budget_ms(self, ms: int) -> StepBuilder:
        """Set the time budget of one action attempt in milliseconds."""
        self._time_budget_ms = ms
        return self

    def retry(self, count: int) -> StepBuilder:
        """Set the number of additional attempts after a failure."""
        self._max_retries = count
        return self

    def backoff_ms(self, ms: int) -> StepBuilder:
        """Delay before the first retry; doubled for each later one."""
        self._retry_backoff_ms = ms
        return self

    def cpu_bound(self, enabled: bool = True) -> StepBuilder:
        """Run a synchronous action in the default executor."""
        self._cpu_bound = enabled
        return self

    # ── Finalisation ──────────────────────────────────────────

    def add(self) -> SagaBuilder:
        """Append the step to the saga and return the saga builder."""
        self._parent._add_step(self._build_definition())  # noqa: SLF001
        return self._parent

    def _build_definition(self) -> StepDefinition:
        if self._action_fn is None:
            msg = f"Step '{self._name}' in saga '{self._parent.name}' must have an action"
            raise SagaValidationError(msg)
        if self._activating_event_type is None:
            msg = f"Step '{self._name}' in saga '{self._parent.name}' must declare an activating event type"
            raise SagaValidationError(msg)
        return StepDefinition(
            name=self._name,
            activating_event_type=self._activating_event_type,
            action=self._action_fn,
            compensate=self._compensate_fn,
            time_budget_ms=self._time_budget_ms,
            max_retries=self._max_retries,
            retry_backoff_ms=self._retry_backoff_ms,
            cpu_bound=self._cpu_bound,
        )


class SagaBuilder:
    """Assembles a :class:`SagaDefinition` one step at a time.

    Steps run in the order they are added.  :meth:`build` checks the result
    with the same rules the catalog applies at registration.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._trigger_event_type: str | None = None
        self._deadline_ms: int | None = None
        self._steps: list[StepDefinition] = []

    def trigger(self, event_type: str) -> SagaBuilder:
        """Set the event type that spawns new instances of this saga."""
        self._trigger_event_type = event_type
        return self

    def deadline_ms(self, ms: int) -> SagaBuilder:
        """Set the overall deadline, measured from instance start."""
        self._deadline_ms = ms
        return self

    def step(self, name: str) -> StepBuilder:
        """Begin configuring a new step named *name*."""
        return StepBuilder(name, self)

    def build(self) -> SagaDefinition:
        """Return the validated definition.

        Raises:
            SagaValidationError: If no trigger is set or the definition is
                structurally invalid.
        """
        if self._trigger_event_type is None:
            msg = f"Saga '{self.name}' must declare a trigger event type"
            raise SagaValidationError(msg)

        definition = SagaDefinition(
            name=self.name,
            trigger_event_type=self._trigger_event_type,
            steps=tuple(self._steps),
            deadline_ms=self._deadline_ms,
        )
        validate_definition(definition)
        return definition

    def _add_step(self, step: StepDefinition) -> None:
        if any(existing.name == step.name for existing in self._steps):
            msg = f"Step '{step.name}' already exists in saga '{self.name}'"
            raise SagaValidationError(msg)
        self._steps.append(step)
