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
"""Saga catalog — registration, lookup and validation of saga definitions."""

from __future__ import annotations

import logging
from collections.abc import Callable

from sagaflow.saga.errors import DuplicateSagaError, SagaNotFoundError, SagaValidationError
from sagaflow.saga.registry.saga_definition import SagaDefinition

logger = logging.getLogger(__name__)

RegistrationListener = Callable[[SagaDefinition], None]


def validate_definition(definition: SagaDefinition) -> None:
    """Validate the structure of *definition*.

    Checks that:
    1. The saga has at least one step.
    2. Step names are unique within the saga.
    3. The trigger event type activates none of the saga's own steps.
    4. Time budgets, retries and the overall deadline are sane.

    Raises:
        SagaValidationError: On the first violated rule.
    """
    if not definition.name:
        raise SagaValidationError("Saga name must not be empty")

    if not definition.steps:
        msg = f"Saga '{definition.name}' must have at least one step"
        raise SagaValidationError(msg)

    seen: set[str] = set()
    for step in definition.steps:
        if step.name in seen:
            msg = f"Step '{step.name}' is declared twice in saga '{definition.name}'"
            raise SagaValidationError(msg)
        seen.add(step.name)

        if step.activating_event_type == definition.trigger_event_type:
            msg = (
                f"Step '{step.name}' in saga '{definition.name}' is activated by the "
                f"saga's own trigger event '{definition.trigger_event_type}'"
            )
            raise SagaValidationError(msg)

        if step.time_budget_ms is not None and step.time_budget_ms <= 0:
            msg = f"Step '{step.name}' in saga '{definition.name}' has a non-positive time budget"
            raise SagaValidationError(msg)

        if (step.max_retries or 0) < 0 or step.retry_backoff_ms < 0:
            msg = f"Step '{step.name}' in saga '{definition.name}' has negative retry settings"
            raise SagaValidationError(msg)

    if definition.deadline_ms is not None and definition.deadline_ms <= 0:
        msg = f"Saga '{definition.name}' has a non-positive deadline"
        raise SagaValidationError(msg)


class SagaCatalog:
    """Registry mapping saga names to their definitions.

    Read-mostly after startup.  Registration listeners are notified after a
    definition is stored; the saga engine uses one to subscribe the event
    dispatcher to the saga's trigger and activating event types.
    """

    def __init__(self) -> None:
        self._sagas: dict[str, SagaDefinition] = {}
        self._listeners: list[RegistrationListener] = []

    # -- Public API ----------------------------------------------------------

    def add_listener(self, listener: RegistrationListener) -> None:
        """Call *listener* with every definition registered from now on."""
        self._listeners.append(listener)

    def register(self, definition: SagaDefinition) -> SagaDefinition:
        """Validate and store *definition*, then notify listeners.

        Raises:
            DuplicateSagaError: If a saga with the same name is registered.
            SagaValidationError: If the definition is malformed.
        """
        if definition.name in self._sagas:
            raise DuplicateSagaError(definition.name)
        validate_definition(definition)

        self._sagas[definition.name] = definition
        logger.info(
            "Registered saga '%s' (trigger=%s, steps=%d)",
            definition.name,
            definition.trigger_event_type,
            len(definition.steps),
        )

        for listener in self._listeners:
            listener(definition)
        return definition

    def lookup(self, name: str) -> SagaDefinition:
        """Return the definition registered under *name*.

        Raises:
            SagaNotFoundError: If no such saga is registered.
        """
        definition = self._sagas.get(name)
        if definition is None:
            raise SagaNotFoundError(name)
        return definition

    def get(self, name: str) -> SagaDefinition | None:
        """Look up a saga definition by name, or ``None``."""
        return self._sagas.get(name)

    def get_all(self) -> list[SagaDefinition]:
        """Return all registered saga definitions in registration order."""
        return list(self._sagas.values())

    def find_by_trigger(self, event_type: str) -> list[SagaDefinition]:
        """Return the definitions spawned by *event_type*."""
        return [d for d in self._sagas.values() if d.trigger_event_type == event_type]

    def __contains__(self, name: object) -> bool:
        return name in self._sagas

    def __len__(self) -> int:
        return len(self._sagas)
