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
"""Saga definition — ordered steps spawned by a trigger event."""

from __future__ import annotations

from dataclasses import dataclass

from sagaflow.saga.registry.step_definition import StepDefinition


@dataclass(frozen=True)
class SagaDefinition:
    """Immutable definition of a registered saga.

    Attributes:
        name: Unique saga name.
        trigger_event_type: Event type that spawns new instances.  Must not
            activate any of the saga's own steps.
        steps: Steps in execution order.  The first step runs with the
            trigger event itself.
        deadline_ms: Optional overall deadline measured from instance start.
    """

    name: str
    trigger_event_type: str
    steps: tuple[StepDefinition, ...]
    deadline_ms: int | None = None

    @property
    def last_index(self) -> int:
        return len(self.steps) - 1

    @property
    def activating_event_types(self) -> list[str]:
        """Distinct activating event types, in step order."""
        return list(dict.fromkeys(step.activating_event_type for step in self.steps))

    def step_at(self, index: int) -> StepDefinition:
        return self.steps[index]

    def step_named(self, name: str) -> StepDefinition | None:
        for step in self.steps:
            if step.name == name:
                return step
        return None
