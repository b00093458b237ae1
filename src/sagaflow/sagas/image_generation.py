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
"""Browser-driven image generation saga.

A request is validated, queued, handed to a browser automation session and
finally rendered.  Each stage is undone in reverse if a later one fails:
the browser is closed, the request is dequeued, the validation hold is
released.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sagaflow.eda.types import DomainEvent
from sagaflow.saga.registry.saga_builder import SagaBuilder
from sagaflow.saga.registry.saga_definition import SagaDefinition

IMAGE_GENERATION_SAGA = "BrowserImageGeneration"
IMAGE_GENERATION_REQUESTED = "ImageGenerationRequested"

_BROWSER_LAUNCH_BUDGET_MS = 60_000
_GENERATION_BUDGET_MS = 120_000


@runtime_checkable
class ImageGenerationSteps(Protocol):
    """Integrator-supplied actions and compensations for image generation."""

    async def validate(self, event: DomainEvent) -> None: ...

    async def release_validation(self, event: DomainEvent) -> None: ...

    async def enqueue(self, event: DomainEvent) -> None: ...

    async def dequeue(self, event: DomainEvent) -> None: ...

    async def launch_browser(self, event: DomainEvent) -> None: ...

    async def close_browser(self, event: DomainEvent) -> None: ...

    async def generate(self, event: DomainEvent) -> None: ...

    async def cancel_generation(self, event: DomainEvent) -> None: ...


def build_image_generation_saga(steps: ImageGenerationSteps) -> SagaDefinition:
    """Return the ``BrowserImageGeneration`` definition bound to *steps*.

    The first step runs as soon as ``ImageGenerationRequested`` arrives; each
    later step waits for the event named next to it below.
    """
    return (
        SagaBuilder(IMAGE_GENERATION_SAGA)
        .trigger(IMAGE_GENERATION_REQUESTED)
        .step("ValidateRequest")
        .on("ImageGenerationValidated")
        .action(steps.validate)
        .compensate(steps.release_validation)
        .add()
        .step("QueueForProcessing")
        .on("ImageGenerationQueued")
        .action(steps.enqueue)
        .compensate(steps.dequeue)
        .add()
        .step("LaunchBrowserAutomation")
        .on("ImageGenerationStarted")
        .action(steps.launch_browser)
        .compensate(steps.close_browser)
        .time_budget_ms(_BROWSER_LAUNCH_BUDGET_MS)
        .add()
        .step("GenerateImage")
        .on("ImageGenerationCompleted")
        .action(steps.generate)
        .compensate(steps.cancel_generation)
        .time_budget_ms(_GENERATION_BUDGET_MS)
        .add()
        .build()
    )
