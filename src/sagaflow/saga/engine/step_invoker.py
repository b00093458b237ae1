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
"""Saga step invoker — call step actions and compensations with their event."""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections.abc import Callable
from typing import Any

from sagaflow.eda.types import DomainEvent
from sagaflow.saga.core.events import CompensationEvent
from sagaflow.saga.registry.step_definition import StepDefinition


class StepInvoker:
    """Invokes saga step actions and compensation callables.

    Accepts coroutine functions, plain callables and plain callables that
    return an awaitable.
    """

    async def invoke_action(self, step: StepDefinition, event: DomainEvent) -> Any:
        """Invoke the forward action of *step* with the activating *event*.

        For ``cpu_bound`` synchronous actions, runs in a thread pool executor.
        """
        return await self._call(step.action, event, cpu_bound=step.cpu_bound)

    async def invoke_compensation(self, step: StepDefinition, event: CompensationEvent) -> Any:
        """Invoke the compensate callable of *step*.

        Raises if no compensation is defined.
        """
        if step.compensate is None:
            raise ValueError(f"Step '{step.name}' has no compensation defined.")
        return await self._call(step.compensate, event, cpu_bound=False)

    @staticmethod
    async def _call(func: Callable[..., Any], event: Any, *, cpu_bound: bool) -> Any:
        if inspect.iscoroutinefunction(func):
            return await func(event)

        if cpu_bound:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, functools.partial(func, event))

        result = func(event)
        if inspect.isawaitable(result):
            return await result
        return result
