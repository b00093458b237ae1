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
"""Saga lifecycle sinks.

:class:`LoggerEventsAdapter` narrates each instance through the
``sagaflow.saga.events`` logger and closes a failed instance with a summary
of the undo actions that did not succeed.  :class:`CompositeEventsAdapter`
lets the engine feed that logger and an integrator's own port at once.
:class:`LoggingCompensationErrorHandler` flags failed undo actions for an
operator.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Callable, Coroutine
from typing import Any

from sagaflow.saga.core.instance import SagaInstance
from sagaflow.saga.ports.outbound import SagaEventsPort

_logger = logging.getLogger("sagaflow.saga.events")


class LoggerEventsAdapter:
    """Writes one log line per lifecycle event.

    Progress is logged at INFO.  Step failures and failed undo actions are
    logged at WARNING; a saga that ends failed is summarised at WARNING with
    the steps whose compensation did not succeed.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or _logger
        self._undo_failures: dict[str, list[str]] = defaultdict(list)

    async def on_start(self, name: str, instance_id: str) -> None:
        self._log.info("Saga '%s' started [instance_id=%s]", name, instance_id)

    async def on_step_success(
        self, name: str, instance_id: str, step_name: str, attempts: int, latency_ms: float
    ) -> None:
        self._log.info(
            "Step '%s' succeeded [saga=%s, instance_id=%s, attempts=%d, latency=%.1fms]",
            step_name, name, instance_id, attempts, latency_ms,
        )

    async def on_step_failed(
        self,
        name: str,
        instance_id: str,
        step_name: str,
        error: Exception,
        attempts: int,
        latency_ms: float,
    ) -> None:
        self._log.warning(
            "Step '%s' failed after %d attempt(s) in %.1fms [saga=%s, instance_id=%s]: %s",
            step_name, attempts, latency_ms, name, instance_id, error,
        )

    async def on_compensated(
        self, name: str, instance_id: str, step_name: str, error: Exception | None
    ) -> None:
        if error is None:
            self._log.info("Undid step '%s' [saga=%s, instance_id=%s]", step_name, name, instance_id)
            return
        self._undo_failures[instance_id].append(step_name)
        self._log.warning(
            "Could not undo step '%s' [saga=%s, instance_id=%s]: %s", step_name, name, instance_id, error
        )

    async def on_completed(self, name: str, instance_id: str, success: bool) -> None:
        stuck = self._undo_failures.pop(instance_id, [])
        if success:
            self._log.info("Saga '%s' completed [instance_id=%s]", name, instance_id)
        elif stuck:
            self._log.warning(
                "Saga '%s' failed with steps left undone [instance_id=%s, steps=%s]",
                name, instance_id, ", ".join(stuck),
            )
        else:
            self._log.warning("Saga '%s' failed and was fully compensated [instance_id=%s]", name, instance_id)


def _forward(method: str) -> Callable[..., Coroutine[Any, Any, None]]:
    async def forward(self: CompositeEventsAdapter, *args: Any) -> None:
        await self._fan_out(method, *args)

    forward.__name__ = method
    return forward


class CompositeEventsAdapter:
    """Delivers every lifecycle event to several sinks concurrently.

    A sink that raises is logged; the others still receive the event and
    the engine never sees the error.
    """

    def __init__(self, *sinks: SagaEventsPort) -> None:
        self._sinks = sinks

    async def _fan_out(self, method: str, *args: Any) -> None:
        results = await asyncio.gather(
            *(getattr(sink, method)(*args) for sink in self._sinks),
            return_exceptions=True,
        )
        for sink, result in zip(self._sinks, results, strict=True):
            if isinstance(result, Exception):
                _logger.error("Events sink %r failed on %s", sink, method, exc_info=result)

    on_start = _forward("on_start")
    on_step_success = _forward("on_step_success")
    on_step_failed = _forward("on_step_failed")
    on_compensated = _forward("on_compensated")
    on_completed = _forward("on_completed")


class LoggingCompensationErrorHandler:
    """Logs each failed undo action at ERROR so operators can follow up by hand."""

    async def handle(
        self, saga_name: str, step_name: str, error: Exception, instance: SagaInstance
    ) -> None:
        _logger.error(
            "Manual attention required: step '%s' of saga '%s' could not be undone "
            "[instance_id=%s, aggregate_id=%s]: %s",
            step_name,
            saga_name,
            instance.id,
            instance.owner_aggregate_id,
            error,
        )
