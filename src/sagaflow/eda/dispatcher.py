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
"""In-process event dispatcher keyed by event type."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from sagaflow.eda.ports.outbound import EventHandler
from sagaflow.eda.types import WILDCARD, DomainEvent

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Fans inbound domain events out to the handlers subscribed to their type.

    Handlers registered under ``"*"`` receive every event.  All handlers for
    one event run concurrently; a failing handler is logged and never stops
    the others, so :meth:`publish` does not raise on handler errors.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Register *handler* for *event_type*; duplicates are all invoked."""
        self._handlers[event_type].append(handler)

    async def publish(self, event: DomainEvent) -> int:
        """Dispatch *event* to every matching handler.

        Returns:
            The number of handlers that raised.
        """
        handlers = [*self._handlers.get(event.event_type, ()), *self._handlers.get(WILDCARD, ())]
        if not handlers:
            logger.debug("No handlers for event type %r (event_id=%s)", event.event_type, event.event_id)
            return 0

        results = await asyncio.gather(
            *(handler(event) for handler in handlers),
            return_exceptions=True,
        )

        failures = 0
        for handler, result in zip(handlers, results, strict=True):
            if isinstance(result, Exception):
                failures += 1
                logger.error(
                    "Handler %r failed for event %r (event_id=%s, aggregate_id=%s): %s",
                    getattr(handler, "__qualname__", handler),
                    event.event_type,
                    event.event_id,
                    event.aggregate_id,
                    result,
                    exc_info=result,
                )
        return failures

    def handler_count(self, event_type: str) -> int:
        """Return the number of handlers subscribed directly to *event_type*."""
        return len(self._handlers.get(event_type, ()))

    def subscribed_types(self) -> list[str]:
        """Return all event types with at least one subscription."""
        return [event_type for event_type, handlers in self._handlers.items() if handlers]
