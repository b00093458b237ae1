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
"""Saga instance table — the single owner of saga instance state.

This table keeps every instance in a plain Python ``dict``.  **All state is
lost on process restart.**
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import UTC, datetime, timedelta

from sagaflow.saga.core.instance import SagaInstance
from sagaflow.saga.errors import SagaInstanceNotFoundError
from sagaflow.saga.types import SagaStatus

logger = logging.getLogger(__name__)


class SagaInstanceTable:
    """In-memory collection of running and terminal saga instances.

    Instances are keyed by id and indexed by owning aggregate.  Each instance
    has its own :class:`asyncio.Lock`; every read-modify-write of an instance
    must happen while holding it.  Distinct instances need no coordination.
    """

    def __init__(self) -> None:
        self._instances: dict[str, SagaInstance] = {}
        self._by_owner: dict[str, list[str]] = defaultdict(list)
        self._locks: dict[str, asyncio.Lock] = {}

    # -- create / retrieve --------------------------------------------------

    def create(
        self,
        definition_name: str,
        owner_aggregate_id: str,
        trigger_event_id: str | None = None,
    ) -> SagaInstance:
        """Allocate a running instance positioned at its first step."""
        instance = SagaInstance(
            definition_name=definition_name,
            owner_aggregate_id=owner_aggregate_id,
            trigger_event_id=trigger_event_id,
        )
        self._instances[instance.id] = instance
        self._by_owner[owner_aggregate_id].append(instance.id)
        self._locks[instance.id] = asyncio.Lock()
        logger.debug(
            "Created saga instance %s (saga=%s, aggregate_id=%s)",
            instance.id,
            definition_name,
            owner_aggregate_id,
        )
        return instance

    def get(self, instance_id: str) -> SagaInstance:
        """Return the live instance for *instance_id*.

        Raises:
            SagaInstanceNotFoundError: If no such instance exists.
        """
        instance = self._instances.get(instance_id)
        if instance is None:
            raise SagaInstanceNotFoundError(instance_id)
        return instance

    def find(self, instance_id: str) -> SagaInstance | None:
        """Return the live instance for *instance_id*, or ``None``."""
        return self._instances.get(instance_id)

    def lock_for(self, instance_id: str) -> asyncio.Lock:
        """Return the mutual-exclusion lock guarding *instance_id*.

        Raises:
            SagaInstanceNotFoundError: If no such instance exists.
        """
        lock = self._locks.get(instance_id)
        if lock is None:
            raise SagaInstanceNotFoundError(instance_id)
        return lock

    # -- queries ------------------------------------------------------------

    def find_active(self, owner_aggregate_id: str) -> list[SagaInstance]:
        """Instances of *owner_aggregate_id* that are running or compensating."""
        return [i for i in self._owned_by(owner_aggregate_id) if i.is_active]

    def find_running(self, owner_aggregate_id: str) -> list[SagaInstance]:
        """Instances of *owner_aggregate_id* that are running, oldest first."""
        return [i for i in self._owned_by(owner_aggregate_id) if i.status is SagaStatus.RUNNING]

    def list_active(self) -> list[SagaInstance]:
        """All running or compensating instances across every owner."""
        return [i for i in self._instances.values() if i.is_active]

    def list_all(self) -> list[SagaInstance]:
        return list(self._instances.values())

    def __len__(self) -> int:
        return len(self._instances)

    # -- maintenance --------------------------------------------------------

    def purge_terminal(self, older_than: timedelta, now: datetime | None = None) -> int:
        """Remove terminal instances that finished more than *older_than* ago.

        Returns the number of instances removed.
        """
        cutoff = (now or datetime.now(UTC)) - older_than
        to_remove: list[str] = []
        for instance_id, instance in self._instances.items():
            if not instance.is_terminal:
                continue
            finished_at = instance.completed_at or instance.failed_at
            if finished_at is not None and finished_at < cutoff:
                to_remove.append(instance_id)

        for instance_id in to_remove:
            instance = self._instances.pop(instance_id)
            del self._locks[instance_id]
            owned = self._by_owner[instance.owner_aggregate_id]
            owned.remove(instance_id)
            if not owned:
                del self._by_owner[instance.owner_aggregate_id]

        if to_remove:
            logger.info("Purged %d terminal saga instance(s)", len(to_remove))
        return len(to_remove)

    def _owned_by(self, owner_aggregate_id: str) -> list[SagaInstance]:
        return [self._instances[i] for i in self._by_owner.get(owner_aggregate_id, ())]
