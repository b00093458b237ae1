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
"""SagaInstance — mutable runtime state of one saga execution."""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sagaflow.saga.core.report import CompensationRecord
from sagaflow.saga.types import ACTIVE_STATUSES, SagaStatus


@dataclass
class SagaInstance:
    """State of a single running or terminal saga.

    Instances are owned by the ``SagaInstanceTable`` and mutated only by the
    step runner and the compensation coordinator while holding the
    instance's lock.  Once ``status`` is terminal the instance is never
    mutated again.  Everything handed out to callers is a :meth:`snapshot`.
    """

    definition_name: str
    owner_aggregate_id: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    current_step_index: int = 0
    status: SagaStatus = SagaStatus.RUNNING
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    last_error: str | None = None
    trigger_event_id: str | None = None
    compensation_stack: list[str] = field(default_factory=list)
    completed_steps: list[str] = field(default_factory=list)
    compensation_trail: list[CompensationRecord] = field(default_factory=list)

    # ── status helpers ────────────────────────────────────────

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def fully_compensated(self) -> bool:
        """``True`` when every attempted compensation succeeded."""
        return all(record.succeeded for record in self.compensation_trail)

    def snapshot(self) -> SagaInstance:
        """Return a detached copy safe to hand to callers."""
        return copy.deepcopy(self)
