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
"""Shared types for the sagaflow.saga module."""

from __future__ import annotations

from enum import StrEnum


class SagaStatus(StrEnum):
    """Lifecycle status of a saga instance."""

    RUNNING = "running"
    COMPLETED = "completed"
    COMPENSATING = "compensating"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SagaStatus.COMPLETED, SagaStatus.FAILED)


ACTIVE_STATUSES = frozenset({SagaStatus.RUNNING, SagaStatus.COMPENSATING})


class MatchingPolicy(StrEnum):
    """How a step-activation event is matched to running instances of its aggregate."""

    FAN_OUT = "FAN_OUT"
    OLDEST_FIRST = "OLDEST_FIRST"
    CORRELATED = "CORRELATED"


# Event header naming the saga instance a step event is meant for.
SAGA_INSTANCE_HEADER = "saga_instance_id"
