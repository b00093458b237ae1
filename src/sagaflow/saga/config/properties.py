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
"""Saga engine configuration properties.

Bound from the ``sagaflow.saga`` section via ``Config.bind``.

YAML structure::

    sagaflow:
      saga:
        default_time_budget_ms: 30000
        matching_policy: FAN_OUT        # FAN_OUT | OLDEST_FIRST | CORRELATED
        compensation_time_budget_ms: 0  # 0 = unbounded
        default_max_retries: 0
        retain_terminal_hours: 24
        log_lifecycle_events: true
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from sagaflow.core.config import config_properties
from sagaflow.saga.types import MatchingPolicy


@config_properties(prefix="sagaflow.saga")
class SagaEngineProperties(BaseModel):
    """Configuration for the saga engine."""

    default_time_budget_ms: int = Field(default=30_000, ge=1)
    matching_policy: MatchingPolicy = MatchingPolicy.FAN_OUT
    compensation_time_budget_ms: int = Field(default=0, ge=0)
    default_max_retries: int = Field(default=0, ge=0)
    retain_terminal_hours: int = Field(default=24, ge=0)
    log_lifecycle_events: bool = True
