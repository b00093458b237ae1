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
"""Compensation trail types — per-step records and the unwind report."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CompensationRecord:
    """Outcome of one compensate invocation.

    Fields
    ------
    step_name:
        Step whose undo action was invoked.
    succeeded:
        Whether the undo action returned without error.
    error:
        Error message when the undo action failed, otherwise ``None``.
    """

    step_name: str
    succeeded: bool
    error: str | None = None


@dataclass(frozen=True)
class CompensationReport:
    """Immutable summary of one compensation walk.

    Returned by the compensation coordinator so callers (and tests) can
    inspect which steps were undone and which need operator attention.
    """

    instance_id: str
    saga_name: str
    failure_reason: str
    records: tuple[CompensationRecord, ...] = field(default_factory=tuple)

    @property
    def compensated_steps(self) -> list[str]:
        return [r.step_name for r in self.records if r.succeeded]

    @property
    def failed_steps(self) -> list[str]:
        return [r.step_name for r in self.records if not r.succeeded]

    @property
    def fully_compensated(self) -> bool:
        return not self.failed_steps
