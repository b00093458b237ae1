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
"""Saga error taxonomy.

Only registration-time errors (:class:`DuplicateSagaError`,
:class:`SagaValidationError`) reach the caller.  Step and compensation
failures are recorded on the saga instance and never escape
``SagaEngine.process_event``.
"""

from __future__ import annotations

from sagaflow.kernel.exceptions import (
    ConflictException,
    InfrastructureException,
    OperationTimeoutException,
    ResourceNotFoundException,
    ValidationException,
)


class DuplicateSagaError(ConflictException):
    """A saga with the same name is already registered."""

    def __init__(self, saga_name: str) -> None:
        super().__init__(
            f"Saga '{saga_name}' is already registered",
            code="SAGA_DUPLICATE",
            context={"saga_name": saga_name},
        )
        self.saga_name = saga_name


class SagaValidationError(ValidationException):
    """A saga definition fails structural validation.

    Typical causes are an empty step list, duplicate step names, or a
    trigger event type that also activates one of the saga's own steps.
    """


class SagaNotFoundError(ResourceNotFoundException):
    """No saga definition is registered under the requested name."""

    def __init__(self, saga_name: str) -> None:
        super().__init__(
            f"Saga '{saga_name}' is not registered",
            code="SAGA_NOT_FOUND",
            context={"saga_name": saga_name},
        )
        self.saga_name = saga_name


class SagaInstanceNotFoundError(ResourceNotFoundException):
    """No saga instance exists with the requested id."""

    def __init__(self, instance_id: str) -> None:
        super().__init__(
            f"Saga instance '{instance_id}' does not exist",
            code="SAGA_INSTANCE_NOT_FOUND",
            context={"instance_id": instance_id},
        )
        self.instance_id = instance_id


class StepExecutionError(InfrastructureException):
    """A step action reported failure; the underlying error is ``__cause__``."""

    def __init__(self, step_name: str, message: str, code: str = "SAGA_STEP_FAILED") -> None:
        super().__init__(message, code=code, context={"step_name": step_name})
        self.step_name = step_name


class StepTimeoutError(StepExecutionError, OperationTimeoutException):
    """A step action exceeded its time budget."""

    def __init__(self, step_name: str, time_budget_ms: int) -> None:
        super().__init__(step_name, "step timed out", code="SAGA_STEP_TIMEOUT")
        self.context["time_budget_ms"] = time_budget_ms
        self.time_budget_ms = time_budget_ms


class CompensationError(InfrastructureException):
    """A compensate function failed; recorded in the instance's trail."""

    def __init__(self, step_name: str, message: str) -> None:
        super().__init__(message, code="SAGA_COMPENSATION_FAILED", context={"step_name": step_name})
        self.step_name = step_name
