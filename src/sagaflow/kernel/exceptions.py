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
"""SagaFlow exception hierarchy.

Every error raised by the library derives from SagaFlowException:

- BusinessException: bad saga definitions, unknown names, duplicate registrations
- InfrastructureException: failing or slow step actions and compensations
"""

from __future__ import annotations

# =============================================================================
# Base
# =============================================================================


class SagaFlowException(Exception):
    """Base exception for all SagaFlow errors.

    Every error carries an optional machine-readable code and a context
    mapping describing the saga, step or instance involved.

    Args:
        message: What went wrong, for humans.
        code: Machine-readable error code (e.g. "SAGA_DUPLICATE").
        context: Extra key-value details (saga name, step name, ...).
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Business
# =============================================================================


class BusinessException(SagaFlowException):
    """Caller-side errors: bad definitions, unknown names, conflicts."""


class ValidationException(BusinessException):
    """A definition or input failed validation."""


class ResourceNotFoundException(BusinessException):
    """A named saga or instance does not exist."""


class ConflictException(BusinessException):
    """Operation conflicts with current state (e.g. duplicate registration)."""


# =============================================================================
# Infrastructure
# =============================================================================


class InfrastructureException(SagaFlowException):
    """Infrastructure failures: remote calls, queues, browsers, network."""


class OperationTimeoutException(InfrastructureException):
    """An operation ran past its time budget."""
