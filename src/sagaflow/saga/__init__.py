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
"""SagaFlow Saga — event-driven, choreographed long-running transactions."""

from __future__ import annotations

from sagaflow.saga.config.properties import SagaEngineProperties
from sagaflow.saga.core.events import CompensationEvent
from sagaflow.saga.core.instance import SagaInstance
from sagaflow.saga.core.report import CompensationRecord, CompensationReport
from sagaflow.saga.engine.saga_engine import SagaEngine
from sagaflow.saga.errors import (
    CompensationError,
    DuplicateSagaError,
    SagaInstanceNotFoundError,
    SagaNotFoundError,
    SagaValidationError,
    StepExecutionError,
    StepTimeoutError,
)
from sagaflow.saga.observability.events import (
    CompositeEventsAdapter,
    LoggerEventsAdapter,
    LoggingCompensationErrorHandler,
)
from sagaflow.saga.ports.outbound import CompensationErrorHandlerPort, SagaEventsPort
from sagaflow.saga.registry.saga_builder import SagaBuilder
from sagaflow.saga.registry.saga_catalog import SagaCatalog
from sagaflow.saga.registry.saga_definition import SagaDefinition
from sagaflow.saga.registry.step_definition import StepDefinition
from sagaflow.saga.types import MatchingPolicy, SagaStatus

__all__ = [
    "CompensationError",
    "CompensationErrorHandlerPort",
    "CompensationEvent",
    "CompensationRecord",
    "CompensationReport",
    "CompositeEventsAdapter",
    "DuplicateSagaError",
    "LoggerEventsAdapter",
    "LoggingCompensationErrorHandler",
    "MatchingPolicy",
    "SagaBuilder",
    "SagaCatalog",
    "SagaDefinition",
    "SagaEngine",
    "SagaEngineProperties",
    "SagaEventsPort",
    "SagaInstance",
    "SagaInstanceNotFoundError",
    "SagaNotFoundError",
    "SagaStatus",
    "SagaValidationError",
    "StepDefinition",
    "StepExecutionError",
    "StepTimeoutError",
]
