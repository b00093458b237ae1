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
"""Tests for saga definitions, structural validation and the SagaCatalog."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from sagaflow.kernel.exceptions import ConflictException, ResourceNotFoundException, ValidationException
from sagaflow.saga.errors import DuplicateSagaError, SagaNotFoundError, SagaValidationError
from sagaflow.saga.registry.saga_catalog import SagaCatalog, validate_definition
from sagaflow.saga.registry.saga_definition import SagaDefinition
from sagaflow.saga.registry.step_definition import StepDefinition


# ── Helpers ──────────────────────────────────────────────────


async def _noop(event: object) -> None:
    return None


def _make_step_def(name: str, event_type: str, **kwargs: object) -> StepDefinition:
    return StepDefinition(name=name, activating_event_type=event_type, action=_noop, **kwargs)


def _make_saga_def(
    name: str = "Checkout",
    trigger: str = "OrderPlaced",
    steps: tuple[StepDefinition, ...] | None = None,
    deadline_ms: int | None = None,
) -> SagaDefinition:
    if steps is None:
        steps = (
            _make_step_def("Reserve", "ReservationRequested", compensate=_noop),
            _make_step_def("Charge", "ReservationConfirmed", compensate=_noop),
            _make_step_def("Ship", "PaymentCaptured"),
        )
    return SagaDefinition(name=name, trigger_event_type=trigger, steps=steps, deadline_ms=deadline_ms)


# ── Definitions ──────────────────────────────────────────────


class TestSagaDefinition:
    def test_step_lookup(self):
        saga_def = _make_saga_def()
        assert saga_def.last_index == 2
        assert saga_def.step_at(1).name == "Charge"
        assert saga_def.step_named("Ship") is saga_def.steps[2]
        assert saga_def.step_named("Missing") is None

    def test_activating_event_types_are_distinct_and_ordered(self):
        saga_def = _make_saga_def(
            steps=(
                _make_step_def("A", "Tick"),
                _make_step_def("B", "Tock"),
                _make_step_def("C", "Tick"),
            )
        )
        assert saga_def.activating_event_types == ["Tick", "Tock"]

    def test_step_compensable(self):
        assert _make_step_def("Reserve", "E", compensate=_noop).compensable
        assert not _make_step_def("Ship", "E").compensable


# ── Validation ───────────────────────────────────────────────


class TestValidateDefinition:
    def test_valid_definition_passes(self):
        validate_definition(_make_saga_def())

    def test_rejects_empty_steps(self):
        with pytest.raises(SagaValidationError, match="at least one step"):
            validate_definition(_make_saga_def(steps=()))

    def test_rejects_duplicate_step_names(self):
        steps = (_make_step_def("Reserve", "A"), _make_step_def("Reserve", "B"))
        with pytest.raises(SagaValidationError, match="declared twice"):
            validate_definition(_make_saga_def(steps=steps))

    def test_rejects_trigger_that_activates_own_step(self):
        steps = (_make_step_def("Reserve", "OrderPlaced"),)
        with pytest.raises(SagaValidationError, match="own trigger event"):
            validate_definition(_make_saga_def(steps=steps))

    def test_rejects_non_positive_time_budget(self):
        steps = (_make_step_def("Reserve", "A", time_budget_ms=0),)
        with pytest.raises(SagaValidationError, match="time budget"):
            validate_definition(_make_saga_def(steps=steps))

    def test_rejects_negative_retries(self):
        steps = (_make_step_def("Reserve", "A", max_retries=-1),)
        with pytest.raises(SagaValidationError, match="retry"):
            validate_definition(_make_saga_def(steps=steps))

    def test_rejects_non_positive_deadline(self):
        with pytest.raises(SagaValidationError, match="deadline"):
            validate_definition(_make_saga_def(deadline_ms=0))

    def test_rejects_empty_name(self):
        with pytest.raises(SagaValidationError):
            validate_definition(_make_saga_def(name=""))

    def test_validation_error_is_validation_exception(self):
        assert issubclass(SagaValidationError, ValidationException)


# ── Catalog ──────────────────────────────────────────────────


class TestSagaCatalog:
    def test_register_and_lookup(self):
        catalog = SagaCatalog()
        saga_def = _make_saga_def()
        assert catalog.register(saga_def) is saga_def
        assert catalog.lookup("Checkout") is saga_def
        assert catalog.get("Checkout") is saga_def
        assert "Checkout" in catalog
        assert len(catalog) == 1

    def test_duplicate_registration_raises(self):
        catalog = SagaCatalog()
        catalog.register(_make_saga_def())
        with pytest.raises(DuplicateSagaError) as exc_info:
            catalog.register(_make_saga_def(trigger="OtherTrigger"))
        assert exc_info.value.saga_name == "Checkout"
        assert exc_info.value.code == "SAGA_DUPLICATE"
        assert isinstance(exc_info.value, ConflictException)
        assert catalog.lookup("Checkout").trigger_event_type == "OrderPlaced"

    def test_invalid_definition_is_not_stored(self):
        catalog = SagaCatalog()
        with pytest.raises(SagaValidationError):
            catalog.register(_make_saga_def(steps=()))
        assert "Checkout" not in catalog

    def test_lookup_unknown_raises(self):
        with pytest.raises(SagaNotFoundError) as exc_info:
            SagaCatalog().lookup("Missing")
        assert isinstance(exc_info.value, ResourceNotFoundException)
        assert SagaCatalog().get("Missing") is None

    def test_listeners_notified_after_store(self):
        catalog = SagaCatalog()
        seen: list[bool] = []
        listener = MagicMock(side_effect=lambda d: seen.append(d.name in catalog))
        catalog.add_listener(listener)

        saga_def = catalog.register(_make_saga_def())

        listener.assert_called_once_with(saga_def)
        assert seen == [True]

    def test_find_by_trigger_and_get_all(self):
        catalog = SagaCatalog()
        first = catalog.register(_make_saga_def("A", trigger="OrderPlaced"))
        second = catalog.register(_make_saga_def("B", trigger="OrderPlaced"))
        third = catalog.register(_make_saga_def("C", trigger="Other"))

        assert catalog.find_by_trigger("OrderPlaced") == [first, second]
        assert catalog.get_all() == [first, second, third]
