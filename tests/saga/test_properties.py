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
"""Tests for SagaEngineProperties binding."""

from __future__ import annotations

from pathlib import Path

import pytest

from sagaflow.core.config import Config
from sagaflow.saga.config.properties import SagaEngineProperties
from sagaflow.saga.types import MatchingPolicy


class TestSagaEngineProperties:
    def test_defaults(self):
        props = SagaEngineProperties()
        assert props.default_time_budget_ms == 30_000
        assert props.matching_policy is MatchingPolicy.FAN_OUT
        assert props.compensation_time_budget_ms == 0
        assert props.default_max_retries == 0
        assert props.retain_terminal_hours == 24
        assert props.log_lifecycle_events is True

    def test_bind_from_library_defaults(self, tmp_path: Path):
        props = Config.from_file(tmp_path / "missing.yaml").bind(SagaEngineProperties)
        assert props == SagaEngineProperties()

    def test_bind_from_file(self, tmp_path: Path):
        config_file = tmp_path / "sagaflow.yaml"
        config_file.write_text(
            "sagaflow:\n"
            "  saga:\n"
            "    default_time_budget_ms: 5000\n"
            "    matching_policy: OLDEST_FIRST\n"
            "    log_lifecycle_events: false\n"
        )
        props = Config.from_file(config_file).bind(SagaEngineProperties)
        assert props.default_time_budget_ms == 5000
        assert props.matching_policy is MatchingPolicy.OLDEST_FIRST
        assert props.log_lifecycle_events is False
        assert props.retain_terminal_hours == 24

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("SAGAFLOW_SAGA_MATCHING_POLICY", "CORRELATED")
        monkeypatch.setenv("SAGAFLOW_SAGA_DEFAULT_MAX_RETRIES", "3")
        config = Config({"sagaflow": {"saga": {"matching_policy": "FAN_OUT"}}})

        props = config.bind(SagaEngineProperties)

        assert props.matching_policy is MatchingPolicy.CORRELATED
        assert props.default_max_retries == 3

    def test_invalid_values_fail_fast(self):
        with pytest.raises(ValueError, match="SagaEngineProperties"):
            Config({"sagaflow": {"saga": {"default_time_budget_ms": 0}}}).bind(SagaEngineProperties)

    def test_unknown_policy_fails_fast(self):
        with pytest.raises(ValueError):
            Config({"sagaflow": {"saga": {"matching_policy": "ROUND_ROBIN"}}}).bind(SagaEngineProperties)
