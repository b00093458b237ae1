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
"""Layered configuration for SagaFlow.

Values come from, lowest precedence first: the packaged
``sagaflow-defaults.yaml``, an application YAML/TOML file, profile overlay
files and finally ``SAGAFLOW_*`` environment variables.  Sections are bound
to ``@config_properties`` classes (pydantic models or dataclasses).
"""

from __future__ import annotations

import dataclasses
import importlib.resources
import os
import re
import tomllib
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar, cast, get_type_hints

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ValidationError

T = TypeVar("T")

_PREFIX_ATTR = "__sagaflow_config_prefix__"
_ENV_PREFIX = "SAGAFLOW_"
_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")
_MAX_PLACEHOLDER_DEPTH = 10
_MISSING = object()


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Attach a configuration *prefix* to a settings class for :meth:`Config.bind`.

    Example::

        @config_properties(prefix="sagaflow.saga")
        class SagaEngineProperties(BaseModel):
            default_time_budget_ms: int = Field(default=30_000, ge=1)
    """

    def mark(cls: type[T]) -> type[T]:
        setattr(cls, _PREFIX_ATTR, prefix)
        return cls

    return mark


def env_key_for(key: str) -> str:
    """Environment variable consulted for a dotted *key*.

    ``sagaflow.saga.matching_policy`` maps to ``SAGAFLOW_SAGA_MATCHING_POLICY``;
    keys outside the ``sagaflow`` namespace keep their full path.
    """
    path = key.removeprefix("sagaflow.")
    return _ENV_PREFIX + re.sub(r"[.\-]", "_", path).upper()


def _merge(lower: Mapping[str, Any], upper: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(lower)
    for key, value in upper.items():
        below = merged.get(key)
        if isinstance(below, Mapping) and isinstance(value, Mapping):
            merged[key] = _merge(below, value)
        else:
            merged[key] = value
    return merged


def _read_file(path: Path) -> dict[str, Any]:
    if path.suffix == ".toml":
        return tomllib.loads(path.read_text()) or {}
    return yaml.safe_load(path.read_text()) or {}


def _read_packaged_defaults() -> dict[str, Any]:
    resource = importlib.resources.files("sagaflow.resources") / "sagaflow-defaults.yaml"
    return yaml.safe_load(resource.read_text()) or {}


class Config:
    """Nested configuration tree addressed with dotted keys.

    An environment variable named by :func:`env_key_for` always wins over the
    tree.  String values may embed ``${NAME}``, ``${dotted.key}`` or
    ``${NAME:fallback}`` placeholders, resolved on read.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self._loaded_sources: list[str] = []

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        active_profiles: list[str] | None = None,
        load_defaults: bool = True,
    ) -> Config:
        """Build a config from *path* plus its profile overlays.

        A profile ``dev`` for ``sagaflow.yaml`` is read from
        ``sagaflow-dev.yaml`` in the same directory.  Missing files are
        skipped.
        """
        path = Path(path)
        layers: list[tuple[str, dict[str, Any]]] = []
        if load_defaults:
            layers.append(("sagaflow-defaults.yaml (library defaults)", _read_packaged_defaults()))
        if path.exists():
            layers.append((str(path), _read_file(path)))
            for profile in active_profiles or ():
                overlay = path.with_name(f"{path.stem}-{profile}{path.suffix}")
                if overlay.exists():
                    layers.append((f"{overlay} (profile: {profile})", _read_file(overlay)))

        data: dict[str, Any] = {}
        for _, layer in layers:
            data = _merge(data, layer)
        config = cls(data)
        config._loaded_sources = [source for source, _ in layers]
        return config

    @property
    def loaded_sources(self) -> list[str]:
        """Files merged into this config, lowest precedence first."""
        return list(self._loaded_sources)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    # ── reads ─────────────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at dotted *key*, or *default* when absent."""
        from_env = os.environ.get(env_key_for(key))
        if from_env is not None:
            return from_env

        value = self._walk(key)
        if value is _MISSING or value is None:
            return default
        if isinstance(value, str) and "${" in value:
            return self._expand(value)
        return value

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Return the mapping stored under *prefix* (empty if none)."""
        section = self._walk(prefix)
        return section if isinstance(section, dict) else {}

    def _walk(self, key: str) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def _expand(self, text: str, depth: int = 0) -> str:
        if depth > _MAX_PLACEHOLDER_DEPTH:
            raise ValueError(
                f"Max recursion depth exceeded resolving placeholders in '{text}'. Check for circular references."
            )

        def substitute(match: re.Match[str]) -> str:
            expression = match.group(1)
            name, has_fallback, fallback = expression.partition(":")

            from_env = os.environ.get(name)
            if from_env is not None:
                return from_env

            value = self._walk(name)
            if value is not _MISSING and value is not None:
                rendered = str(value)
                return self._expand(rendered, depth + 1) if "${" in rendered else rendered

            if has_fallback:
                return fallback
            raise ValueError(f"Cannot resolve placeholder '${{{expression}}}': not found in environment or config")

        return _PLACEHOLDER.sub(substitute, text)

    # ── binding ───────────────────────────────────────────────

    def bind(self, config_cls: type[T]) -> T:
        """Instantiate *config_cls* from its ``@config_properties`` section.

        Each field is read through :meth:`get`, so environment variables
        override file values field by field.

        Raises:
            ValueError: If the class is not decorated or validation fails.
        """
        prefix = getattr(config_cls, _PREFIX_ATTR, None)
        if prefix is None:
            raise ValueError(f"{config_cls.__name__} is not decorated with @config_properties")

        if issubclass(config_cls, BaseModel):
            return cast(T, self._bind_model(config_cls, prefix))
        return self._bind_dataclass(config_cls, prefix)

    def _bind_model(self, model: type[BaseModel], prefix: str) -> BaseModel:
        values = dict(self.get_section(prefix))
        for name in model.model_fields:
            value = self.get(f"{prefix}.{name}")
            if value is not None:
                values[name] = value
        try:
            return model.model_validate(values)
        except ValidationError as exc:
            raise ValueError(
                f"Configuration validation failed for '{model.__name__}' (prefix='{prefix}'):\n{exc}"
            ) from exc

    def _bind_dataclass(self, config_cls: type[T], prefix: str) -> T:
        hints = get_type_hints(config_cls)
        values: dict[str, Any] = {}
        for field in dataclasses.fields(config_cls):  # type: ignore[arg-type]
            raw = self.get(f"{prefix}.{field.name}")
            if raw is not None:
                values[field.name] = _coerce(raw, hints.get(field.name))
        return config_cls(**values)


def _coerce(value: Any, target: Any) -> Any:
    if not isinstance(value, str):
        return value
    if target is bool:
        return value.strip().lower() in ("true", "1", "yes", "on")
    if target in (int, float):
        return target(value)
    return value
