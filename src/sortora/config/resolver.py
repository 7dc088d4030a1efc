"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError, RuleValidationError
from .models import SortoraConfig

_SOURCES = ("file", "environment", "cli")


def resolve_with_precedence(
    *,
    defaults: SortoraConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> SortoraConfig:
    """Merge configuration sources; later sources win (defaults < file < env < CLI).

    Raises:
        RuleValidationError: If a configured rule is malformed.
        ConfigError: If any other value fails validation.
    """
    merged = defaults.model_dump(mode="python")
    for name, source in zip(_SOURCES, (file_overrides, env_overrides, cli_overrides)):
        if source is not None:
            merged = _deep_merge(merged, _normalize_mapping(source, source_name=name))

    try:
        return SortoraConfig.model_validate(merged)
    except ValidationError as exc:
        if any(error["loc"] and error["loc"][0] == "rules" for error in exc.errors()):
            raise RuleValidationError(f"Invalid rule definition: {exc}") from exc
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: SortoraConfig) -> Dict[str, str]:
    """Flatten scalar settings into ``SORTORA__SECTION__KEY`` mappings.

    Lists (including rules) are rendered as inline YAML.
    """
    flat: Dict[str, str] = {}

    def _walk(prefix: list[str], value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _walk([*prefix, str(key)], child)
            return
        env_key = "SORTORA__" + "__".join(part.upper() for part in prefix)
        if isinstance(value, list):
            flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
        else:
            flat[env_key] = "null" if value is None else str(value)

    for key, value in config.model_dump(mode="python", exclude_none=False).items():
        _walk([key], value)
    return flat


def _normalize_mapping(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    label = source_name.capitalize()
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{label} overrides must be a mapping.")

    result: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{label} override keys must be strings.")
        path = key.split(".")
        node = result
        for segment in path[:-1]:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(f"{label} override for {key} conflicts with existing value.")
            node = child
        leaf = path[-1]
        if isinstance(value, MappingABC):
            existing = node.get(leaf)
            nested = _normalize_mapping(value, source_name=source_name)
            node[leaf] = _deep_merge(existing, nested) if isinstance(existing, dict) else nested
        else:
            node[leaf] = value
    return result


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["resolve_with_precedence", "flatten_for_env"]
