"""Configuration management for Sortora."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError, RuleValidationError
from .models import SortoraConfig
from .resolver import flatten_for_env, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.config/sortora/config.yaml")
ENV_PREFIX = "SORTORA__"
_CONFIG_HEADER = textwrap.dedent(
    """\
    # Sortora configuration file
    # Destinations are aliases usable in rule templates as {destinations.<name>}.
    # Rules listed here are evaluated together with the built-in rules.
    """
)


class ConfigManager:
    """Load and persist configuration data, applying precedence rules."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> SortoraConfig:
        """Load configuration from disk and the environment.

        A missing file is not an error; defaults apply.

        Raises:
            RuleValidationError: If a configured rule is malformed.
            ConfigError: If the file or an override cannot be processed.
        """
        env_source = None
        if include_env:
            env_source = self._extract_env(env_overrides if env_overrides is not None else self._env)

        return resolve_with_precedence(
            defaults=SortoraConfig(),
            file_overrides=self._read_file(),
            env_overrides=env_source or None,
            cli_overrides=cli_overrides,
        )

    def save(self, config: SortoraConfig | Mapping[str, Any]) -> None:
        """Persist configuration data to disk with a generated header."""
        if isinstance(config, SortoraConfig):
            data = config.model_dump(mode="json", exclude_none=True)
        else:
            data = dict(config)
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        body = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        self._config_path.write_text(
            f"{_CONFIG_HEADER}# Last updated: {stamp}\n{body}", encoding="utf-8"
        )

    def ensure_exists(self) -> Path:
        """Create a configuration file with defaults if one does not exist."""
        if not self._config_path.exists():
            self.save(SortoraConfig())
        return self._config_path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the raw mapping stored in the configuration file."""
        return self._read_file()

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}
        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw

    def _extract_env(self, env: Mapping[str, str]) -> dict[str, Any]:
        overrides: dict[str, Any] = {}
        for key, raw_value in env.items():
            if not key.startswith(ENV_PREFIX) or len(key) == len(ENV_PREFIX):
                continue
            try:
                value = yaml.safe_load(raw_value)
            except yaml.YAMLError:
                value = raw_value
            segments = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__")]
            node = overrides
            for segment in segments[:-1]:
                child = node.get(segment)
                if not isinstance(child, dict):
                    child = {}
                    node[segment] = child
                node = child
            node[segments[-1]] = value
        return overrides


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "SortoraConfig",
    "resolve_with_precedence",
    "flatten_for_env",
    "ConfigError",
    "RuleValidationError",
]
