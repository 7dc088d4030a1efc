"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from sortora.config import (
    ConfigError,
    ConfigManager,
    RuleValidationError,
    SortoraConfig,
    flatten_for_env,
    resolve_with_precedence,
)


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager()


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".config" / "sortora" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "Sortora configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, SortoraConfig)
    assert config.organization.min_confidence == pytest.approx(0.8)


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.save({"settings": {"mode": "auto"}, "organization": {"parallel": 4}})

    env = {"SORTORA__ORGANIZATION__PARALLEL": "2", "SORTORA__LOGGING__LEVEL": "DEBUG"}
    cli = {"organization.parallel": 8}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.settings.mode == "auto"
    assert config.logging.level == "DEBUG"
    # CLI overrides take precedence over environment
    assert config.organization.parallel == 8


def test_environment_overrides_can_be_ignored(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    monkeypatch.setenv("SORTORA__ORGANIZATION__USE_TRASH", "false")

    assert manager.load().organization.use_trash is False
    assert manager.load(include_env=False).organization.use_trash is True


def test_destinations_merge_with_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.save({"destinations": {"photos": "~/Camera"}})

    config = manager.load(include_env=False)

    assert config.destinations["photos"] == "~/Camera"
    assert "trash" in config.destinations


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_malformed_rule_raises_rule_validation_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.save({"rules": [{"name": "broken", "action": {"move_to": "A/", "delete": True}}]})

    with pytest.raises(RuleValidationError):
        manager.load(include_env=False)


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(defaults=SortoraConfig(), file_overrides={"settings": {"colour": 1}})


def test_flatten_for_env_renders_defaults() -> None:
    flat = flatten_for_env(SortoraConfig())

    assert flat["SORTORA__SETTINGS__MODE"] == "suggest"
    assert flat["SORTORA__ORGANIZATION__CONFLICT_RESOLUTION"] == "append_number"
    assert flat["SORTORA__LOGGING__FILE"] == "null"


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=SortoraConfig(),
            file_overrides={"organization": {"parallel": "not-an-int"}},
        )
