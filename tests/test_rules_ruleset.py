"""Tests for rule models and the caller-owned rule set."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sortora.config import RuleValidationError, SortoraConfig
from sortora.rules import Rule, RuleSet, default_rules


def _rule(name: str, priority: int = 50) -> Rule:
    return Rule.model_validate(
        {"name": name, "priority": priority, "match": {"extension": ["txt"]}, "action": {"move_to": "Out/"}}
    )


def test_rules_sorted_by_priority_with_stable_ties() -> None:
    rules = RuleSet([_rule("low", 10), _rule("first", 50), _rule("high", 90), _rule("second", 50)])

    assert [rule.name for rule in rules] == ["high", "first", "second", "low"]


def test_add_keeps_order_and_rejects_duplicates() -> None:
    rules = RuleSet([_rule("a", 10)])

    rules.add(_rule("b", 20))

    assert [rule.name for rule in rules] == ["b", "a"]
    with pytest.raises(RuleValidationError):
        rules.add(_rule("a", 99))


def test_remove_and_get() -> None:
    rules = RuleSet([_rule("a"), _rule("b")])

    assert rules.remove("a") is True
    assert rules.remove("a") is False
    assert rules.get("a") is None
    assert rules.get("b") is not None
    assert "b" in rules
    assert len(rules) == 1


def test_from_config_places_custom_rules_and_overrides_defaults() -> None:
    custom = Rule.model_validate(
        {
            "name": "Screenshots",
            "priority": 100,
            "match": {"extension": ["png"]},
            "action": {"move_to": "~/Shots/"},
        }
    )
    config = SortoraConfig(rules=[custom])

    rules = RuleSet.from_config(config)

    assert len(rules) == len(default_rules())
    assert rules.get("Screenshots") == custom
    assert len(RuleSet.from_config(config, include_defaults=False)) == 1


def test_rule_set_is_independent_per_instance() -> None:
    first = RuleSet.from_config(SortoraConfig())
    second = RuleSet.from_config(SortoraConfig())

    first.remove("Screenshots")

    assert "Screenshots" not in first
    assert "Screenshots" in second


def test_default_rules_have_unique_names() -> None:
    names = [rule.name for rule in default_rules()]

    assert len(names) == len(set(names))


@pytest.mark.parametrize(
    "action",
    [
        {},
        {"move_to": "A/", "archive_to": "B/"},
        {"delete": True, "move_to": "A/"},
        {"move_to": "{year/"},
        {"move_to": "{{year}}/"},
    ],
)
def test_invalid_actions_are_rejected(action: dict) -> None:
    with pytest.raises(ValidationError):
        Rule.model_validate({"name": "bad", "match": {"extension": ["txt"]}, "action": action})


def test_invalid_age_comparator_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Rule.model_validate(
            {"name": "bad", "match": {"age": "ancient"}, "action": {"delete": True}}
        )


def test_extensions_are_normalized() -> None:
    rule = Rule.model_validate(
        {"name": "pdf", "match": {"extension": [".PDF"]}, "action": {"move_to": "Docs/"}}
    )

    assert rule.match.extension == ["pdf"]
