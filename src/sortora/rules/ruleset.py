"""Ordered, caller-owned rule collections."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Iterator, Optional

from sortora.config.exceptions import RuleValidationError

from .defaults import default_rules
from .models import Rule

if TYPE_CHECKING:
    from sortora.config.models import SortoraConfig

LOGGER = logging.getLogger(__name__)


class RuleSet:
    """Rules kept in descending priority order.

    Ties keep insertion order, so user rules listed before the built-in
    defaults win when priorities are equal.
    """

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: list[Rule] = []
        for rule in rules:
            self._ensure_unique(rule.name)
            self._rules.append(rule)
        self._sort()

    @classmethod
    def from_config(cls, config: "SortoraConfig", *, include_defaults: bool = True) -> "RuleSet":
        """Build a rule set from configured rules followed by the built-in defaults.

        A configured rule whose name equals a built-in rule replaces it.

        Args:
            config: Loaded configuration.
            include_defaults: Whether to append the built-in rules.

        Returns:
            RuleSet: Sorted rule set owned by the caller.
        """

        custom = list(config.rules)
        custom_names = {rule.name for rule in custom}
        defaults = []
        if include_defaults:
            defaults = [rule for rule in default_rules() if rule.name not in custom_names]
        LOGGER.debug("Loaded %d custom and %d built-in rules", len(custom), len(defaults))
        return cls([*custom, *defaults])

    def __iter__(self) -> Iterator[Rule]:
        return iter(list(self._rules))

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, name: object) -> bool:
        return any(rule.name == name for rule in self._rules)

    def get(self, name: str) -> Optional[Rule]:
        """Return the rule named ``name`` if present."""

        for rule in self._rules:
            if rule.name == name:
                return rule
        return None

    def add(self, rule: Rule) -> None:
        """Insert a rule and restore priority order.

        Raises:
            RuleValidationError: If a rule with the same name already exists.
        """

        self._ensure_unique(rule.name)
        self._rules.append(rule)
        self._sort()

    def remove(self, name: str) -> bool:
        """Remove the rule named ``name``; return whether one was removed."""

        for index, rule in enumerate(self._rules):
            if rule.name == name:
                del self._rules[index]
                return True
        return False

    def _ensure_unique(self, name: str) -> None:
        if any(rule.name == name for rule in self._rules):
            raise RuleValidationError(f"Duplicate rule name: {name!r}")

    def _sort(self) -> None:
        self._rules.sort(key=lambda rule: rule.priority, reverse=True)


__all__ = ["RuleSet"]
