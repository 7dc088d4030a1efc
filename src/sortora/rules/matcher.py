"""Confidence-scored rule matching."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Callable, Iterable, Optional

from sortora.ingestion.models import FileDescriptor

from .models import AGE_PATTERN, Rule, RuleConditions, RuleMatch

LOGGER = logging.getLogger(__name__)

_UNIT_DAYS = {"day": 1, "week": 7, "month": 30, "year": 365}
_SECONDS_PER_DAY = 86_400


@lru_cache(maxsize=512)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a ``*``/``?`` glob into an anchored, case-insensitive regex."""

    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def match_glob(filename: str, pattern: str) -> bool:
    """Return True when ``filename`` matches ``pattern`` in full."""

    return glob_to_regex(pattern).fullmatch(filename) is not None


def parse_age(spec: str) -> tuple[str, int]:
    """Parse an age comparator into its operator and a day threshold.

    Args:
        spec: Comparator such as ``"> 30 days"`` or ``"<2 weeks"``.

    Returns:
        tuple[str, int]: Operator (``"<"`` or ``">"``) and the threshold in days.

    Raises:
        ValueError: If the comparator cannot be parsed.
    """

    match = AGE_PATTERN.match(spec)
    if not match:
        raise ValueError(f"Invalid age comparator: {spec!r}")
    operator, value, unit = match.groups()
    return operator, int(value) * _UNIT_DAYS[unit.lower()]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RuleMatcher:
    """Evaluate files against prioritized rules.

    Extension, category, and location are hard predicates: failing any of
    them rejects the rule. The remaining predicates only lower confidence,
    which is the fraction of declared predicates the file satisfies.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock

    def match(self, file: FileDescriptor, rules: Iterable[Rule]) -> Optional[RuleMatch]:
        """Return the highest-priority matching rule, or None.

        Args:
            file: File to evaluate.
            rules: Rules in evaluation order (a ``RuleSet`` is already sorted).

        Returns:
            Optional[RuleMatch]: First match by priority.
        """

        for rule in rules:
            confidence = self.confidence(file, rule)
            if confidence > 0:
                LOGGER.debug("%s matched rule %r (%.2f)", file.path, rule.name, confidence)
                return RuleMatch(rule=rule, confidence=confidence)
        return None

    def match_all(self, file: FileDescriptor, rules: Iterable[Rule]) -> list[RuleMatch]:
        """Return every matching rule ordered by confidence, then priority."""

        matches = []
        for rule in rules:
            confidence = self.confidence(file, rule)
            if confidence > 0:
                matches.append(RuleMatch(rule=rule, confidence=confidence))
        matches.sort(key=lambda item: item.confidence, reverse=True)
        return matches

    def confidence(self, file: FileDescriptor, rule: Rule) -> float:
        """Score ``file`` against ``rule``; 0.0 means no match."""

        if not rule.enabled:
            return 0.0

        conditions = rule.match
        total = conditions.declared_count()
        if total == 0:
            return 0.0
        if not self._hard_predicates_pass(file, conditions):
            return 0.0

        satisfied = sum(1 for name in ("extension", "type", "location") if _declared(conditions, name))
        satisfied += self._soft_score(file, conditions)
        if satisfied == 0:
            return 0.0
        return satisfied / total

    def _hard_predicates_pass(self, file: FileDescriptor, conditions: RuleConditions) -> bool:
        if conditions.extension and file.extension.lower().lstrip(".") not in conditions.extension:
            return False
        if conditions.type is not None and file.category != conditions.type:
            return False
        if conditions.location is not None:
            target = Path(conditions.location).expanduser()
            parent = Path(file.path).expanduser().parent
            if parent != target and target not in parent.parents:
                return False
        return True

    def _soft_score(self, file: FileDescriptor, conditions: RuleConditions) -> int:
        score = 0
        if conditions.filename:
            if any(match_glob(file.filename, pattern) for pattern in conditions.filename):
                score += 1
        if conditions.has_exif is not None:
            if (file.date_taken is not None) == conditions.has_exif:
                score += 1
        if conditions.content_contains:
            if file.text_content:
                lowered = file.text_content.lower()
                if any(term.lower() in lowered for term in conditions.content_contains):
                    score += 1
        if conditions.age is not None and self._match_age(file.modified, conditions.age):
            score += 1
        if conditions.accessed is not None and self._match_age(file.accessed, conditions.accessed):
            score += 1
        return score

    def _match_age(self, timestamp: datetime, spec: str) -> bool:
        operator, threshold = parse_age(spec)
        age_days = (_as_utc(self._clock()) - _as_utc(timestamp)).total_seconds() / _SECONDS_PER_DAY
        if operator == ">":
            return age_days > threshold
        return age_days < threshold


def _declared(conditions: RuleConditions, name: str) -> bool:
    value = getattr(conditions, name)
    if isinstance(value, list):
        return bool(value)
    return value is not None


__all__ = ["RuleMatcher", "glob_to_regex", "match_glob", "parse_age"]
