"""Build actionable suggestions from rule matches."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from sortora.ingestion.models import FileDescriptor
from sortora.rules.matcher import RuleMatcher
from sortora.rules.models import RuleMatch
from sortora.rules.ruleset import RuleSet

from .models import Suggestion, SuggestionAction, SuggestionFilter
from .resolver import DestinationResolver, ResolutionMode

LOGGER = logging.getLogger(__name__)


def _same_path(left: Path, right: Path) -> bool:
    return os.path.abspath(os.path.expanduser(left)) == os.path.abspath(os.path.expanduser(right))


class SuggestionBuilder:
    """Combine the matcher and resolver into one suggestion per file.

    Args:
        matcher: Confidence matcher.
        resolver: Destination resolver.
        rules: Caller-owned rule set evaluated for every file.
    """

    def __init__(self, matcher: RuleMatcher, resolver: DestinationResolver, rules: RuleSet) -> None:
        self._matcher = matcher
        self._resolver = resolver
        self._rules = rules

    @property
    def rules(self) -> RuleSet:
        return self._rules

    def generate_suggestion(
        self,
        file: FileDescriptor,
        *,
        mode: ResolutionMode = ResolutionMode.GLOBAL,
        base_dir: Optional[Path] = None,
    ) -> Optional[Suggestion]:
        """Return the suggestion of the highest-priority matching rule, if any."""

        match = self._matcher.match(file, self._rules)
        if match is None:
            return None
        return self._to_suggestion(file, self.resolve_match(file, match, mode=mode, base_dir=base_dir))

    def generate_suggestions(
        self,
        files: Iterable[FileDescriptor],
        *,
        mode: ResolutionMode = ResolutionMode.GLOBAL,
        base_dir: Optional[Path] = None,
    ) -> List[Suggestion]:
        """Return suggestions for ``files`` ordered by confidence (stable)."""

        suggestions = []
        for file in files:
            suggestion = self.generate_suggestion(file, mode=mode, base_dir=base_dir)
            if suggestion is not None:
                suggestions.append(suggestion)
        suggestions.sort(key=lambda item: item.confidence, reverse=True)
        LOGGER.debug("Generated %d suggestion(s)", len(suggestions))
        return suggestions

    def resolve_match(
        self,
        file: FileDescriptor,
        match: RuleMatch,
        *,
        mode: ResolutionMode = ResolutionMode.GLOBAL,
        base_dir: Optional[Path] = None,
    ) -> RuleMatch:
        """Return ``match`` with its destination resolved."""

        destination = self._resolver.resolve(file, match.rule, mode=mode, base_dir=base_dir)
        return match.model_copy(update={"destination": destination})

    def get_alternatives(
        self,
        file: FileDescriptor,
        count: int = 3,
        *,
        mode: ResolutionMode = ResolutionMode.GLOBAL,
        base_dir: Optional[Path] = None,
    ) -> List[Suggestion]:
        """Return suggestions from the ``count`` most confident matching rules."""

        alternatives = []
        for match in self._matcher.match_all(file, self._rules)[:count]:
            resolved = self.resolve_match(file, match, mode=mode, base_dir=base_dir)
            suggestion = self._to_suggestion(file, resolved)
            if suggestion is not None:
                alternatives.append(suggestion)
        return alternatives

    def suggest_destinations(
        self,
        file: FileDescriptor,
        *,
        mode: ResolutionMode = ResolutionMode.GLOBAL,
        base_dir: Optional[Path] = None,
    ) -> List[Path]:
        """Return every distinct destination proposed by a matching rule."""

        destinations: List[Path] = []
        for match in self._matcher.match_all(file, self._rules):
            destination = self._resolver.resolve(file, match.rule, mode=mode, base_dir=base_dir)
            if destination is not None and destination not in destinations:
                destinations.append(destination)
        return destinations

    def _to_suggestion(self, file: FileDescriptor, match: RuleMatch) -> Optional[Suggestion]:
        action_spec = match.rule.action
        requires_confirmation = bool(action_spec.confirm)
        if action_spec.delete:
            action = SuggestionAction.DELETE
            requires_confirmation = action_spec.confirm if action_spec.confirm is not None else True
        elif action_spec.archive_to:
            action = SuggestionAction.ARCHIVE
        elif action_spec.suggest_to:
            action = SuggestionAction.MOVE
            requires_confirmation = True
        else:
            action = SuggestionAction.MOVE

        destination = match.destination
        if action is not SuggestionAction.DELETE:
            if destination is None:
                return None
            if _same_path(destination, file.path):
                LOGGER.debug("Skipping %s: already at its destination", file.path)
                return None
        else:
            destination = None

        return Suggestion(
            file=file,
            destination=destination,
            rule_name=match.rule.name,
            confidence=match.confidence,
            action=action,
            requires_confirmation=requires_confirmation,
        )


def filter_suggestions(
    suggestions: Iterable[Suggestion], criteria: Optional[SuggestionFilter] = None
) -> List[Suggestion]:
    """Return the suggestions that satisfy ``criteria``."""

    criteria = criteria or SuggestionFilter()
    selected = []
    for suggestion in suggestions:
        if suggestion.confidence < criteria.min_confidence:
            continue
        if criteria.actions is not None and suggestion.action not in criteria.actions:
            continue
        if criteria.categories is not None and suggestion.file.category not in criteria.categories:
            continue
        if criteria.exclude_confirmation and suggestion.requires_confirmation:
            continue
        selected.append(suggestion)
    return selected


def group_by_destination(suggestions: Iterable[Suggestion]) -> Dict[Optional[Path], List[Suggestion]]:
    """Group suggestions by destination directory; deletes group under None."""

    groups: Dict[Optional[Path], List[Suggestion]] = {}
    for suggestion in suggestions:
        key = suggestion.destination.parent if suggestion.destination is not None else None
        groups.setdefault(key, []).append(suggestion)
    return groups


def group_by_action(suggestions: Iterable[Suggestion]) -> Dict[SuggestionAction, List[Suggestion]]:
    """Group suggestions by proposed action."""

    groups: Dict[SuggestionAction, List[Suggestion]] = {}
    for suggestion in suggestions:
        groups.setdefault(suggestion.action, []).append(suggestion)
    return groups


def explain_suggestion(suggestion: Suggestion) -> List[str]:
    """Return human-readable reasons behind ``suggestion``."""

    reasons = [
        f'Rule: "{suggestion.rule_name}"',
        f"Confidence: {round(suggestion.confidence * 100)}%",
        f"Action: {suggestion.action.value}",
    ]
    if suggestion.destination is not None:
        reasons.append(f"Destination: {suggestion.destination}")

    file = suggestion.file
    if file.category:
        reasons.append(f"File type: {file.category}")
    if file.extension:
        reasons.append(f"Extension: .{file.extension}")
    if file.date_taken is not None:
        reasons.append(f"Date taken: {file.date_taken:%Y-%m-%d}")
    artist = (file.metadata or {}).get("artist")
    if isinstance(artist, str):
        reasons.append(f"Artist: {artist}")
    return reasons


__all__ = [
    "SuggestionBuilder",
    "explain_suggestion",
    "filter_suggestions",
    "group_by_action",
    "group_by_destination",
]
