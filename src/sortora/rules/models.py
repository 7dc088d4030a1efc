"""Rule data models shared by the matcher, resolver, and configuration layer."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

AGE_PATTERN = re.compile(r"^\s*([<>])\s*(\d+)\s*(day|week|month|year)s?\s*$", re.IGNORECASE)


class RuleBaseModel(BaseModel):
    """Shared configuration for immutable rule models."""

    model_config = ConfigDict(extra="forbid", frozen=True)


def _check_template(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    depth = 0
    for char in value:
        if char == "{":
            depth += 1
            if depth > 1:
                raise ValueError(f"Nested braces are not allowed in template {value!r}")
        elif char == "}":
            depth -= 1
            if depth < 0:
                raise ValueError(f"Unbalanced braces in template {value!r}")
    if depth != 0:
        raise ValueError(f"Unbalanced braces in template {value!r}")
    return value


class RuleConditions(RuleBaseModel):
    """Predicates a file must satisfy for a rule to apply.

    Attributes:
        extension: Allowed extensions (hard predicate).
        filename: Glob patterns matched against the filename (soft).
        type: Required file category (hard predicate).
        has_exif: Expected presence of EXIF capture data (soft).
        content_contains: Substrings searched in extracted text (soft).
        location: Directory prefix the file must live under (hard predicate).
        age: Modification-age comparator such as ``> 30 days`` (soft).
        accessed: Access-age comparator (soft).
    """

    extension: Optional[List[str]] = None
    filename: Optional[List[str]] = None
    type: Optional[str] = None
    has_exif: Optional[bool] = None
    content_contains: Optional[List[str]] = None
    location: Optional[str] = None
    age: Optional[str] = None
    accessed: Optional[str] = None

    @field_validator("extension")
    @classmethod
    def _normalize_extensions(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return value
        return [item.lower().lstrip(".") for item in value]

    @field_validator("age", "accessed")
    @classmethod
    def _validate_age(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not AGE_PATTERN.match(value):
            raise ValueError(
                f"Invalid age comparator {value!r}; expected e.g. '> 30 days' or '< 2 weeks'"
            )
        return value

    def declared_count(self) -> int:
        """Return how many predicates this rule declares."""

        count = 0
        for value in (self.extension, self.filename, self.content_contains):
            if value:
                count += 1
        for value in (self.type, self.has_exif, self.location, self.age, self.accessed):
            if value is not None:
                count += 1
        return count


class RuleAction(RuleBaseModel):
    """Action taken when a rule matches.

    Attributes:
        move_to: Destination template for a firm move.
        suggest_to: Destination template for a move that always needs confirmation.
        archive_to: Destination template for archiving.
        delete: Whether the file should be deleted instead of relocated.
        confirm: Explicit confirmation requirement; ``None`` uses the action default.
    """

    move_to: Optional[str] = None
    suggest_to: Optional[str] = None
    archive_to: Optional[str] = None
    delete: bool = False
    confirm: Optional[bool] = None

    @field_validator("move_to", "suggest_to", "archive_to")
    @classmethod
    def _validate_templates(cls, value: Optional[str]) -> Optional[str]:
        return _check_template(value)

    @model_validator(mode="after")
    def _exactly_one_action(self) -> "RuleAction":
        templates = [value for value in (self.move_to, self.suggest_to, self.archive_to) if value]
        if self.delete and templates:
            raise ValueError("A delete action cannot also declare a destination template.")
        if not self.delete and len(templates) != 1:
            raise ValueError(
                "An action must declare exactly one of move_to, suggest_to, archive_to, or delete."
            )
        return self

    @property
    def template(self) -> Optional[str]:
        """Return the destination template declared by the action, if any."""

        return self.move_to or self.suggest_to or self.archive_to


class Rule(RuleBaseModel):
    """Named, prioritized predicate and action pair.

    Attributes:
        name: Stable identifier for the rule.
        priority: Evaluation priority; higher values are evaluated first.
        match: Predicates that decide whether the rule applies.
        action: What to do with a matching file.
        local_destination: Optional template used for in-place organization.
        enabled: Disabled rules are skipped by the matcher.
    """

    name: str = Field(min_length=1)
    priority: int = 50
    match: RuleConditions = Field(default_factory=RuleConditions)
    action: RuleAction
    local_destination: Optional[str] = None
    enabled: bool = True

    @field_validator("local_destination")
    @classmethod
    def _validate_local_template(cls, value: Optional[str]) -> Optional[str]:
        return _check_template(value)


class RuleMatch(BaseModel):
    """Result of evaluating a single rule against a file."""

    rule: Rule
    confidence: float = Field(ge=0.0, le=1.0)
    destination: Optional[Path] = None


__all__ = [
    "AGE_PATTERN",
    "RuleConditions",
    "RuleAction",
    "Rule",
    "RuleMatch",
]
