"""Rule models, the owned rule set, and the confidence matcher."""

from .defaults import default_rules
from .matcher import RuleMatcher, glob_to_regex, match_glob, parse_age
from .models import Rule, RuleAction, RuleConditions, RuleMatch
from .ruleset import RuleSet

__all__ = [
    "Rule",
    "RuleAction",
    "RuleConditions",
    "RuleMatch",
    "RuleMatcher",
    "RuleSet",
    "default_rules",
    "glob_to_regex",
    "match_glob",
    "parse_age",
]
