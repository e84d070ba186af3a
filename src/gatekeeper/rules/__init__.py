"""Rule model, loading and discovery."""

from .builtin import load_builtin_rules
from .discovery import DiscoveryResult, RuleDiscovery, collect_input_files, find_spec_files
from .loader import RuleLoadError, load_rules_file, load_rules_text, parse_condition, parse_rule
from .model import (
    Combinator,
    CombinatorKind,
    Condition,
    ConditionError,
    Operator,
    Predicate,
    Rule,
    all_of,
    any_of,
    negate,
)
from .ruleset import RuleSummary, Ruleset, apply_filters, build_ruleset, list_rules, merge_sources

__all__ = [
    "Combinator",
    "CombinatorKind",
    "Condition",
    "ConditionError",
    "DiscoveryResult",
    "Operator",
    "Predicate",
    "Rule",
    "RuleDiscovery",
    "RuleLoadError",
    "RuleSummary",
    "Ruleset",
    "all_of",
    "any_of",
    "apply_filters",
    "build_ruleset",
    "collect_input_files",
    "find_spec_files",
    "list_rules",
    "load_builtin_rules",
    "load_rules_file",
    "load_rules_text",
    "merge_sources",
    "negate",
    "parse_condition",
    "parse_rule",
]
