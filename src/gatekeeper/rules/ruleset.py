"""Ruleset container and the precedence merge applied across rule sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

from ..models import Severity
from .model import Rule


class Ruleset(Mapping[str, Rule]):
    """Read-only mapping of rule ID to :class:`Rule`.

    Iteration follows first-seen order of the IDs across merged sources.
    """

    def __init__(self, rules: Iterable[Rule] | Mapping[str, Rule] = ()) -> None:
        if isinstance(rules, Mapping):
            rules = rules.values()
        self._rules: Dict[str, Rule] = {}
        for rule in rules:
            if rule.id in self._rules:
                raise ValueError(f"duplicate rule ID: {rule.id}")
            self._rules[rule.id] = rule

    def __getitem__(self, rule_id: str) -> Rule:
        return self._rules[rule_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"Ruleset({list(self._rules)!r})"

    @property
    def rules(self) -> List[Rule]:
        return list(self._rules.values())

    def filter(
        self,
        *,
        include: Sequence[str] | None = None,
        exclude: Sequence[str] | None = None,
    ) -> "Ruleset":
        """Apply include/exclude lists, exclude taking precedence."""

        return Ruleset(apply_filters(self._rules, include=include, exclude=exclude))


def merge_sources(sources: Sequence[Mapping[str, Rule]]) -> Dict[str, Rule]:
    """Merge rule sources given in ascending precedence.

    A rule from a later source replaces the earlier rule with the same ID
    entirely; the ID keeps the position where it was first seen.
    """

    merged: Dict[str, Rule] = {}
    for source in sources:
        for rule_id, rule in source.items():
            merged[rule_id] = rule
    return merged


def apply_filters(
    rules: Mapping[str, Rule],
    *,
    include: Sequence[str] | None = None,
    exclude: Sequence[str] | None = None,
) -> Dict[str, Rule]:
    include_set = {rule_id.strip() for rule_id in include or () if rule_id.strip()}
    exclude_set = {rule_id.strip() for rule_id in exclude or () if rule_id.strip()}

    filtered: Dict[str, Rule] = {}
    for rule_id, rule in rules.items():
        if include_set and rule_id not in include_set:
            continue
        if rule_id in exclude_set:
            continue
        filtered[rule_id] = rule
    return filtered


def build_ruleset(
    sources: Sequence[Mapping[str, Rule]],
    *,
    include: Sequence[str] | None = None,
    exclude: Sequence[str] | None = None,
) -> Ruleset:
    return Ruleset(apply_filters(merge_sources(sources), include=include, exclude=exclude))


@dataclass(frozen=True, slots=True)
class RuleSummary:
    """Catalog entry describing a rule for listing."""

    id: str
    name: str
    severity: Severity
    description: str = ""
    tags: tuple[str, ...] = ()
    resource_types: tuple[str, ...] = ()
    source: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "severity": self.severity.value,
            "description": self.description,
            "tags": list(self.tags),
            "resource_types": list(self.resource_types),
            "source": self.source,
        }


def list_rules(ruleset: Mapping[str, Rule]) -> List[RuleSummary]:
    """Return the rule catalog ordered by rule ID."""

    return [
        RuleSummary(
            id=rule.id,
            name=rule.name,
            severity=rule.severity,
            description=rule.description,
            tags=tuple(sorted(rule.tags)),
            resource_types=tuple(sorted(rule.resource_types)),
            source=rule.source,
        )
        for rule in sorted(ruleset.values(), key=lambda rule: rule.id)
    ]


__all__ = [
    "RuleSummary",
    "Ruleset",
    "apply_filters",
    "build_ruleset",
    "list_rules",
    "merge_sources",
]
