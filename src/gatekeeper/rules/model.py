"""Rule and condition value objects."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Optional, Union

from ..engine.paths import AttributePath, parse_path
from ..models import Resource, Severity, freeze


class ConditionError(ValueError):
    """Raised when a condition tree has an invalid shape."""


class Operator(str, Enum):
    """Predicate operators."""

    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    MATCHES = "matches"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    ONE_OF = "one_of"

    @property
    def tests_presence(self) -> bool:
        return self in (Operator.EXISTS, Operator.NOT_EXISTS)


class CombinatorKind(str, Enum):
    """Logical combinators."""

    ALL = "all"
    ANY = "any"
    NOT = "not"


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True, slots=True)
class Predicate:
    """Leaf test of a single attribute path."""

    path: AttributePath
    operator: Operator
    operand: Any = None
    pattern: Optional[re.Pattern[str]] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.path, str):
            object.__setattr__(self, "path", parse_path(self.path))
        try:
            operator = Operator(self.operator)
        except ValueError as exc:
            raise ConditionError(f"unknown operator: {self.operator}") from exc
        object.__setattr__(self, "operator", operator)

        if operator.tests_presence:
            object.__setattr__(self, "operand", None)
            return

        operand = self.operand
        if operand is None:
            raise ConditionError(f"value is required for operator {operator.value}")

        if operator is Operator.MATCHES:
            if not isinstance(operand, str):
                raise ConditionError("value for operator matches must be a regular expression string")
            try:
                object.__setattr__(self, "pattern", re.compile(operand))
            except re.error as exc:
                raise ConditionError(f"invalid regular expression {operand!r}: {exc}") from exc
        elif operator in (Operator.GREATER_THAN, Operator.LESS_THAN):
            if not _is_number(operand):
                raise ConditionError(f"value for operator {operator.value} must be numeric")
        elif operator is Operator.ONE_OF and not isinstance(operand, (list, tuple)):
            operand = [operand]

        object.__setattr__(self, "operand", freeze(operand))


@dataclass(frozen=True, slots=True)
class Combinator:
    """Logical combination of child conditions."""

    kind: CombinatorKind
    children: tuple["Condition", ...]

    def __post_init__(self) -> None:
        try:
            kind = CombinatorKind(self.kind)
        except ValueError as exc:
            raise ConditionError(f"unknown combinator: {self.kind}") from exc
        children = tuple(self.children)
        if kind is CombinatorKind.NOT and len(children) != 1:
            raise ConditionError(f"not requires exactly one condition, got {len(children)}")
        if not children:
            raise ConditionError(f"{kind.value} requires at least one condition")
        for child in children:
            if not isinstance(child, (Predicate, Combinator)):
                raise ConditionError(f"invalid child condition: {child!r}")
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "children", children)


Condition = Union[Predicate, Combinator]


def all_of(*children: Condition) -> Combinator:
    return Combinator(CombinatorKind.ALL, children)


def any_of(*children: Condition) -> Combinator:
    return Combinator(CombinatorKind.ANY, children)


def negate(child: Condition) -> Combinator:
    return Combinator(CombinatorKind.NOT, (child,))


_TEMPLATE_RE = re.compile(r"\{\{\s*\.?([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


@dataclass(frozen=True, slots=True)
class Rule:
    """A policy check: a resource type filter plus a condition tree."""

    id: str
    name: str
    severity: Severity
    condition: Condition
    message: str = ""
    description: str = ""
    resource_types: FrozenSet[str] = frozenset()
    remediation: str = ""
    tags: FrozenSet[str] = frozenset()
    source: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "severity", Severity.parse(self.severity))
        object.__setattr__(self, "resource_types", frozenset(self.resource_types))
        object.__setattr__(self, "tags", frozenset(self.tags))

    def applies_to(self, resource: Resource) -> bool:
        return not self.resource_types or resource.type in self.resource_types

    def render_message(self, resource: Resource) -> str:
        """Substitute ``{{.field}}`` placeholders with resource details."""

        location = resource.location
        fields = {
            "resource_name": resource.name,
            "resource_type": resource.type,
            "resource_address": resource.address,
            "file": location.file if location else "",
            "line": "" if location is None or location.line is None else str(location.line),
            "rule_id": self.id,
            "rule_name": self.name,
        }
        template = self.message or self.name

        def substitute(match: re.Match[str]) -> str:
            key = match.group(1)
            return fields[key] if key in fields else match.group(0)

        return _TEMPLATE_RE.sub(substitute, template)


__all__ = [
    "Combinator",
    "CombinatorKind",
    "Condition",
    "ConditionError",
    "Operator",
    "Predicate",
    "Rule",
    "all_of",
    "any_of",
    "negate",
]
