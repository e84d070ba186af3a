"""Condition tree evaluation against a single resource."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping

from ..models import Resource, is_unknown
from ..rules.model import Combinator, CombinatorKind, Condition, Operator, Predicate
from .paths import resolve_detailed


@dataclass(slots=True)
class Evaluation:
    """Outcome of evaluating a condition tree.

    ``unknown`` is set when the outcome depends on values Terraform only
    knows after apply.
    """

    passed: bool
    unknown: bool = False
    diagnostics: List[str] = field(default_factory=list)


def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def values_equal(actual: Any, expected: Any) -> bool:
    """Type-aware equality between a resource value and a rule operand."""

    if actual is None or expected is None:
        return actual is None and expected is None

    if isinstance(actual, bool):
        if isinstance(expected, bool):
            return actual is expected
        if isinstance(expected, str):
            return _render(actual) == expected.strip().lower()
        return False

    if _is_number(actual):
        if _is_number(expected):
            return float(actual) == float(expected)
        if isinstance(expected, str):
            return _render(actual) == expected
        return False

    if isinstance(actual, str):
        if isinstance(expected, str):
            return actual == expected
        if isinstance(expected, (bool, int, float)):
            return actual == _render(expected)
        return False

    if isinstance(actual, (list, tuple)):
        if not isinstance(expected, (list, tuple)) or len(actual) != len(expected):
            return False
        return all(values_equal(a, b) for a, b in zip(actual, expected))

    if isinstance(actual, Mapping):
        if not isinstance(expected, Mapping) or len(actual) != len(expected):
            return False
        return all(key in expected and values_equal(item, expected[key]) for key, item in actual.items())

    return actual == expected


def _contains(value: Any, operand: Any) -> bool:
    if isinstance(value, str):
        needle = operand if isinstance(operand, str) else _render(operand)
        return needle in value
    if isinstance(value, (list, tuple)):
        return any(values_equal(item, operand) for item in value)
    if isinstance(value, Mapping):
        if isinstance(operand, Mapping):
            return _contains_entries(value, operand)
        return isinstance(operand, str) and operand in value
    return False


def _contains_entries(block: Mapping[str, Any], expected: Mapping[str, Any]) -> bool:
    """Whether every entry of ``expected`` is matched inside the one ``block``.

    A list attribute matches a scalar entry when one of its elements does;
    nested mappings are matched the same way.
    """

    for key, wanted in expected.items():
        if key not in block:
            return False
        actual = block[key]
        if is_unknown(actual) or actual is None:
            return False
        if isinstance(wanted, Mapping):
            if not (isinstance(actual, Mapping) and _contains_entries(actual, wanted)):
                return False
        elif isinstance(actual, (list, tuple)) and not isinstance(wanted, (list, tuple)):
            if not any(values_equal(item, wanted) for item in actual):
                return False
        elif not values_equal(actual, wanted):
            return False
    return True


def _greater_than(value: Any, operand: Any) -> bool:
    return _is_number(value) and value > operand


def _less_than(value: Any, operand: Any) -> bool:
    return _is_number(value) and value < operand


def _one_of(value: Any, operand: Any) -> bool:
    if any(values_equal(value, candidate) for candidate in operand):
        return True
    # A list value matches scalar candidates when any of its elements does.
    if isinstance(value, (list, tuple)) and not any(
        isinstance(candidate, (list, tuple)) for candidate in operand
    ):
        return any(_one_of(item, operand) for item in value)
    return False


_VALUE_TESTS: Dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQUALS: values_equal,
    Operator.NOT_EQUALS: lambda value, operand: not values_equal(value, operand),
    Operator.CONTAINS: _contains,
    Operator.NOT_CONTAINS: lambda value, operand: not _contains(value, operand),
    Operator.GREATER_THAN: _greater_than,
    Operator.LESS_THAN: _less_than,
    Operator.ONE_OF: _one_of,
}


class ConditionEvaluator:
    """Evaluate condition trees against resource attributes.

    Evaluation is a pure function of the resource and the condition; the
    evaluator holds configuration only and can be shared between threads.
    """

    def __init__(self, *, strict_unknowns: bool = False) -> None:
        self.strict_unknowns = strict_unknowns

    # ------------------------------------------------------------------
    def evaluate(self, resource: Resource, condition: Condition) -> bool:
        """Return whether ``resource`` satisfies ``condition``."""

        return self.explain(resource, condition).passed

    # ------------------------------------------------------------------
    def explain(self, resource: Resource, condition: Condition) -> Evaluation:
        """Evaluate ``condition`` and return the outcome with diagnostics.

        Outside strict mode a failure that depends on unknown values is
        reported as passing, with a diagnostic saying so. In strict mode an
        unresolvable or unknown predicate is forced to false and the
        combinators above it apply as usual.
        """

        diagnostics: List[str] = []
        outcome = self._evaluate(resource.attributes, condition, diagnostics)
        if outcome.unknown and not outcome.passed and not self.strict_unknowns:
            diagnostics.append("result depends on values known only after apply; treated as passing")
            return Evaluation(passed=True, unknown=True, diagnostics=diagnostics)
        return Evaluation(passed=outcome.passed, unknown=outcome.unknown, diagnostics=diagnostics)

    # ------------------------------------------------------------------
    def _evaluate(
        self, attributes: Mapping[str, Any], condition: Condition, diagnostics: List[str]
    ) -> Evaluation:
        if isinstance(condition, Predicate):
            return self._evaluate_predicate(attributes, condition, diagnostics)
        if isinstance(condition, Combinator):
            return self._evaluate_combinator(attributes, condition, diagnostics)
        raise TypeError(f"unsupported condition type: {type(condition).__name__}")

    def _evaluate_combinator(
        self, attributes: Mapping[str, Any], combinator: Combinator, diagnostics: List[str]
    ) -> Evaluation:
        if combinator.kind is CombinatorKind.NOT:
            inner = self._evaluate(attributes, combinator.children[0], diagnostics)
            return Evaluation(passed=not inner.passed, unknown=inner.unknown)

        any_unknown = False
        if combinator.kind is CombinatorKind.ALL:
            for child in combinator.children:
                outcome = self._evaluate(attributes, child, diagnostics)
                if not outcome.passed:
                    return outcome
                any_unknown = any_unknown or outcome.unknown
            return Evaluation(passed=True, unknown=any_unknown)

        for child in combinator.children:
            outcome = self._evaluate(attributes, child, diagnostics)
            if outcome.passed and not outcome.unknown:
                return Evaluation(passed=True)
            any_unknown = any_unknown or outcome.unknown
        return Evaluation(passed=False, unknown=any_unknown)

    def _evaluate_predicate(
        self, attributes: Mapping[str, Any], predicate: Predicate, diagnostics: List[str]
    ) -> Evaluation:
        resolution = resolve_detailed(attributes, predicate.path)

        if self.strict_unknowns and resolution.structural_miss and not resolution.found:
            diagnostics.append(
                f"attribute {predicate.path} could not be resolved; "
                f"{predicate.operator.value} forced to false"
            )
            return Evaluation(passed=False)

        if predicate.operator is Operator.EXISTS:
            return Evaluation(passed=resolution.found)
        if predicate.operator is Operator.NOT_EXISTS:
            return Evaluation(passed=not resolution.found)

        if not resolution.found:
            return Evaluation(passed=False)

        known = [value for value in resolution.values if not is_unknown(value)]
        if any(self._test(predicate, value) for value in known):
            return Evaluation(passed=True)

        if len(known) == len(resolution.values):
            return Evaluation(passed=False)

        if self.strict_unknowns:
            diagnostics.append(
                f"attribute {predicate.path} is unknown until apply; "
                f"{predicate.operator.value} forced to false"
            )
            return Evaluation(passed=False)
        return Evaluation(passed=True, unknown=True)

    def _test(self, predicate: Predicate, value: Any) -> bool:
        if predicate.operator is Operator.MATCHES:
            if predicate.pattern is None:
                return False
            if isinstance(value, (list, tuple, Mapping)):
                return False
            subject = value if isinstance(value, str) else _render(value)
            return predicate.pattern.search(subject) is not None
        return _VALUE_TESTS[predicate.operator](value, predicate.operand)


__all__ = ["ConditionEvaluator", "Evaluation", "values_equal"]
