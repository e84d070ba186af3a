"""Execution engine pairing resources with rules and aggregating results."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from ..models import Resource, Result, Severity, Summary
from ..rules.model import Rule
from .evaluator import ConditionEvaluator

logger = logging.getLogger(__name__)


class EvaluationCancelled(RuntimeError):
    """Raised when a run is cancelled or exceeds its deadline."""


@dataclass(slots=True)
class _ResourceOutcome:
    results: List[Result]
    skipped: int


class ExecutionEngine:
    """Evaluate every applicable (resource, rule) pair and build a summary.

    A pair is skipped without evaluation when the rule's type filter does not
    match the resource or the rule's severity is below ``min_severity``. One
    resource against all of its applicable rules is the unit of work; work
    units may run on a bounded thread pool and cancellation is checked
    between them.
    """

    def __init__(
        self,
        evaluator: ConditionEvaluator | None = None,
        *,
        max_workers: Optional[int] = None,
    ) -> None:
        self.evaluator = evaluator or ConditionEvaluator()
        self.max_workers = max_workers

    # ------------------------------------------------------------------
    def run(
        self,
        resources: Sequence[Resource],
        ruleset: Mapping[str, Rule],
        min_severity: Severity = Severity.INFO,
        *,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Summary:
        """Evaluate ``resources`` against ``ruleset``.

        ``deadline`` is a :func:`time.monotonic` timestamp. Results are
        returned in (resource address, rule ID) order whatever the order
        work finished in.
        """

        rules = [rule for _, rule in sorted(ruleset.items())]
        min_severity = Severity.parse(min_severity)

        def checkpoint() -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise EvaluationCancelled("evaluation cancelled")
            if deadline is not None and time.monotonic() > deadline:
                raise EvaluationCancelled("evaluation deadline exceeded")

        def work(resource: Resource) -> _ResourceOutcome:
            checkpoint()
            return self._evaluate_resource(resource, rules, min_severity)

        if self.max_workers == 1 or len(resources) <= 1:
            outcomes = [work(resource) for resource in resources]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [executor.submit(work, resource) for resource in resources]
                try:
                    outcomes = [future.result() for future in futures]
                except EvaluationCancelled:
                    for future in futures:
                        future.cancel()
                    raise

        results = [result for outcome in outcomes for result in outcome.results]
        skipped = sum(outcome.skipped for outcome in outcomes)
        summary = Summary(
            results=tuple(results),
            skipped=skipped,
            resources_evaluated=len(resources),
            rules_evaluated=sum(1 for rule in rules if rule.severity >= min_severity),
        )
        logger.info(
            "Evaluated %d resources: %d results, %d failed, %d skipped",
            len(resources),
            summary.total,
            summary.failed,
            summary.skipped,
        )
        return summary

    # ------------------------------------------------------------------
    def _evaluate_resource(
        self, resource: Resource, rules: Sequence[Rule], min_severity: Severity
    ) -> _ResourceOutcome:
        results: List[Result] = []
        skipped = 0
        for rule in rules:
            if not rule.applies_to(resource) or rule.severity < min_severity:
                skipped += 1
                continue
            results.append(self.evaluate_pair(resource, rule))
        return _ResourceOutcome(results=results, skipped=skipped)

    def evaluate_pair(self, resource: Resource, rule: Rule) -> Result:
        """Evaluate one rule against one resource."""

        evaluation = self.evaluator.explain(resource, rule.condition)
        return Result(
            rule_id=rule.id,
            rule_name=rule.name,
            resource_type=resource.type,
            resource_address=resource.address,
            passed=evaluation.passed,
            severity=rule.severity,
            message=rule.render_message(resource),
            location=resource.location,
            remediation=rule.remediation,
            diagnostics=tuple(evaluation.diagnostics),
        )


__all__ = ["EvaluationCancelled", "ExecutionEngine"]
