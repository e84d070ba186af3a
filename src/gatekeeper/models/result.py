"""Severity levels, evaluation results and run summaries."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from .resource import SourceLocation


class Severity(str, Enum):
    """Severity levels supported by the gatekeeper, lowest first."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def parse(cls, level: object) -> "Severity":
        """Map a severity from any supported vocabulary onto the three levels.

        Raises :class:`ValueError` for values outside the alias table.
        """

        if isinstance(level, Severity):
            return level
        if isinstance(level, str):
            normalized = level.strip().lower()
            if normalized in SEVERITY_ALIASES:
                return SEVERITY_ALIASES[normalized]
        raise ValueError(
            f"invalid severity {level!r} (must be one of: error, warning, info)"
        )


SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
}

SEVERITY_ALIASES = {
    "informational": Severity.INFO,
    "information": Severity.INFO,
    "info": Severity.INFO,
    "notice": Severity.INFO,
    "low": Severity.INFO,
    "warning": Severity.WARNING,
    "warn": Severity.WARNING,
    "medium": Severity.WARNING,
    "moderate": Severity.WARNING,
    "advisory": Severity.WARNING,
    "error": Severity.ERROR,
    "high": Severity.ERROR,
    "major": Severity.ERROR,
    "critical": Severity.ERROR,
    "severe": Severity.ERROR,
    "fatal": Severity.ERROR,
}


@dataclass(frozen=True, slots=True)
class Result:
    """Pass/fail outcome of evaluating one rule against one resource."""

    rule_id: str
    resource_type: str
    resource_address: str
    passed: bool
    severity: Severity
    message: str
    rule_name: str = ""
    location: Optional[SourceLocation] = None
    remediation: str = ""
    diagnostics: tuple[str, ...] = ()

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.resource_address, self.rule_id)


@dataclass(frozen=True, slots=True)
class Summary:
    """Aggregated results of a single run. Read-only once created."""

    results: tuple[Result, ...] = ()
    skipped: int = 0
    resources_evaluated: int = 0
    rules_evaluated: int = 0
    total: int = field(init=False)
    passed: int = field(init=False)
    failed: int = field(init=False)

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.results, key=lambda result: result.sort_key))
        object.__setattr__(self, "results", ordered)
        failed = sum(1 for result in ordered if not result.passed)
        object.__setattr__(self, "total", len(ordered))
        object.__setattr__(self, "failed", failed)
        object.__setattr__(self, "passed", len(ordered) - failed)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    @property
    def failures(self) -> list[Result]:
        return [result for result in self.results if not result.passed]

    @property
    def highest_severity(self) -> Severity | None:
        failures = self.failures
        if not failures:
            return None
        return max((result.severity for result in failures), key=lambda severity: severity.rank)

    def counts_by_severity(self, results: Iterable[Result] | None = None) -> dict[str, int]:
        counts = {severity.value: 0 for severity in sorted(Severity, reverse=True)}
        for result in self.failures if results is None else results:
            counts[result.severity.value] += 1
        return counts
