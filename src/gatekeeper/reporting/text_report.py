"""Plain text rendering for terminals and CI logs."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List, Sequence

from ..models import Result, Severity, SourceLocation, Summary
from ..rules.ruleset import RuleSummary


def display_path(location: SourceLocation | None) -> str:
    """Render ``location`` relative to the working directory when possible."""

    if location is None:
        return "-"
    file_path = location.file
    try:
        relative = os.path.relpath(file_path, Path.cwd())
    except ValueError:
        relative = file_path
    if not relative.startswith(".."):
        file_path = relative
    if location.line is not None:
        return f"{file_path}:{location.line}"
    return file_path


def _ordered(results: Sequence[Result]) -> List[Result]:
    ordered: List[Result] = []
    for severity in sorted(Severity, reverse=True):
        ordered.extend(r for r in results if not r.passed and r.severity is severity)
    for severity in sorted(Severity, reverse=True):
        ordered.extend(r for r in results if r.passed and r.severity is severity)
    return ordered


def render_table(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    """Render rows as a simple column-aligned text table."""

    body = [tuple(str(value) for value in row) for row in rows]
    widths = [max(len(value) for value in column) for column in zip(headers, *body)]

    def format_row(values: Sequence[str]) -> str:
        return "  ".join(value.ljust(width) for value, width in zip(values, widths, strict=True)).rstrip()

    lines = [format_row(headers)]
    lines.append("  ".join("=" * width for width in widths))
    lines.extend(format_row(row) for row in body)
    return "\n".join(lines)


def render_text(summary: Summary) -> str:
    """Render a summary as a results table followed by totals."""

    lines: List[str] = []
    if summary.results:
        rows = [
            (
                result.severity.value,
                "PASS" if result.passed else "FAIL",
                result.rule_id,
                result.resource_address,
                display_path(result.location),
                result.message,
            )
            for result in _ordered(summary.results)
        ]
        lines.append(
            render_table(("Severity", "Status", "Rule ID", "Resource", "Location", "Message"), rows)
        )
    else:
        lines.append("No results.")

    notes: List[str] = []
    for result in _ordered(summary.failures):
        if result.remediation:
            notes.append(f"Remediation for {result.rule_id} on {result.resource_address}:")
            notes.extend(f"    {line.strip()}" for line in result.remediation.strip().splitlines())
    for result in _ordered(summary.results):
        for diagnostic in result.diagnostics:
            notes.append(f"note: {result.rule_id} {result.resource_address}: {diagnostic}")
    if notes:
        lines.append("")
        lines.extend(notes)

    lines.extend(["", "=== Summary ===", ""])
    lines.append("Result: FAIL" if summary.failed else "Result: PASS")
    lines.append(
        f"Resources: {summary.resources_evaluated} | Rules: {summary.rules_evaluated}"
    )
    lines.append(
        f"Total: {summary.total} | Passed: {summary.passed} | "
        f"Failed: {summary.failed} | Skipped: {summary.skipped}"
    )
    counts = summary.counts_by_severity()
    parts = [f"{count} {severity}(s)" for severity, count in counts.items() if count]
    lines.append(f"Violations: {', '.join(parts)}" if parts else "Violations: 0")
    return "\n".join(lines)


def render_rules_text(summaries: Sequence[RuleSummary]) -> str:
    """Render the rule catalog as a table."""

    if not summaries:
        return "No rules available."

    rows = [
        (
            summary.id,
            summary.severity.value,
            ", ".join(summary.resource_types) or "*",
            summary.name,
        )
        for summary in summaries
    ]
    table = render_table(("Rule ID", "Severity", "Resource Types", "Name"), rows)
    return f"{table}\n\n{len(summaries)} rule(s)"


__all__ = ["display_path", "render_rules_text", "render_table", "render_text"]
