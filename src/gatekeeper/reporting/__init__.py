"""Rendering of run summaries and rule catalogs."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Sequence

from ..models import Summary
from ..rules.ruleset import RuleSummary
from .github import format_job_summary, iter_annotations, render_annotations
from .json_report import (
    ReportError,
    load_report,
    read_report,
    render_json,
    summary_from_dict,
    summary_to_dict,
)
from .text_report import display_path, render_rules_text, render_table, render_text

REPORT_FORMATS = ("text", "json", "github")
RULE_LIST_FORMATS = ("text", "json")


def format_summary(
    summary: Summary, fmt: str = "text", metadata: Optional[Mapping[str, Any]] = None
) -> str:
    """Render ``summary`` in one of :data:`REPORT_FORMATS`."""

    if fmt == "json":
        return render_json(summary, metadata)
    if fmt == "text":
        return render_text(summary)
    if fmt == "github":
        return render_annotations(summary_to_dict(summary, metadata))
    raise ValueError(f"unknown format: {fmt} (supported: {', '.join(REPORT_FORMATS)})")


def format_rules(summaries: Sequence[RuleSummary], fmt: str = "text") -> str:
    """Render the rule catalog returned by :func:`~gatekeeper.rules.list_rules`."""

    if fmt == "json":
        return json.dumps({"rules": [summary.to_dict() for summary in summaries]}, indent=2)
    if fmt == "text":
        return render_rules_text(summaries)
    raise ValueError(f"unknown format: {fmt} (supported: {', '.join(RULE_LIST_FORMATS)})")


__all__ = [
    "REPORT_FORMATS",
    "RULE_LIST_FORMATS",
    "ReportError",
    "display_path",
    "format_job_summary",
    "format_rules",
    "format_summary",
    "iter_annotations",
    "load_report",
    "read_report",
    "render_table",
    "summary_from_dict",
    "summary_to_dict",
]
