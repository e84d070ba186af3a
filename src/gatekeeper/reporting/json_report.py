"""JSON serialization of run summaries."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping, Optional

from ..models import Result, Severity, SourceLocation, Summary


class ReportError(RuntimeError):
    """Raised when a JSON report cannot be read back."""


def summary_to_dict(
    summary: Summary, metadata: Optional[Mapping[str, Any]] = None
) -> dict[str, Any]:
    """Project ``summary`` onto plain JSON types with stable field names."""

    highest = summary.highest_severity
    payload: dict[str, Any] = {
        "summary": {
            "total": summary.total,
            "passed": summary.passed,
            "failed": summary.failed,
            "skipped": summary.skipped,
            "resources_evaluated": summary.resources_evaluated,
            "rules_evaluated": summary.rules_evaluated,
            "highest_severity": highest.value if highest else None,
            "counts": summary.counts_by_severity(),
            "exit_code": summary.exit_code,
        },
        "results": [_serialize_result(result) for result in summary.results],
    }
    if metadata:
        payload["metadata"] = dict(metadata)
    return payload


def _serialize_result(result: Result) -> dict[str, Any]:
    location = None
    if result.location is not None:
        location = {"file": result.location.file, "line": result.location.line}

    return {
        "rule_id": result.rule_id,
        "rule_name": result.rule_name,
        "resource_type": result.resource_type,
        "resource_address": result.resource_address,
        "passed": result.passed,
        "severity": result.severity.value,
        "message": result.message,
        "location": location,
        "remediation": result.remediation,
        "diagnostics": list(result.diagnostics),
    }


def render_json(summary: Summary, metadata: Optional[Mapping[str, Any]] = None) -> str:
    return json.dumps(summary_to_dict(summary, metadata), indent=2)


def summary_from_dict(data: Mapping[str, Any]) -> Summary:
    """Rebuild a :class:`Summary` from :func:`summary_to_dict` output."""

    if not isinstance(data, Mapping):
        raise ReportError("Report JSON must be an object.")

    totals = data.get("summary") or {}
    try:
        results = tuple(_deserialize_result(entry) for entry in data.get("results") or [])
        return Summary(
            results=results,
            skipped=int(totals.get("skipped", 0)),
            resources_evaluated=int(totals.get("resources_evaluated", 0)),
            rules_evaluated=int(totals.get("rules_evaluated", 0)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ReportError(f"Malformed report: {exc}") from exc


def _deserialize_result(entry: Mapping[str, Any]) -> Result:
    location = None
    raw_location = entry.get("location")
    if raw_location:
        line = raw_location.get("line")
        location = SourceLocation(
            file=str(raw_location["file"]),
            line=int(line) if line is not None else None,
        )

    return Result(
        rule_id=str(entry["rule_id"]),
        rule_name=str(entry.get("rule_name", "")),
        resource_type=str(entry.get("resource_type", "")),
        resource_address=str(entry["resource_address"]),
        passed=bool(entry["passed"]),
        severity=Severity.parse(entry["severity"]),
        message=str(entry.get("message", "")),
        location=location,
        remediation=str(entry.get("remediation", "")),
        diagnostics=tuple(str(item) for item in entry.get("diagnostics") or ()),
    )


def read_report(path: Path | str) -> dict[str, Any]:
    """Read a JSON report file without interpreting it."""

    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise ReportError(f"Failed to read report '{path}'") from exc
    except UnicodeDecodeError as exc:
        raise ReportError(f"Report '{path}' is not valid UTF-8") from exc
    if not raw.strip():
        return {}

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ReportError(f"Failed to parse report JSON from '{path}': {exc.msg}.") from exc

    if not isinstance(data, dict):
        raise ReportError("Report JSON must be an object.")
    return data


def load_report(path: Path | str) -> Summary:
    """Load a JSON report written by ``--format json`` back into a summary."""

    return summary_from_dict(read_report(path))


__all__ = [
    "ReportError",
    "load_report",
    "read_report",
    "render_json",
    "summary_from_dict",
    "summary_to_dict",
]
