"""GitHub Actions job summaries and workflow annotations for JSON reports."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator, List, Mapping, Optional, Tuple

SEVERITY_ORDER = ["error", "warning", "info"]
ANNOTATION_LEVELS = {
    "error": "error",
    "warning": "warning",
    "info": "notice",
}
SUMMARY_VIOLATION_LIMIT = 10


def _failures(report: Mapping[str, object]) -> List[Mapping[str, object]]:
    results = report.get("results") or []
    return [
        result
        for result in results
        if isinstance(result, Mapping) and not result.get("passed", False)
    ]


def _text(entry: Mapping[str, object], key: str) -> str:
    value = entry.get(key)
    return str(value).strip() if value is not None else ""


def _severity_counts(raw: object) -> dict[str, int]:
    counts = dict.fromkeys(SEVERITY_ORDER, 0)
    if isinstance(raw, Mapping):
        for key, value in raw.items():
            severity = str(key).lower()
            if severity in counts:
                counts[severity] = int(value)
    return counts


# ----------------------------------------------------------------------
# Job summary


def _violation_bullet(failure: Mapping[str, object]) -> str:
    severity = _text(failure, "severity").lower() or "info"
    bullet = f"- **{severity.title()}**"
    rule_id = _text(failure, "rule_id")
    if rule_id:
        bullet += f" `{rule_id}`"
    message = _text(failure, "message")
    if message:
        bullet += f": {message}"
    address = _text(failure, "resource_address")
    if address:
        bullet += f" _(Resource: `{address}`)_"
    return bullet


def format_job_summary(report: Mapping[str, object]) -> str:
    """Render a Markdown job summary for a decoded JSON report."""

    summary = report.get("summary") or {}
    metadata = report.get("metadata") or {}
    failures = _failures(report)
    failed = int(summary.get("failed", len(failures)))
    highest = summary.get("highest_severity")

    lines = [
        "# IaC Gatekeeper Report",
        "",
        f"**Result:** {'FAIL' if failed else 'PASS'}",
        f"**Checks:** {summary.get('total', 0)} total, {summary.get('passed', 0)} passed, "
        f"{failed} failed, {summary.get('skipped', 0)} skipped",
        f"**Highest severity:** {str(highest).title() if highest else 'None'}",
        "",
        "| Severity | Violations |",
        "| --- | ---: |",
    ]
    counts = _severity_counts(summary.get("counts"))
    lines.extend(f"| {severity.title()} | {counts[severity]} |" for severity in SEVERITY_ORDER)

    if metadata:
        lines += ["", "## Metadata", ""]
        lines.extend(f"- **{key}:** {metadata[key]}" for key in sorted(metadata))

    if failures:
        lines += ["", "## Violations", ""]
        lines.extend(_violation_bullet(failure) for failure in failures[:SUMMARY_VIOLATION_LIMIT])
        hidden = len(failures) - SUMMARY_VIOLATION_LIMIT
        if hidden > 0:
            lines.append(f"- ...and {hidden} more violations.")

    lines.append("")
    return "\n".join(lines)


# ----------------------------------------------------------------------
# Workflow commands


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


def _extract_location(location: object) -> Tuple[Optional[str], Optional[int]]:
    """Return the annotation ``file`` (relative to cwd when inside it) and ``line``."""

    if not isinstance(location, Mapping):
        return None, None
    file_path = location.get("file")
    if not isinstance(file_path, str) or not file_path.strip():
        return None, None

    file_path = file_path.strip()
    try:
        relative = os.path.relpath(file_path, Path.cwd())
    except ValueError:
        relative = file_path
    if not relative.startswith(".."):
        file_path = relative
    return file_path, _coerce_int(location.get("line"))


def _coerce_int(value: object) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _annotation(failure: Mapping[str, object]) -> str:
    level = ANNOTATION_LEVELS.get(_text(failure, "severity").lower(), "notice")

    properties: List[str] = []
    file_path, line = _extract_location(failure.get("location"))
    if file_path:
        properties.append(f"file={_escape_property(file_path)}")
        if line is not None:
            properties.append(f"line={line}")
    title = " - ".join(part for part in (_text(failure, "rule_id"), _text(failure, "rule_name")) if part)
    if title:
        properties.append(f"title={_escape_property(title)}")

    body = [_text(failure, "message")] if _text(failure, "message") else []
    address = _text(failure, "resource_address")
    if address:
        body.append(f"Resource: {address}")
    message = "; ".join(body) or "Rule violation reported without message."

    head = f"::{level} {','.join(properties)}" if properties else f"::{level}"
    return f"{head}::{_escape_data(message)}"


def iter_annotations(report: Mapping[str, object]) -> Iterator[str]:
    """Yield one workflow command per failed result."""

    for failure in _failures(report):
        yield _annotation(failure)


def render_annotations(report: Mapping[str, object]) -> str:
    return "\n".join(iter_annotations(report))


__all__ = [
    "ANNOTATION_LEVELS",
    "SEVERITY_ORDER",
    "format_job_summary",
    "iter_annotations",
    "render_annotations",
]
