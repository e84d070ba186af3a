"""Tests for GitHub Actions reporting helpers."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from gatekeeper.cli import github_reporting
from gatekeeper.reporting import format_job_summary, iter_annotations


def _build_report() -> dict[str, object]:
    return {
        "metadata": {"files_scanned": 2, "min_severity": "info"},
        "summary": {
            "total": 3,
            "passed": 1,
            "failed": 2,
            "skipped": 4,
            "highest_severity": "error",
            "counts": {"error": 1, "warning": 1, "info": 0},
        },
        "results": [
            {
                "rule_id": "SG_001",
                "rule_name": "No SSH from the internet",
                "message": "Security group 'ssh' allows SSH (port 22) from 0.0.0.0/0",
                "severity": "error",
                "passed": False,
                "resource_address": "module.network.aws_security_group.ssh",
                "location": {"file": "envs/prod/plan.json", "line": 29},
            },
            {
                "rule_id": "S3_001",
                "message": "S3 bucket 'logs' does not have versioning enabled",
                "severity": "warning",
                "passed": False,
                "resource_address": "aws_s3_bucket.logs",
                "location": None,
            },
            {
                "rule_id": "S3_003",
                "message": "encrypted",
                "severity": "error",
                "passed": True,
                "resource_address": "aws_s3_bucket.logs",
            },
        ],
    }


def test_format_job_summary_includes_key_sections() -> None:
    """Rendered summaries should include metadata, counts, and violations."""

    summary = format_job_summary(_build_report())

    assert "# IaC Gatekeeper Report" in summary
    assert "**Result:** FAIL" in summary
    assert "| Error | 1 |" in summary
    assert "| Warning | 1 |" in summary
    assert "- **files_scanned:** 2" in summary
    assert "does not have versioning enabled" in summary
    assert "_(Resource: `module.network.aws_security_group.ssh`)" in summary
    assert "encrypted" not in summary


def test_iter_annotations_maps_severity_levels() -> None:
    """Workflow commands should map severities to the correct annotation levels."""

    annotations = list(iter_annotations(_build_report()))

    assert len(annotations) == 2
    assert annotations[0].startswith("::error file=envs/prod/plan.json,line=29,title=SG_001 - No SSH")
    assert "Resource: module.network.aws_security_group.ssh" in annotations[0]
    assert annotations[1].startswith("::warning title=S3_001::")


def test_annotation_bodies_are_escaped() -> None:
    report = {
        "results": [
            {
                "rule_id": "X",
                "message": "100% broken\nsecond line",
                "severity": "info",
                "passed": False,
            }
        ]
    }

    (annotation,) = iter_annotations(report)

    assert annotation == "::notice title=X::100%25 broken%0Asecond line"


def test_main_writes_summary_and_prints_annotations(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    report_path = tmp_path / "report.json"
    report_path.write_text(json.dumps(_build_report()), encoding="utf-8")
    summary_path = tmp_path / "summary.md"
    monkeypatch.setenv("GITHUB_STEP_SUMMARY", str(summary_path))

    exit_code = github_reporting.main([str(report_path)])

    assert exit_code == 0
    assert "# IaC Gatekeeper Report" in summary_path.read_text(encoding="utf-8")
    assert capsys.readouterr().out.count("::") >= 4


def test_main_rejects_invalid_report(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    report_path = tmp_path / "report.json"
    report_path.write_text("{broken", encoding="utf-8")

    assert github_reporting.main([str(report_path)]) == 2
    assert "Error:" in capsys.readouterr().err


def test_main_limits_annotations(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    report_path = tmp_path / "report.json"
    report_path.write_text(json.dumps(_build_report()), encoding="utf-8")
    monkeypatch.delenv("GITHUB_STEP_SUMMARY", raising=False)

    assert github_reporting.main([str(report_path), "--max-annotations", "1"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 1
    assert lines[0].startswith("::error ")
