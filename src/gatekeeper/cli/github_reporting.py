"""Publish a gatekeeper JSON report to GitHub Actions surfaces."""

from __future__ import annotations

import argparse
import itertools
import os
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ..reporting import ReportError, format_job_summary, iter_annotations, read_report

STEP_SUMMARY_ENV = "GITHUB_STEP_SUMMARY"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="iac-gatekeeper-github",
        description="Turn an `iac-gatekeeper check --format json` report into a job summary and annotations.",
    )
    parser.add_argument("report", type=Path, help="JSON report produced by the check command.")
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help=f"File the markdown summary is appended to (default: ${STEP_SUMMARY_ENV}).",
    )
    parser.add_argument(
        "--max-annotations",
        type=int,
        default=None,
        metavar="N",
        help="Emit at most N workflow annotations.",
    )
    return parser


def _summary_destination(explicit: Optional[Path]) -> Optional[Path]:
    if explicit is not None:
        return explicit
    from_env = os.getenv(STEP_SUMMARY_ENV)
    return Path(from_env) if from_env else None


def _append_summary(report: Mapping[str, object], destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    with destination.open("a", encoding="utf-8") as handle:
        handle.write(format_job_summary(report))


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        report = read_report(args.report)
    except ReportError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    destination = _summary_destination(args.summary_path)
    if destination is not None:
        _append_summary(report, destination)

    annotations = iter_annotations(report)
    if args.max_annotations is not None:
        annotations = itertools.islice(annotations, max(args.max_annotations, 0))
    for command in annotations:
        print(command)

    return 0


def run() -> None:  # pragma: no cover - wrapper for console entry point
    raise SystemExit(main())


__all__ = ["build_parser", "main", "run"]


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
