"""Command-line interface implementation for the gatekeeper."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from ..adapters import PlanLoaderError
from ..config import OUTPUT_FORMATS, ConfigError, GatekeeperConfig, LoadedConfig
from ..engine import EvaluationCancelled
from ..logging_setup import configure_logging
from ..reporting import RULE_LIST_FORMATS, format_rules, format_summary
from ..rules import RuleLoadError
from ..service import GatekeeperService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_ERROR = 2


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--rules",
        dest="rules_file",
        type=Path,
        default=None,
        help="Custom rules file (YAML or JSON). Its rules override every other source.",
    )
    parser.add_argument(
        "--config",
        dest="config_file",
        type=Path,
        default=None,
        help="Config file to use instead of searching for .gatekeeper.yaml.",
    )
    parser.add_argument(
        "--include",
        action="append",
        default=None,
        metavar="RULE_ID",
        help="Only run the given rule IDs. May be repeated.",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=None,
        metavar="RULE_ID",
        help="Skip the given rule IDs. May be repeated; wins over --include.",
    )
    parser.add_argument(
        "--no-builtin",
        action="store_true",
        default=None,
        help="Do not load the built-in rule catalog.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v for info, -vv for debug). Logs go to stderr.",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log record format.",
    )


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""

    parser = argparse.ArgumentParser(
        prog="iac-gatekeeper",
        description="Check Terraform plan JSON and *.tf.json files against policy rules.",
    )
    subparsers = parser.add_subparsers(dest="command")

    check_parser = subparsers.add_parser(
        "check", help="Evaluate resources against the active rules and report violations."
    )
    check_parser.add_argument(
        "paths",
        type=Path,
        nargs="*",
        default=None,
        help="Plan JSON files, *.tf.json files or directories to scan (default: current directory).",
    )
    _add_common_arguments(check_parser)
    check_parser.add_argument(
        "--severity",
        dest="min_severity",
        default=None,
        help="Minimum severity to evaluate: error, warning or info.",
    )
    check_parser.add_argument(
        "--strict",
        dest="strict_unknowns",
        action="store_true",
        default=None,
        help="Report violations that depend on values known only after apply.",
    )
    check_parser.add_argument(
        "--format",
        dest="output_format",
        choices=list(OUTPUT_FORMATS),
        default=None,
        help="Output format for results.",
    )
    check_parser.add_argument(
        "--workers",
        dest="max_workers",
        type=int,
        default=None,
        help="Number of resources evaluated in parallel.",
    )
    check_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Abort the run when evaluation takes longer than this.",
    )

    rules_parser = subparsers.add_parser("rules", help="List the active rule catalog.")
    rules_parser.add_argument(
        "paths",
        type=Path,
        nargs="*",
        default=None,
        help="Paths whose adjacent spec files should be included in the listing.",
    )
    _add_common_arguments(rules_parser)
    rules_parser.add_argument(
        "--format",
        dest="output_format",
        choices=list(RULE_LIST_FORMATS),
        default="text",
        help="Output format for the catalog.",
    )

    return parser


def _build_config(
    args: argparse.Namespace, loaded: Optional[LoadedConfig]
) -> GatekeeperConfig:
    config = loaded.apply(GatekeeperConfig()) if loaded else GatekeeperConfig()
    return config.with_overrides(
        min_severity=getattr(args, "min_severity", None),
        include=tuple(args.include) if args.include else None,
        exclude=tuple(args.exclude) if args.exclude else None,
        no_builtin=args.no_builtin,
        strict_unknowns=getattr(args, "strict_unknowns", None),
        output_format=getattr(args, "output_format", None) if args.command == "check" else None,
        rules_file=args.rules_file,
        max_workers=getattr(args, "max_workers", None),
        timeout=getattr(args, "timeout", None),
    )


def create_service() -> GatekeeperService:
    """Create the service used by the CLI commands."""

    return GatekeeperService()


def _handle_check(args: argparse.Namespace) -> int:
    service = create_service()
    paths = list(args.paths or [Path.cwd()])

    try:
        loaded = service.resolve_config(paths, args.config_file)
        config = _build_config(args, loaded)
        outcome = service.check(paths, config, loaded_config=loaded)
    except (ConfigError, RuleLoadError, PlanLoaderError, EvaluationCancelled) as exc:
        logger.debug("check aborted", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    print(format_summary(outcome.summary, config.output_format, outcome.metadata))
    return EXIT_VIOLATIONS if outcome.summary.exit_code else EXIT_OK


def _handle_rules(args: argparse.Namespace) -> int:
    service = create_service()
    paths = list(args.paths or [])

    try:
        loaded = service.resolve_config(paths, args.config_file)
        config = _build_config(args, loaded)
        summaries = service.list_catalog(paths, config, loaded_config=loaded)
    except (ConfigError, RuleLoadError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    print(format_rules(summaries, args.output_format))
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by tests and the ``python -m`` invocation."""

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    configure_logging(args.verbose, json_logs=args.log_format == "json")

    if args.command == "check":
        return _handle_check(args)
    if args.command == "rules":
        return _handle_rules(args)

    parser.print_help()
    return EXIT_OK


def run() -> None:  # pragma: no cover - thin wrapper for module execution
    """Execute the CLI and exit with the produced status code."""

    raise SystemExit(main())


__all__ = ["EXIT_ERROR", "EXIT_OK", "EXIT_VIOLATIONS", "build_parser", "create_service", "main", "run"]


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
