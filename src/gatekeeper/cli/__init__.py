"""Command-line interface package for the gatekeeper."""

from .app import EXIT_ERROR, EXIT_OK, EXIT_VIOLATIONS, build_parser, create_service, main, run

__all__ = [
    "EXIT_ERROR",
    "EXIT_OK",
    "EXIT_VIOLATIONS",
    "build_parser",
    "create_service",
    "main",
    "run",
]
