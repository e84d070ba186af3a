"""Data models for normalized Terraform resources and evaluation results."""

from .resource import UNKNOWN, ChangeAction, Resource, SourceLocation, freeze, is_unknown, thaw
from .result import SEVERITY_RANK, Result, Severity, Summary

__all__ = [
    "ChangeAction",
    "Resource",
    "Result",
    "SEVERITY_RANK",
    "Severity",
    "SourceLocation",
    "Summary",
    "UNKNOWN",
    "freeze",
    "is_unknown",
    "thaw",
]
