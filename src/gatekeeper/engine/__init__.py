"""Attribute path resolution, condition evaluation and rule execution."""

from .paths import AttributePath, PathSyntaxError, parse_path, resolve, resolve_detailed
from .evaluator import ConditionEvaluator, Evaluation
from .runner import EvaluationCancelled, ExecutionEngine

__all__ = [
    "AttributePath",
    "ConditionEvaluator",
    "Evaluation",
    "EvaluationCancelled",
    "ExecutionEngine",
    "PathSyntaxError",
    "parse_path",
    "resolve",
    "resolve_detailed",
]
