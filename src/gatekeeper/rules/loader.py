"""Load rule definitions from YAML, JSON or HCL rule files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

import yaml

from ..engine.paths import PathSyntaxError
from .hcl_loader import HCLDecodeError, decode_hcl_rules
from .model import Combinator, CombinatorKind, Condition, ConditionError, Predicate, Rule

logger = logging.getLogger(__name__)

_LOGICAL_KEYS = ("all", "any", "not")
_PREDICATE_KEYS = ("attribute", "path")


class RuleLoadError(RuntimeError):
    """Raised when a rule source cannot be read, parsed or validated."""

    def __init__(self, message: str, *, source: str | None = None, rule_id: str | None = None) -> None:
        self.source = source
        self.rule_id = rule_id
        prefix = ""
        if source:
            prefix += f"{source}: "
        if rule_id:
            prefix += f"rule {rule_id}: "
        super().__init__(f"{prefix}{message}")


def read_document(path: Path | str) -> Any:
    """Read a YAML, JSON or HCL document, raising :class:`RuleLoadError` on failure."""

    path = Path(path)
    if not path.exists():
        raise RuleLoadError("rule file not found", source=str(path))

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:  # pragma: no cover - filesystem errors surfaced to caller
        raise RuleLoadError(f"failed to read rule file: {exc}", source=str(path)) from exc
    except UnicodeDecodeError as exc:
        raise RuleLoadError(f"not valid UTF-8 text: {exc.reason}", source=str(path)) from exc

    if path.suffix.lower() == ".json":
        try:
            return json.loads(content or "{}")
        except json.JSONDecodeError as exc:
            raise RuleLoadError(f"invalid JSON: {exc.msg} (line {exc.lineno})", source=str(path)) from exc

    if path.suffix.lower() == ".hcl":
        try:
            return {"rules": decode_hcl_rules(content)}
        except HCLDecodeError as exc:
            raise RuleLoadError(str(exc), source=str(path)) from exc

    try:
        return yaml.safe_load(content) or {}
    except yaml.YAMLError as exc:
        raise RuleLoadError(f"invalid YAML: {exc}", source=str(path)) from exc


def load_rules_file(path: Path | str) -> List[Rule]:
    """Load every rule defined in ``path``."""

    rules = parse_rules_document(read_document(path), source=str(path))
    logger.debug("Loaded %d rules from %s", len(rules), path)
    return rules


def load_rules_text(content: str, *, source: str = "<string>") -> List[Rule]:
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as exc:
        raise RuleLoadError(f"invalid YAML: {exc}", source=source) from exc
    return parse_rules_document(data, source=source)


def parse_rules_document(data: Any, *, source: str) -> List[Rule]:
    """Convert a decoded rule file into validated rules.

    The document is a mapping with a ``rules`` list. Duplicate IDs inside one
    document are rejected.
    """

    if not isinstance(data, Mapping):
        raise RuleLoadError("rule file must be a mapping", source=source)

    entries = data.get("rules", []) or []
    if not isinstance(entries, list):
        raise RuleLoadError("'rules' must be a list", source=source)

    return parse_rule_entries(entries, source=source)


def parse_rule_entries(entries: Sequence[Any], *, source: str) -> List[Rule]:
    rules: List[Rule] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        rule = parse_rule(entry, index=index, source=source)
        if rule.id in seen:
            raise RuleLoadError(f"duplicate rule ID: {rule.id}", source=source, rule_id=rule.id)
        seen.add(rule.id)
        rules.append(rule)
    return rules


def parse_rule(entry: Any, *, index: int = 0, source: str | None = None) -> Rule:
    if not isinstance(entry, Mapping):
        raise RuleLoadError(f"rule at index {index} must be a mapping", source=source)

    rule_id = str(entry.get("id") or "").strip()
    if not rule_id:
        raise RuleLoadError(f"rule at index {index}: id is required", source=source)

    def fail(message: str) -> RuleLoadError:
        return RuleLoadError(message, source=source, rule_id=rule_id)

    for required in ("name", "severity", "message"):
        if not str(entry.get(required) or "").strip():
            raise fail(f"{required} is required")

    if entry.get("condition") is None:
        raise fail("condition is required")

    try:
        condition = parse_condition(entry["condition"])
    except (ConditionError, PathSyntaxError) as exc:
        raise fail(f"invalid condition: {exc}") from exc

    try:
        return Rule(
            id=rule_id,
            name=str(entry["name"]).strip(),
            description=str(entry.get("description") or "").strip(),
            severity=entry["severity"],
            resource_types=_string_set(entry.get("resource_type", entry.get("resource_types"))),
            condition=condition,
            message=str(entry["message"]).strip(),
            remediation=str(entry.get("remediation") or "").strip(),
            tags=_string_set(entry.get("tags")),
            source=source,
        )
    except ValueError as exc:
        raise fail(str(exc)) from exc


def parse_condition(data: Any) -> Condition:
    """Build a condition tree from its decoded form.

    Accepted shapes::

        {attribute: acl, operator: equals, value: private}
        {check: {attribute: ..., operator: ..., value: ...}}
        {all: [...]} / {any: [...]} / {not: {...}}
        {operator: all, conditions: [...]}
    """

    if not isinstance(data, Mapping):
        raise ConditionError(f"condition must be a mapping, got {type(data).__name__}")

    present = [key for key in (*_LOGICAL_KEYS, "check") if key in data]
    if any(key in data for key in _PREDICATE_KEYS):
        present.append("attribute")
    if len(present) != 1:
        operator = str(data.get("operator") or "").strip().lower()
        if not present and operator in _LOGICAL_KEYS:
            return _combinator(operator, data.get("conditions"))
        raise ConditionError(
            "condition must have exactly one of: attribute, check, all, any or not"
            + (f" (found {', '.join(present)})" if present else "")
        )

    key = present[0]
    if key == "check":
        return parse_condition(_as_mapping(data["check"], "check"))
    if key == "attribute":
        return _predicate(data)
    return _combinator(key, data[key])


def _predicate(data: Mapping[str, Any]) -> Predicate:
    path = data.get("attribute", data.get("path"))
    if not isinstance(path, str) or not path.strip():
        raise ConditionError("attribute is required")
    operator = str(data.get("operator") or "").strip().lower()
    if not operator:
        raise ConditionError("operator is required")
    return Predicate(path=path.strip(), operator=operator, operand=data.get("value"))


def _combinator(kind: str, children: Any) -> Combinator:
    if kind == CombinatorKind.NOT.value and isinstance(children, Mapping):
        children = [children]
    if not isinstance(children, list):
        raise ConditionError(f"{kind} requires a list of conditions")
    return Combinator(kind=kind, children=tuple(parse_condition(child) for child in children))


def _as_mapping(value: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ConditionError(f"{name} must be a mapping")
    return value


def _string_set(value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset({value.strip()}) if value.strip() else frozenset()
    if isinstance(value, (list, tuple, set)):
        return frozenset(str(item).strip() for item in value if str(item).strip())
    raise ValueError(f"expected a string or list of strings, got {type(value).__name__}")


def rules_by_id(rules: Sequence[Rule]) -> Dict[str, Rule]:
    return {rule.id: rule for rule in rules}


__all__ = [
    "RuleLoadError",
    "load_rules_file",
    "load_rules_text",
    "parse_condition",
    "parse_rule",
    "parse_rule_entries",
    "parse_rules_document",
    "read_document",
    "rules_by_id",
]
