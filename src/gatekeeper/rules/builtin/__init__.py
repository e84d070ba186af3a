"""Built-in rule catalog shipped with the package."""

from __future__ import annotations

from importlib import resources
from typing import List

import yaml

from ..loader import RuleLoadError, parse_rules_document
from ..model import Rule

_SUFFIXES = (".yaml", ".yml")


def load_builtin_rules() -> List[Rule]:
    """Load every packaged rule file, in file name order."""

    package = resources.files(__name__)
    rules: List[Rule] = []
    for entry in sorted(package.iterdir(), key=lambda item: item.name):
        if not entry.name.endswith(_SUFFIXES):
            continue
        source = f"builtin:{entry.name}"
        try:
            data = yaml.safe_load(entry.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise RuleLoadError(f"invalid YAML: {exc}", source=source) from exc
        for rule in parse_rules_document(data, source=source):
            if any(existing.id == rule.id for existing in rules):
                raise RuleLoadError(f"duplicate rule ID: {rule.id}", source=source, rule_id=rule.id)
            rules.append(rule)
    return rules


__all__ = ["load_builtin_rules"]
