"""Decode rule files written in HCL.

An HCL rule file holds ``rule "<id>"`` blocks::

    rule "RDS_001" {
      name          = "RDS storage encryption enabled"
      severity      = "error"
      resource_type = "aws_db_instance"
      message       = "{{.resource_name}} is not encrypted"

      condition {
        all {
          check {
            attribute = "storage_encrypted"
            operator  = "equals"
            value     = true
          }
        }
      }
    }

Decoding produces the same entry mappings a YAML ``rules:`` list holds, so
validation is shared with :mod:`gatekeeper.rules.loader`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

import hcl2

_LOGICAL_BLOCKS = ("all", "any", "not")


class HCLDecodeError(ValueError):
    """Raised when an HCL rule file has the wrong block structure."""


def _unquote(value: Any) -> Any:
    if isinstance(value, str) and len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    if isinstance(value, list):
        return [_unquote(item) for item in value]
    if isinstance(value, Mapping):
        return {
            _unquote(key): _unquote(item)
            for key, item in value.items()
            if not str(key).startswith("__")
        }
    return value


def _single_block(blocks: Any, name: str) -> Mapping[str, Any]:
    if isinstance(blocks, Mapping):
        return blocks
    if not isinstance(blocks, list) or len(blocks) != 1 or not isinstance(blocks[0], Mapping):
        raise HCLDecodeError(f"expected exactly one {name} block")
    return blocks[0]


def _blocks(body: Any) -> List[Mapping[str, Any]]:
    if isinstance(body, Mapping):
        return [body]
    if isinstance(body, list) and all(isinstance(item, Mapping) for item in body):
        return list(body)
    raise HCLDecodeError("expected a block")


def _condition(body: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a ``condition`` or ``not`` block body; exactly one child is allowed."""

    present = [key for key in ("check", *_LOGICAL_BLOCKS) if key in body]
    if len(present) != 1:
        raise HCLDecodeError("condition must have exactly one of: check, all, any or not block")

    key = present[0]
    if key == "check":
        return {"check": dict(_single_block(body["check"], "check"))}
    if key == "not":
        return {"not": _condition(_single_block(body["not"], "not"))}
    return {key: _group(_single_block(body[key], key))}


def _group(body: Mapping[str, Any]) -> List[Dict[str, Any]]:
    children: List[Dict[str, Any]] = [
        {"check": dict(check)} for check in _blocks(body.get("check", []))
    ]
    for key in _LOGICAL_BLOCKS:
        if key not in body:
            continue
        for block in _blocks(body[key]):
            children.append({"not": _condition(block)} if key == "not" else {key: _group(block)})
    if not children:
        raise HCLDecodeError("all and any blocks must contain at least one check, all, any or not block")
    return children


def decode_hcl_rules(content: str) -> List[Dict[str, Any]]:
    """Parse HCL text into rule entry mappings.

    Raises :class:`HCLDecodeError` for syntax errors and misplaced blocks.
    """

    try:
        document = hcl2.loads(content)
    except Exception as exc:  # python-hcl2 surfaces lark parser errors
        raise HCLDecodeError(f"invalid HCL: {exc}") from exc

    entries: List[Dict[str, Any]] = []
    for labelled in _blocks(document.get("rule", [])):
        for label, body in labelled.items():
            if str(label).startswith("__"):
                continue
            body = _unquote(_single_block(body, "rule"))
            entry = {key: value for key, value in body.items() if key != "condition"}
            entry["id"] = _unquote(label)
            if "condition" in body:
                entry["condition"] = _condition(_single_block(body["condition"], "condition"))
            entries.append(entry)
    return entries


__all__ = ["HCLDecodeError", "decode_hcl_rules"]
