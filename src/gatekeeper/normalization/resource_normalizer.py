"""Conversion helpers that turn Terraform JSON documents into resources."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..models import UNKNOWN, ChangeAction, Resource, SourceLocation

_INTERPOLATION_RE = re.compile(r"\$\{")


class ResourceNormalizer:
    """Normalize plan JSON or ``*.tf.json`` documents into :class:`Resource` objects.

    Plan documents (``terraform show -json``) use ``resource_changes`` and fall
    back to ``planned_values``. Configuration documents use the Terraform JSON
    syntax with a top level ``resource`` object.
    """

    def normalize(
        self,
        document: Dict[str, Any],
        *,
        source: Optional[str] = None,
        text: Optional[str] = None,
    ) -> List[Resource]:
        """Return resources for the supplied document."""

        if "resource_changes" in document or "planned_values" in document:
            return self._normalize_plan(document, source, text)
        if "resource" in document:
            return self._normalize_configuration(document, source, text)
        return []

    # Plan documents -----------------------------------------------------------
    def _normalize_plan(
        self, plan: Dict[str, Any], source: Optional[str], text: Optional[str]
    ) -> List[Resource]:
        resource_changes: Iterable[Dict[str, Any]] = plan.get("resource_changes", []) or []
        resources: List[Resource] = []
        for change in resource_changes:
            resource = self._normalize_change(change, source, text)
            if resource is not None:
                resources.append(resource)

        if resources or plan.get("resource_changes"):
            return resources

        root = (plan.get("planned_values") or {}).get("root_module") or {}
        return [
            self._resource(
                address=entry.get("address", ""),
                resource_type=entry.get("type", ""),
                name=entry.get("name", ""),
                attributes=entry.get("values") or {},
                module_address=module_address,
                action=ChangeAction.UNKNOWN,
                source=source,
                text=text,
            )
            for module_address, entry in self._walk_module(root)
            if entry.get("mode", "managed") == "managed"
        ]

    def _normalize_change(
        self, change: Dict[str, Any], source: Optional[str], text: Optional[str]
    ) -> Optional[Resource]:
        if change.get("mode", "managed") != "managed":
            return None

        details = change.get("change", {}) or {}
        action = self._normalize_action(details.get("actions", []))
        after = details.get("after")
        if action is ChangeAction.DELETE or after is None:
            return None

        attributes = self._apply_unknown(after, details.get("after_unknown"))
        return self._resource(
            address=change.get("address", ""),
            resource_type=change.get("type", ""),
            name=change.get("name", ""),
            attributes=attributes,
            module_address=change.get("module_address"),
            action=action,
            source=source,
            text=text,
        )

    def _walk_module(self, module: Mapping[str, Any]) -> Iterable[tuple[Optional[str], Mapping[str, Any]]]:
        for entry in module.get("resources", []) or []:
            yield module.get("address"), entry
        for child in module.get("child_modules", []) or []:
            yield from self._walk_module(child)

    def _apply_unknown(self, value: Any, unknown: Any) -> Any:
        if unknown is True:
            return UNKNOWN
        if isinstance(value, dict) and isinstance(unknown, dict):
            merged = dict(value)
            for key, marker in unknown.items():
                merged[key] = self._apply_unknown(value.get(key), marker)
            return merged
        if isinstance(value, list) and isinstance(unknown, list):
            return [
                self._apply_unknown(item, unknown[index] if index < len(unknown) else None)
                for index, item in enumerate(value)
            ]
        if value is None and isinstance(unknown, (dict, list)) and unknown:
            return self._apply_unknown({} if isinstance(unknown, dict) else [], unknown)
        return value

    # Configuration documents ----------------------------------------------------
    def _normalize_configuration(
        self, document: Dict[str, Any], source: Optional[str], text: Optional[str]
    ) -> List[Resource]:
        blocks = document.get("resource") or {}
        if isinstance(blocks, Mapping):
            blocks = [blocks]

        resources: List[Resource] = []
        for block in blocks:
            if not isinstance(block, Mapping):
                continue
            for resource_type, instances in block.items():
                if not isinstance(instances, Mapping):
                    continue
                for name, body in instances.items():
                    bodies = body if isinstance(body, list) else [body]
                    attributes: Dict[str, Any] = {}
                    for part in bodies:
                        if isinstance(part, Mapping):
                            attributes.update(self._resolve_expressions(part))
                    resources.append(
                        self._resource(
                            address=f"{resource_type}.{name}",
                            resource_type=resource_type,
                            name=name,
                            attributes=attributes,
                            module_address=None,
                            action=ChangeAction.UNKNOWN,
                            source=source,
                            text=text,
                        )
                    )
        return resources

    def _resolve_expressions(self, value: Any) -> Any:
        if isinstance(value, str):
            return UNKNOWN if _INTERPOLATION_RE.search(value) else value
        if isinstance(value, Mapping):
            return {key: self._resolve_expressions(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._resolve_expressions(item) for item in value]
        return value

    # Shared helpers -----------------------------------------------------------
    def _resource(
        self,
        *,
        address: str,
        resource_type: str,
        name: str,
        attributes: Any,
        module_address: Optional[str],
        action: ChangeAction,
        source: Optional[str],
        text: Optional[str],
    ) -> Resource:
        location = None
        if source:
            location = SourceLocation(file=source, line=self._line_of(text, address, resource_type, name))
        return Resource(
            address=address,
            type=resource_type,
            name=name,
            attributes=attributes if isinstance(attributes, Mapping) else {},
            location=location,
            module_path=tuple(self._module_path(module_address)),
            change_action=action,
        )

    def _line_of(
        self, text: Optional[str], address: str, resource_type: str, name: str
    ) -> Optional[int]:
        if not text:
            return None
        for needle in (f'"address": "{address}"', f'"address":"{address}"'):
            offset = text.find(needle)
            if offset >= 0:
                return text.count("\n", 0, offset) + 1
        type_offset = text.find(f'"{resource_type}"')
        if type_offset < 0:
            return None
        offset = text.find(f'"{name}"', type_offset + len(resource_type) + 2)
        if offset < 0:
            return None
        return text.count("\n", 0, offset) + 1

    def _module_path(self, module_address: str | None) -> List[str]:
        if not module_address:
            return []

        parts: List[str] = []
        for segment in module_address.split("."):
            if segment == "module":
                continue
            parts.append(segment)
        return parts

    def _normalize_action(self, actions: Iterable[str]) -> ChangeAction:
        action_list = list(actions)
        if not action_list:
            return ChangeAction.UNKNOWN

        if action_list == ["no-op"]:
            return ChangeAction.NOOP
        if action_list == ["create"]:
            return ChangeAction.CREATE
        if action_list == ["update"]:
            return ChangeAction.UPDATE
        if action_list == ["delete"]:
            return ChangeAction.DELETE
        if set(action_list) == {"delete", "create"}:
            return ChangeAction.REPLACE

        return ChangeAction.UNKNOWN
