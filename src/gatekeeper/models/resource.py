"""Resource models consumed by the rule engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional


class ChangeAction(str, Enum):
    """Enumeration of the planned action for a Terraform resource."""

    NOOP = "no-op"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    REPLACE = "replace"
    UNKNOWN = "unknown"


class _UnknownValue:
    """Placeholder for a value Terraform only knows after apply."""

    _instance: Optional["_UnknownValue"] = None

    def __new__(cls) -> "_UnknownValue":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<unknown>"


UNKNOWN = _UnknownValue()


def is_unknown(value: object) -> bool:
    return value is UNKNOWN


def freeze(value: Any) -> Any:
    """Return a read-only copy of an attribute tree.

    Mappings become :class:`types.MappingProxyType` and lists become tuples so
    rule evaluation can never alter a resource.
    """

    if isinstance(value, Mapping):
        return MappingProxyType({str(key): freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Inverse of :func:`freeze`, producing plain ``dict``/``list`` values."""

    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [thaw(item) for item in value]
    return value


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """File (and optionally line) a resource was extracted from."""

    file: str
    line: Optional[int] = None

    def __str__(self) -> str:
        if self.line is None:
            return self.file
        return f"{self.file}:{self.line}"


@dataclass(frozen=True, slots=True)
class Resource:
    """Normalized representation of one Terraform resource declaration."""

    address: str
    type: str = ""
    name: str = ""
    attributes: Mapping[str, Any] = field(default_factory=dict)
    location: Optional[SourceLocation] = None
    module_path: tuple[str, ...] = ()
    change_action: ChangeAction = ChangeAction.UNKNOWN

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", freeze(self.attributes or {}))
        object.__setattr__(self, "module_path", tuple(self.module_path))
