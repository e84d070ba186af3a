"""Attribute path parsing and resolution against resource attribute trees.

Paths are dot separated segments. Each segment names a field and may carry
any number of list selectors::

    versioning.enabled
    ingress[0].from_port
    ingress[*].cidr_blocks[*]

Resolution never raises: a path that does not lead anywhere resolves to an
empty list. Wildcards expand to every list element in document order, so a
path resolves to the cross product of all of its wildcard expansions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, List, Mapping, Optional, Sequence

from ..models import is_unknown

WILDCARD: None = None

_SEGMENT_RE = re.compile(r"^(?P<name>[^\[\]\s.]+)(?P<selectors>(?:\[(?:\d+|\*)\])*)$")
_SELECTOR_RE = re.compile(r"\[(\d+|\*)\]")


class PathSyntaxError(ValueError):
    """Raised when an attribute path does not follow the path grammar."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"invalid attribute path {path!r}: {reason}")


@dataclass(frozen=True, slots=True)
class PathSegment:
    """One dot separated path component.

    ``selectors`` holds list indexes applied after the field lookup; a
    ``None`` entry is a ``[*]`` wildcard.
    """

    name: str
    selectors: tuple[Optional[int], ...] = ()

    def __str__(self) -> str:
        rendered = "".join("[*]" if sel is WILDCARD else f"[{sel}]" for sel in self.selectors)
        return f"{self.name}{rendered}"


@dataclass(frozen=True, slots=True)
class AttributePath:
    """A parsed attribute path."""

    text: str
    segments: tuple[PathSegment, ...]

    @property
    def has_wildcard(self) -> bool:
        return any(WILDCARD in segment.selectors for segment in self.segments)

    def __str__(self) -> str:
        return self.text


@dataclass(slots=True)
class Resolution:
    """Values reached by a path plus why nothing was reached, if that happened.

    ``structural_miss`` is set when the walk hit a value of the wrong shape:
    a field lookup on a non-map, an index on a non-list, or an index out of
    bounds. A key that simply is not present does not set it.
    """

    values: List[Any] = field(default_factory=list)
    structural_miss: bool = False

    @property
    def found(self) -> bool:
        return bool(self.values)


@lru_cache(maxsize=1024)
def parse_path(text: str) -> AttributePath:
    """Parse ``text`` into an :class:`AttributePath`.

    Raises :class:`PathSyntaxError` for empty paths, empty segments,
    unbalanced brackets and negative or non-numeric indexes.
    """

    if not isinstance(text, str) or not text.strip():
        raise PathSyntaxError(str(text), "path is empty")

    segments: list[PathSegment] = []
    for raw in _split(text):
        if not raw:
            raise PathSyntaxError(text, "empty segment")
        match = _SEGMENT_RE.match(raw)
        if match is None:
            raise PathSyntaxError(text, f"malformed segment {raw!r}")
        selectors = tuple(
            WILDCARD if token == "*" else int(token)
            for token in _SELECTOR_RE.findall(match.group("selectors"))
        )
        segments.append(PathSegment(name=match.group("name"), selectors=selectors))

    return AttributePath(text=text, segments=tuple(segments))


def _split(text: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for char in text:
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth < 0:
                raise PathSyntaxError(text, "unbalanced ']'")
        if char == "." and depth == 0:
            parts.append(current)
            current = ""
            continue
        current += char
    if depth != 0:
        raise PathSyntaxError(text, "unbalanced '['")
    parts.append(current)
    return parts


def resolve(attributes: Mapping[str, Any], path: AttributePath | str) -> List[Any]:
    """Return every value ``path`` selects from ``attributes``.

    An empty list means the attribute is absent.
    """

    return resolve_detailed(attributes, path).values


def resolve_detailed(attributes: Mapping[str, Any], path: AttributePath | str) -> Resolution:
    """Like :func:`resolve` but also report structural mismatches."""

    if isinstance(path, str):
        path = parse_path(path)

    resolution = Resolution()
    current: list[Any] = [attributes]

    for segment in path.segments:
        reached: list[Any] = []
        for value in current:
            if value is None:
                continue
            if is_unknown(value):
                reached.append(value)
                continue
            if not isinstance(value, Mapping):
                resolution.structural_miss = True
                continue
            if segment.name not in value:
                continue
            reached.extend(_select(value[segment.name], segment.selectors, resolution))
        current = reached
        if not current:
            break

    resolution.values = [value for value in current if value is not None]
    return resolution


def _select(value: Any, selectors: Sequence[Optional[int]], resolution: Resolution) -> list[Any]:
    current = [value]
    for selector in selectors:
        selected: list[Any] = []
        for item in current:
            if item is None:
                continue
            if is_unknown(item):
                selected.append(item)
                continue
            is_list = isinstance(item, (list, tuple))
            if selector is WILDCARD:
                if is_list:
                    selected.extend(item)
                else:
                    # A single nested block may be rendered without a list.
                    selected.append(item)
                continue
            if not is_list or selector >= len(item):
                resolution.structural_miss = True
                continue
            selected.append(item[selector])
        current = selected
    return current


__all__ = [
    "AttributePath",
    "PathSegment",
    "PathSyntaxError",
    "Resolution",
    "WILDCARD",
    "parse_path",
    "resolve",
    "resolve_detailed",
]
