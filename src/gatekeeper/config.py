"""Run configuration and the repository-root ``.gatekeeper.yaml`` file."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

from .models import Severity
from .rules.loader import RuleLoadError, parse_rule_entries, read_document
from .rules.model import Rule

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = (".gatekeeper.yaml", ".gatekeeper.yml")
OUTPUT_FORMATS = ("text", "json", "github")


class ConfigError(RuntimeError):
    """Raised when configuration values are invalid."""


@dataclass(frozen=True, slots=True)
class GatekeeperConfig:
    """Settings for one run, assembled from the config file and CLI flags."""

    min_severity: Severity = Severity.INFO
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    no_builtin: bool = False
    strict_unknowns: bool = False
    output_format: str = "text"
    rules_file: Optional[Path] = None
    max_workers: Optional[int] = None
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "min_severity", Severity.parse(self.min_severity))
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"unknown format: {self.output_format} (supported: {', '.join(OUTPUT_FORMATS)})"
            )
        if self.max_workers is not None:
            if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int):
                raise ConfigError(f"workers must be an integer, got {self.max_workers!r}")
            if self.max_workers < 1:
                raise ConfigError("workers must be at least 1")
        if self.timeout is not None:
            if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
                raise ConfigError(f"timeout must be a number of seconds, got {self.timeout!r}")
            if self.timeout <= 0:
                raise ConfigError("timeout must be positive")
        object.__setattr__(self, "include", tuple(self.include))
        object.__setattr__(self, "exclude", tuple(self.exclude))

    def with_overrides(self, **overrides: Any) -> "GatekeeperConfig":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **changes)


@dataclass(slots=True)
class LoadedConfig:
    """Contents of a ``.gatekeeper.yaml`` file."""

    path: Path
    settings: Mapping[str, Any] = field(default_factory=dict)
    rules: List[Rule] = field(default_factory=list)

    def apply(self, config: GatekeeperConfig | None = None) -> GatekeeperConfig:
        """Layer this file's ``config`` block over ``config``."""

        base = config or GatekeeperConfig()
        settings = self.settings
        try:
            return base.with_overrides(
                min_severity=settings.get("min_severity"),
                output_format=settings.get("format"),
                strict_unknowns=_optional_bool(settings, "strict"),
                no_builtin=_optional_bool(settings, "no_builtin"),
                include=_optional_ids(settings, "include"),
                exclude=_optional_ids(settings, "exclude"),
                max_workers=settings.get("workers"),
                timeout=settings.get("timeout"),
            )
        except ConfigError as exc:
            raise ConfigError(f"{self.path}: {exc}") from exc


def find_config_file(start: Path | str) -> Optional[Path]:
    """Search ``start`` and its parents for a config file."""

    current = Path(start).resolve()
    if not current.is_dir():
        current = current.parent

    for directory in (current, *current.parents):
        for name in CONFIG_FILENAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def load_config_file(path: Path | str) -> LoadedConfig:
    """Parse a config file, validating every rule it defines."""

    path = Path(path).resolve()
    try:
        data = read_document(path)
    except RuleLoadError as exc:
        raise ConfigError(str(exc)) from exc

    if not isinstance(data, Mapping):
        raise ConfigError(f"{path}: config file must be a mapping")

    settings = data.get("config") or {}
    if not isinstance(settings, Mapping):
        raise ConfigError(f"{path}: 'config' must be a mapping")

    entries = data.get("rules") or []
    if not isinstance(entries, list):
        raise ConfigError(f"{path}: 'rules' must be a list")

    rules = parse_rule_entries(entries, source=str(path))
    logger.debug("Loaded config file %s with %d rules", path, len(rules))
    return LoadedConfig(path=path, settings=dict(settings), rules=rules)


def _optional_bool(settings: Mapping[str, Any], key: str) -> Optional[bool]:
    if key not in settings or settings[key] is None:
        return None
    value = settings[key]
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be true or false")
    return value


def _optional_ids(settings: Mapping[str, Any], key: str) -> Optional[Sequence[str]]:
    value = settings.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' must be a list of rule IDs")
    return tuple(str(item).strip() for item in value)


__all__ = [
    "CONFIG_FILENAMES",
    "ConfigError",
    "GatekeeperConfig",
    "LoadedConfig",
    "OUTPUT_FORMATS",
    "find_config_file",
    "load_config_file",
]
