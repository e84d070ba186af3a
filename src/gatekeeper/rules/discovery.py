"""Collect rule sources for a run and merge them into the active ruleset."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .builtin import load_builtin_rules
from .loader import load_rules_file, rules_by_id
from .model import Rule
from .ruleset import Ruleset, apply_filters, merge_sources

logger = logging.getLogger(__name__)

SPEC_FILE_SUFFIXES = (".spec.yaml", ".spec.yml", ".spec.json", ".spec.hcl")
CONFIGURATION_SUFFIXES = (".tf.json",)
_IGNORED_DIRECTORIES = {".terraform", ".git"}


@dataclass(slots=True)
class DiscoveryResult:
    """Outcome of rule discovery.

    ``catalog`` holds every merged rule; ``active`` is the catalog after the
    include and exclude lists were applied.
    """

    catalog: Ruleset
    active: Ruleset
    sources: List[str] = field(default_factory=list)


def collect_input_files(paths: Iterable[Path | str]) -> List[Path]:
    """Expand input paths into the configuration files to analyze.

    Directories are walked for ``*.tf.json`` files; files are taken as given.
    The result is deduplicated by resolved path and sorted.
    """

    found: Dict[Path, None] = {}
    for raw in paths:
        path = Path(raw).resolve()
        if path.is_dir():
            for candidate in path.rglob("*"):
                if _IGNORED_DIRECTORIES.intersection(candidate.relative_to(path).parts[:-1]):
                    continue
                if candidate.is_file() and candidate.name.endswith(CONFIGURATION_SUFFIXES):
                    found[candidate.resolve()] = None
        elif path.is_file():
            found[path] = None
        else:
            logger.warning("Input path does not exist: %s", path)
    return sorted(found)


def find_spec_files(input_files: Iterable[Path | str]) -> List[Path]:
    """Return rule spec files located next to the analyzed files.

    Each directory is scanned once; results follow the order of the input
    files and are sorted by name within a directory.
    """

    seen_dirs: set[Path] = set()
    spec_files: Dict[Path, None] = {}
    for raw in input_files:
        directory = Path(raw).resolve().parent
        if directory in seen_dirs:
            continue
        seen_dirs.add(directory)
        for candidate in sorted(directory.iterdir()):
            if candidate.is_file() and candidate.name.endswith(SPEC_FILE_SUFFIXES):
                spec_files[candidate.resolve()] = None
    return list(spec_files)


class RuleDiscovery:
    """Load rule sources in precedence order and merge them.

    Precedence, lowest first: the built-in catalog, rules from the
    repository config file, spec files next to the analyzed files, and the
    explicitly supplied custom rules file. Any malformed source aborts
    discovery with :class:`~gatekeeper.rules.loader.RuleLoadError`.
    """

    def __init__(
        self,
        *,
        no_builtin: bool = False,
        config_rules: Sequence[Rule] | None = None,
        config_source: Optional[str] = None,
        custom_rules_file: Path | str | None = None,
        include: Sequence[str] | None = None,
        exclude: Sequence[str] | None = None,
        builtin_loader: Callable[[], List[Rule]] = load_builtin_rules,
    ) -> None:
        self.no_builtin = no_builtin
        self.config_rules = list(config_rules or [])
        self.config_source = config_source
        self.custom_rules_file = Path(custom_rules_file).resolve() if custom_rules_file else None
        self.include = list(include or [])
        self.exclude = list(exclude or [])
        self._builtin_loader = builtin_loader

    # ------------------------------------------------------------------
    def discover(self, input_files: Sequence[Path | str] = ()) -> DiscoveryResult:
        """Return the merged catalog and the filtered active ruleset."""

        sources: List[Dict[str, Rule]] = []
        loaded_from: List[str] = []

        if not self.no_builtin:
            sources.append(rules_by_id(self._builtin_loader()))
            loaded_from.append("builtin")

        if self.config_rules:
            sources.append(rules_by_id(self.config_rules))
            loaded_from.append(self.config_source or "config")

        for spec_file in find_spec_files(input_files):
            if spec_file == self.custom_rules_file:
                continue
            sources.append(rules_by_id(load_rules_file(spec_file)))
            loaded_from.append(str(spec_file))

        if self.custom_rules_file is not None:
            sources.append(rules_by_id(load_rules_file(self.custom_rules_file)))
            loaded_from.append(str(self.custom_rules_file))

        catalog = merge_sources(sources)
        active = apply_filters(catalog, include=self.include, exclude=self.exclude)
        logger.info(
            "Discovered %d rules from %d sources (%d active)",
            len(catalog),
            len(loaded_from),
            len(active),
        )
        return DiscoveryResult(catalog=Ruleset(catalog), active=Ruleset(active), sources=loaded_from)


__all__ = [
    "CONFIGURATION_SUFFIXES",
    "DiscoveryResult",
    "RuleDiscovery",
    "SPEC_FILE_SUFFIXES",
    "collect_input_files",
    "find_spec_files",
]
