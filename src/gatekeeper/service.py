"""Orchestration layer used by the CLI to run gatekeeper checks."""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence

from .adapters import PlanLoader
from .config import GatekeeperConfig, LoadedConfig, find_config_file, load_config_file
from .engine import ConditionEvaluator, ExecutionEngine
from .models import Resource, Summary
from .normalization import ResourceNormalizer
from .rules import DiscoveryResult, RuleDiscovery, Ruleset, RuleSummary, collect_input_files, list_rules

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CheckOutcome:
    """Result returned by :meth:`GatekeeperService.check`."""

    summary: Summary
    catalog: Ruleset
    ruleset: Ruleset
    metadata: Mapping[str, Any] = field(default_factory=dict)


PlanLoaderFactory = Callable[[Sequence[Path]], PlanLoader]


def unique_addresses(resources: Sequence[Resource]) -> List[Resource]:
    """Qualify repeated addresses so each one is unique within a run.

    The first resource keeps its address; later ones are prefixed with the
    file they were read from (``<file>:<address>``), and a ``#<n>`` suffix
    separates anything still colliding.
    """

    seen: set[str] = set()
    unique: List[Resource] = []
    for resource in resources:
        address = resource.address
        if address in seen and resource.location is not None:
            address = f"{resource.location.file}:{resource.address}"
        candidate, counter = address, 2
        while candidate in seen:
            candidate = f"{address}#{counter}"
            counter += 1
        if candidate != resource.address:
            logger.debug("Address %s already seen; using %s", resource.address, candidate)
            resource = dataclasses.replace(resource, address=candidate)
        seen.add(candidate)
        unique.append(resource)
    return unique


class GatekeeperService:
    """Run discovery, resource extraction and execution for a set of paths."""

    def __init__(
        self,
        *,
        plan_loader_factory: PlanLoaderFactory | None = None,
        normalizer: ResourceNormalizer | None = None,
        discovery_factory: Callable[..., RuleDiscovery] | None = None,
    ) -> None:
        self._plan_loader_factory = plan_loader_factory or PlanLoader
        self._normalizer = normalizer or ResourceNormalizer()
        self._discovery_factory = discovery_factory or RuleDiscovery

    # ------------------------------------------------------------------
    def resolve_config(
        self,
        paths: Sequence[Path | str],
        config_file: Path | str | None = None,
    ) -> Optional[LoadedConfig]:
        """Load ``config_file`` or the nearest config file above the first path."""

        if config_file is not None:
            return load_config_file(config_file)

        start = Path(paths[0]) if paths else Path.cwd()
        found = find_config_file(start)
        if found is None:
            return None
        logger.info("Using config file %s", found)
        return load_config_file(found)

    # ------------------------------------------------------------------
    def discover(
        self,
        input_files: Sequence[Path],
        config: GatekeeperConfig,
        loaded_config: Optional[LoadedConfig] = None,
    ) -> DiscoveryResult:
        discovery = self._discovery_factory(
            no_builtin=config.no_builtin,
            config_rules=loaded_config.rules if loaded_config else None,
            config_source=str(loaded_config.path) if loaded_config else None,
            custom_rules_file=config.rules_file,
            include=config.include,
            exclude=config.exclude,
        )
        return discovery.discover(input_files)

    def load_resources(self, input_files: Sequence[Path]) -> List[Resource]:
        loader = self._plan_loader_factory(input_files)
        resources: List[Resource] = []
        for document in loader.load_documents():
            extracted = self._normalizer.normalize(
                document.data, source=str(document.path), text=document.text
            )
            logger.debug("Extracted %d resources from %s", len(extracted), document.path)
            resources.extend(extracted)
        return unique_addresses(resources)

    # ------------------------------------------------------------------
    def check(
        self,
        paths: Sequence[Path | str],
        config: GatekeeperConfig | None = None,
        *,
        loaded_config: Optional[LoadedConfig] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> CheckOutcome:
        """Evaluate every resource found under ``paths``.

        Discovery completes before any resource is evaluated; a malformed rule
        source raises before execution starts.
        """

        config = config or GatekeeperConfig()
        started = time.monotonic()
        deadline = started + config.timeout if config.timeout is not None else None

        input_files = collect_input_files(paths)
        if not input_files:
            logger.warning("No Terraform JSON documents found under %s", ", ".join(map(str, paths)))
        discovered = self.discover(input_files, config, loaded_config)
        resources = self.load_resources(input_files)

        engine = ExecutionEngine(
            ConditionEvaluator(strict_unknowns=config.strict_unknowns),
            max_workers=config.max_workers,
        )
        summary = engine.run(
            resources,
            discovered.active,
            config.min_severity,
            deadline=deadline,
            cancel_event=cancel_event,
        )

        metadata: dict[str, Any] = {
            "files_scanned": len(input_files),
            "rule_sources": list(discovered.sources),
            "min_severity": config.min_severity.value,
            "strict_unknowns": config.strict_unknowns,
        }
        if loaded_config is not None:
            metadata["config_file"] = str(loaded_config.path)

        return CheckOutcome(
            summary=summary,
            catalog=discovered.catalog,
            ruleset=discovered.active,
            metadata=metadata,
        )

    # ------------------------------------------------------------------
    def list_catalog(
        self,
        paths: Sequence[Path | str] = (),
        config: GatekeeperConfig | None = None,
        *,
        loaded_config: Optional[LoadedConfig] = None,
    ) -> List[RuleSummary]:
        """Return the active rules that a check of ``paths`` would use."""

        config = config or GatekeeperConfig()
        input_files = collect_input_files(paths)
        return list_rules(self.discover(input_files, config, loaded_config).active)


__all__ = ["CheckOutcome", "GatekeeperService", "unique_addresses"]
