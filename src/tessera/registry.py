"""Registry facade: one store wired to every planning component.

The CLI and dashboard talk to a ``Registry``; library callers may equally
build the components around their own ``CapabilityStore``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from tessera.collaborators import ParsedIntent, SourceControl, UsageMonitor
from tessera.conflicts import ConflictDetector, TemplateConflict
from tessera.core import DEFAULT_CONFIG, REGISTRY_FILENAME, load_store, read_config, save_store
from tessera.deprecation import DeprecationPlan, DeprecationScheduler
from tessera.discovery import (
    CompositionSuggestion,
    Improvement,
    ReusabilityAnalysis,
    analyze_template_reusability,
    suggest_improvements,
    suggest_template_composition,
)
from tessera.migration import MigrationPlan, MigrationPlanner, PhaseExecution
from tessera.models import Capability, CapabilityFilter, MaturityLevel, ResolutionStrategy, Template, TemplateFilter
from tessera.resolutions import ConflictResolution, ResolutionExecutor, generate_resolutions
from tessera.store import CapabilityStore
from tessera.types.core import RegistryConfig

logger = logging.getLogger(__name__)


class Registry:
    """A capability store plus the detector, planner, scheduler and executor bound to it."""

    def __init__(
        self,
        store: CapabilityStore | None = None,
        *,
        config: RegistryConfig | None = None,
        source_control: SourceControl | None = None,
        usage_monitor: UsageMonitor | None = None,
        path: Path | None = None,
    ) -> None:
        cfg = RegistryConfig(**DEFAULT_CONFIG)
        if config:
            cfg.update(config)
        self.config = cfg
        self.store = store if store is not None else CapabilityStore()
        self.path = path
        self.detector = ConflictDetector(
            self.store,
            functionality_threshold=cfg["functionality_threshold"],
            usage_monitor=usage_monitor,
        )
        self.planner = MigrationPlanner(self.store, source_control)
        self.scheduler = DeprecationScheduler(
            self.store,
            self.detector,
            self.planner,
            grace_period_days=cfg["grace_period_days"],
            final_notice_days=cfg["final_notice_days"],
            replacement_threshold=cfg["replacement_threshold"],
        )
        self.executor = ResolutionExecutor(self.store)

    @classmethod
    def open(cls, tessera_dir: Path, **kwargs: Any) -> Registry:
        """Load the registry persisted under *tessera_dir* (empty if none yet)."""
        path = tessera_dir / REGISTRY_FILENAME
        return cls(load_store(path), config=read_config(tessera_dir), path=path, **kwargs)

    def save(self) -> None:
        if self.path is None:
            msg = "Registry has no backing file; construct it with Registry.open() or pass path="
            raise ValueError(msg)
        save_store(self.store, self.path)

    # -- Capabilities ----------------------------------------------------------

    def register_capability(self, capability: Capability) -> Capability:
        return self.store.register(capability)

    def capability_from_intent(self, intent: ParsedIntent, capability_id: str) -> Capability:
        """Register a template-less capability built from a parsed intent."""
        return self.store.register(intent.to_capability(capability_id))

    def get_capability(self, capability_id: str) -> Capability:
        return self.store.get(capability_id)

    def list_capabilities(self, capability_filter: CapabilityFilter | None = None) -> list[Capability]:
        return self.store.list_capabilities(capability_filter)

    def search_capabilities(self, query: str) -> list[Capability]:
        return self.store.search(query)

    def update_capability(self, capability_id: str, changes: Mapping[str, Any]) -> Capability:
        return self.store.update(capability_id, changes)

    def delete_capability(self, capability_id: str) -> None:
        self.store.delete(capability_id)

    def set_maturity(self, capability_id: str, level: MaturityLevel | str) -> Capability:
        return self.store.set_maturity(capability_id, level)

    # -- Templates -------------------------------------------------------------

    def add_template(self, capability_id: str, template: Template) -> Template:
        return self.store.add_template(capability_id, template)

    def get_capability_templates(self, capability_id: str) -> list[Template]:
        return self.store.get_templates(capability_id)

    def find_template(self, template_id: str) -> tuple[Capability, Template]:
        return self.store.find_template(template_id)

    def list_templates(self, template_filter: TemplateFilter | None = None) -> list[tuple[Capability, Template]]:
        return self.store.list_templates(template_filter)

    # -- Conflicts and resolutions ---------------------------------------------

    def detect_conflicts(self, template: Template, *, capability_id: str | None = None) -> list[TemplateConflict]:
        return self.detector.detect_conflicts(template, capability_id=capability_id)

    def generate_resolutions(self, conflicts: list[TemplateConflict]) -> list[ConflictResolution]:
        return generate_resolutions(conflicts)

    def check_template_conflicts(self, template: Template) -> list[Template]:
        return self.detector.check_template_conflicts(template)

    def find_similar_templates(self, template_id: str, threshold: float = 0.7) -> list[Template]:
        return self.detector.find_similar_templates(template_id, threshold)

    def execute_resolution(self, template_id: str, resolution: ConflictResolution | ResolutionStrategy) -> Template:
        return self.executor.execute(template_id, resolution)

    # -- Migration and deprecation ---------------------------------------------

    def create_migration_plan(self, template_id: str, target_template_id: str | None = None) -> MigrationPlan:
        return self.planner.create_migration_plan(template_id, target_template_id)

    async def execute_phase(self, plan: MigrationPlan, phase_id: str) -> PhaseExecution:
        return await self.planner.execute_phase(plan, phase_id)

    def get_migration_path(self, template_id: str) -> list[str]:
        return self.planner.get_migration_path(template_id)

    def create_deprecation_plan(
        self, template_id: str, reason: str, timeline_months: int, *, now: datetime | None = None
    ) -> DeprecationPlan:
        return self.scheduler.create_deprecation_plan(template_id, reason, timeline_months, now=now)

    # -- Discovery -------------------------------------------------------------

    def suggest_improvements(self, capability_id: str) -> list[Improvement]:
        return suggest_improvements(self.store.get(capability_id))

    def suggest_template_composition(self, template_id: str) -> list[CompositionSuggestion]:
        return suggest_template_composition(self.store, self.detector, template_id)

    def analyze_template_reusability(self, template_id: str, *, now: datetime | None = None) -> ReusabilityAnalysis:
        return analyze_template_reusability(self.store, self.detector, template_id, now=now)
