"""Resolution strategies for detected conflicts, and their execution.

Generation is a pure mapping from conflict type to one strategy. Steps,
risks and benefits are operator checklists; they are never machine-run.
Execution applies exactly one record mutation per strategy.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import assert_never

from tessera.conflicts import TemplateConflict
from tessera.errors import InvalidTemplateError
from tessera.models import ConflictType, Effort, Impact, ResolutionStrategy, Template
from tessera.store import CapabilityStore
from tessera.types.planning import ResolutionDict

logger = logging.getLogger(__name__)

RENAME_SUFFIX = "-v2"
MERGED_MARKER = " (Merged template)"
DEPRECATED_MARKER = " (DEPRECATED)"

_MAJOR_VERSION = re.compile(r"^v?(\d+)")


@dataclass(frozen=True)
class ConflictResolution:
    strategy: ResolutionStrategy
    description: str
    steps: tuple[str, ...]
    impact: Impact
    effort: Effort
    risks: tuple[str, ...]
    benefits: tuple[str, ...]

    def to_dict(self) -> ResolutionDict:
        return {
            "strategy": self.strategy.value,
            "description": self.description,
            "steps": list(self.steps),
            "impact": self.impact.value,
            "effort": self.effort.value,
            "risks": list(self.risks),
            "benefits": list(self.benefits),
        }


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def strategy_for(conflict_type: ConflictType) -> ResolutionStrategy:
    match conflict_type:
        case ConflictType.ID:
            return ResolutionStrategy.RENAME
        case ConflictType.NAME:
            return ResolutionStrategy.NAMESPACE
        case ConflictType.FUNCTIONALITY:
            return ResolutionStrategy.MERGE
        case ConflictType.VERSION:
            return ResolutionStrategy.VERSION
        case ConflictType.DEPENDENCY:
            return ResolutionStrategy.DEPRECATE
        case _:
            assert_never(conflict_type)


def build_resolution(strategy: ResolutionStrategy, conflicting_id: str | None = None) -> ConflictResolution:
    """Return the canonical resolution for *strategy*.

    *conflicting_id* only shapes the example id in the rename checklist.
    """
    match strategy:
        case ResolutionStrategy.RENAME:
            example = f"{conflicting_id}{RENAME_SUFFIX}" if conflicting_id else f"<template-id>{RENAME_SUFFIX}"
            return ConflictResolution(
                strategy=strategy,
                description="Rename template ID to avoid conflict",
                steps=(
                    f"Generate unique ID for template (e.g., {example})",
                    "Update all references to use new ID",
                    "Validate no other conflicts exist with new ID",
                    "Update documentation and examples",
                ),
                impact=Impact.LOW,
                effort=Effort.SMALL,
                risks=("Potential confusion with similar IDs",),
                benefits=("Resolves critical conflict", "Maintains both templates"),
            )
        case ResolutionStrategy.NAMESPACE:
            return ConflictResolution(
                strategy=strategy,
                description="Add namespace or prefix to template name",
                steps=(
                    "Add capability or domain prefix to template name",
                    "Update template metadata and documentation",
                    "Ensure new name is descriptive and unique",
                    "Update usage examples and references",
                ),
                impact=Impact.LOW,
                effort=Effort.SMALL,
                risks=("Longer template names may be less user-friendly",),
                benefits=("Clear differentiation", "Maintains both templates"),
            )
        case ResolutionStrategy.MERGE:
            return ConflictResolution(
                strategy=strategy,
                description="Merge similar templates to eliminate duplication",
                steps=(
                    "Analyze differences between templates",
                    "Create unified template with configurable options",
                    "Migrate existing users to unified template",
                    "Deprecate redundant template",
                    "Update documentation and examples",
                ),
                impact=Impact.MEDIUM,
                effort=Effort.MEDIUM,
                risks=("May increase template complexity", "Requires user migration", "Potential breaking changes"),
                benefits=("Eliminates duplication", "Reduces maintenance overhead", "Provides unified solution"),
            )
        case ResolutionStrategy.VERSION:
            return ConflictResolution(
                strategy=strategy,
                description="Implement proper versioning strategy",
                steps=(
                    "Establish semantic versioning for templates",
                    "Create version compatibility matrix",
                    "Implement backward compatibility where possible",
                    "Plan migration path for breaking changes",
                    "Update template registry with version metadata",
                ),
                impact=Impact.MEDIUM,
                effort=Effort.MEDIUM,
                risks=("Complexity in version management",),
                benefits=("Clear evolution path", "Backward compatibility", "Professional versioning approach"),
            )
        case ResolutionStrategy.DEPRECATE:
            return ConflictResolution(
                strategy=strategy,
                description="Deprecate conflicting dependency and migrate",
                steps=(
                    "Identify alternative dependencies",
                    "Create migration plan for affected templates",
                    "Implement gradual deprecation timeline",
                    "Provide migration tools and documentation",
                    "Monitor and support migration process",
                ),
                impact=Impact.HIGH,
                effort=Effort.LARGE,
                risks=(
                    "May break existing implementations",
                    "Requires coordinated migration",
                    "Potential service disruption",
                ),
                benefits=(
                    "Resolves dependency conflicts",
                    "Modernizes template stack",
                    "Improves long-term maintainability",
                ),
            )
        case _:
            assert_never(strategy)


def generate_resolutions(conflicts: Iterable[TemplateConflict]) -> list[ConflictResolution]:
    """One resolution per conflict, in the same order."""
    return [
        build_resolution(strategy_for(conflict.type), conflict.conflicting_template.id)
        for conflict in conflicts
    ]


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def bump_major(version: str) -> str:
    """``1.4.2`` -> ``2.0.0``. A leading ``v`` is accepted and dropped."""
    match = _MAJOR_VERSION.match(version)
    if match is None:
        raise InvalidTemplateError("version", version, "has no numeric major component to bump")
    return f"{int(match.group(1)) + 1}.0.0"


class ResolutionExecutor:
    """Applies a chosen resolution by rewriting the affected template record."""

    def __init__(self, store: CapabilityStore) -> None:
        self._store = store

    def execute(self, template_id: str, resolution: ConflictResolution | ResolutionStrategy) -> Template:
        """Mutate the first template with id *template_id* per the strategy.

        Lookup and write happen in one store transaction. A rename onto an
        id the owning capability already holds raises
        DuplicateTemplateIdError and leaves the store unchanged. Collisions
        with templates of other capabilities are not re-checked; run
        conflict detection again if that matters.

        Returns the rewritten template.
        """
        strategy = resolution.strategy if isinstance(resolution, ConflictResolution) else ResolutionStrategy(resolution)
        with self._store.transaction():
            owner, template = self._store.find_template(template_id)
            updated = self._apply(strategy, owner.name, template)
            self._store.replace_template(owner.id, template.id, updated)
        logger.info(
            "Applied %s resolution to template %s",
            strategy.value,
            template_id,
            extra={"op": "execute_resolution", "capability_id": owner.id, "template_id": updated.id},
        )
        return updated

    @staticmethod
    def _apply(strategy: ResolutionStrategy, capability_name: str, template: Template) -> Template:
        match strategy:
            case ResolutionStrategy.RENAME:
                return replace(template, id=f"{template.id}{RENAME_SUFFIX}")
            case ResolutionStrategy.NAMESPACE:
                return replace(template, name=f"{capability_name} - {template.name}")
            case ResolutionStrategy.MERGE:
                return replace(template, description=f"{template.description}{MERGED_MARKER}")
            case ResolutionStrategy.VERSION:
                return replace(template, version=bump_major(template.version))
            case ResolutionStrategy.DEPRECATE:
                return replace(template, description=f"{template.description}{DEPRECATED_MARKER}")
            case _:
                assert_never(strategy)
