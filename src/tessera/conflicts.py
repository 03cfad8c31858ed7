"""Conflict detection between a candidate template and the store.

The detector scans every stored template in capability-then-template
insertion order and reports conflicts in discovery order. A single
comparison can produce several conflict types. Detection never fails for
business reasons; an empty list means no conflicts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tessera.collaborators import UsageMonitor
from tessera.models import Capability, ConflictType, Severity, Template
from tessera.similarity import template_similarity
from tessera.store import CapabilityStore
from tessera.types.planning import ConflictDict

logger = logging.getLogger(__name__)

DEFAULT_FUNCTIONALITY_THRESHOLD = 0.85
DEFAULT_SIMILARITY_THRESHOLD = 0.7


@dataclass(frozen=True)
class TemplateConflict:
    """A collision between a candidate and an existing template. Never persisted."""

    type: ConflictType
    severity: Severity
    description: str
    conflicting_template: Template
    affected_capabilities: tuple[str, ...]

    def to_dict(self) -> ConflictDict:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
            "conflicting_template": self.conflicting_template.to_dict(),
            "affected_capabilities": list(self.affected_capabilities),
        }


class ConflictDetector:
    """Scans a CapabilityStore for collisions with a candidate template."""

    def __init__(
        self,
        store: CapabilityStore,
        *,
        functionality_threshold: float = DEFAULT_FUNCTIONALITY_THRESHOLD,
        usage_monitor: UsageMonitor | None = None,
    ) -> None:
        self._store = store
        self.functionality_threshold = functionality_threshold
        # Accepted for future severity biasing; not consulted by scoring yet.
        self.usage_monitor = usage_monitor

    def detect_conflicts(self, template: Template, *, capability_id: str | None = None) -> list[TemplateConflict]:
        """Return every conflict between *template* and the stored templates.

        A stored template equal to the candidate in every field is the
        candidate itself and is skipped. Missing-dependency conflicts follow
        the template comparisons: only *capability_id*'s dependencies are
        checked when it is given, otherwise every capability's.
        """
        pairs = self._store.iter_templates()
        conflicts: list[TemplateConflict] = []
        for owner, existing in pairs:
            if existing == template:
                continue
            conflicts.extend(self._compare(template, owner, existing))

        if capability_id is not None:
            owners = [self._store.get(capability_id)]
        else:
            owners = self._store.capabilities()
        for owner in owners:
            conflicts.extend(self._dependency_conflicts(template, owner))

        logger.debug(
            "Detected %d conflicts for template %s across %d templates",
            len(conflicts),
            template.id,
            len(pairs),
            extra={"op": "detect_conflicts", "template_id": template.id},
        )
        return conflicts

    def _compare(self, candidate: Template, owner: Capability, existing: Template) -> list[TemplateConflict]:
        found: list[TemplateConflict] = []
        affected = (owner.id,)
        if existing.id == candidate.id:
            found.append(
                TemplateConflict(
                    type=ConflictType.ID,
                    severity=Severity.CRITICAL,
                    description=f"Template ID '{candidate.id}' already exists in capability '{owner.id}'",
                    conflicting_template=existing,
                    affected_capabilities=affected,
                )
            )
        if existing.name == candidate.name:
            found.append(
                TemplateConflict(
                    type=ConflictType.NAME,
                    severity=Severity.HIGH,
                    description=f"Template name '{candidate.name}' already exists in capability '{owner.id}'",
                    conflicting_template=existing,
                    affected_capabilities=affected,
                )
            )
        similarity = template_similarity(candidate, existing)
        if similarity > self.functionality_threshold:
            found.append(
                TemplateConflict(
                    type=ConflictType.FUNCTIONALITY,
                    severity=Severity.MEDIUM,
                    description=(
                        f"Template functionality overlaps significantly ({round(similarity * 100)}%) "
                        f"with '{existing.name}'"
                    ),
                    conflicting_template=existing,
                    affected_capabilities=affected,
                )
            )
        if existing.name == candidate.name and existing.version != candidate.version:
            found.append(
                TemplateConflict(
                    type=ConflictType.VERSION,
                    severity=Severity.LOW,
                    description=(
                        f"Version conflict: '{candidate.name}' exists with version {existing.version}, "
                        f"new version is {candidate.version}"
                    ),
                    conflicting_template=existing,
                    affected_capabilities=affected,
                )
            )
        return found

    def _dependency_conflicts(self, candidate: Template, owner: Capability) -> list[TemplateConflict]:
        return [
            TemplateConflict(
                type=ConflictType.DEPENDENCY,
                severity=Severity.HIGH,
                description=f"Missing dependency: capability '{owner.id}' depends on unregistered '{dep}'",
                conflicting_template=candidate,
                affected_capabilities=(owner.id,),
            )
            for dep in self._store.missing_dependencies(owner)
        ]

    def check_template_conflicts(self, template: Template) -> list[Template]:
        """Coarse check: stored templates sharing the candidate's id or name."""
        return [
            existing
            for _, existing in self._store.iter_templates()
            if existing.id == template.id or existing.name == template.name
        ]

    def find_similar_templates(self, template_id: str, threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> list[Template]:
        """Other templates scoring at least *threshold*, most similar first.

        Ties keep scan order. Raises NotFoundError if *template_id* is unknown.
        """
        _, source = self._store.find_template(template_id)
        scored = self.score_against(source, exclude_id=template_id)
        return [tpl for tpl, score in scored if score >= threshold]

    def score_against(self, source: Template, *, exclude_id: str | None = None) -> list[tuple[Template, float]]:
        """Score *source* against every stored template, sorted by descending similarity."""
        excluded = source.id if exclude_id is None else exclude_id
        scored = [
            (tpl, template_similarity(source, tpl))
            for _, tpl in self._store.iter_templates()
            if tpl.id != excluded
        ]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored
