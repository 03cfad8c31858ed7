"""Reuse analysis over the registry: improvements, composition and reusability.

Advisory only. Nothing here mutates the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import assert_never

from tessera.conflicts import ConflictDetector
from tessera.models import Capability, Effort, MaturityLevel, Template
from tessera.similarity import template_similarity
from tessera.store import CapabilityStore
from tessera.types.discovery import CompositionSuggestionDict, ImprovementDict, ReusabilityAnalysisDict

logger = logging.getLogger(__name__)

COMPOSITION_THRESHOLD = 0.5
COMPATIBILITY_THRESHOLD = 0.3
EXTEND_THRESHOLD = 0.8
MERGE_THRESHOLD = 0.9
DEPENDENCY_COMPLEXITY_LIMIT = 5
WELL_DOCUMENTED_LENGTH = 50


class ImprovementType(StrEnum):
    MATURITY = "maturity"
    PERFORMANCE = "performance"
    STANDARDS = "standards"


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CompositionType(StrEnum):
    EXTEND = "extend"
    COMPOSE = "compose"
    MERGE = "merge"


@dataclass(frozen=True)
class Improvement:
    type: ImprovementType
    description: str
    priority: Priority
    effort: Effort

    def to_dict(self) -> ImprovementDict:
        return {
            "type": self.type.value,
            "description": self.description,
            "priority": self.priority.value,
            "effort": self.effort.value,
        }


@dataclass(frozen=True)
class CompositionSuggestion:
    type: CompositionType
    description: str
    target_template: Template
    benefits: tuple[str, ...]
    effort: Effort

    def to_dict(self) -> CompositionSuggestionDict:
        return {
            "type": self.type.value,
            "description": self.description,
            "target_template": self.target_template.to_dict(),
            "benefits": list(self.benefits),
            "effort": self.effort.value,
        }


@dataclass(frozen=True)
class ReusabilityAnalysis:
    template: Template
    reusability_score: int
    strengths: tuple[str, ...]
    weaknesses: tuple[str, ...]
    improvement_suggestions: tuple[str, ...]
    compatible_templates: tuple[Template, ...]

    def to_dict(self) -> ReusabilityAnalysisDict:
        return {
            "template": self.template.to_dict(),
            "reusability_score": self.reusability_score,
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "improvement_suggestions": list(self.improvement_suggestions),
            "compatible_templates": [t.to_dict() for t in self.compatible_templates],
        }


# ---------------------------------------------------------------------------
# Improvements
# ---------------------------------------------------------------------------


def _maturity_improvement(level: MaturityLevel) -> Improvement:
    match level:
        case MaturityLevel.GENERATION:
            return Improvement(
                ImprovementType.MATURITY, "Add deployment automation to reach L2 maturity", Priority.HIGH, Effort.MEDIUM
            )
        case MaturityLevel.DEPLOYMENT:
            return Improvement(
                ImprovementType.MATURITY, "Implement comprehensive monitoring and alerting", Priority.HIGH, Effort.MEDIUM
            )
        case MaturityLevel.OPERATIONS:
            return Improvement(
                ImprovementType.MATURITY, "Add policy enforcement and compliance checks", Priority.MEDIUM, Effort.LARGE
            )
        case MaturityLevel.GOVERNANCE:
            return Improvement(
                ImprovementType.MATURITY, "Enable intent-driven automation and self-healing", Priority.LOW, Effort.LARGE
            )
        case MaturityLevel.INTENT_DRIVEN:
            return Improvement(
                ImprovementType.PERFORMANCE, "Continuous optimization and evolution", Priority.LOW, Effort.SMALL
            )
        case _:
            assert_never(level)


def suggest_improvements(capability: Capability) -> list[Improvement]:
    """Next steps for *capability*: one per maturity level plus structural hints."""
    improvements = [_maturity_improvement(capability.maturity_level)]
    if len(capability.dependencies) > DEPENDENCY_COMPLEXITY_LIMIT:
        improvements.append(
            Improvement(ImprovementType.STANDARDS, "Reduce dependency complexity", Priority.MEDIUM, Effort.MEDIUM)
        )
    if not capability.templates:
        improvements.append(
            Improvement(ImprovementType.STANDARDS, "Add templates to capability", Priority.HIGH, Effort.SMALL)
        )
    return improvements


# ---------------------------------------------------------------------------
# Composition and reusability
# ---------------------------------------------------------------------------


def _complementary(a: Template, b: Template) -> bool:
    return a.phase != b.phase and a.maturity_level == b.maturity_level


def suggest_template_composition(store: CapabilityStore, detector: ConflictDetector, template_id: str) -> list[CompositionSuggestion]:
    """Ways to reuse templates similar to *template_id* instead of adding another.

    A single similar template can yield several suggestions. Raises
    NotFoundError if *template_id* does not resolve.
    """
    _, source = store.find_template(template_id)
    suggestions: list[CompositionSuggestion] = []
    for other in detector.find_similar_templates(template_id, COMPOSITION_THRESHOLD):
        score = template_similarity(source, other)
        if score > EXTEND_THRESHOLD:
            suggestions.append(
                CompositionSuggestion(
                    type=CompositionType.EXTEND,
                    description=f"Extend {other.name} instead of creating a new template",
                    target_template=other,
                    benefits=(
                        "Reuse existing proven patterns",
                        "Reduce maintenance overhead",
                        "Leverage existing documentation and examples",
                    ),
                    effort=Effort.SMALL,
                )
            )
        if _complementary(source, other):
            suggestions.append(
                CompositionSuggestion(
                    type=CompositionType.COMPOSE,
                    description=f"Compose with {other.name} for enhanced functionality",
                    target_template=other,
                    benefits=(
                        "Combine strengths of both templates",
                        "Create more comprehensive solution",
                        "Reduce duplication across templates",
                    ),
                    effort=Effort.MEDIUM,
                )
            )
        if score > MERGE_THRESHOLD:
            suggestions.append(
                CompositionSuggestion(
                    type=CompositionType.MERGE,
                    description=f"Consider merging with {other.name} to eliminate duplication",
                    target_template=other,
                    benefits=(
                        "Eliminate template duplication",
                        "Simplify template catalog",
                        "Reduce maintenance burden",
                    ),
                    effort=Effort.LARGE,
                )
            )
    logger.debug("%d composition suggestions for %s", len(suggestions), template_id)
    return suggestions


_MATURITY_BONUS: dict[MaturityLevel, int] = {
    MaturityLevel.GENERATION: 0,
    MaturityLevel.DEPLOYMENT: 10,
    MaturityLevel.OPERATIONS: 20,
    MaturityLevel.GOVERNANCE: 30,
    MaturityLevel.INTENT_DRIVEN: 40,
}


def reusability_score(template: Template, dependency_count: int, *, now: datetime | None = None) -> int:
    score = 50 + _MATURITY_BONUS[template.maturity_level]

    age_days = ((now or datetime.now(UTC)) - template.created_at).total_seconds() / 86400
    if age_days < 30:
        score += 10
    elif age_days < 90:
        score += 5

    if dependency_count == 0:
        score += 15
    elif dependency_count <= 2:
        score += 10
    elif dependency_count <= DEPENDENCY_COMPLEXITY_LIMIT:
        score += 5

    return min(100, max(0, score))


def analyze_template_reusability(
    store: CapabilityStore,
    detector: ConflictDetector,
    template_id: str,
    *,
    now: datetime | None = None,
) -> ReusabilityAnalysis:
    """Score how reusable *template_id* is and explain the score.

    Dependencies are counted on the owning capability. Raises NotFoundError
    if *template_id* does not resolve.
    """
    owner, template = store.find_template(template_id)
    dependency_count = len(owner.dependencies)
    strengths: list[str] = []
    weaknesses: list[str] = []
    suggestions: list[str] = []

    if template.maturity_level >= MaturityLevel.OPERATIONS:
        strengths.append("High maturity level with operational best practices")
    else:
        weaknesses.append("Lower maturity level may limit reusability")
        suggestions.append("Consider advancing to higher maturity level")

    if dependency_count <= 2:
        strengths.append("Minimal dependencies make it easy to reuse")
    else:
        weaknesses.append("High number of dependencies may complicate reuse")
        suggestions.append("Consider reducing dependency complexity")

    if len(template.description) > WELL_DOCUMENTED_LENGTH:
        strengths.append("Well-documented with clear description")
    else:
        weaknesses.append("Limited documentation may hinder adoption")
        suggestions.append("Add more comprehensive documentation")

    return ReusabilityAnalysis(
        template=template,
        reusability_score=reusability_score(template, dependency_count, now=now),
        strengths=tuple(strengths),
        weaknesses=tuple(weaknesses),
        improvement_suggestions=tuple(suggestions),
        compatible_templates=tuple(detector.find_similar_templates(template_id, COMPATIBILITY_THRESHOLD)),
    )
