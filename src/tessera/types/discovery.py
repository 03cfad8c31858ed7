"""TypedDicts for discovery.py return types."""

from __future__ import annotations

from typing import TypedDict

from tessera.types.core import TemplateDict


class ImprovementDict(TypedDict):
    type: str
    description: str
    priority: str
    effort: str


class CompositionSuggestionDict(TypedDict):
    type: str
    description: str
    target_template: TemplateDict
    benefits: list[str]
    effort: str


class ReusabilityAnalysisDict(TypedDict):
    template: TemplateDict
    reusability_score: int
    strengths: list[str]
    weaknesses: list[str]
    improvement_suggestions: list[str]
    compatible_templates: list[TemplateDict]
