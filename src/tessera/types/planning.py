"""TypedDicts for conflicts.py, resolutions.py, migration.py, and deprecation.py."""

from __future__ import annotations

from typing import TypedDict

from tessera.types.core import ISOTimestamp, TemplateDict

# ---------------------------------------------------------------------------
# conflicts.py / resolutions.py types
# ---------------------------------------------------------------------------


class ConflictDict(TypedDict):
    type: str
    severity: str
    description: str
    conflicting_template: TemplateDict
    affected_capabilities: list[str]


class ResolutionDict(TypedDict):
    strategy: str
    description: str
    steps: list[str]
    impact: str
    effort: str
    risks: list[str]
    benefits: list[str]


# ---------------------------------------------------------------------------
# migration.py types
# ---------------------------------------------------------------------------


class MigrationPhaseDict(TypedDict):
    id: str
    name: str
    description: str
    duration: str
    prerequisites: list[str]
    steps: list[str]
    validation_criteria: list[str]
    rollback_steps: list[str]


class MigrationPlanDict(TypedDict):
    from_template: TemplateDict
    to_template: TemplateDict | None
    strategy: str
    phases: list[MigrationPhaseDict]
    estimated_duration: str
    rollback_plan: list[str]
    dependencies: list[str]
    validation_steps: list[str]
    completed_phases: list[str]


class StepOutcomeDict(TypedDict):
    step: str
    success: bool
    detail: str


class PhaseExecutionDict(TypedDict):
    """Result of ``MigrationPlanner.execute_phase()``."""

    phase_id: str
    outcomes: list[StepOutcomeDict]
    completed_phases: list[str]


# ---------------------------------------------------------------------------
# deprecation.py types
# ---------------------------------------------------------------------------


class DeprecationNotificationDict(TypedDict):
    date: ISOTimestamp
    type: str
    channels: list[str]
    message: str


class DeprecationPlanDict(TypedDict):
    template: TemplateDict
    deprecation_date: ISOTimestamp
    end_of_life_date: ISOTimestamp
    reason: str
    replacement_templates: list[TemplateDict]
    migration_plan: MigrationPlanDict
    notification_schedule: list[DeprecationNotificationDict]
    support_level: str
