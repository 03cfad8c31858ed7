"""Migration planning between template versions.

A strategy is chosen from the similarity of source and target, then
expanded into a fixed sequence of phases. Phase content lives in
``PHASE_TEMPLATES`` as data; callers that need different prose can build
plans from their own phase tuples without changing the planning rules.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import assert_never

from tessera.collaborators import LoggingSourceControl, SourceControl, StepOutcome
from tessera.errors import InvalidPhaseError, NotFoundError
from tessera.models import MaturityLevel, MigrationStrategy, Template
from tessera.similarity import template_similarity
from tessera.store import CapabilityStore
from tessera.types.planning import MigrationPhaseDict, MigrationPlanDict, PhaseExecutionDict

logger = logging.getLogger(__name__)

DIRECT_THRESHOLD = 0.8
PHASED_THRESHOLD = 0.5
WEEKS_PER_MONTH = 4

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s+(day|days|week|weeks)\b", re.IGNORECASE)


@dataclass(frozen=True)
class MigrationPhase:
    id: str
    name: str
    description: str
    duration: str
    prerequisites: tuple[str, ...]
    steps: tuple[str, ...]
    validation_criteria: tuple[str, ...]
    rollback_steps: tuple[str, ...]

    def to_dict(self) -> MigrationPhaseDict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "duration": self.duration,
            "prerequisites": list(self.prerequisites),
            "steps": list(self.steps),
            "validation_criteria": list(self.validation_criteria),
            "rollback_steps": list(self.rollback_steps),
        }


@dataclass
class MigrationPlan:
    """Ordered phases moving usage from one template to another (or to retirement).

    Mutable only in ``completed_phases``, which ``execute_phase`` appends to.
    """

    from_template: Template
    to_template: Template | None
    strategy: MigrationStrategy
    phases: tuple[MigrationPhase, ...]
    estimated_duration: str
    rollback_plan: tuple[str, ...]
    dependencies: tuple[str, ...]
    validation_steps: tuple[str, ...]
    completed_phases: list[str] = field(default_factory=list)

    def phase(self, phase_id: str) -> MigrationPhase:
        for p in self.phases:
            if p.id == phase_id:
                return p
        raise NotFoundError("migration phase", phase_id)

    def to_dict(self) -> MigrationPlanDict:
        return {
            "from_template": self.from_template.to_dict(),
            "to_template": self.to_template.to_dict() if self.to_template else None,
            "strategy": self.strategy.value,
            "phases": [p.to_dict() for p in self.phases],
            "estimated_duration": self.estimated_duration,
            "rollback_plan": list(self.rollback_plan),
            "dependencies": list(self.dependencies),
            "validation_steps": list(self.validation_steps),
            "completed_phases": list(self.completed_phases),
        }


@dataclass(frozen=True)
class PhaseExecution:
    phase_id: str
    outcomes: tuple[StepOutcome, ...]
    completed_phases: tuple[str, ...]

    def to_dict(self) -> PhaseExecutionDict:
        return {
            "phase_id": self.phase_id,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "completed_phases": list(self.completed_phases),
        }


# ---------------------------------------------------------------------------
# Phase templates
# ---------------------------------------------------------------------------

PHASE_TEMPLATES: dict[MigrationStrategy, tuple[MigrationPhase, ...]] = {
    MigrationStrategy.DIRECT: (
        MigrationPhase(
            id="preparation",
            name="Migration Preparation",
            description="Prepare for direct migration",
            duration="1 week",
            prerequisites=("Backup existing implementations", "Notify stakeholders"),
            steps=(
                "Analyze current template usage",
                "Identify all dependent services",
                "Create migration scripts",
                "Set up monitoring for migration",
            ),
            validation_criteria=(
                "All dependencies identified",
                "Migration scripts tested",
                "Rollback plan validated",
            ),
            rollback_steps=("Restore from backup", "Revert configuration changes"),
        ),
        MigrationPhase(
            id="execution",
            name="Direct Migration",
            description="Execute direct migration to new template",
            duration="3 days",
            prerequisites=("Preparation phase completed", "Stakeholder approval"),
            steps=(
                "Execute migration scripts",
                "Update all references",
                "Validate new implementations",
                "Update documentation",
            ),
            validation_criteria=(
                "All services migrated successfully",
                "No functionality regression",
                "Performance metrics maintained",
            ),
            rollback_steps=("Execute rollback scripts", "Restore original template"),
        ),
    ),
    MigrationStrategy.PHASED: (
        MigrationPhase(
            id="pilot",
            name="Pilot Migration",
            description="Migrate a subset of services as pilot",
            duration="2 weeks",
            prerequisites=("Pilot services identified", "Migration plan approved"),
            steps=(
                "Select pilot services",
                "Migrate pilot services",
                "Monitor pilot performance",
                "Gather feedback and adjust",
            ),
            validation_criteria=(
                "Pilot services working correctly",
                "No critical issues identified",
                "Stakeholder feedback positive",
            ),
            rollback_steps=("Revert pilot services", "Document lessons learned"),
        ),
        MigrationPhase(
            id="gradual-rollout",
            name="Gradual Rollout",
            description="Gradually migrate remaining services",
            duration="4 weeks",
            prerequisites=("Pilot phase successful", "Issues resolved"),
            steps=(
                "Migrate services in batches",
                "Monitor each batch",
                "Address issues as they arise",
                "Update documentation continuously",
            ),
            validation_criteria=(
                "All services migrated",
                "System stability maintained",
                "User satisfaction maintained",
            ),
            rollback_steps=("Batch rollback procedures", "Incident response plan"),
        ),
    ),
    MigrationStrategy.PARALLEL: (
        MigrationPhase(
            id="parallel-setup",
            name="Parallel Environment Setup",
            description="Set up new template alongside existing",
            duration="1 week",
            prerequisites=("Infrastructure capacity available", "Approval obtained"),
            steps=(
                "Deploy new template infrastructure",
                "Configure parallel environment",
                "Set up data synchronization",
                "Implement traffic routing",
            ),
            validation_criteria=(
                "Parallel environment operational",
                "Data sync working correctly",
                "Traffic routing configured",
            ),
            rollback_steps=("Shut down parallel environment", "Remove routing rules"),
        ),
        MigrationPhase(
            id="traffic-migration",
            name="Traffic Migration",
            description="Gradually shift traffic to new template",
            duration="3 weeks",
            prerequisites=("Parallel environment validated", "Monitoring in place"),
            steps=(
                "Start with 10% traffic",
                "Monitor and validate",
                "Increase to 50% traffic",
                "Complete migration to 100%",
            ),
            validation_criteria=(
                "All traffic migrated",
                "Performance metrics met",
                "No data loss occurred",
            ),
            rollback_steps=("Revert traffic routing", "Validate original system"),
        ),
    ),
    MigrationStrategy.GRADUAL: (
        MigrationPhase(
            id="deprecation-announcement",
            name="Deprecation Announcement",
            description="Announce template deprecation",
            duration="1 week",
            prerequisites=("Deprecation plan approved", "Communication plan ready"),
            steps=(
                "Send deprecation notices",
                "Update documentation",
                "Provide migration guidance",
                "Set up support channels",
            ),
            validation_criteria=(
                "All stakeholders notified",
                "Documentation updated",
                "Support channels active",
            ),
            rollback_steps=("Retract deprecation notice", "Restore full support"),
        ),
        MigrationPhase(
            id="support-reduction",
            name="Support Reduction",
            description="Gradually reduce support for deprecated template",
            duration="8 weeks",
            prerequisites=("Grace period elapsed", "Migration alternatives provided"),
            steps=(
                "Reduce to maintenance-only support",
                "Stop feature development",
                "Provide security updates only",
                "Final migration assistance",
            ),
            validation_criteria=(
                "Support level clearly communicated",
                "Security updates maintained",
                "Migration assistance provided",
            ),
            rollback_steps=("Restore full support", "Resume development"),
        ),
    ),
}

_BASELINE_DEPENDENCIES = (
    "Stakeholder approval",
    "Infrastructure capacity",
    "Backup and recovery procedures",
    "Monitoring and alerting setup",
)

_ROLLBACK_STEPS = (
    "1. Immediately stop migration process",
    "2. Assess current state and identify affected services",
    "3. Execute rollback scripts to restore original state",
    "4. Validate all services are functioning correctly",
    "5. Notify stakeholders of rollback completion",
    "6. Conduct post-incident review",
    "7. Document lessons learned and update migration plan",
)

_VALIDATION_STEPS = (
    "Validate all services are operational",
    "Check performance metrics are within acceptable ranges",
    "Verify data integrity and consistency",
    "Confirm security controls are functioning",
    "Test critical user workflows",
    "Validate monitoring and alerting",
)


# ---------------------------------------------------------------------------
# Planning rules (pure)
# ---------------------------------------------------------------------------


def strategy_for_similarity(similarity: float | None) -> MigrationStrategy:
    """Map a similarity score to a strategy; ``None`` means no target."""
    if similarity is None:
        return MigrationStrategy.GRADUAL
    if similarity > DIRECT_THRESHOLD:
        return MigrationStrategy.DIRECT
    if similarity > PHASED_THRESHOLD:
        return MigrationStrategy.PHASED
    return MigrationStrategy.PARALLEL


def determine_strategy(source: Template, target: Template | None = None) -> MigrationStrategy:
    if target is None:
        return strategy_for_similarity(None)
    return strategy_for_similarity(template_similarity(source, target))


def phases_for(strategy: MigrationStrategy) -> tuple[MigrationPhase, ...]:
    match strategy:
        case MigrationStrategy.DIRECT | MigrationStrategy.PHASED | MigrationStrategy.PARALLEL | MigrationStrategy.GRADUAL:
            return PHASE_TEMPLATES[strategy]
        case _:
            assert_never(strategy)


def duration_weeks(duration: str) -> int:
    """Whole weeks in a phase duration such as ``"2 weeks"`` or ``"3 days"``.

    Day counts contribute only complete weeks, so ``"3 days"`` is 0.
    """
    match = _DURATION_PATTERN.match(duration)
    if match is None:
        msg = f"Unrecognised phase duration {duration!r}: expected '<n> days' or '<n> weeks'"
        raise ValueError(msg)
    count = int(match.group(1))
    if match.group(2).lower().startswith("day"):
        return count // 7
    return count


def estimate_duration(phases: Sequence[MigrationPhase]) -> str:
    """Total duration: weeks up to four, otherwise whole months rounded up."""
    total = sum(duration_weeks(p.duration) for p in phases)
    if total <= WEEKS_PER_MONTH:
        return f"{total} week" if total == 1 else f"{total} weeks"
    return f"{math.ceil(total / WEEKS_PER_MONTH)} months"


def migration_dependencies(source: Template, target: Template | None) -> tuple[str, ...]:
    deps = list(_BASELINE_DEPENDENCIES)
    if target is not None:
        deps += [
            f"Target template {target.id} available",
            "Migration scripts tested",
            "Compatibility validation completed",
        ]
    if source.maturity_level >= MaturityLevel.OPERATIONS:
        deps += ["Operational runbooks updated", "SLA impact assessment completed"]
    if source.maturity_level >= MaturityLevel.GOVERNANCE:
        deps += ["Compliance review completed", "Security assessment approved"]
    return tuple(deps)


def rollback_plan(target: Template | None) -> tuple[str, ...]:
    if target is None:
        return _ROLLBACK_STEPS
    return (*_ROLLBACK_STEPS, "8. Preserve target template for future migration attempts")


def validation_steps(target: Template | None) -> tuple[str, ...]:
    if target is None:
        return _VALIDATION_STEPS
    return (
        *_VALIDATION_STEPS,
        f"Confirm new template {target.id} is functioning correctly",
        "Validate feature parity with original template",
    )


def build_plan(source: Template, target: Template | None = None) -> MigrationPlan:
    strategy = determine_strategy(source, target)
    phases = phases_for(strategy)
    return MigrationPlan(
        from_template=source,
        to_template=target,
        strategy=strategy,
        phases=phases,
        estimated_duration=estimate_duration(phases),
        rollback_plan=rollback_plan(target),
        dependencies=migration_dependencies(source, target),
        validation_steps=validation_steps(target),
    )


# ---------------------------------------------------------------------------
# MigrationPlanner
# ---------------------------------------------------------------------------


class MigrationPlanner:
    """Builds migration plans from store templates and executes their phases."""

    def __init__(self, store: CapabilityStore, source_control: SourceControl | None = None) -> None:
        self._store = store
        self._source_control: SourceControl = source_control or LoggingSourceControl()
        self._execution_lock = asyncio.Lock()

    def create_migration_plan(self, template_id: str, target_template_id: str | None = None) -> MigrationPlan:
        """Plan a migration from *template_id* to an optional target.

        Raises NotFoundError if either id does not resolve.
        """
        _, source = self._store.find_template(template_id)
        target = self._store.find_template(target_template_id)[1] if target_template_id else None
        plan = build_plan(source, target)
        logger.info(
            "Planned %s migration %s -> %s (%s)",
            plan.strategy.value,
            template_id,
            target_template_id or "retirement",
            plan.estimated_duration,
            extra={"op": "create_migration_plan", "template_id": template_id},
        )
        return plan

    def get_migration_path(self, template_id: str) -> list[str]:
        """Human checklist for moving off a template."""
        _, template = self._store.find_template(template_id)
        return [
            f"1. Review current usage of template '{template.name}'",
            "2. Identify alternative templates with similar functionality",
            "3. Assess migration effort and impact",
            "4. Plan phased migration approach",
            "5. Execute migration with rollback plan",
            "6. Remove deprecated template references",
            "7. Update documentation and training materials",
        ]

    async def execute_phase(self, plan: MigrationPlan, phase_id: str) -> PhaseExecution:
        """Run one phase of *plan* through the source-control collaborator.

        Checks that prerequisites are declared (a structural check, not a live
        readiness check), submits each step in order, then checks that
        validation criteria are declared before marking the phase complete.

        Raises:
            NotFoundError: If *phase_id* is not part of the plan.
            InvalidPhaseError: On a structural failure or a failed step.
        """
        phase = plan.phase(phase_id)
        t0 = time.monotonic()
        async with self._execution_lock:
            if not phase.prerequisites:
                raise InvalidPhaseError(phase.id, "no prerequisites defined")
            outcomes: list[StepOutcome] = []
            for step in phase.steps:
                outcome = await self._source_control.submit_for_execution(step)
                outcomes.append(outcome)
                if not outcome.success:
                    logger.warning(
                        "Step failed in phase %s: %s (%s)",
                        phase.id,
                        step,
                        outcome.detail,
                        extra={"op": "execute_phase", "template_id": plan.from_template.id, "error": outcome.detail},
                    )
                    raise InvalidPhaseError(phase.id, f"step '{step}' failed: {outcome.detail or 'no detail'}")
            if not phase.validation_criteria:
                raise InvalidPhaseError(phase.id, "no validation criteria defined")
            if phase.id not in plan.completed_phases:
                plan.completed_phases.append(phase.id)
        duration_ms = round((time.monotonic() - t0) * 1000, 1)
        logger.info(
            "Completed migration phase %s (%d steps)",
            phase.id,
            len(outcomes),
            extra={"op": "execute_phase", "template_id": plan.from_template.id, "duration_ms": duration_ms},
        )
        return PhaseExecution(phase_id=phase.id, outcomes=tuple(outcomes), completed_phases=tuple(plan.completed_phases))
