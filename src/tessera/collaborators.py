"""Interfaces to systems outside the registry.

Source control, usage monitoring and natural-language intake are consumed
through these narrow Protocols. The registry never knows what a
"physical action" is; it only awaits an outcome per step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from tessera.models import Capability, DevelopmentPhase, MaturityLevel
from tessera.types.planning import StepOutcomeDict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepOutcome:
    """Result reported by a source-control collaborator for one step."""

    step: str
    success: bool
    detail: str = ""

    def to_dict(self) -> StepOutcomeDict:
        return {"step": self.step, "success": self.success, "detail": self.detail}


@dataclass(frozen=True)
class UsageSignal:
    executions: int
    success_rate: float


@runtime_checkable
class SourceControl(Protocol):
    """Executes migration or resolution steps that need a physical action."""

    async def submit_for_execution(self, step: str) -> StepOutcome: ...


@runtime_checkable
class UsageMonitor(Protocol):
    """Read-only usage statistics for a deployed template."""

    def usage_signal(self, template_id: str) -> UsageSignal | None: ...


class LoggingSourceControl:
    """Default collaborator: records each step in the log and reports success."""

    async def submit_for_execution(self, step: str) -> StepOutcome:
        logger.info("Executing migration step: %s", step, extra={"op": "submit_step"})
        return StepOutcome(step=step, success=True, detail="logged")


@dataclass(frozen=True)
class ParsedIntent:
    """Structured output of the natural-language intake stage."""

    capability: str
    description: str
    maturity_level: MaturityLevel
    phase: DevelopmentPhase
    requirements: tuple[str, ...] = ()
    constraints: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = field(default=())

    def to_capability(self, capability_id: str) -> Capability:
        """Build a registrable, template-less capability from this intent."""
        return Capability(
            id=capability_id,
            name=self.capability,
            description=self.description,
            maturity_level=self.maturity_level,
            phase=self.phase,
            dependencies=self.dependencies,
        )
