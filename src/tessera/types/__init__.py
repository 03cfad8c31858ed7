# IMPORT CONSTRAINT: types/ modules must only import from typing, stdlib, and each other.
# NEVER import from models.py, store.py, or any component module; that would create import cycles.
"""Typed return-value contracts for tessera ``to_dict()`` outputs."""

from __future__ import annotations

from tessera.types.core import (
    CapabilityDict,
    ISOTimestamp,
    RegistryConfig,
    StoreSnapshot,
    TemplateDict,
)
from tessera.types.discovery import (
    CompositionSuggestionDict,
    ImprovementDict,
    ReusabilityAnalysisDict,
)
from tessera.types.planning import (
    ConflictDict,
    DeprecationNotificationDict,
    DeprecationPlanDict,
    MigrationPhaseDict,
    MigrationPlanDict,
    PhaseExecutionDict,
    ResolutionDict,
)

__all__ = [
    "CapabilityDict",
    "CompositionSuggestionDict",
    "ConflictDict",
    "DeprecationNotificationDict",
    "DeprecationPlanDict",
    "ISOTimestamp",
    "ImprovementDict",
    "MigrationPhaseDict",
    "MigrationPlanDict",
    "PhaseExecutionDict",
    "RegistryConfig",
    "ResolutionDict",
    "ReusabilityAnalysisDict",
    "StoreSnapshot",
    "TemplateDict",
]
