"""Exception taxonomy for registry operations.

Every failure is raised at the point of violation and carries the offending
ids and values as attributes, so callers can report or correct the input
without re-deriving it from logs. Nothing here is retried automatically.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class TesseraError(Exception):
    """Base class for all registry failures."""


class NotFoundError(TesseraError, KeyError):
    """Raised when a capability, template, or migration phase id does not resolve."""

    def __init__(self, kind: str, key: str) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind.capitalize()} '{key}' not found")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message and wrap it in quotes.
        return str(self.args[0])


class DuplicateIdError(TesseraError, ValueError):
    """Raised when registering a capability whose id is already present."""

    def __init__(self, capability_id: str) -> None:
        self.capability_id = capability_id
        super().__init__(
            f"Capability '{capability_id}' already exists. "
            f"Use update() to change it or delete() it before registering again."
        )


class DuplicateTemplateIdError(TesseraError, ValueError):
    """Raised when a template id already exists under the target capability."""

    def __init__(self, capability_id: str, template_id: str) -> None:
        self.capability_id = capability_id
        self.template_id = template_id
        super().__init__(f"Template '{template_id}' already exists in capability '{capability_id}'")


class InvalidCapabilityError(TesseraError, ValueError):
    """Raised when a capability fails structural validation."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid capability {field} {value!r}: {reason}")


class ImmutableFieldError(InvalidCapabilityError):
    """Raised when an update tries to change a capability's id."""

    def __init__(self, capability_id: str, attempted: Any) -> None:
        self.capability_id = capability_id
        super().__init__("id", attempted, f"id is immutable (current: '{capability_id}')")


class InvalidTemplateError(TesseraError, ValueError):
    """Raised when a template fails structural validation."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid template {field} {value!r}: {reason}")


class InvalidProgressionError(TesseraError, ValueError):
    """Raised on a maturity downgrade or a jump of more than one skipped level."""

    def __init__(self, capability_id: str, current: Any, attempted: Any, reason: str) -> None:
        self.capability_id = capability_id
        self.current = current
        self.attempted = attempted
        self.reason = reason
        current_label = getattr(current, "value", current)
        attempted_label = getattr(attempted, "value", attempted)
        super().__init__(
            f"Cannot move capability '{capability_id}' from {current_label} to {attempted_label}: {reason}"
        )


class HasDependentsError(TesseraError, ValueError):
    """Raised when deleting a capability that other capabilities depend on."""

    def __init__(self, capability_id: str, dependents: Sequence[str]) -> None:
        self.capability_id = capability_id
        self.dependents = list(dependents)
        names = ", ".join(self.dependents)
        super().__init__(f"Cannot delete capability '{capability_id}'. It is required by: {names}")


class InvalidPhaseError(TesseraError, ValueError):
    """Raised when a migration phase fails its structural checks or a step fails."""

    def __init__(self, phase_id: str, reason: str) -> None:
        self.phase_id = phase_id
        self.reason = reason
        super().__init__(f"Migration phase '{phase_id}' cannot run: {reason}")
