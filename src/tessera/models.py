"""Capability and template records, plus the closed enums shared by every component.

Capabilities and templates are frozen dataclasses. The store hands out
snapshots and replaces whole records on mutation, so a caller can never
change registry state through a reference it was given.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from tessera.errors import InvalidCapabilityError, InvalidProgressionError, InvalidTemplateError
from tessera.types.core import CapabilityDict, ISOTimestamp, TemplateDict
from tessera.validation import check_description, check_identifier, check_name, check_version

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class MaturityLevel(StrEnum):
    """Totally ordered maturity classification, L1 (lowest) to L5."""

    GENERATION = "L1_GENERATION"
    DEPLOYMENT = "L2_DEPLOYMENT"
    OPERATIONS = "L3_OPERATIONS"
    GOVERNANCE = "L4_GOVERNANCE"
    INTENT_DRIVEN = "L5_INTENT_DRIVEN"

    @property
    def rank(self) -> int:
        return _MATURITY_ORDER.index(self) + 1

    # str's lexical comparisons must not leak through; compare by rank.
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, MaturityLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, MaturityLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, MaturityLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, MaturityLevel):
            return NotImplemented
        return self.rank >= other.rank


_MATURITY_ORDER: tuple[MaturityLevel, ...] = tuple(MaturityLevel)


class DevelopmentPhase(StrEnum):
    FOUNDATION = "FOUNDATION"
    STANDARDIZATION = "STANDARDIZATION"
    OPERATIONALIZATION = "OPERATIONALIZATION"
    GOVERNANCE = "GOVERNANCE"
    INTENT_DRIVEN = "INTENT_DRIVEN"


class ConflictType(StrEnum):
    ID = "id"
    NAME = "name"
    FUNCTIONALITY = "functionality"
    DEPENDENCY = "dependency"
    VERSION = "version"


class Severity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ResolutionStrategy(StrEnum):
    RENAME = "rename"
    NAMESPACE = "namespace"
    MERGE = "merge"
    VERSION = "version"
    DEPRECATE = "deprecate"


class Effort(StrEnum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class Impact(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MigrationStrategy(StrEnum):
    DIRECT = "direct"
    PHASED = "phased"
    PARALLEL = "parallel"
    GRADUAL = "gradual"


class NotificationType(StrEnum):
    ANNOUNCEMENT = "announcement"
    WARNING = "warning"
    FINAL_NOTICE = "final-notice"


class SupportLevel(StrEnum):
    FULL = "full"
    MAINTENANCE = "maintenance"
    SECURITY_ONLY = "security-only"
    NONE = "none"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_utc() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _parse_enum(enum_cls: type[StrEnum], raw: Any, error_cls: type[InvalidCapabilityError | InvalidTemplateError], name: str) -> Any:
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(raw)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise error_cls(name, raw, f"must be one of: {allowed}") from None


def _parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        return _as_utc(raw)
    if not isinstance(raw, str):
        raise InvalidTemplateError("created_at", raw, "must be an ISO-8601 timestamp")
    try:
        return _as_utc(datetime.fromisoformat(raw))
    except ValueError:
        raise InvalidTemplateError("created_at", raw, "must be an ISO-8601 timestamp") from None


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Template:
    """A versioned artifact implementing a capability.

    Only metadata is modelled; the artifact itself is never inspected.
    """

    id: str
    name: str
    description: str
    version: str
    maturity_level: MaturityLevel
    phase: DevelopmentPhase
    created_at: datetime = field(default_factory=_now_utc)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "maturity_level", _parse_enum(MaturityLevel, self.maturity_level, InvalidTemplateError, "maturity_level")
        )
        object.__setattr__(self, "phase", _parse_enum(DevelopmentPhase, self.phase, InvalidTemplateError, "phase"))
        object.__setattr__(self, "created_at", _parse_timestamp(self.created_at))

    def to_dict(self) -> TemplateDict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "maturity_level": self.maturity_level.value,
            "phase": self.phase.value,
            "created_at": ISOTimestamp(self.created_at.isoformat()),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Template:
        """Build a template from a ``TemplateDict``-shaped mapping.

        ``created_at`` is optional and defaults to now.
        """
        if not isinstance(raw, Mapping):
            raise InvalidTemplateError("record", raw, "must be a JSON object")
        for key in ("id", "name", "description", "version", "maturity_level", "phase"):
            if key not in raw:
                raise InvalidTemplateError(key, None, "is required")
        kwargs: dict[str, Any] = {
            "id": raw["id"],
            "name": raw["name"],
            "description": raw["description"],
            "version": raw["version"],
            "maturity_level": raw["maturity_level"],
            "phase": raw["phase"],
        }
        if raw.get("created_at") is not None:
            kwargs["created_at"] = raw["created_at"]
        return cls(**kwargs)


@dataclass(frozen=True)
class Capability:
    """A unit of platform functionality owning an ordered list of templates."""

    id: str
    name: str
    description: str
    maturity_level: MaturityLevel
    phase: DevelopmentPhase
    templates: tuple[Template, ...] = ()
    dependencies: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "maturity_level", _parse_enum(MaturityLevel, self.maturity_level, InvalidCapabilityError, "maturity_level")
        )
        object.__setattr__(self, "phase", _parse_enum(DevelopmentPhase, self.phase, InvalidCapabilityError, "phase"))
        if isinstance(self.dependencies, str):
            raise InvalidCapabilityError("dependencies", self.dependencies, "must be a list of capability ids")
        # Declaration order is kept; repeats collapse to the first occurrence.
        object.__setattr__(self, "dependencies", tuple(dict.fromkeys(self.dependencies)))
        object.__setattr__(self, "templates", tuple(self.templates))

    def template(self, template_id: str) -> Template | None:
        for tpl in self.templates:
            if tpl.id == template_id:
                return tpl
        return None

    def to_dict(self) -> CapabilityDict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "maturity_level": self.maturity_level.value,
            "phase": self.phase.value,
            "templates": [t.to_dict() for t in self.templates],
            "dependencies": list(self.dependencies),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Capability:
        if not isinstance(raw, Mapping):
            raise InvalidCapabilityError("record", raw, "must be a JSON object")
        for key in ("id", "name", "description", "maturity_level", "phase"):
            if key not in raw:
                raise InvalidCapabilityError(key, None, "is required")
        raw_templates = raw.get("templates") or []
        if not isinstance(raw_templates, list):
            raise InvalidCapabilityError("templates", raw_templates, "must be a list")
        raw_deps = raw.get("dependencies") or []
        if not isinstance(raw_deps, list) or not all(isinstance(d, str) for d in raw_deps):
            raise InvalidCapabilityError("dependencies", raw_deps, "must be a list of capability ids")
        return cls(
            id=raw["id"],
            name=raw["name"],
            description=raw["description"],
            maturity_level=raw["maturity_level"],
            phase=raw["phase"],
            templates=tuple(Template.from_dict(t) for t in raw_templates),
            dependencies=tuple(raw_deps),
        )


@dataclass(frozen=True)
class CapabilityFilter:
    maturity_level: MaturityLevel | None = None
    phase: DevelopmentPhase | None = None
    search: str | None = None

    def matches(self, capability: Capability) -> bool:
        if self.maturity_level is not None and capability.maturity_level != self.maturity_level:
            return False
        if self.phase is not None and capability.phase != self.phase:
            return False
        if self.search:
            term = self.search.lower()
            return term in capability.name.lower() or term in capability.description.lower()
        return True


@dataclass(frozen=True)
class TemplateFilter:
    maturity_level: MaturityLevel | None = None
    phase: DevelopmentPhase | None = None
    search: str | None = None
    capability_id: str | None = None
    version: str | None = None

    def matches(self, capability: Capability, template: Template) -> bool:
        if self.maturity_level is not None and template.maturity_level != self.maturity_level:
            return False
        if self.phase is not None and template.phase != self.phase:
            return False
        if self.capability_id is not None and capability.id != self.capability_id:
            return False
        if self.version is not None and template.version != self.version:
            return False
        if self.search:
            term = self.search.lower()
            return (
                term in template.name.lower()
                or term in template.description.lower()
                or term in capability.name.lower()
            )
        return True


# ---------------------------------------------------------------------------
# Validation (applied at store boundaries)
# ---------------------------------------------------------------------------


def validate_template(template: Template) -> None:
    """Raise InvalidTemplateError if a required field is empty or malformed."""
    checks = (
        ("id", template.id, check_identifier),
        ("name", template.name, check_name),
        ("description", template.description, check_description),
        ("version", template.version, check_version),
    )
    for name, value, check in checks:
        error = check(value)
        if error:
            raise InvalidTemplateError(name, value, error)


def validate_capability(capability: Capability) -> None:
    """Raise InvalidCapabilityError if a required field is empty or malformed."""
    checks = (
        ("id", capability.id, check_identifier),
        ("name", capability.name, check_name),
        ("description", capability.description, check_description),
    )
    for name, value, check in checks:
        error = check(value)
        if error:
            raise InvalidCapabilityError(name, value, error)
    for dep in capability.dependencies:
        error = check_identifier(dep)
        if error:
            raise InvalidCapabilityError("dependencies", dep, error)
    seen: set[str] = set()
    for tpl in capability.templates:
        validate_template(tpl)
        if tpl.id in seen:
            raise InvalidCapabilityError("templates", tpl.id, "template ids must be unique within a capability")
        seen.add(tpl.id)


def check_progression(capability_id: str, current: MaturityLevel, attempted: MaturityLevel) -> None:
    """Enforce monotone maturity progression skipping at most one level.

    Same level is a no-op and allowed. L1 -> L3 is allowed, L1 -> L4 is not.
    """
    if attempted < current:
        raise InvalidProgressionError(capability_id, current, attempted, "maturity cannot be downgraded")
    if attempted.rank - current.rank > 2:
        raise InvalidProgressionError(capability_id, current, attempted, "cannot skip more than one maturity level")
