"""In-memory capability store.

Single source of truth for capability and template state. Every other
component receives a store handle; there is no process-wide registry, so
isolated stores can coexist (one per test, one per project).

All mutations and snapshot reads run under one re-entrant lock. Reads return
fresh frozen snapshots, never the stored records, and mutation is only
possible through the named methods below.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Iterator, Mapping
from dataclasses import fields, replace
from typing import Any

from tessera.errors import (
    DuplicateIdError,
    DuplicateTemplateIdError,
    HasDependentsError,
    ImmutableFieldError,
    InvalidCapabilityError,
    NotFoundError,
)
from tessera.models import (
    Capability,
    CapabilityFilter,
    MaturityLevel,
    Template,
    TemplateFilter,
    check_progression,
    validate_capability,
    validate_template,
)
from tessera.types.core import StoreSnapshot

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

_UPDATABLE_FIELDS: frozenset[str] = frozenset({"name", "description", "maturity_level", "phase", "dependencies"})
_CAPABILITY_FIELDS: frozenset[str] = frozenset(f.name for f in fields(Capability))


def _snapshot(capability: Capability) -> Capability:
    # replace() with no changes yields an equal but distinct record.
    return replace(capability)


class CapabilityStore:
    """Keyed collection of capabilities in insertion order."""

    def __init__(self) -> None:
        self._capabilities: dict[str, Capability] = {}
        self._lock = threading.RLock()

    # -- Locking -------------------------------------------------------------

    @contextlib.contextmanager
    def transaction(self) -> Iterator[CapabilityStore]:
        """Hold the store lock across a read-modify-write sequence.

        The lock is re-entrant, so store methods may be called inside.
        """
        with self._lock:
            yield self

    # -- Reads ---------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._capabilities)

    def __contains__(self, capability_id: object) -> bool:
        return capability_id in self._capabilities

    def get(self, capability_id: str) -> Capability:
        """Return a snapshot of one capability. Raises NotFoundError."""
        with self._lock:
            capability = self._capabilities.get(capability_id)
            if capability is None:
                raise NotFoundError("capability", capability_id)
            return _snapshot(capability)

    def capabilities(self) -> list[Capability]:
        """Snapshot of every capability, in insertion order."""
        with self._lock:
            return [_snapshot(c) for c in self._capabilities.values()]

    def list_capabilities(self, capability_filter: CapabilityFilter | None = None) -> list[Capability]:
        caps = self.capabilities()
        if capability_filter is None:
            return caps
        return [c for c in caps if capability_filter.matches(c)]

    def search(self, query: str) -> list[Capability]:
        """Case-insensitive match on capability or owned-template name/description."""
        term = query.lower()
        result = []
        for cap in self.capabilities():
            if term in cap.name.lower() or term in cap.description.lower():
                result.append(cap)
            elif any(term in t.name.lower() or term in t.description.lower() for t in cap.templates):
                result.append(cap)
        return result

    def get_templates(self, capability_id: str) -> list[Template]:
        return list(self.get(capability_id).templates)

    def iter_templates(self) -> list[tuple[Capability, Template]]:
        """Every (owning capability, template) pair in scan order.

        Scan order is capability insertion order, then template list order.
        The result is a consistent snapshot taken under the lock.
        """
        with self._lock:
            return [(cap, tpl) for cap in self.capabilities() for tpl in cap.templates]

    def list_templates(self, template_filter: TemplateFilter | None = None) -> list[tuple[Capability, Template]]:
        pairs = self.iter_templates()
        if template_filter is None:
            return pairs
        return [(c, t) for c, t in pairs if template_filter.matches(c, t)]

    def find_template(self, template_id: str) -> tuple[Capability, Template]:
        """Return the first (owner, template) whose template id matches. Raises NotFoundError."""
        with self._lock:
            for cap in self._capabilities.values():
                tpl = cap.template(template_id)
                if tpl is not None:
                    return _snapshot(cap), tpl
        raise NotFoundError("template", template_id)

    def dependents_of(self, capability_id: str) -> list[Capability]:
        with self._lock:
            return [
                _snapshot(c)
                for c in self._capabilities.values()
                if c.id != capability_id and capability_id in c.dependencies
            ]

    def missing_dependencies(self, capability: Capability) -> list[str]:
        """Dependency ids of *capability* that do not resolve in this store."""
        with self._lock:
            return [dep for dep in capability.dependencies if dep not in self._capabilities]

    # -- Mutations -----------------------------------------------------------

    def register(self, capability: Capability) -> Capability:
        """Add a new capability.

        Dependencies are not resolved here so bulk loads may reference
        capabilities registered later.

        Raises:
            DuplicateIdError: If the id is already registered.
            InvalidCapabilityError: If a required field is empty or malformed.
        """
        with self._lock:
            if capability.id in self._capabilities:
                logger.warning("Rejected duplicate capability %s", capability.id, extra={"op": "register", "capability_id": capability.id})
                raise DuplicateIdError(capability.id)
            validate_capability(capability)
            self._capabilities[capability.id] = capability
        logger.info(
            "Registered capability %s (%d templates)",
            capability.id,
            len(capability.templates),
            extra={"op": "register", "capability_id": capability.id},
        )
        return _snapshot(capability)

    def update(self, capability_id: str, changes: Mapping[str, Any]) -> Capability:
        """Apply a partial update. The id is immutable.

        A maturity change goes through the same progression check as
        ``set_maturity``. Templates are changed only via ``add_template``.
        """
        with self._lock:
            current = self._capabilities.get(capability_id)
            if current is None:
                raise NotFoundError("capability", capability_id)
            if "id" in changes and changes["id"] != capability_id:
                raise ImmutableFieldError(capability_id, changes["id"])
            patch = {k: v for k, v in changes.items() if k != "id"}
            for key in patch:
                if key not in _CAPABILITY_FIELDS:
                    raise InvalidCapabilityError(key, patch[key], "unknown field")
                if key not in _UPDATABLE_FIELDS:
                    raise InvalidCapabilityError(key, patch[key], "use add_template() to change templates")
            if isinstance(patch.get("dependencies"), str):
                raise InvalidCapabilityError("dependencies", patch["dependencies"], "must be a list of capability ids")
            if "dependencies" in patch:
                patch["dependencies"] = tuple(patch["dependencies"])
            updated = replace(current, **patch)
            if updated.maturity_level != current.maturity_level:
                check_progression(capability_id, current.maturity_level, updated.maturity_level)
            validate_capability(updated)
            self._capabilities[capability_id] = updated
        logger.info(
            "Updated capability %s: %s",
            capability_id,
            ", ".join(sorted(patch)) or "no changes",
            extra={"op": "update", "capability_id": capability_id},
        )
        return _snapshot(updated)

    def delete(self, capability_id: str) -> None:
        """Remove a capability nothing else depends on.

        Raises:
            NotFoundError: If the id is not registered.
            HasDependentsError: Listing the names of dependent capabilities.
        """
        with self._lock:
            if capability_id not in self._capabilities:
                raise NotFoundError("capability", capability_id)
            dependents = self.dependents_of(capability_id)
            if dependents:
                logger.warning(
                    "Refused to delete %s: %d dependents",
                    capability_id,
                    len(dependents),
                    extra={"op": "delete", "capability_id": capability_id},
                )
                raise HasDependentsError(capability_id, [d.name for d in dependents])
            del self._capabilities[capability_id]
        logger.info("Deleted capability %s", capability_id, extra={"op": "delete", "capability_id": capability_id})

    def set_maturity(self, capability_id: str, level: MaturityLevel | str) -> Capability:
        """Move a capability to *level*: no downgrade, at most one level skipped."""
        with self._lock:
            current = self._capabilities.get(capability_id)
            if current is None:
                raise NotFoundError("capability", capability_id)
            updated = replace(current, maturity_level=level)
            check_progression(capability_id, current.maturity_level, updated.maturity_level)
            self._capabilities[capability_id] = updated
        logger.info(
            "Capability %s maturity %s -> %s",
            capability_id,
            current.maturity_level.value,
            updated.maturity_level.value,
            extra={"op": "set_maturity", "capability_id": capability_id},
        )
        return _snapshot(updated)

    def add_template(self, capability_id: str, template: Template) -> Template:
        """Append a template to a capability's list.

        Raises:
            NotFoundError: If the capability is not registered.
            DuplicateTemplateIdError: If the id exists under that capability.
            InvalidTemplateError: If a required field is empty or malformed.
        """
        with self._lock:
            current = self._capabilities.get(capability_id)
            if current is None:
                raise NotFoundError("capability", capability_id)
            if current.template(template.id) is not None:
                raise DuplicateTemplateIdError(capability_id, template.id)
            validate_template(template)
            self._capabilities[capability_id] = replace(current, templates=(*current.templates, template))
        logger.info(
            "Added template %s to %s",
            template.id,
            capability_id,
            extra={"op": "add_template", "capability_id": capability_id, "template_id": template.id},
        )
        return template

    def replace_template(self, capability_id: str, template_id: str, template: Template) -> Template:
        """Swap the template with id *template_id* for *template*, keeping its position.

        The replacement may carry a different id. That id must stay unique
        within the capability; templates under other capabilities are not
        checked.

        Raises:
            NotFoundError: If the capability or template is not registered.
            DuplicateTemplateIdError: If the new id is already taken in the capability.
        """
        with self._lock:
            current = self._capabilities.get(capability_id)
            if current is None:
                raise NotFoundError("capability", capability_id)
            index = next((i for i, t in enumerate(current.templates) if t.id == template_id), None)
            if index is None:
                raise NotFoundError("template", template_id)
            if template.id != template_id and current.template(template.id) is not None:
                logger.warning(
                    "Rejected template id change %s -> %s in %s",
                    template_id,
                    template.id,
                    capability_id,
                    extra={"op": "replace_template", "capability_id": capability_id, "template_id": template_id},
                )
                raise DuplicateTemplateIdError(capability_id, template.id)
            validate_template(template)
            templates = list(current.templates)
            templates[index] = template
            self._capabilities[capability_id] = replace(current, templates=tuple(templates))
        logger.info(
            "Replaced template %s in %s",
            template_id,
            capability_id,
            extra={"op": "replace_template", "capability_id": capability_id, "template_id": template.id},
        )
        return template

    def clear(self) -> None:
        with self._lock:
            self._capabilities.clear()

    # -- Serialization -------------------------------------------------------

    def to_dict(self) -> StoreSnapshot:
        with self._lock:
            return {
                "version": SNAPSHOT_VERSION,
                "capabilities": {cid: cap.to_dict() for cid, cap in self._capabilities.items()},
            }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CapabilityStore:
        """Rebuild a store from ``to_dict()`` output, preserving order.

        Raises:
            ValueError: If the snapshot shape or version is wrong.
            InvalidCapabilityError / InvalidTemplateError: On malformed records.
            DuplicateIdError: If two entries carry the same capability id.
        """
        if not isinstance(data, Mapping):
            msg = f"Store snapshot must be a JSON object, got {type(data).__name__}"
            raise ValueError(msg)
        version = data.get("version", SNAPSHOT_VERSION)
        if version != SNAPSHOT_VERSION:
            msg = f"Unsupported store snapshot version {version!r} (expected {SNAPSHOT_VERSION})"
            raise ValueError(msg)
        raw_caps = data.get("capabilities", {})
        if not isinstance(raw_caps, Mapping):
            msg = f"'capabilities' must be an object keyed by capability id, got {type(raw_caps).__name__}"
            raise ValueError(msg)
        store = cls()
        for key, raw in raw_caps.items():
            capability = Capability.from_dict(raw)
            if capability.id != key:
                raise InvalidCapabilityError("id", capability.id, f"does not match its snapshot key '{key}'")
            store.register(capability)
        logger.debug("Loaded store snapshot with %d capabilities", len(store))
        return store
