"""Foundational TypedDicts for the capability store and project config."""

from __future__ import annotations

from typing import NewType, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


class RegistryConfig(TypedDict, total=False):
    """Shape of .tessera/config.json."""

    version: int
    grace_period_days: int
    final_notice_days: int
    replacement_threshold: float
    functionality_threshold: float


class TemplateDict(TypedDict):
    id: str
    name: str
    description: str
    version: str
    maturity_level: str
    phase: str
    created_at: ISOTimestamp


class CapabilityDict(TypedDict):
    id: str
    name: str
    description: str
    maturity_level: str
    phase: str
    templates: list[TemplateDict]
    dependencies: list[str]


class StoreSnapshot(TypedDict):
    """Serialized store: capabilities keyed by id, in insertion order."""

    version: int
    capabilities: dict[str, CapabilityDict]
