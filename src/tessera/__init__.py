"""Tessera: capability and template registry with conflict detection and migration planning."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tessera")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from tessera.models import Capability, MaturityLevel, Template
from tessera.registry import Registry
from tessera.store import CapabilityStore

__all__ = ["Capability", "CapabilityStore", "MaturityLevel", "Registry", "Template", "__version__"]
