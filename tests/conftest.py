"""Shared pytest fixtures for tessera tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from tessera.core import init_project
from tessera.models import Capability, DevelopmentPhase, MaturityLevel, Template
from tessera.registry import Registry
from tessera.store import CapabilityStore

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

TemplateFactory = Callable[..., Template]


@pytest.fixture
def now() -> datetime:
    """A fixed clock for time-dependent planning."""
    return FIXED_NOW


@pytest.fixture
def make_template() -> TemplateFactory:
    """Factory for templates with sensible defaults; override any field by keyword."""

    def _make(template_id: str = "tpl", **overrides: Any) -> Template:
        fields: dict[str, Any] = {
            "id": template_id,
            "name": "Template",
            "description": "A template",
            "version": "1.0.0",
            "maturity_level": MaturityLevel.DEPLOYMENT,
            "phase": DevelopmentPhase.STANDARDIZATION,
            "created_at": FIXED_NOW,
        }
        fields.update(overrides)
        return Template(**fields)

    return _make


@pytest.fixture
def make_capability() -> Callable[..., Capability]:
    def _make(capability_id: str = "cap", **overrides: Any) -> Capability:
        fields: dict[str, Any] = {
            "id": capability_id,
            "name": capability_id.capitalize(),
            "description": f"{capability_id} capability",
            "maturity_level": MaturityLevel.DEPLOYMENT,
            "phase": DevelopmentPhase.STANDARDIZATION,
        }
        fields.update(overrides)
        return Capability(**fields)

    return _make


@pytest.fixture
def store() -> CapabilityStore:
    """Fresh, empty store for each test."""
    return CapabilityStore()


@pytest.fixture
def registry() -> Registry:
    """Fresh in-memory registry (no backing file)."""
    return Registry()


@pytest.fixture
def populated_registry(registry: Registry, make_template: TemplateFactory) -> Registry:
    """Registry pre-populated with a representative capability set.

    Creates:
    - redis (L2, STANDARDIZATION) with template redis-v1
    - postgres (L3, OPERATIONALIZATION) depending on redis, with template pg-v1
    - api (L1, FOUNDATION) depending on postgres, no templates
    """
    registry.register_capability(
        Capability(
            id="redis",
            name="Redis",
            description="In-memory cache and message broker",
            maturity_level=MaturityLevel.DEPLOYMENT,
            phase=DevelopmentPhase.STANDARDIZATION,
            templates=(
                make_template(
                    "redis-v1",
                    name="Redis Cache",
                    description="Managed Redis cache cluster",
                    version="1.0.0",
                ),
            ),
        )
    )
    registry.register_capability(
        Capability(
            id="postgres",
            name="PostgreSQL",
            description="Relational database service",
            maturity_level=MaturityLevel.OPERATIONS,
            phase=DevelopmentPhase.OPERATIONALIZATION,
            dependencies=("redis",),
            templates=(
                make_template(
                    "pg-v1",
                    name="Postgres Primary",
                    description="Single primary PostgreSQL instance with backups",
                    version="1.2.0",
                    maturity_level=MaturityLevel.OPERATIONS,
                    phase=DevelopmentPhase.OPERATIONALIZATION,
                ),
            ),
        )
    )
    registry.register_capability(
        Capability(
            id="api",
            name="API Gateway",
            description="Edge routing for services",
            maturity_level=MaturityLevel.GENERATION,
            phase=DevelopmentPhase.FOUNDATION,
            dependencies=("postgres",),
        )
    )
    return registry


@pytest.fixture
def tessera_project(tmp_path: Path) -> Path:
    """A tmp directory set up as a tessera project (.tessera/ with config + registry).

    Returns the project root (parent of .tessera/).
    """
    init_project(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
