"""Fixtures for HTTP API tests (FastAPI)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

import tessera.dashboard as dash_module
from tessera.core import TESSERA_DIR_NAME
from tessera.dashboard import create_app
from tessera.registry import Registry


@pytest.fixture
async def client(populated_registry: Registry) -> AsyncIterator[AsyncClient]:
    """Test client backed by the in-memory populated registry."""
    dash_module._registry = populated_registry
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    dash_module._registry = None


@pytest.fixture
async def file_client(tessera_project: Path) -> AsyncIterator[tuple[AsyncClient, Registry]]:
    """Test client backed by a registry persisted under a tmp project."""
    registry = Registry.open(tessera_project / TESSERA_DIR_NAME)
    dash_module._registry = registry
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c, registry
    dash_module._registry = None


@pytest.fixture
async def bare_client() -> AsyncIterator[AsyncClient]:
    """Test client with no registry loaded."""
    dash_module._registry = None
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
