"""JSON HTTP API for a tessera registry.

Single-project: a module-level ``_registry`` is set at startup (or by test
fixtures) and injected via ``Depends(_get_registry)``. All routes live
under ``/api``.

Usage:
    tessera dashboard                    # Serves on 127.0.0.1:8377
    tessera dashboard --port 9000        # Custom port
"""

from __future__ import annotations

import logging
from typing import Any

from tessera import __version__
from tessera.core import find_tessera_root
from tessera.logging import setup_logging
from tessera.registry import Registry

DEFAULT_PORT = 8377

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level state, set by main() or test fixtures
# ---------------------------------------------------------------------------

_registry: Registry | None = None


def _get_registry() -> Registry:
    """Return the active registry, or fail with 500 if none is loaded."""
    from fastapi import HTTPException

    if _registry is None:
        raise HTTPException(status_code=500, detail="Registry not initialized")
    return _registry


def create_app() -> Any:
    """Create the FastAPI application with every registry endpoint under /api."""
    from fastapi import FastAPI
    from fastapi.responses import JSONResponse

    from tessera.dashboard_routes import capabilities, planning

    # Expose JSONResponse in module globals so PEP 563 deferred annotations resolve
    globals()["JSONResponse"] = JSONResponse

    app = FastAPI(title="Tessera Registry", version=__version__, docs_url=None, redoc_url=None)
    app.include_router(capabilities.create_router(), prefix="/api")
    app.include_router(planning.create_router(), prefix="/api")

    @app.get("/api/health")
    async def api_health() -> JSONResponse:
        registry = _registry
        return JSONResponse(
            {
                "status": "ok" if registry is not None else "uninitialized",
                "version": __version__,
                "capabilities": len(registry.store) if registry is not None else 0,
            }
        )

    return app


def main(host: str = "127.0.0.1", port: int = DEFAULT_PORT) -> None:
    """Load the local project's registry and serve the API."""
    import uvicorn

    global _registry

    tessera_dir = find_tessera_root()
    setup_logging(tessera_dir)
    _registry = Registry.open(tessera_dir)
    logger.info("Serving %d capabilities from %s", len(_registry.store), tessera_dir)

    app = create_app()
    print(f"Tessera API: http://{host}:{port}/api")
    uvicorn.run(app, host=host, port=port, log_level="warning")
