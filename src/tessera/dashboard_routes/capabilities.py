"""Capability and template route handlers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi.responses import JSONResponse
from starlette.requests import Request

from tessera.dashboard_routes.common import (
    _error_response,
    _parse_enum_param,
    _parse_json_body,
    _persist,
    _registry_error_response,
)
from tessera.errors import TesseraError
from tessera.models import Capability, CapabilityFilter, DevelopmentPhase, MaturityLevel, Template, TemplateFilter
from tessera.registry import Registry

if TYPE_CHECKING:
    from fastapi import APIRouter

logger = logging.getLogger(__name__)


def create_router() -> APIRouter:
    """Build the APIRouter for capability and template CRUD."""
    from fastapi import APIRouter, Depends

    from tessera.dashboard import _get_registry

    router = APIRouter()

    @router.get("/capabilities")
    async def api_capabilities(request: Request, registry: Registry = Depends(_get_registry)) -> JSONResponse:
        params = request.query_params
        maturity = _parse_enum_param(MaturityLevel, params.get("maturity"), "maturity")
        if isinstance(maturity, JSONResponse):
            return maturity
        phase = _parse_enum_param(DevelopmentPhase, params.get("phase"), "phase")
        if isinstance(phase, JSONResponse):
            return phase
        caps = registry.list_capabilities(
            CapabilityFilter(maturity_level=maturity, phase=phase, search=params.get("search") or None)
        )
        return JSONResponse([c.to_dict() for c in caps])

    @router.get("/capability/{capability_id}")
    async def api_capability_detail(capability_id: str, registry: Registry = Depends(_get_registry)) -> JSONResponse:
        try:
            cap = registry.get_capability(capability_id)
        except TesseraError as e:
            return _registry_error_response(e)
        data = dict(cap.to_dict())
        data["missing_dependencies"] = registry.store.missing_dependencies(cap)
        data["dependents"] = [d.id for d in registry.store.dependents_of(capability_id)]
        return JSONResponse(data)

    @router.post("/capabilities")
    async def api_register_capability(request: Request, registry: Registry = Depends(_get_registry)) -> JSONResponse:
        """Register a capability from a CapabilityDict body (templates optional)."""
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        try:
            cap = registry.register_capability(Capability.from_dict(body))
        except TesseraError as e:
            return _registry_error_response(e)
        _persist(registry)
        return JSONResponse(cap.to_dict(), status_code=201)

    @router.patch("/capability/{capability_id}")
    async def api_update_capability(
        capability_id: str, request: Request, registry: Registry = Depends(_get_registry)
    ) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        try:
            cap = registry.update_capability(capability_id, body)
        except TesseraError as e:
            return _registry_error_response(e)
        _persist(registry)
        return JSONResponse(cap.to_dict())

    @router.post("/capability/{capability_id}/maturity")
    async def api_set_maturity(
        capability_id: str, request: Request, registry: Registry = Depends(_get_registry)
    ) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        level = body.get("maturity_level")
        if not isinstance(level, str):
            return _error_response("maturity_level is required", "VALIDATION_ERROR", 400)
        try:
            cap = registry.set_maturity(capability_id, level)
        except (TesseraError, ValueError) as e:
            return _registry_error_response(e)
        _persist(registry)
        return JSONResponse(cap.to_dict())

    @router.delete("/capability/{capability_id}")
    async def api_delete_capability(capability_id: str, registry: Registry = Depends(_get_registry)) -> JSONResponse:
        try:
            registry.delete_capability(capability_id)
        except TesseraError as e:
            return _registry_error_response(e)
        _persist(registry)
        return JSONResponse({"deleted": capability_id})

    @router.post("/capability/{capability_id}/templates")
    async def api_add_template(
        capability_id: str, request: Request, registry: Registry = Depends(_get_registry)
    ) -> JSONResponse:
        """Add a template; conflicts are reported alongside, never blocking."""
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        try:
            template = Template.from_dict(body)
            conflicts = registry.detect_conflicts(template, capability_id=capability_id)
            registry.add_template(capability_id, template)
        except TesseraError as e:
            return _registry_error_response(e)
        _persist(registry)
        return JSONResponse(
            {"template": template.to_dict(), "conflicts": [c.to_dict() for c in conflicts]},
            status_code=201,
        )

    @router.get("/templates")
    async def api_templates(request: Request, registry: Registry = Depends(_get_registry)) -> JSONResponse:
        params = request.query_params
        maturity = _parse_enum_param(MaturityLevel, params.get("maturity"), "maturity")
        if isinstance(maturity, JSONResponse):
            return maturity
        phase = _parse_enum_param(DevelopmentPhase, params.get("phase"), "phase")
        if isinstance(phase, JSONResponse):
            return phase
        template_filter = TemplateFilter(
            maturity_level=maturity,
            phase=phase,
            search=params.get("search") or None,
            capability_id=params.get("capability") or None,
            version=params.get("version") or None,
        )
        pairs = registry.list_templates(template_filter)
        return JSONResponse([{"capability_id": cap.id, **tpl.to_dict()} for cap, tpl in pairs])

    return router
