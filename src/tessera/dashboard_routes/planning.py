"""Conflict, resolution, migration and deprecation route handlers."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from fastapi.responses import JSONResponse
from starlette.requests import Request

from tessera.dashboard_routes.common import _error_response, _parse_json_body, _persist, _registry_error_response
from tessera.errors import TesseraError
from tessera.models import ResolutionStrategy, Template
from tessera.registry import Registry

if TYPE_CHECKING:
    from fastapi import APIRouter

logger = logging.getLogger(__name__)


def create_router() -> APIRouter:
    """Build the APIRouter for conflict detection and lifecycle planning."""
    from fastapi import APIRouter, Depends

    from tessera.dashboard import _get_registry

    router = APIRouter()

    @router.post("/conflicts")
    async def api_conflicts(request: Request, registry: Registry = Depends(_get_registry)) -> JSONResponse:
        """Detect conflicts for a candidate template and propose resolutions.

        Body: ``{"template": TemplateDict, "capability_id": optional str}``.
        """
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        raw_template = body.get("template")
        if not isinstance(raw_template, dict):
            return _error_response("'template' must be a JSON object", "VALIDATION_ERROR", 400)
        capability_id = body.get("capability_id")
        if capability_id is not None and not isinstance(capability_id, str):
            return _error_response("'capability_id' must be a string", "VALIDATION_ERROR", 400)
        try:
            candidate = Template.from_dict(raw_template)
            conflicts = registry.detect_conflicts(candidate, capability_id=capability_id)
        except TesseraError as e:
            return _registry_error_response(e)
        resolutions = registry.generate_resolutions(conflicts)
        return JSONResponse(
            {
                "conflicts": [c.to_dict() for c in conflicts],
                "resolutions": [r.to_dict() for r in resolutions],
            }
        )

    @router.post("/template/{template_id}/resolve")
    async def api_resolve(template_id: str, request: Request, registry: Registry = Depends(_get_registry)) -> JSONResponse:
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        raw = body.get("strategy")
        try:
            strategy = ResolutionStrategy(raw)
        except ValueError:
            allowed = ", ".join(s.value for s in ResolutionStrategy)
            return _error_response(f"Invalid strategy {raw!r}; expected one of: {allowed}", "VALIDATION_ERROR", 400)
        try:
            updated = registry.execute_resolution(template_id, strategy)
        except TesseraError as e:
            return _registry_error_response(e)
        _persist(registry)
        return JSONResponse(updated.to_dict())

    @router.get("/template/{template_id}/migration-plan")
    async def api_migration_plan(
        template_id: str, target: str | None = None, registry: Registry = Depends(_get_registry)
    ) -> JSONResponse:
        try:
            plan = registry.create_migration_plan(template_id, target or None)
            path = registry.get_migration_path(template_id)
        except TesseraError as e:
            return _registry_error_response(e)
        return JSONResponse({**plan.to_dict(), "migration_path": path})

    @router.post("/template/{template_id}/execute-phase")
    async def api_execute_phase(
        template_id: str, request: Request, registry: Registry = Depends(_get_registry)
    ) -> JSONResponse:
        """Plan the migration and run one phase. Body: ``{"phase_id", "target"?}``."""
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        phase_id = body.get("phase_id")
        if not isinstance(phase_id, str) or not phase_id:
            return _error_response("phase_id is required", "VALIDATION_ERROR", 400)
        try:
            plan = registry.create_migration_plan(template_id, body.get("target") or None)
            result = await registry.execute_phase(plan, phase_id)
        except TesseraError as e:
            return _registry_error_response(e)
        return JSONResponse(result.to_dict())

    @router.post("/template/{template_id}/deprecation-plan")
    async def api_deprecation_plan(
        template_id: str, request: Request, registry: Registry = Depends(_get_registry)
    ) -> JSONResponse:
        """Body: ``{"reason": str, "timeline_months": int, "now"?: ISO timestamp}``."""
        body = await _parse_json_body(request)
        if isinstance(body, JSONResponse):
            return body
        reason = body.get("reason")
        months = body.get("timeline_months")
        if not isinstance(reason, str) or not reason.strip():
            return _error_response("reason is required", "VALIDATION_ERROR", 400)
        if isinstance(months, bool) or not isinstance(months, int) or months < 1:
            return _error_response("timeline_months must be a positive integer", "VALIDATION_ERROR", 400)
        now = None
        if body.get("now") is not None:
            try:
                now = datetime.fromisoformat(str(body["now"]))
            except ValueError:
                return _error_response(f"Invalid 'now' timestamp {body['now']!r}", "VALIDATION_ERROR", 400)
        try:
            plan = registry.create_deprecation_plan(template_id, reason, months, now=now)
        except (TesseraError, ValueError) as e:
            return _registry_error_response(e)
        return JSONResponse(plan.to_dict())

    @router.get("/template/{template_id}/similar")
    async def api_similar(
        template_id: str, threshold: float = 0.7, registry: Registry = Depends(_get_registry)
    ) -> JSONResponse:
        if not 0.0 <= threshold <= 1.0:
            return _error_response("threshold must be between 0 and 1", "VALIDATION_ERROR", 400)
        try:
            similar = registry.find_similar_templates(template_id, threshold)
        except TesseraError as e:
            return _registry_error_response(e)
        return JSONResponse([t.to_dict() for t in similar])

    @router.get("/template/{template_id}/reusability")
    async def api_reusability(template_id: str, registry: Registry = Depends(_get_registry)) -> JSONResponse:
        try:
            analysis = registry.analyze_template_reusability(template_id)
            suggestions = registry.suggest_template_composition(template_id)
        except TesseraError as e:
            return _registry_error_response(e)
        return JSONResponse({**analysis.to_dict(), "composition": [s.to_dict() for s in suggestions]})

    @router.get("/capability/{capability_id}/improvements")
    async def api_improvements(capability_id: str, registry: Registry = Depends(_get_registry)) -> JSONResponse:
        try:
            found = registry.suggest_improvements(capability_id)
        except TesseraError as e:
            return _registry_error_response(e)
        return JSONResponse([i.to_dict() for i in found])

    return router
