"""Shared helpers for dashboard route modules."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi.responses import JSONResponse
from starlette.requests import Request

from tessera.errors import (
    DuplicateIdError,
    DuplicateTemplateIdError,
    HasDependentsError,
    ImmutableFieldError,
    InvalidCapabilityError,
    InvalidPhaseError,
    InvalidProgressionError,
    InvalidTemplateError,
    NotFoundError,
)
from tessera.models import DevelopmentPhase, MaturityLevel
from tessera.registry import Registry

logger = logging.getLogger(__name__)


def _error_response(
    message: str,
    code: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Return a structured error response and log the error."""
    logger.warning("API error [%s] %s: %s", status_code, code, message)
    return JSONResponse(
        {"error": {"message": message, "code": code, "details": details or {}}},
        status_code=status_code,
    )


def _registry_error_response(exc: Exception) -> JSONResponse:
    """Map a registry exception to its HTTP status and error code."""
    message = str(exc)
    if isinstance(exc, NotFoundError):
        return _error_response(message, "NOT_FOUND", 404, {"kind": exc.kind, "key": exc.key})
    if isinstance(exc, DuplicateIdError):
        return _error_response(message, "DUPLICATE_ID", 409, {"capability_id": exc.capability_id})
    if isinstance(exc, DuplicateTemplateIdError):
        return _error_response(
            message, "DUPLICATE_TEMPLATE_ID", 409, {"capability_id": exc.capability_id, "template_id": exc.template_id}
        )
    if isinstance(exc, HasDependentsError):
        return _error_response(
            message, "HAS_DEPENDENTS", 409, {"capability_id": exc.capability_id, "dependents": exc.dependents}
        )
    if isinstance(exc, InvalidProgressionError):
        return _error_response(
            message,
            "INVALID_PROGRESSION",
            400,
            {
                "capability_id": exc.capability_id,
                "current": getattr(exc.current, "value", exc.current),
                "attempted": getattr(exc.attempted, "value", exc.attempted),
            },
        )
    if isinstance(exc, InvalidPhaseError):
        return _error_response(message, "INVALID_PHASE", 400, {"phase_id": exc.phase_id})
    if isinstance(exc, ImmutableFieldError):
        return _error_response(message, "IMMUTABLE_FIELD", 400, {"capability_id": exc.capability_id})
    if isinstance(exc, InvalidCapabilityError | InvalidTemplateError):
        return _error_response(message, "VALIDATION_ERROR", 400, {"field": exc.field})
    return _error_response(message, "VALIDATION_ERROR", 400)


async def _parse_json_body(request: Request) -> dict[str, Any] | JSONResponse:
    """Parse and validate a JSON object body, returning 400 on failure."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, ValueError, UnicodeDecodeError):
        return _error_response("Invalid JSON body", "VALIDATION_ERROR", 400)
    if not isinstance(body, dict):
        return _error_response("Request body must be a JSON object", "VALIDATION_ERROR", 400)
    return body


def _parse_enum_param(enum_cls: type[MaturityLevel] | type[DevelopmentPhase], raw: str | None, name: str) -> Any:
    """Return the enum member for a query param, None if absent, or a 400 response."""
    if raw is None or raw == "":
        return None
    try:
        return enum_cls(raw.upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        return _error_response(f"Invalid {name} {raw!r}; expected one of: {allowed}", "VALIDATION_ERROR", 400)


def _persist(registry: Registry) -> None:
    """Save after a successful mutation when the registry is file-backed."""
    if registry.path is not None:
        registry.save()
