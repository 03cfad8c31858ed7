"""Shared validation functions for all entry points.

Pure functions with no Click or FastAPI dependencies. Each check returns
``None`` when the value is acceptable, or a short error message otherwise.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any

_MAX_ID_LENGTH = 128
_MAX_NAME_LENGTH = 256
_VERSION_PATTERN = re.compile(r"^v?\d+(\.\d+){0,2}([-+][0-9A-Za-z.-]+)?$")


def _control_char(value: str) -> str | None:
    for ch in value:
        if unicodedata.category(ch).startswith("C"):  # Cc (control) and Cf (format)
            return f"must not contain control characters (found U+{ord(ch):04X})"
    return None


def check_identifier(value: Any) -> str | None:
    """Check an id: non-empty string, no surrounding whitespace, no control chars."""
    if not isinstance(value, str):
        return "must be a string"
    if not value.strip():
        return "must not be empty"
    if value != value.strip():
        return "must not have leading or trailing whitespace"
    if len(value) > _MAX_ID_LENGTH:
        return f"must be at most {_MAX_ID_LENGTH} characters"
    return _control_char(value)


def check_name(value: Any) -> str | None:
    """Check a display name: non-empty, bounded, single line."""
    if not isinstance(value, str):
        return "must be a string"
    if not value.strip():
        return "must not be empty"
    if len(value) > _MAX_NAME_LENGTH:
        return f"must be at most {_MAX_NAME_LENGTH} characters"
    return _control_char(value)


def check_description(value: Any) -> str | None:
    """Check a free-text description. Newlines are allowed."""
    if not isinstance(value, str):
        return "must be a string"
    if not value.strip():
        return "must not be empty"
    return None


def check_version(value: Any) -> str | None:
    """Check a semantic version string such as ``1.2.3`` or ``v2.0``."""
    if not isinstance(value, str):
        return "must be a string"
    if not value.strip():
        return "must not be empty"
    if not _VERSION_PATTERN.match(value):
        return "must be a semantic version like 1.2.3"
    return None
