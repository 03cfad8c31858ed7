"""Shared CLI helpers used by ``cli.py`` and the ``cli_commands/*`` modules."""

from __future__ import annotations

import contextlib
import json as json_mod
import sys
from collections.abc import Iterator
from typing import Any, NoReturn

import click

from tessera.core import TESSERA_DIR_NAME, find_tessera_root
from tessera.errors import TesseraError
from tessera.logging import setup_logging
from tessera.models import MaturityLevel
from tessera.registry import Registry


def get_registry() -> Registry:
    """Discover .tessera/ and load its registry."""
    try:
        tessera_dir = find_tessera_root()
    except FileNotFoundError:
        click.echo(f"No {TESSERA_DIR_NAME}/ found. Run 'tessera init' first.", err=True)
        sys.exit(1)
    setup_logging(tessera_dir)
    try:
        return Registry.open(tessera_dir)
    except (TesseraError, ValueError) as e:
        click.echo(f"Error: cannot load registry: {e}", err=True)
        sys.exit(1)


def fail(message: str, as_json: bool) -> NoReturn:
    if as_json:
        click.echo(json_mod.dumps({"error": message}))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@contextlib.contextmanager
def reported_errors(as_json: bool) -> Iterator[None]:
    """Turn registry failures into an error message and exit code 1."""
    try:
        yield
    except (TesseraError, ValueError) as e:
        fail(str(e), as_json)


def echo_json(data: Any) -> None:
    click.echo(json_mod.dumps(data, indent=2, default=str))


def parse_maturity(value: str) -> str:
    """Accept ``L3``, ``l3`` or ``L3_OPERATIONS`` for a maturity option."""
    upper = value.upper()
    for level in MaturityLevel:
        if level.value == upper or level.value.split("_", 1)[0] == upper:
            return level.value
    return value
