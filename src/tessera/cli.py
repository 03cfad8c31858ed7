"""CLI for the tessera capability registry.

Convention-based: discovers .tessera/ by walking up from cwd.

Usage:
    tessera init                                         # Initialize .tessera/ in cwd
    tessera register redis "Redis" -d "Managed cache"    # Register capability
    tessera add-template redis redis-ha "Redis HA" -d .. # Add template
    tessera show redis                                   # Show capability
    tessera list --maturity=L2                           # List capabilities
    tessera set-maturity redis L3                        # Advance maturity
    tessera conflicts redis-ha                           # Detect conflicts
    tessera resolutions redis-ha                         # Propose resolutions
    tessera resolve redis-ha rename                      # Apply a resolution
    tessera migration-plan redis-v1 --target redis-v2    # Plan a migration
    tessera execute-phase redis-v1 preparation -t redis-v2
    tessera deprecate redis-v1 -r "Replaced" --months 6  # Deprecation plan
    tessera dashboard                                    # Serve the JSON API
"""

from __future__ import annotations

from pathlib import Path

import click

from tessera import __version__
from tessera.cli_commands import capabilities, discovery, planning, templates
from tessera.core import REGISTRY_FILENAME, TESSERA_DIR_NAME, init_project


@click.group()
@click.version_option(version=__version__, prog_name="tessera")
def cli() -> None:
    """Tessera: capability and template registry."""


@cli.command()
def init() -> None:
    """Initialize .tessera/ in the current directory."""
    cwd = Path.cwd()
    existed = (cwd / TESSERA_DIR_NAME).exists()
    tessera_dir = init_project(cwd)
    if existed:
        click.echo(f"{TESSERA_DIR_NAME}/ already exists in {cwd}")
        return
    click.echo(f"Initialized {TESSERA_DIR_NAME}/ in {cwd}")
    click.echo(f"  Registry: {tessera_dir / REGISTRY_FILENAME}")
    click.echo("\nNext: tessera register <id> <name> -d <description>")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
@click.option("--port", default=8377, type=int, help="Port (default: 8377)")
def dashboard(host: str, port: int) -> None:
    """Serve the registry JSON API for this project."""
    from tessera.dashboard import main as dashboard_main

    dashboard_main(host=host, port=port)


for _command in (
    capabilities.register,
    capabilities.show,
    capabilities.list_capabilities,
    capabilities.update,
    capabilities.set_maturity,
    capabilities.delete,
    templates.add_template,
    templates.templates,
    templates.similar,
    planning.conflicts,
    planning.resolutions,
    planning.resolve,
    planning.migration_plan,
    planning.execute_phase,
    planning.deprecate,
    discovery.improvements,
    discovery.reusability,
    discovery.compose,
):
    cli.add_command(_command)


if __name__ == "__main__":
    cli()
