"""CLI commands for capabilities: register, show, list, update, set-maturity, delete."""

from __future__ import annotations

import click

from tessera.cli_common import echo_json, fail, get_registry, parse_maturity, reported_errors
from tessera.models import Capability, CapabilityFilter, DevelopmentPhase, MaturityLevel

_MATURITY_HELP = "Maturity level (L1..L5 or full name, e.g. L2_DEPLOYMENT)"


def _print_capability(cap: Capability) -> None:
    click.echo(f"{cap.id}: {cap.name}")
    click.echo(f"  Maturity:     {cap.maturity_level.value}")
    click.echo(f"  Phase:        {cap.phase.value}")
    click.echo(f"  Description:  {cap.description}")
    if cap.dependencies:
        click.echo(f"  Depends on:   {', '.join(cap.dependencies)}")
    if cap.templates:
        click.echo("  Templates:")
        for tpl in cap.templates:
            click.echo(f"    {tpl.id} v{tpl.version}  {tpl.name}")


@click.command()
@click.argument("capability_id")
@click.argument("name")
@click.option("--description", "-d", required=True, help="Capability description")
@click.option("--maturity", "-m", default="L1", help=_MATURITY_HELP)
@click.option(
    "--phase",
    default=DevelopmentPhase.FOUNDATION.value,
    type=click.Choice([p.value for p in DevelopmentPhase], case_sensitive=False),
    help="Development phase",
)
@click.option("--dep", multiple=True, help="Depends on capability ID (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def register(
    capability_id: str,
    name: str,
    description: str,
    maturity: str,
    phase: str,
    dep: tuple[str, ...],
    as_json: bool,
) -> None:
    """Register a new capability."""
    registry = get_registry()
    with reported_errors(as_json):
        cap = registry.register_capability(
            Capability(
                id=capability_id,
                name=name,
                description=description,
                maturity_level=parse_maturity(maturity),
                phase=phase.upper(),
                dependencies=dep,
            )
        )
        registry.save()
    if as_json:
        echo_json(cap.to_dict())
    else:
        click.echo(f"Registered {cap.id}: {cap.name}")
        missing = registry.store.missing_dependencies(cap)
        if missing:
            click.echo(f"  Warning: unregistered dependencies: {', '.join(missing)}")


@click.command()
@click.argument("capability_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(capability_id: str, as_json: bool) -> None:
    """Show capability details."""
    registry = get_registry()
    with reported_errors(as_json):
        cap = registry.get_capability(capability_id)
    if as_json:
        echo_json(cap.to_dict())
        return
    _print_capability(cap)


@click.command("list")
@click.option("--maturity", "-m", default=None, help=_MATURITY_HELP)
@click.option("--phase", default=None, type=click.Choice([p.value for p in DevelopmentPhase], case_sensitive=False))
@click.option("--search", "-s", default=None, help="Substring of name or description")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_capabilities(maturity: str | None, phase: str | None, search: str | None, as_json: bool) -> None:
    """List capabilities."""
    registry = get_registry()
    with reported_errors(as_json):
        capability_filter = CapabilityFilter(
            maturity_level=MaturityLevel(parse_maturity(maturity)) if maturity else None,
            phase=DevelopmentPhase(phase.upper()) if phase else None,
            search=search,
        )
    caps = registry.list_capabilities(capability_filter)
    if as_json:
        echo_json([c.to_dict() for c in caps])
        return
    if not caps:
        click.echo("No capabilities.")
        return
    for cap in caps:
        click.echo(f"{cap.id:<24} {cap.maturity_level.value:<17} {len(cap.templates):>3} tpl  {cap.name}")


@click.command()
@click.argument("capability_id")
@click.option("--name", default=None, help="New name")
@click.option("--description", "-d", default=None, help="New description")
@click.option("--maturity", "-m", default=None, help=_MATURITY_HELP)
@click.option("--phase", default=None, type=click.Choice([p.value for p in DevelopmentPhase], case_sensitive=False))
@click.option("--dep", multiple=True, help="Replace dependencies with these IDs (repeatable)")
@click.option("--clear-deps", is_flag=True, help="Remove all dependencies")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def update(
    capability_id: str,
    name: str | None,
    description: str | None,
    maturity: str | None,
    phase: str | None,
    dep: tuple[str, ...],
    clear_deps: bool,
    as_json: bool,
) -> None:
    """Update capability fields. The id cannot change."""
    changes: dict[str, object] = {}
    if name is not None:
        changes["name"] = name
    if description is not None:
        changes["description"] = description
    if maturity is not None:
        changes["maturity_level"] = parse_maturity(maturity)
    if phase is not None:
        changes["phase"] = phase.upper()
    if dep and clear_deps:
        fail("--dep and --clear-deps are mutually exclusive", as_json)
    if dep:
        changes["dependencies"] = list(dep)
    elif clear_deps:
        changes["dependencies"] = []
    if not changes:
        fail("Nothing to update; pass at least one option", as_json)

    registry = get_registry()
    with reported_errors(as_json):
        cap = registry.update_capability(capability_id, changes)
        registry.save()
    if as_json:
        echo_json(cap.to_dict())
    else:
        click.echo(f"Updated {cap.id}: {', '.join(sorted(changes))}")


@click.command("set-maturity")
@click.argument("capability_id")
@click.argument("level")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def set_maturity(capability_id: str, level: str, as_json: bool) -> None:
    """Advance a capability's maturity (no downgrades, skip at most one level)."""
    registry = get_registry()
    with reported_errors(as_json):
        cap = registry.set_maturity(capability_id, parse_maturity(level))
        registry.save()
    if as_json:
        echo_json(cap.to_dict())
    else:
        click.echo(f"{cap.id} is now {cap.maturity_level.value}")


@click.command()
@click.argument("capability_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def delete(capability_id: str, as_json: bool) -> None:
    """Delete a capability nothing depends on."""
    registry = get_registry()
    with reported_errors(as_json):
        registry.delete_capability(capability_id)
        registry.save()
    if as_json:
        echo_json({"deleted": capability_id})
    else:
        click.echo(f"Deleted {capability_id}")
