"""CLI commands for conflict and migration work: conflicts, resolutions, resolve,
migration-plan, execute-phase, deprecate."""

from __future__ import annotations

import asyncio
import json as json_mod
from pathlib import Path

import click

from tessera.cli_common import echo_json, get_registry, reported_errors
from tessera.conflicts import TemplateConflict
from tessera.migration import MigrationPlan
from tessera.models import ResolutionStrategy, Template
from tessera.registry import Registry


def _conflicts_for(registry: Registry, template_id: str | None, candidate_file: Path | None) -> tuple[Template, list[TemplateConflict]]:
    """Conflicts for a stored template, or for an unregistered candidate read from JSON."""
    if candidate_file is not None:
        try:
            raw = json_mod.loads(candidate_file.read_text())
        except json_mod.JSONDecodeError as e:
            msg = f"{candidate_file} is not valid JSON: {e}"
            raise ValueError(msg) from e
        candidate = Template.from_dict(raw)
        return candidate, registry.detect_conflicts(candidate)
    if template_id is None:
        msg = "Pass a TEMPLATE_ID or --file with a candidate template"
        raise ValueError(msg)
    owner, template = registry.find_template(template_id)
    return template, registry.detect_conflicts(template, capability_id=owner.id)


_CANDIDATE_FILE = click.option(
    "--file",
    "-f",
    "candidate_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file with an unregistered candidate template",
)


@click.command()
@click.argument("template_id", required=False)
@_CANDIDATE_FILE
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def conflicts(template_id: str | None, candidate_file: Path | None, as_json: bool) -> None:
    """Detect conflicts between a template and the rest of the registry."""
    registry = get_registry()
    with reported_errors(as_json):
        template, found = _conflicts_for(registry, template_id, candidate_file)
    if as_json:
        echo_json([c.to_dict() for c in found])
        return
    if not found:
        click.echo(f"No conflicts for {template.id}.")
        return
    for c in found:
        click.echo(f"[{c.severity.value:<8}] {c.type.value:<13} {c.description}")


@click.command()
@click.argument("template_id", required=False)
@_CANDIDATE_FILE
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def resolutions(template_id: str | None, candidate_file: Path | None, as_json: bool) -> None:
    """Propose one resolution per detected conflict."""
    registry = get_registry()
    with reported_errors(as_json):
        template, found = _conflicts_for(registry, template_id, candidate_file)
    proposed = registry.generate_resolutions(found)
    if as_json:
        echo_json(
            [{"conflict": c.to_dict(), "resolution": r.to_dict()} for c, r in zip(found, proposed, strict=True)]
        )
        return
    if not proposed:
        click.echo(f"No conflicts for {template.id}; nothing to resolve.")
        return
    for c, r in zip(found, proposed, strict=True):
        click.echo(f"{c.type.value} conflict -> {r.strategy.value} (effort {r.effort.value}, impact {r.impact.value})")
        click.echo(f"  {r.description}")
        for i, step in enumerate(r.steps, 1):
            click.echo(f"    {i}. {step}")


@click.command()
@click.argument("template_id")
@click.argument("strategy", type=click.Choice([s.value for s in ResolutionStrategy]))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def resolve(template_id: str, strategy: str, as_json: bool) -> None:
    """Apply a resolution strategy to a stored template."""
    registry = get_registry()
    with reported_errors(as_json):
        updated = registry.execute_resolution(template_id, ResolutionStrategy(strategy))
        registry.save()
    if as_json:
        echo_json(updated.to_dict())
        return
    click.echo(f"Applied {strategy} to {template_id}")
    click.echo(f"  id={updated.id} name={updated.name!r} version={updated.version}")


def _print_plan(plan: MigrationPlan) -> None:
    target = plan.to_template.id if plan.to_template else "(retirement)"
    click.echo(f"Migration {plan.from_template.id} -> {target}")
    click.echo(f"  Strategy: {plan.strategy.value}")
    click.echo(f"  Estimated duration: {plan.estimated_duration}")
    click.echo("  Phases:")
    for phase in plan.phases:
        done = " [done]" if phase.id in plan.completed_phases else ""
        click.echo(f"    {phase.id}: {phase.name} ({phase.duration}){done}")
    click.echo("  Dependencies:")
    for dep in plan.dependencies:
        click.echo(f"    - {dep}")


@click.command("migration-plan")
@click.argument("template_id")
@click.option("--target", "-t", default=None, help="Target template ID (omit for a pure deprecation)")
@click.option("--path", "show_path", is_flag=True, help="Also print the migration checklist")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def migration_plan(template_id: str, target: str | None, show_path: bool, as_json: bool) -> None:
    """Plan a migration from TEMPLATE_ID to an optional target."""
    registry = get_registry()
    with reported_errors(as_json):
        plan = registry.create_migration_plan(template_id, target)
        checklist = registry.get_migration_path(template_id) if show_path else []
    if as_json:
        data = dict(plan.to_dict())
        if show_path:
            data["migration_path"] = checklist
        echo_json(data)
        return
    _print_plan(plan)
    if checklist:
        click.echo("  Checklist:")
        for line in checklist:
            click.echo(f"    {line}")


@click.command("execute-phase")
@click.argument("template_id")
@click.argument("phase_id")
@click.option("--target", "-t", default=None, help="Target template ID")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def execute_phase(template_id: str, phase_id: str, target: str | None, as_json: bool) -> None:
    """Run one phase of a migration plan through source control."""
    registry = get_registry()
    with reported_errors(as_json):
        plan = registry.create_migration_plan(template_id, target)
        result = asyncio.run(registry.execute_phase(plan, phase_id))
    if as_json:
        echo_json(result.to_dict())
        return
    click.echo(f"Completed phase {result.phase_id}")
    for outcome in result.outcomes:
        click.echo(f"  ok  {outcome.step}")


@click.command()
@click.argument("template_id")
@click.option("--reason", "-r", required=True, help="Why the template is being retired")
@click.option("--months", default=6, type=click.IntRange(min=1), help="Months until end of life (default: 6)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def deprecate(template_id: str, reason: str, months: int, as_json: bool) -> None:
    """Create a deprecation plan for TEMPLATE_ID (read-only; nothing is marked)."""
    registry = get_registry()
    with reported_errors(as_json):
        plan = registry.create_deprecation_plan(template_id, reason, months)
    if as_json:
        echo_json(plan.to_dict())
        return
    click.echo(f"Deprecation of {plan.template.id}: {plan.reason}")
    click.echo(f"  Deprecated on: {plan.deprecation_date.date().isoformat()}")
    click.echo(f"  End of life:   {plan.end_of_life_date.date().isoformat()}")
    click.echo(f"  Support level: {plan.support_level.value}")
    if plan.replacement_templates:
        click.echo(f"  Replacements:  {', '.join(t.id for t in plan.replacement_templates)}")
    else:
        click.echo("  Replacements:  none found")
    click.echo(f"  Migration:     {plan.migration_plan.strategy.value} ({plan.migration_plan.estimated_duration})")
    click.echo("  Notifications:")
    for n in plan.notification_schedule:
        click.echo(f"    {n.date.date().isoformat()}  {n.type.value:<12} {', '.join(n.channels)}")
