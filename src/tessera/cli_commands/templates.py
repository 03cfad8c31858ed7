"""CLI commands for templates: add-template, templates, similar."""

from __future__ import annotations

import click

from tessera.cli_common import echo_json, get_registry, parse_maturity, reported_errors
from tessera.models import DevelopmentPhase, MaturityLevel, Template, TemplateFilter


@click.command("add-template")
@click.argument("capability_id")
@click.argument("template_id")
@click.argument("name")
@click.option("--description", "-d", required=True, help="Template description")
@click.option("--version", "-v", "version", default="1.0.0", help="Semantic version (default: 1.0.0)")
@click.option("--maturity", "-m", default=None, help="Maturity level (default: the capability's)")
@click.option("--phase", default=None, type=click.Choice([p.value for p in DevelopmentPhase], case_sensitive=False))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def add_template(
    capability_id: str,
    template_id: str,
    name: str,
    description: str,
    version: str,
    maturity: str | None,
    phase: str | None,
    as_json: bool,
) -> None:
    """Add a template to a capability.

    Conflicts with existing templates are reported but do not block the add.
    """
    registry = get_registry()
    with reported_errors(as_json):
        owner = registry.get_capability(capability_id)
        template = Template(
            id=template_id,
            name=name,
            description=description,
            version=version,
            maturity_level=parse_maturity(maturity) if maturity else owner.maturity_level,
            phase=phase.upper() if phase else owner.phase,
        )
        conflicts = registry.detect_conflicts(template, capability_id=capability_id)
        registry.add_template(capability_id, template)
        registry.save()
    if as_json:
        echo_json({"template": template.to_dict(), "conflicts": [c.to_dict() for c in conflicts]})
        return
    click.echo(f"Added template {template.id} v{template.version} to {capability_id}")
    for conflict in conflicts:
        click.echo(f"  [{conflict.severity.value}] {conflict.type.value}: {conflict.description}")
    if conflicts:
        click.echo(f"Next: tessera resolutions {template.id}")


@click.command()
@click.option("--capability", "-c", "capability_id", default=None, help="Only templates of this capability")
@click.option("--maturity", "-m", default=None, help="Maturity level filter")
@click.option("--phase", default=None, type=click.Choice([p.value for p in DevelopmentPhase], case_sensitive=False))
@click.option("--search", "-s", default=None, help="Substring of template or capability name")
@click.option("--version", "-v", "version", default=None, help="Exact version")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def templates(
    capability_id: str | None,
    maturity: str | None,
    phase: str | None,
    search: str | None,
    version: str | None,
    as_json: bool,
) -> None:
    """List templates across all capabilities."""
    registry = get_registry()
    with reported_errors(as_json):
        if capability_id is not None:
            registry.get_capability(capability_id)
        template_filter = TemplateFilter(
            maturity_level=MaturityLevel(parse_maturity(maturity)) if maturity else None,
            phase=DevelopmentPhase(phase.upper()) if phase else None,
            search=search,
            capability_id=capability_id,
            version=version,
        )
    pairs = registry.list_templates(template_filter)
    if as_json:
        echo_json([{"capability_id": cap.id, **tpl.to_dict()} for cap, tpl in pairs])
        return
    if not pairs:
        click.echo("No templates.")
        return
    for cap, tpl in pairs:
        click.echo(f"{tpl.id:<28} v{tpl.version:<10} {cap.id:<20} {tpl.name}")


@click.command()
@click.argument("template_id")
@click.option("--threshold", "-t", default=0.7, type=click.FloatRange(0.0, 1.0), help="Minimum similarity (default: 0.7)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def similar(template_id: str, threshold: float, as_json: bool) -> None:
    """Show templates similar to TEMPLATE_ID, most similar first."""
    registry = get_registry()
    with reported_errors(as_json):
        _, source = registry.find_template(template_id)
    scored = [
        (tpl, score)
        for tpl, score in registry.detector.score_against(source, exclude_id=template_id)
        if score >= threshold
    ]
    if as_json:
        echo_json([{"similarity": round(score, 4), **tpl.to_dict()} for tpl, score in scored])
        return
    if not scored:
        click.echo(f"No templates at or above {threshold:.2f} similarity.")
        return
    for tpl, score in scored:
        click.echo(f"{score:5.0%}  {tpl.id}  {tpl.name}")
