"""CLI commands for reuse analysis: improvements, reusability, compose."""

from __future__ import annotations

import click

from tessera.cli_common import echo_json, get_registry, reported_errors


@click.command()
@click.argument("capability_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def improvements(capability_id: str, as_json: bool) -> None:
    """Suggest next improvements for a capability."""
    registry = get_registry()
    with reported_errors(as_json):
        found = registry.suggest_improvements(capability_id)
    if as_json:
        echo_json([i.to_dict() for i in found])
        return
    for item in found:
        click.echo(f"[{item.priority.value:<6}] {item.description} ({item.type.value}, effort {item.effort.value})")


@click.command()
@click.argument("template_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def reusability(template_id: str, as_json: bool) -> None:
    """Score how reusable a template is."""
    registry = get_registry()
    with reported_errors(as_json):
        analysis = registry.analyze_template_reusability(template_id)
    if as_json:
        echo_json(analysis.to_dict())
        return
    click.echo(f"{analysis.template.id}: reusability {analysis.reusability_score}/100")
    for s in analysis.strengths:
        click.echo(f"  + {s}")
    for w in analysis.weaknesses:
        click.echo(f"  - {w}")
    for tip in analysis.improvement_suggestions:
        click.echo(f"  > {tip}")
    if analysis.compatible_templates:
        click.echo(f"  Compatible: {', '.join(t.id for t in analysis.compatible_templates)}")


@click.command()
@click.argument("template_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def compose(template_id: str, as_json: bool) -> None:
    """Suggest extending, composing with, or merging into similar templates."""
    registry = get_registry()
    with reported_errors(as_json):
        suggestions = registry.suggest_template_composition(template_id)
    if as_json:
        echo_json([s.to_dict() for s in suggestions])
        return
    if not suggestions:
        click.echo(f"No composition suggestions for {template_id}.")
        return
    for s in suggestions:
        click.echo(f"{s.type.value:<8} {s.description} (effort {s.effort.value})")
