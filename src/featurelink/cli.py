"""Click CLI entry point for featurelink."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import click

from featurelink import __version__
from featurelink.config import (
    FEATURELINK_DIR,
    is_initialized,
    load_config,
    load_config_or_default,
    save_config,
)
from featurelink.models import FeatureLinkError, LinkerConfig, RegistryKind

if TYPE_CHECKING:
    from featurelink.pipeline import PipelineResult


@click.group()
@click.version_option(version=__version__, prog_name="featurelink")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """featurelink: cross-reference feature steps with step definitions."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--exclude-tag", "exclude_tags", multiple=True, help="Tag to exclude (repeatable)")
@click.pass_context
def init(ctx: click.Context, exclude_tags: tuple[str, ...]) -> None:
    """Initialize a project for featurelink."""
    project_root = Path.cwd()
    already = is_initialized(project_root)

    if already:
        click.echo("Warning: Project is already initialized. Updating configuration.")
        config = load_config(project_root)
    else:
        config = LinkerConfig()

    for tag in exclude_tags:
        if tag not in config.exclude_tags:
            config.exclude_tags.append(tag)

    features_dir = project_root / config.features_dir
    features_dir.mkdir(exist_ok=True)
    path = save_config(config, project_root)

    if already:
        click.echo("Configuration updated. Existing feature files preserved.")
    else:
        click.echo("Initialized featurelink project.")
        click.echo(f"  Created: {features_dir}/")
        click.echo(f"  Config:  {path}")


@cli.command()
@click.option("--features", "features_path", type=click.Path(), default=None,
              help="Feature file or directory (default: from config)")
@click.option("--definitions", "definitions_path", type=click.Path(), default=None,
              help="Step definitions manifest (default: from config)")
@click.option("--exclude-tag", "exclude_tags", multiple=True, help="Tag to exclude (repeatable)")
@click.option("--format", "fmt", type=click.Choice(["json", "dot"]), default=None,
              help="Print the linked graph instead of a summary")
@click.pass_context
def link(
    ctx: click.Context,
    features_path: str | None,
    definitions_path: str | None,
    exclude_tags: tuple[str, ...],
    fmt: str | None,
) -> None:
    """Link feature steps to step definitions and transforms."""
    from featurelink.exporters.dot import export_dot
    from featurelink.exporters.json_export import export_json
    from featurelink.graph import build_link_graph, edge_counts

    project_root = Path.cwd()
    result = _run(ctx, project_root, features_path, definitions_path, exclude_tags)
    if result is None:
        return

    output_dir = project_root / FEATURELINK_DIR
    output_dir.mkdir(exist_ok=True)
    (output_dir / "links.json").write_text(export_json(result.registry))

    if fmt == "json":
        click.echo(export_json(result.registry))
        return
    if fmt == "dot":
        click.echo(export_dot(result.registry))
        return

    report = result.report
    total = sum(f.total_scenarios for f in result.features)
    click.echo(f"Features: {len(result.features)} ({total} executable scenario(s))")
    click.echo(f"Linked steps: {len(report.linked_steps)}")
    click.echo(f"Unmatched steps: {len(report.unmatched_steps)}")
    for step_id in report.unmatched_steps:
        step = result.registry.get(step_id)
        click.echo(f"  {step.location}  {step.keyword}{step.text}")
    if report.unused_definitions:
        click.echo(f"Unused step definitions: {len(report.unused_definitions)}")
        for definition_id in report.unused_definitions:
            definition = result.registry.get(definition_id)
            click.echo(f"  {definition.id}  {definition.pattern}")
    if report.failed_features:
        click.echo(f"Features that failed to link: {', '.join(report.failed_features)}")
    if result.skipped_files:
        click.echo(f"Skipped files: {', '.join(result.skipped_files)}")

    relations = edge_counts(build_link_graph(result.registry))
    if relations:
        click.echo("Graph edges: " + ", ".join(f"{k}={v}" for k, v in relations.items()))


@cli.command()
@click.option("--features", "features_path", type=click.Path(), default=None)
@click.option("--exclude-tag", "exclude_tags", multiple=True, help="Tag to exclude (repeatable)")
@click.pass_context
def tags(ctx: click.Context, features_path: str | None, exclude_tags: tuple[str, ...]) -> None:
    """List tags with the number of scenarios carrying them."""
    project_root = Path.cwd()
    result = _run(ctx, project_root, features_path, None, exclude_tags, link_steps=False)
    if result is None:
        return

    found = result.registry.find_all(RegistryKind.TAG)
    if not found:
        click.echo("No tags found.")
        return

    for tag in sorted(found, key=lambda t: (t.name, t.value)):
        click.echo(f"  {tag.value}  scenarios={tag.total_scenarios}  owners={len(tag.owners)}")


def _run(
    ctx: click.Context,
    project_root: Path,
    features_path: str | None,
    definitions_path: str | None,
    exclude_tags: tuple[str, ...],
    link_steps: bool = True,
) -> PipelineResult | None:
    from featurelink.pipeline import run_pipeline

    try:
        config = load_config_or_default(project_root)
    except FeatureLinkError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)
        return None

    for tag in exclude_tags:
        if tag not in config.exclude_tags:
            config.exclude_tags.append(tag)

    features_root = Path(features_path) if features_path else project_root / config.features_dir
    if not features_root.exists():
        click.echo(f"Error: No features found at {features_root}")
        ctx.exit(1)
        return None

    definitions = None
    if link_steps:
        definitions = (
            Path(definitions_path) if definitions_path
            else project_root / config.definitions_file
        )

    try:
        return run_pipeline(features_root, definitions, config)
    except FeatureLinkError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)
        return None
