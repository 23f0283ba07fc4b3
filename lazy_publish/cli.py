"""CLI entry point for lazy-publish.

Renders dry-run previews from JSON snapshots of a workspace and a registry.
Real manifest parsing and registry transports plug in through the Python
API (see lazy_publish.pipeline).
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from lazy_publish.config import load_config
from lazy_publish.errors import LazyPublishError
from lazy_publish.graph import DependencyGraph
from lazy_publish.logs import setup_logging
from lazy_publish.models import PublishPlan
from lazy_publish.pipeline import discover_packages, plan_release
from lazy_publish.registry import MemoryRegistry
from lazy_publish.workspace import SnapshotWorkspace

workspace_option = click.option(
    "--workspace",
    "workspace_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="JSON snapshot of the workspace packages.",
)
package_option = click.option(
    "-p",
    "--package",
    "packages",
    multiple=True,
    help="Package to publish (repeatable). Default: every publishable package.",
)


def _render_plan(plan: PublishPlan) -> None:
    if not plan.steps:
        click.echo("Nothing to publish.")
        return
    width = max(len(step.name) for step in plan.steps)
    for step in plan.steps:
        marker = "+" if step.is_new_publish else " "
        previous = step.published_version or "<none>"
        line = f"{marker} {step.name:<{width}}  {previous} → {step.version}"
        click.echo(f"{line}  ({step.change.value})")
    click.echo()
    click.echo(f"{len(plan.new_steps())} of {len(plan.steps)} packages will be published.")


@click.group()
@click.version_option(package_name="lazy-publish")
@click.option(
    "-v", "--verbose", count=True, help="Show progress (-v) or debug output (-vv)."
)
def cli(verbose: int) -> None:
    """Publish only what changed, in dependency order."""
    levels = {0: logging.WARNING, 1: logging.INFO}
    setup_logging(level=levels.get(verbose, logging.DEBUG), verbose=verbose > 1)


@cli.command()
@workspace_option
@click.option(
    "--registry",
    "registry_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON snapshot of the registry. Default: an empty registry.",
)
@package_option
@click.option("-e", "--exclude", multiple=True, help="Package to leave out (repeatable).")
@click.option(
    "--include-dependents",
    is_flag=True,
    help="Also publish packages that depend on the selected ones.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default="pyproject.toml",
    show_default=True,
    help="pyproject.toml holding [tool.lazy-publish] settings.",
)
@click.option("--json", "as_json", is_flag=True, help="Print the plan as JSON.")
def plan(
    workspace_path: Path,
    registry_path: Path | None,
    packages: tuple[str, ...],
    exclude: tuple[str, ...],
    include_dependents: bool,
    config_path: Path,
    as_json: bool,
) -> None:
    """Preview the publish plan without publishing anything."""
    try:
        config = load_config(config_path)
        registry = (
            MemoryRegistry.from_json(registry_path) if registry_path else MemoryRegistry()
        )
        result = plan_release(
            SnapshotWorkspace(workspace_path),
            registry,
            requested=packages,
            exclude=exclude,
            include_dependents=include_dependents,
            config=config,
            downloader=registry,
        )
    except LazyPublishError as exc:
        raise click.ClickException(str(exc)) from exc

    if as_json:
        click.echo(result.to_json())
    else:
        _render_plan(result)


@cli.command()
@workspace_option
@package_option
def order(workspace_path: Path, packages: tuple[str, ...]) -> None:
    """Print the publish order of the selected packages and their deps."""
    try:
        workspace = discover_packages(SnapshotWorkspace(workspace_path))
        names = DependencyGraph.closure(workspace, packages).topological_order()
    except LazyPublishError as exc:
        raise click.ClickException(str(exc)) from exc
    for name in names:
        click.echo(name)
