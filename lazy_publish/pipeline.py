"""Release pipeline: discover → closure → compare → bump → plan → publish.

This module orchestrates the lazy-publish process:
1. Discover all packages in the workspace
2. Restrict the graph to the requested packages and their local deps
3. Fetch registry state for every node and classify what changed
4. Compute the version every changed package is released as
5. Build a validated, publish-ordered plan
6. Publish the new releases one at a time, in order

The key property is that nothing is published unless its content changed
(or it is forced), and nothing is published before its dependencies.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable

from pydantic import BaseModel, ConfigDict

from .bumps import plan_bumps
from .compare import classify_graph, fetch_registry_states
from .config import PublishConfig
from .executor import execute_plan
from .graph import DependencyGraph, index_workspace
from .logs import get_logger
from .models import (
    ExecutionReport,
    PackageNode,
    PublishPlan,
    StepOutcome,
    StepResult,
)
from .plan import build_plan
from .registry import ArtifactSource, RegistryClient, SourceDownloader
from .workspace import WorkspaceSource

logger = get_logger(__name__)


class ReleaseResult(BaseModel):
    """Plan and, unless it was a dry run, the execution report."""

    model_config = ConfigDict(frozen=True)

    plan: PublishPlan
    report: ExecutionReport | None = None

    @property
    def ok(self) -> bool:
        return self.report is None or self.report.ok


def discover_packages(source: WorkspaceSource) -> dict[str, PackageNode]:
    """List and index the workspace's packages.

    Returns:
        Map of package name to PackageNode.
    """
    logger.info("Discovering workspace packages")
    packages = index_workspace(source.list_packages())
    for name, info in packages.items():
        deps = f" → [{', '.join(info.dep_names)}]" if info.deps else ""
        logger.info("  %s %s%s", name, info.version, deps)
    return packages


def plan_release(
    source: WorkspaceSource,
    client: RegistryClient,
    *,
    requested: Iterable[str] = (),
    exclude: Iterable[str] = (),
    include_dependents: bool = False,
    config: PublishConfig | None = None,
    downloader: SourceDownloader | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PublishPlan:
    """Run the planning half of the pipeline.

    Pure with respect to its inputs: the same workspace and registry state
    always give an identical plan.

    Args:
        source: Workspace package list.
        client: Registry capability (read-only during planning).
        requested: Packages to publish; empty means all publishable ones.
        exclude: Packages to leave out, together with their dependents.
        include_dependents: Also publish packages depending on requested ones.
        config: Planner settings.
        downloader: Optional capability to re-hash published sources.
        sleep: Sleep function used between fetch retries.

    Raises:
        PlanningError: Any planning failure; no partial plan is returned.
        RegistryError: Hard or exhausted registry failures while fetching.
    """
    config = config or PublishConfig()
    packages = discover_packages(source)

    graph = DependencyGraph.closure(
        packages,
        requested,
        exclude=exclude,
        include_dependents=include_dependents,
    )
    # Fail on cycles before spending any registry requests
    order = graph.topological_order()
    logger.info("Publish order: %s", ", ".join(order))

    logger.info("Comparing %d packages against the registry", len(graph))
    states = fetch_registry_states(
        client,
        graph,
        concurrency=config.concurrency,
        retry=config.retry,
        downloader=downloader,
        sleep=sleep,
    )
    changes = classify_graph(graph, states)

    logger.info("Computing versions")
    bumps = plan_bumps(graph, changes, states, config.bump)
    return build_plan(graph, changes, states, bumps)


def run_release(
    source: WorkspaceSource,
    client: RegistryClient,
    artifacts: ArtifactSource,
    *,
    requested: Iterable[str] = (),
    exclude: Iterable[str] = (),
    include_dependents: bool = False,
    config: PublishConfig | None = None,
    downloader: SourceDownloader | None = None,
    dry_run: bool = False,
    cancel: threading.Event | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_result: Callable[[StepResult], None] | None = None,
) -> ReleaseResult:
    """Execute the full release pipeline.

    Planning errors propagate and nothing is published. Execution errors
    are captured in the report; check ``ReleaseResult.ok``.
    """
    config = config or PublishConfig()
    plan = plan_release(
        source,
        client,
        requested=requested,
        exclude=exclude,
        include_dependents=include_dependents,
        config=config,
        downloader=downloader,
        sleep=sleep,
    )
    if dry_run:
        logger.info("Dry run: nothing published")
        return ReleaseResult(plan=plan)

    if not plan.new_steps():
        logger.info("Nothing changed since the last release")

    report = execute_plan(
        plan,
        client,
        artifacts,
        config=config,
        cancel=cancel,
        sleep=sleep,
        on_result=on_result,
    )
    published = sum(1 for r in report.results if r.outcome is StepOutcome.PUBLISHED)
    logger.info("Published %d of %d new releases", published, len(plan.new_steps()))
    return ReleaseResult(plan=plan, report=report)
