"""Publish plan construction and validation."""

from __future__ import annotations

from collections.abc import Mapping

from .bumps import BumpResult
from .errors import PlanningError, UnpublishableDependency
from .graph import DependencyGraph
from .logs import get_logger
from .models import (
    ChangeKind,
    PublishPlan,
    PublishPolicy,
    PublishStep,
    RegistryState,
)

logger = get_logger(__name__)


def _is_new_publish(
    policy: PublishPolicy, change: ChangeKind, target: str, published: str | None
) -> bool:
    if policy is PublishPolicy.SKIP or change is ChangeKind.UNCHANGED:
        return False
    return published is None or target != published


def build_plan(
    graph: DependencyGraph,
    changes: Mapping[str, ChangeKind],
    states: Mapping[str, RegistryState],
    bumps: BumpResult,
) -> PublishPlan:
    """Merge publish order and target versions into a validated plan.

    Every graph node gets a step, in topological order. Steps that are not
    new publishes are kept for visibility only.

    Raises:
        CyclicDependency: If the graph contains a cycle.
        UnpublishableDependency: See validate_plan.
    """
    steps: list[PublishStep] = []
    for name in graph.topological_order():
        node = graph[name]
        published = states.get(name, RegistryState()).published_version
        target = bumps.targets[name]
        steps.append(
            PublishStep(
                name=name,
                version=target,
                is_new_publish=_is_new_publish(
                    node.policy, changes[name], target, published
                ),
                change=changes[name],
                published_version=published,
                bump=bumps.decisions.get(name),
            )
        )

    plan = PublishPlan(steps=tuple(steps))
    validate_plan(plan, graph, states)
    logger.info(
        "Publish plan: %s",
        ", ".join(f"{s.name} {s.version}" for s in plan.new_steps()) or "<nothing new>",
    )
    return plan


def validate_plan(
    plan: PublishPlan,
    graph: DependencyGraph,
    states: Mapping[str, RegistryState],
) -> None:
    """Check a plan's internal consistency.

    - every graph node appears exactly once
    - for every edge, the dependency's step comes before the dependent's
    - a new publish may depend on a skip-policy package only when that
      package already has a published version the requirement admits

    Raises:
        PlanningError: On ordering or coverage violations.
        UnpublishableDependency: On a dependency that will never be published.
    """
    position = {step.name: i for i, step in enumerate(plan.steps)}
    if len(position) != len(plan.steps) or set(position) != set(graph):
        raise PlanningError("Plan steps do not match the dependency graph")

    for dependent, dependency in graph.edges():
        if position[dependency] > position[dependent]:
            raise PlanningError(
                f"{dependency} is ordered after its dependent {dependent}"
            )

    for step in plan.new_steps():
        node = graph[step.name]
        for dep_name in graph.dependencies(step.name):
            if graph[dep_name].policy is not PublishPolicy.SKIP:
                continue
            published = states.get(dep_name, RegistryState()).published_version
            requirement = node.requirement_on(dep_name)
            if published is None or (
                requirement is not None and not requirement.allows(published)
            ):
                raise UnpublishableDependency(step.name, dep_name)
