"""Version bump planning.

For every package scheduled for release, compute the version it will be
published as. Packages are visited in publish order so that each
package's dependencies already have their final targets when the
package itself is decided.
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict

from .errors import ConstraintBreak
from .graph import DependencyGraph
from .logs import get_logger
from .models import BumpDecision, BumpKind, ChangeKind, Dependency, RegistryState
from .versions import bump_version, infer_bump_kind, is_newer

logger = get_logger(__name__)


class BumpPolicy(BaseModel):
    """Which component to bump for each kind of change.

    Attributes:
        content_changed: Bump for packages whose content changed.
        forced: Bump for packages with the force policy.
        escalation: Minimum bump for a package whose own requirement on a
                    dependency no longer admits that dependency's new version.
    """

    model_config = ConfigDict(extra="forbid")

    content_changed: BumpKind = BumpKind.PATCH
    forced: BumpKind = BumpKind.PATCH
    escalation: BumpKind = BumpKind.MINOR

    def kind_for(self, change: ChangeKind) -> BumpKind:
        if change is ChangeKind.FORCED:
            return self.forced
        return self.content_changed


class BumpResult(BaseModel):
    """Target versions for every graph node plus the bumps behind them.

    Attributes:
        targets: Map of package name → version it is planned at.
        decisions: Map of package name → BumpDecision, only for packages
                   whose target differs from a published version.
    """

    model_config = ConfigDict(frozen=True)

    targets: dict[str, str]
    decisions: dict[str, BumpDecision]


def _broken_requirements(
    graph: DependencyGraph,
    name: str,
    targets: Mapping[str, str],
    scheduled: set[str],
) -> list[Dependency]:
    """Requirements of name that reject a scheduled dependency's new target."""
    node = graph[name]
    broken: list[Dependency] = []
    for dep_name in graph.dependencies(name):
        if dep_name not in scheduled:
            continue
        dep = node.requirement_on(dep_name)
        if dep is not None and not dep.allows(targets[dep_name]):
            broken.append(dep)
    return broken


def decide_bump(
    local: str,
    published: str,
    kind: BumpKind,
    *,
    escalate_to: BumpKind | None = None,
) -> BumpDecision:
    """Compute the release version for a changed, previously published package.

    If the local version is already ahead of the registry, it is used as-is
    and the decision records the jump the maintainer chose. Otherwise the
    published version is bumped by kind, raised to escalate_to if that is
    more significant.

    Examples:
        ("1.0.0", "1.0.0", PATCH) → 1.0.0 → 1.0.1
        ("1.0.0", "1.0.0", PATCH, escalate_to=MINOR) → 1.0.0 → 1.1.0
        ("2.0.0", "1.4.2", PATCH) → 1.4.2 → 2.0.0 (MAJOR)
    """
    if is_newer(local, published):
        return BumpDecision(
            from_version=published,
            to_version=local,
            kind=infer_bump_kind(published, local),
        )
    if escalate_to is not None and escalate_to.rank > kind.rank:
        kind = escalate_to
    return BumpDecision(
        from_version=published, to_version=bump_version(published, kind), kind=kind
    )


def plan_bumps(
    graph: DependencyGraph,
    changes: Mapping[str, ChangeKind],
    states: Mapping[str, RegistryState],
    policy: BumpPolicy | None = None,
) -> BumpResult:
    """Compute target versions for every node of the graph.

    - UNCHANGED: target is the local version, no bump.
    - NEVER_PUBLISHED (or FORCED with nothing published): target is the
      local version as the first release, no bump.
    - CONTENT_CHANGED / FORCED: see decide_bump; escalated when one of the
      package's own requirements rejects a dependency's new target.

    A package that is not scheduled for release while one of its
    requirements rejects a dependency's new target makes the whole plan
    invalid.

    Raises:
        ConstraintBreak: On the first such package in publish order.
        CyclicDependency: If the graph contains a cycle.
    """
    policy = policy or BumpPolicy()
    targets: dict[str, str] = {}
    decisions: dict[str, BumpDecision] = {}
    scheduled = {n for n, change in changes.items() if change is not ChangeKind.UNCHANGED}

    for name in graph.topological_order():
        node = graph[name]
        change = changes[name]
        broken = _broken_requirements(graph, name, targets, scheduled)

        if change is ChangeKind.UNCHANGED:
            targets[name] = node.version
            if broken:
                dep = broken[0]
                raise ConstraintBreak(
                    name,
                    dep.name,
                    requirement=dep.requirement,
                    version=targets[dep.name],
                )
            continue

        published = states.get(name, RegistryState()).published_version
        if published is None:
            # First release: the local version is the target
            targets[name] = node.version
            for dep in broken:
                logger.warning(
                    "%s requires %s%s, which rejects its new version %s",
                    name,
                    dep.name,
                    dep.requirement,
                    targets[dep.name],
                )
            continue

        decision = decide_bump(
            node.version,
            published,
            policy.kind_for(change),
            escalate_to=policy.escalation if broken else None,
        )
        decisions[name] = decision
        targets[name] = decision.to_version
        logger.info(
            "  %s: %s → %s (%s%s)",
            name,
            decision.from_version,
            decision.to_version,
            decision.kind.value,
            ", requirement changed" if broken else "",
        )

    return BumpResult(targets=targets, decisions=decisions)
