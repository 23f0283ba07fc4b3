"""Dependency graph utilities.

Builds the subgraph of the workspace needed to publish a requested set of
packages and provides topological ordering for publishing. Packages must
be published in dependency order so that when package A depends on
package B, B is already on the registry when A is uploaded.

The graph is index-based: nodes are keyed by canonical name and edges are
lists of names, so cycles are plain data and never ownership problems.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from packaging.utils import canonicalize_name

from .errors import (
    CyclicDependency,
    DuplicatePackage,
    NothingToPublish,
    UnknownPackage,
)
from .logs import get_logger
from .models import PackageNode, PublishPolicy

logger = get_logger(__name__)


def index_workspace(packages: Iterable[PackageNode]) -> dict[str, PackageNode]:
    """Index workspace packages by name and sanity check their edges.

    Args:
        packages: Every package in the workspace.

    Returns:
        Map of package name → PackageNode.

    Raises:
        DuplicatePackage: If two packages share a name.
        UnknownPackage: If a package depends on a name outside the workspace.
    """
    index: dict[str, PackageNode] = {}
    for pkg in packages:
        if pkg.name in index:
            raise DuplicatePackage(pkg.name)
        index[pkg.name] = pkg

    # Make sure all listed dependencies exist
    for pkg in index.values():
        for dep in pkg.deps:
            if dep.name not in index:
                raise UnknownPackage(dep.name, referenced_by=pkg.name)

    return index


def _reverse_deps(packages: Mapping[str, PackageNode]) -> dict[str, list[str]]:
    """Map each package to the packages (within the mapping) that depend on it."""
    reverse: dict[str, list[str]] = {name: [] for name in packages}
    for name, info in packages.items():
        for dep in info.dep_names:
            if dep in reverse:
                reverse[dep].append(name)
    for dependents in reverse.values():
        dependents.sort()
    return reverse


def _transitive_dependents(
    workspace: Mapping[str, PackageNode], seeds: Iterable[str]
) -> dict[str, str]:
    """Find every package that transitively depends on one of seeds.

    Returns:
        Map of dependent name → the package that pulled it in.
    """
    reverse = _reverse_deps(workspace)
    found: dict[str, str] = {}
    queue = sorted(seeds)
    seen = set(queue)
    while queue:
        node = queue.pop(0)
        for dependent in reverse[node]:
            if dependent not in seen:
                seen.add(dependent)
                found[dependent] = node
                queue.append(dependent)
    return found


class DependencyGraph:
    """Immutable directed graph over workspace packages.

    Edges point from a package to its dependencies. Dependencies that are
    not nodes of the graph are ignored, so a graph may be built directly
    over any subset of the workspace; ``closure()`` is the usual way to get
    one that is complete for publishing.
    """

    def __init__(self, nodes: Mapping[str, PackageNode]):
        self._nodes = dict(sorted(nodes.items()))
        self._dependents = _reverse_deps(self._nodes)

    @classmethod
    def closure(
        cls,
        workspace: Mapping[str, PackageNode],
        requested: Iterable[str],
        *,
        exclude: Iterable[str] = (),
        include_dependents: bool = False,
    ) -> DependencyGraph:
        """Build the subgraph needed to publish the requested packages.

        Starting from ``requested``, repeatedly adds every local dependency
        not yet included until a fixed point is reached.

        Args:
            workspace: Every workspace package, as returned by index_workspace.
            requested: Names to publish. Empty means every package whose
                       policy is not skip.
            exclude: Names to leave out. Packages that transitively depend
                     on an excluded package are excluded too.
            include_dependents: Also request every non-skip package that
                                transitively depends on a requested one.

        Raises:
            UnknownPackage: If a requested or excluded name is not in the
                            workspace.
            NothingToPublish: If the options leave nothing selected.
        """
        excluded = {canonicalize_name(n) for n in exclude}
        for name in sorted(excluded):
            if name not in workspace:
                raise UnknownPackage(name)
        for dependent, via in _transitive_dependents(workspace, excluded).items():
            logger.info("Excluding %s because it depends on %s", dependent, via)
            excluded.add(dependent)

        selected = {canonicalize_name(n) for n in requested}
        for name in sorted(selected):
            if name not in workspace:
                raise UnknownPackage(name)
        if not selected:
            selected = {
                name
                for name, pkg in workspace.items()
                if pkg.policy is not PublishPolicy.SKIP
            }

        if include_dependents:
            for dependent, via in _transitive_dependents(workspace, selected).items():
                if dependent in excluded:
                    continue
                if workspace[dependent].policy is PublishPolicy.SKIP:
                    continue
                logger.info("Including %s because it depends on %s", dependent, via)
                selected.add(dependent)

        selected -= excluded
        if not selected:
            raise NothingToPublish("No packages could be selected for publishing")

        # Fixed point over local dependencies
        included: dict[str, PackageNode] = {}
        queue = sorted(selected)
        while queue:
            name = queue.pop(0)
            if name in included:
                continue
            included[name] = workspace[name]
            for dep in workspace[name].dep_names:
                if dep not in workspace:
                    raise UnknownPackage(dep, referenced_by=name)
                if dep not in included:
                    queue.append(dep)

        logger.debug(
            "Closure of %s: %s", ", ".join(sorted(selected)), ", ".join(sorted(included))
        )
        return cls(included)

    @property
    def nodes(self) -> Mapping[str, PackageNode]:
        """Read-only view of name → PackageNode, sorted by name."""
        return MappingProxyType(self._nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[str]:
        return iter(self._nodes)

    def __getitem__(self, name: str) -> PackageNode:
        return self._nodes[name]

    def dependencies(self, name: str) -> list[str]:
        """Direct dependencies of name that are nodes of this graph, sorted."""
        return sorted(d for d in self._nodes[name].dep_names if d in self._nodes)

    def dependents(self, name: str) -> list[str]:
        """Nodes of this graph that directly depend on name, sorted."""
        return list(self._dependents[name])

    def edges(self) -> list[tuple[str, str]]:
        """All (dependent, dependency) pairs within the graph."""
        return [(name, dep) for name in self._nodes for dep in self.dependencies(name)]

    def detect_cycle(self) -> list[str] | None:
        """Find a dependency cycle, if any.

        Returns:
            The cycle path with its first node repeated at the end
            (e.g. ["a", "b", "a"] when a and b depend on each other),
            or None if the graph is acyclic.
        """
        white, gray, black = 0, 1, 2
        state = dict.fromkeys(self._nodes, white)

        for root in self._nodes:
            if state[root] != white:
                continue
            state[root] = gray
            path = [root]
            stack = [iter(self.dependencies(root))]
            while stack:
                for child in stack[-1]:
                    if state[child] == gray:
                        return path[path.index(child) :] + [child]
                    if state[child] == white:
                        state[child] = gray
                        path.append(child)
                        stack.append(iter(self.dependencies(child)))
                        break
                else:
                    state[path.pop()] = black
                    stack.pop()
        return None

    def topological_order(self) -> list[str]:
        """Topologically sort packages by their internal dependencies.

        Uses Kahn's algorithm with a min-heap, so among packages whose
        dependencies are all placed the alphabetically smallest goes next.
        The output is fully deterministic.

        Returns:
            List of package names in publish order (dependencies first).

        Raises:
            CyclicDependency: If the graph contains a cycle.

        Example:
            If A depends on B, and B depends on C:
            topological_order() → [C, B, A]
        """
        cycle = self.detect_cycle()
        if cycle is not None:
            raise CyclicDependency(cycle)

        # Count unresolved dependencies for each package
        in_degree = {name: len(self.dependencies(name)) for name in self._nodes}
        ready = [name for name, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)
        order: list[str] = []

        while ready:
            node = heapq.heappop(ready)
            order.append(node)
            for dependent in self._dependents[node]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, dependent)

        return order
