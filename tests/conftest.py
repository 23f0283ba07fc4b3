"""Shared test fixtures."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from lazy_publish.graph import DependencyGraph, index_workspace
from lazy_publish.logs import ROOT_LOGGER
from lazy_publish.models import PackageNode
from lazy_publish.registry import MemoryRegistry

NodeFactory = Callable[..., PackageNode]


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Drop handlers the CLI installs so later tests log through caplog only."""
    yield
    root = logging.getLogger(ROOT_LOGGER)
    root.handlers.clear()
    root.addHandler(logging.NullHandler())
    root.setLevel(logging.NOTSET)


@pytest.fixture
def node() -> NodeFactory:
    """Build a PackageNode with sensible defaults."""

    def make(
        name: str,
        version: str = "1.0.0",
        fingerprint: str | None = None,
        deps: list[str] | None = None,
        policy: str = "auto",
    ) -> PackageNode:
        return PackageNode(
            name=name,
            version=version,
            fingerprint=fingerprint or f"sha256:{name}",
            deps=deps or [],
            policy=policy,
        )

    return make


@pytest.fixture
def no_sleep() -> Callable[[float], None]:
    """Sleep replacement that records nothing and returns immediately."""
    return lambda seconds: None


@pytest.fixture
def registry() -> MemoryRegistry:
    return MemoryRegistry()


@pytest.fixture
def abc_packages(node: NodeFactory) -> dict[str, PackageNode]:
    """a depends on b, b depends on c, with relaxed requirements."""
    return index_workspace(
        [
            node("a", deps=["b>=1.0"]),
            node("b", deps=["c>=1.0"]),
            node("c"),
        ]
    )


@pytest.fixture
def abc_graph(abc_packages: dict[str, PackageNode]) -> DependencyGraph:
    return DependencyGraph(abc_packages)


@pytest.fixture
def abc_registry() -> MemoryRegistry:
    """Registry holding a, b and c at 1.0.0 with their current fingerprints."""
    registry = MemoryRegistry()
    for name in ("a", "b", "c"):
        registry.add_release(name, "1.0.0", f"sha256:{name}")
    return registry


@pytest.fixture
def workspace_json(tmp_path: Path) -> Path:
    """JSON workspace snapshot with a → b → c where c has new content."""
    path = tmp_path / "workspace.json"
    path.write_text(
        json.dumps(
            [
                {"name": "a", "version": "1.0.0", "fingerprint": "sha256:a", "deps": ["b>=1.0"]},
                {"name": "b", "version": "1.0.0", "fingerprint": "sha256:b", "deps": ["c>=1.0"]},
                {"name": "c", "version": "1.0.0", "fingerprint": "sha256:c-new"},
            ]
        )
    )
    return path


@pytest.fixture
def registry_json(tmp_path: Path) -> Path:
    """JSON registry snapshot with a, b and c published at 1.0.0."""
    path = tmp_path / "registry.json"
    path.write_text(
        json.dumps(
            {
                name: [{"version": "1.0.0", "fingerprint": f"sha256:{name}"}]
                for name in ("a", "b", "c")
            }
        )
    )
    return path
