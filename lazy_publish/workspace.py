"""Workspace sources.

Manifest parsing belongs to the tooling around lazy-publish; the planner
only consumes already-parsed PackageNode lists through WorkspaceSource.
SnapshotWorkspace reads such a list from a JSON file, which is how the CLI
previews plans.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from .errors import ConfigError
from .models import PackageNode


class WorkspaceSource(Protocol):
    """Anything that can list the workspace's packages."""

    def list_packages(self) -> Sequence[PackageNode]: ...


class SnapshotWorkspace:
    """Workspace loaded from a JSON snapshot.

    The file holds a list of packages, e.g.::

        [
          {"name": "pkg-a", "version": "1.0.0", "fingerprint": "sha256:...",
           "deps": ["pkg-b>=1.0"], "policy": "auto"}
        ]
    """

    def __init__(self, path: Path):
        self.path = path

    def list_packages(self) -> list[PackageNode]:
        """Parse the snapshot.

        Raises:
            ConfigError: If the file cannot be read or is malformed.
        """
        try:
            raw = json.loads(self.path.read_text())
            return TypeAdapter(list[PackageNode]).validate_python(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            raise ConfigError(f"Invalid workspace snapshot {self.path}: {exc}") from exc
