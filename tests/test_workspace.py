"""Tests for lazy_publish.workspace."""

from __future__ import annotations

from pathlib import Path

import pytest

from lazy_publish.errors import ConfigError
from lazy_publish.models import PublishPolicy
from lazy_publish.workspace import SnapshotWorkspace


class TestSnapshotWorkspace:
    def test_loads_packages(self, workspace_json: Path) -> None:
        packages = SnapshotWorkspace(workspace_json).list_packages()
        assert [p.name for p in packages] == ["a", "b", "c"]
        assert packages[0].dep_names == ["b"]
        assert packages[0].policy is PublishPolicy.AUTO

    def test_policy_and_structured_deps(self, tmp_path: Path) -> None:
        path = tmp_path / "ws.json"
        path.write_text(
            '[{"name": "a", "version": "1.0", "fingerprint": "f", "policy": "force",'
            ' "deps": [{"name": "b", "requirement": ">=2"}]},'
            ' {"name": "b", "version": "2.0.0", "fingerprint": "g"}]'
        )
        a, _ = SnapshotWorkspace(path).list_packages()
        assert a.policy is PublishPolicy.FORCE
        assert a.version == "1.0.0"
        assert a.deps[0].requirement == ">=2"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid workspace snapshot"):
            SnapshotWorkspace(tmp_path / "nope.json").list_packages()

    def test_invalid_package(self, tmp_path: Path) -> None:
        path = tmp_path / "ws.json"
        path.write_text('[{"name": "a"}]')
        with pytest.raises(ConfigError):
            SnapshotWorkspace(path).list_packages()
