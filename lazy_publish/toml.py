"""TOML reading utilities.

Uses tomlkit, the same parser that preserves formatting when pyproject.toml
files are edited elsewhere in a workspace's release tooling.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import tomlkit


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml file."""
    return tomlkit.parse(path.read_text())


def get_tool_table(doc: tomlkit.TOMLDocument, tool: str) -> Any:
    """Extract the [tool.<tool>] table as plain Python data.

    Returns an empty dict when the table is absent.

    Raises:
        ValueError: If the top-level "tool" key is not a table.
    """
    tools = doc.get("tool", {})
    if not isinstance(tools, Mapping):
        raise ValueError("[tool] must be a table")
    table = tools.get(tool)
    if table is None:
        return {}
    return table.unwrap()
