"""Configuration for lazy-publish.

Settings live in the ``[tool.lazy-publish]`` table of the workspace root's
pyproject.toml, for example::

    [tool.lazy-publish]
    concurrency = 4
    after-publish-delay = 10

    [tool.lazy-publish.retry]
    max-attempts = 3

    [tool.lazy-publish.bump]
    content-changed = "minor"

Keys may be spelled with hyphens or underscores.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from tomlkit.exceptions import TOMLKitError

from .bumps import BumpPolicy
from .errors import ConfigError
from .retry import RetryPolicy
from .toml import get_tool_table, load_pyproject

TOOL_NAME = "lazy-publish"


class PublishConfig(BaseModel):
    """Planner and executor settings.

    Attributes:
        concurrency: Maximum registry fetches in flight while planning.
        retry: Retry policy for transient registry failures.
        bump: Which version component to bump for each kind of change.
        after_publish_delay: Seconds to wait after each publish, to stay
                             under registry rate limits.
        visibility_timeout: Seconds to wait for a published version to show
                            up on the registry; 0 disables the wait.
        visibility_poll_interval: Seconds between visibility checks.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    concurrency: int = Field(default=8, ge=1)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    bump: BumpPolicy = Field(default_factory=BumpPolicy)
    after_publish_delay: float = Field(default=0.0, ge=0)
    visibility_timeout: float = Field(default=60.0, ge=0)
    visibility_poll_interval: float = Field(default=2.5, gt=0)


def _snake_keys(value: Any) -> Any:
    """Recursively turn "max-attempts" style keys into "max_attempts"."""
    if isinstance(value, dict):
        return {str(k).replace("-", "_"): _snake_keys(v) for k, v in value.items()}
    return value


def load_config(path: Path | None = None) -> PublishConfig:
    """Load settings from a pyproject.toml.

    Args:
        path: File to read. None, a missing file or a missing
              [tool.lazy-publish] table all give the defaults.

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid settings.
    """
    if path is None or not path.exists():
        return PublishConfig()

    try:
        doc = load_pyproject(path)
    except (OSError, TOMLKitError) as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc

    try:
        table = get_tool_table(doc, TOOL_NAME)
    except ValueError as exc:
        raise ConfigError(f"{exc} in {path}") from exc
    if not isinstance(table, dict):
        raise ConfigError(f"[tool.{TOOL_NAME}] in {path} must be a table")

    try:
        return PublishConfig.model_validate(_snake_keys(table))
    except ValidationError as exc:
        raise ConfigError(
            f"Invalid [tool.{TOOL_NAME}] settings in {path}",
            details={"errors": exc.error_count()},
        ) from exc
