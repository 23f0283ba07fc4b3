"""Exception hierarchy for lazy-publish.

Every error raised by the planner or the executor derives from
LazyPublishError. Errors carry an optional ``details`` mapping with
structured context (package names, versions, attempts) that is rendered
into the string form so log lines and CLI messages stay informative.

Planning errors abort plan construction. Execution errors are recorded in
the execution report and halt the remaining steps.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


class LazyPublishError(Exception):
    """Base class for all lazy-publish errors.

    Args:
        message: Human-readable description.
        details: Optional structured metadata about the failure.
    """

    def __init__(self, message: str, details: Mapping[str, Any] | None = None):
        self.message = message
        self.details: dict[str, Any] = dict(details) if details else {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        formatted = ", ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{self.message} ({formatted})"


class ConfigError(LazyPublishError):
    """Raised when the [tool.lazy-publish] configuration is invalid."""


# ─── Planning ────────────────────────────────────────────────────────────────


class PlanningError(LazyPublishError):
    """Base class for errors that abort plan construction."""


class UnknownPackage(PlanningError):
    """A requested or referenced package is not part of the workspace."""

    def __init__(self, name: str, *, referenced_by: str | None = None):
        self.name = name
        self.referenced_by = referenced_by
        if referenced_by:
            message = (
                f"{referenced_by} depends on workspace package {name}"
                " which cannot be found"
            )
        else:
            message = f"Package not found in workspace: {name}"
        super().__init__(message)


class DuplicatePackage(PlanningError):
    """Two workspace packages share the same canonical name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Package defined more than once in workspace: {name}")


class CyclicDependency(PlanningError):
    """The dependency graph contains a cycle.

    Attributes:
        cycle: The cycle path, first node repeated at the end
               (e.g. ["a", "b", "a"]).
    """

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__(f"Dependency cycle detected: {' → '.join(self.cycle)}")


class ConstraintBreak(PlanningError):
    """A dependent's requirement rejects the new version of its dependency.

    Raised when the dependent is not itself scheduled for a release, so
    nothing would ever publish a version of it that accepts the bump.
    """

    def __init__(
        self,
        dependent: str,
        dependency: str,
        *,
        requirement: str,
        version: str,
    ):
        self.dependent = dependent
        self.dependency = dependency
        self.requirement = requirement
        self.version = version
        super().__init__(
            f"{dependent} requires {dependency}{requirement or ' (any)'}"
            f" but {dependency} would be released as {version}",
            details={"dependent": dependent, "dependency": dependency},
        )


class UnpublishableDependency(PlanningError):
    """A new release depends on a package that is never published."""

    def __init__(self, dependent: str, dependency: str):
        self.dependent = dependent
        self.dependency = dependency
        super().__init__(
            f"{dependency} is marked skip and has no published version matching"
            f" the requirement of {dependent}, which would be published"
        )


class NothingToPublish(PlanningError):
    """The selection options left no package to plan for."""


# ─── Registry ────────────────────────────────────────────────────────────────


class RegistryError(LazyPublishError):
    """Base class for errors reported by a registry client."""


class RegistryNotFound(RegistryError):
    """The registry has no record of the package. Expected for new packages."""


class TransientRegistryError(RegistryError):
    """Rate limiting, timeouts, 5xx responses. Safe to retry."""


class FatalRegistryError(RegistryError):
    """Authentication, permission or other non-retryable failures."""


# ─── Execution ───────────────────────────────────────────────────────────────


class ExecutionError(LazyPublishError):
    """Base class for errors that halt plan execution."""


class RaceDetected(ExecutionError):
    """The registry changed between planning and execution."""

    def __init__(self, name: str, *, planned: str, found: str):
        self.name = name
        self.planned = planned
        self.found = found
        super().__init__(
            f"{name} {found} is already published (planned {planned}); re-plan",
            details={"package": name},
        )


class PublishFailed(ExecutionError):
    """Publishing a package failed after exhausting retries."""

    def __init__(self, name: str, version: str, *, attempts: int, reason: str):
        self.name = name
        self.version = version
        self.attempts = attempts
        self.reason = reason
        super().__init__(
            f"Failed to publish {name} {version}: {reason}",
            details={"attempts": attempts},
        )
