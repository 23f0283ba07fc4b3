"""Data models for lazy-publish.

These Pydantic models represent the core data structures that flow
through the publish pipeline: workspace packages, registry snapshots,
bump decisions, the publish plan and the execution report. All of them
are frozen; derived views are computed, never written back.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from packaging.utils import canonicalize_name
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .deps import parse_specifier, requirement_allows, split_dependency
from .versions import BumpKind, is_newer, normalize_version

__all__ = [
    "BumpDecision",
    "BumpKind",
    "ChangeKind",
    "Dependency",
    "ExecutionReport",
    "PackageNode",
    "PublishPlan",
    "PublishPolicy",
    "PublishStep",
    "RegistryState",
    "StepOutcome",
    "StepResult",
]


class PublishPolicy(str, Enum):
    """Per-package override of change detection."""

    AUTO = "auto"
    SKIP = "skip"
    FORCE = "force"


class ChangeKind(str, Enum):
    """How a package's local state compares to the registry."""

    UNCHANGED = "unchanged"
    CONTENT_CHANGED = "content_changed"
    NEVER_PUBLISHED = "never_published"
    FORCED = "forced"


class StepOutcome(str, Enum):
    """Result of one plan step during execution."""

    PUBLISHED = "published"
    SKIPPED = "skipped"
    FAILED = "failed"
    NOT_ATTEMPTED = "not_attempted"


class Dependency(BaseModel):
    """An intra-workspace dependency edge.

    Attributes:
        name: Canonical name of the workspace package depended upon.
        requirement: PEP 440 specifier the dependent declares on it
                     (e.g. ">=1.0,<2"). Empty means any version.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    requirement: str = ""

    @field_validator("name")
    @classmethod
    def canonical_name(cls, value: str) -> str:
        return canonicalize_name(value)

    @field_validator("requirement")
    @classmethod
    def valid_requirement(cls, value: str) -> str:
        # Normalized so that equivalent spellings compare and serialize equal
        return str(parse_specifier(value.strip()))

    @classmethod
    def parse(cls, dep_str: str) -> Dependency:
        """Build a Dependency from a PEP 508 string like "pkg-b>=1.0"."""
        name, requirement = split_dependency(dep_str)
        return cls(name=name, requirement=requirement)

    def allows(self, version: str) -> bool:
        """Return True if version satisfies this requirement."""
        return requirement_allows(self.requirement, version)


class PackageNode(BaseModel):
    """Immutable description of one local workspace package.

    Attributes:
        name: Canonical package name; the identity key everywhere.
        version: Version currently declared in the local manifest.
        fingerprint: Deterministic digest over the publishable content.
        deps: Intra-workspace dependencies. PEP 508 strings are accepted
              and parsed. External deps are not tracked here.
        policy: Per-package override of change detection.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    fingerprint: str
    deps: tuple[Dependency, ...] = ()
    policy: PublishPolicy = PublishPolicy.AUTO

    @field_validator("name")
    @classmethod
    def canonical_name(cls, value: str) -> str:
        return canonicalize_name(value)

    @field_validator("version")
    @classmethod
    def valid_version(cls, value: str) -> str:
        return normalize_version(value)

    @field_validator("deps", mode="before")
    @classmethod
    def parse_dep_strings(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return tuple(Dependency.parse(d) if isinstance(d, str) else d for d in value)
        return value

    @model_validator(mode="after")
    def unique_deps(self) -> PackageNode:
        seen: set[str] = set()
        for dep in self.deps:
            if dep.name in seen:
                raise ValueError(f"{self.name} declares {dep.name} more than once")
            seen.add(dep.name)
        return self

    @property
    def dep_names(self) -> list[str]:
        return [dep.name for dep in self.deps]

    def requirement_on(self, name: str) -> Dependency | None:
        """Return the dependency edge on name, or None if there is none."""
        for dep in self.deps:
            if dep.name == name:
                return dep
        return None


class RegistryState(BaseModel):
    """Point-in-time snapshot of what the registry holds for one package.

    Attributes:
        published_version: Highest non-yanked version, or None if the
                           package was never published.
        published_fingerprint: Content fingerprint of that version, if known.
    """

    model_config = ConfigDict(frozen=True)

    published_version: str | None = None
    published_fingerprint: str | None = None

    @field_validator("published_version")
    @classmethod
    def valid_version(cls, value: str | None) -> str | None:
        return None if value is None else normalize_version(value)

    @property
    def is_published(self) -> bool:
        return self.published_version is not None


class BumpDecision(BaseModel):
    """Records a version change computed for a package.

    Attributes:
        from_version: The version the bump starts from.
        to_version: The version the package will be released as.
        kind: Most significant component that changed.
    """

    model_config = ConfigDict(frozen=True)

    from_version: str
    to_version: str
    kind: BumpKind

    @model_validator(mode="after")
    def version_increases(self) -> BumpDecision:
        if not is_newer(self.to_version, self.from_version):
            raise ValueError(
                f"bump must increase the version: {self.from_version} → {self.to_version}"
            )
        return self


class PublishStep(BaseModel):
    """One entry of the publish plan.

    Steps that are not new publishes are kept for visibility only and are
    never sent to the registry.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    is_new_publish: bool
    change: ChangeKind
    published_version: str | None = None
    bump: BumpDecision | None = None


class PublishPlan(BaseModel):
    """Ordered sequence of publish steps; dependencies come first."""

    model_config = ConfigDict(frozen=True)

    steps: tuple[PublishStep, ...] = ()

    def names(self) -> list[str]:
        return [step.name for step in self.steps]

    def new_steps(self) -> list[PublishStep]:
        """Steps that will actually be published."""
        return [step for step in self.steps if step.is_new_publish]

    def step_for(self, name: str) -> PublishStep | None:
        for step in self.steps:
            if step.name == name:
                return step
        return None

    def to_json(self) -> str:
        """Serialize for dry-run previews. Identical plans give identical text."""
        return self.model_dump_json(indent=2)


class StepResult(BaseModel):
    """Outcome of one plan step.

    Attributes:
        reason: Human-readable explanation for skipped or failed steps.
        error: Exception class name for failed steps (e.g. "RaceDetected").
    """

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    outcome: StepOutcome
    reason: str | None = None
    error: str | None = None


class ExecutionReport(BaseModel):
    """Ordered per-step outcomes of one plan execution."""

    model_config = ConfigDict(frozen=True)

    results: tuple[StepResult, ...] = Field(default_factory=tuple)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        """True when no step failed and execution was not cancelled."""
        return not self.cancelled and not self.failed

    @property
    def failed(self) -> list[StepResult]:
        return [r for r in self.results if r.outcome is StepOutcome.FAILED]

    def outcomes(self) -> list[StepOutcome]:
        return [r.outcome for r in self.results]
