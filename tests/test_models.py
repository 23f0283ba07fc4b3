"""Tests for lazy_publish.models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from lazy_publish.models import (
    BumpDecision,
    BumpKind,
    ChangeKind,
    Dependency,
    ExecutionReport,
    PackageNode,
    PublishPlan,
    PublishPolicy,
    PublishStep,
    RegistryState,
    StepOutcome,
    StepResult,
)


class TestDependency:
    def test_parse(self) -> None:
        dep = Dependency.parse("Pkg_B>=1.0")
        assert dep.name == "pkg-b"
        assert dep.allows("1.5.0")
        assert not dep.allows("0.9.0")

    def test_equivalent_requirements_compare_equal(self) -> None:
        assert Dependency(name="b", requirement="<2, >=1.0") == Dependency(
            name="b", requirement=">=1.0,<2"
        )

    def test_invalid_requirement(self) -> None:
        with pytest.raises(ValidationError):
            Dependency(name="b", requirement="~~1")


class TestPackageNode:
    def test_defaults(self) -> None:
        node = PackageNode(name="pkg", version="1.0", fingerprint="sha256:x")
        assert node.version == "1.0.0"
        assert node.deps == ()
        assert node.policy is PublishPolicy.AUTO

    def test_canonical_name(self) -> None:
        assert PackageNode(name="My_Pkg", version="1.0.0", fingerprint="x").name == "my-pkg"

    def test_dep_strings_parsed(self) -> None:
        node = PackageNode(
            name="a", version="1.0.0", fingerprint="x", deps=["b>=1.0", "c"]
        )
        assert node.dep_names == ["b", "c"]
        requirement = node.requirement_on("b")
        assert requirement is not None
        assert requirement.allows("1.2.0")
        assert node.requirement_on("z") is None

    def test_duplicate_deps_rejected(self) -> None:
        with pytest.raises(ValidationError, match="more than once"):
            PackageNode(name="a", version="1.0.0", fingerprint="x", deps=["b", "B>=1"])

    def test_invalid_version_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PackageNode(name="a", version="banana", fingerprint="x")

    def test_frozen(self) -> None:
        node = PackageNode(name="a", version="1.0.0", fingerprint="x")
        with pytest.raises(ValidationError):
            node.version = "2.0.0"  # type: ignore[misc]


class TestRegistryState:
    def test_is_published(self) -> None:
        assert not RegistryState().is_published
        assert RegistryState(published_version="1.0.0").is_published

    def test_version_normalized(self) -> None:
        assert RegistryState(published_version="2.1").published_version == "2.1.0"

    def test_non_semver_version_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RegistryState(published_version="1.0.0.post1")


class TestBumpDecision:
    def test_must_increase(self) -> None:
        with pytest.raises(ValidationError, match="must increase"):
            BumpDecision(from_version="1.0.0", to_version="1.0.0", kind=BumpKind.PATCH)

    def test_valid(self) -> None:
        decision = BumpDecision(
            from_version="1.0.0", to_version="1.1.0", kind=BumpKind.MINOR
        )
        assert decision.kind is BumpKind.MINOR


class TestPublishPlan:
    def _plan(self) -> PublishPlan:
        return PublishPlan(
            steps=(
                PublishStep(
                    name="c",
                    version="1.0.1",
                    is_new_publish=True,
                    change=ChangeKind.CONTENT_CHANGED,
                    published_version="1.0.0",
                ),
                PublishStep(
                    name="b",
                    version="1.0.0",
                    is_new_publish=False,
                    change=ChangeKind.UNCHANGED,
                    published_version="1.0.0",
                ),
            )
        )

    def test_views(self) -> None:
        plan = self._plan()
        assert plan.names() == ["c", "b"]
        assert [s.name for s in plan.new_steps()] == ["c"]
        step = plan.step_for("b")
        assert step is not None and step.version == "1.0.0"
        assert plan.step_for("zzz") is None

    def test_to_json_round_trips(self) -> None:
        plan = self._plan()
        assert PublishPlan.model_validate_json(plan.to_json()) == plan


class TestExecutionReport:
    def test_ok_and_failed(self) -> None:
        report = ExecutionReport(
            results=(
                StepResult(name="a", version="1.0.0", outcome=StepOutcome.PUBLISHED),
                StepResult(
                    name="b",
                    version="1.0.0",
                    outcome=StepOutcome.FAILED,
                    error="PublishFailed",
                ),
            )
        )
        assert not report.ok
        assert [r.name for r in report.failed] == ["b"]
        assert report.outcomes() == [StepOutcome.PUBLISHED, StepOutcome.FAILED]

    def test_cancelled_is_not_ok(self) -> None:
        assert not ExecutionReport(cancelled=True).ok
        assert ExecutionReport().ok
