"""Tests for lazy_publish.versions."""

from __future__ import annotations

import pytest

from lazy_publish.versions import (
    BumpKind,
    bump_version,
    infer_bump_kind,
    is_newer,
    max_version,
    normalize_version,
    parse_version,
)


class TestParseVersion:
    def test_full_version(self) -> None:
        v = parse_version("1.2.3")
        assert (v.major, v.minor, v.patch) == (1, 2, 3)

    def test_pads_missing_components(self) -> None:
        assert str(parse_version("1")) == "1.0.0"
        assert str(parse_version("1.2")) == "1.2.0"

    def test_prerelease(self) -> None:
        assert parse_version("1.2.3-dev").prerelease == "dev"

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_version("not-a-version")


class TestNormalizeVersion:
    def test_strips_and_pads(self) -> None:
        assert normalize_version(" 2.1 ") == "2.1.0"


class TestIsNewer:
    def test_ordering(self) -> None:
        assert is_newer("1.0.1", "1.0.0")
        assert not is_newer("1.0.0", "1.0.0")
        assert not is_newer("0.9.9", "1.0.0")

    def test_release_sorts_after_prerelease(self) -> None:
        assert is_newer("1.0.0", "1.0.0-rc.1")


class TestMaxVersion:
    def test_semver_ordering_not_lexical(self) -> None:
        assert max_version(["1.9.0", "1.10.0", "1.2.0"]) == "1.10.0"

    def test_empty(self) -> None:
        assert max_version([]) is None


class TestBumpVersion:
    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            (BumpKind.PATCH, "1.2.4"),
            (BumpKind.MINOR, "1.3.0"),
            (BumpKind.MAJOR, "2.0.0"),
        ],
    )
    def test_bumps(self, kind: BumpKind, expected: str) -> None:
        assert bump_version("1.2.3", kind) == expected

    def test_prerelease_is_finalized(self) -> None:
        assert bump_version("2.0.0-dev", BumpKind.PATCH) == "2.0.0"
        assert bump_version("2.0.0-rc.1", BumpKind.MAJOR) == "2.0.0"


class TestInferBumpKind:
    def test_kinds(self) -> None:
        assert infer_bump_kind("1.2.3", "1.2.9") is BumpKind.PATCH
        assert infer_bump_kind("1.2.3", "1.4.0") is BumpKind.MINOR
        assert infer_bump_kind("1.2.3", "3.0.0") is BumpKind.MAJOR


def test_bump_kind_rank() -> None:
    assert BumpKind.PATCH.rank < BumpKind.MINOR.rank < BumpKind.MAJOR.rank
