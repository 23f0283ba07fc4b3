"""Version parsing and bumping utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0").
"""

from __future__ import annotations

from enum import Enum

import semver


class BumpKind(str, Enum):
    """Which semver component a release increments."""

    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS = {BumpKind.PATCH: 0, BumpKind.MINOR: 1, BumpKind.MAJOR: 2}


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3-dev" → "1.2.3-dev"

    Raises:
        ValueError: If the string is not a semantic version.
    """
    return semver.Version.parse(version_str.strip(), optional_minor_and_patch=True)


def normalize_version(version_str: str) -> str:
    """Return the canonical string form ("1.2" → "1.2.0")."""
    return str(parse_version(version_str))


def is_newer(candidate: str, baseline: str) -> bool:
    """Return True if candidate sorts strictly after baseline."""
    return parse_version(candidate) > parse_version(baseline)


def max_version(versions: list[str]) -> str | None:
    """Return the highest version under semver ordering, or None if empty."""
    if not versions:
        return None
    return str(max(parse_version(v) for v in versions))


def bump_version(version_str: str, kind: BumpKind) -> str:
    """Increment a version by the given component and return as a string.

    A prerelease is finalized rather than bumped, since the release
    version already sorts after it.

    Examples:
        ("1.2.3", PATCH) → "1.2.4"
        ("1.2.3", MINOR) → "1.3.0"
        ("1.2.3", MAJOR) → "2.0.0"
        ("2.0.0-dev", MAJOR) → "2.0.0"
    """
    version = parse_version(version_str)
    if version.prerelease:
        return str(version.finalize_version())
    if kind is BumpKind.MAJOR:
        return str(version.bump_major())
    if kind is BumpKind.MINOR:
        return str(version.bump_minor())
    return str(version.bump_patch())


def infer_bump_kind(old: str, new: str) -> BumpKind:
    """Classify the jump between two versions by its most significant change.

    Examples:
        ("1.2.3", "1.2.9") → PATCH
        ("1.2.3", "1.4.0") → MINOR
        ("1.2.3", "3.0.0") → MAJOR
    """
    a, b = parse_version(old), parse_version(new)
    if b.major != a.major:
        return BumpKind.MAJOR
    if b.minor != a.minor:
        return BumpKind.MINOR
    return BumpKind.PATCH
