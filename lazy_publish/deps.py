"""Dependency requirement utilities.

Provides functions for parsing PEP 508 dependency strings into workspace
edges and for checking whether a version satisfies the requirement a
dependent declares on it.
"""

from __future__ import annotations

from packaging.requirements import Requirement
from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.utils import canonicalize_name
from packaging.version import InvalidVersion, Version


def split_dependency(dep_str: str) -> tuple[str, str]:
    """Split a PEP 508 dependency string into (canonical name, specifier).

    Extras and markers are dropped; only the version constraint matters for
    publish ordering.

    Examples:
        "pkg-b>=1.0,<2" → ("pkg-b", "<2,>=1.0")
        "Pkg_C" → ("pkg-c", "")
    """
    req = Requirement(dep_str)
    return canonicalize_name(req.name), str(req.specifier)


def parse_specifier(requirement: str) -> SpecifierSet:
    """Parse a PEP 440 specifier string; an empty string admits any version.

    Raises:
        ValueError: If the specifier is malformed.
    """
    try:
        return SpecifierSet(requirement)
    except InvalidSpecifier as exc:
        raise ValueError(f"Invalid version requirement: {requirement!r}") from exc


def requirement_allows(requirement: str, version: str) -> bool:
    """Check whether a semantic version satisfies a PEP 440 requirement.

    Prereleases are admitted so that a requirement like ">=1.0" accepts
    "1.1.0-rc.1" when that is what the workspace is about to publish.
    A semver prerelease with no PEP 440 spelling still sorts before its
    release, so "==1.0.0" rejects "1.0.0-dev.x".

    Examples:
        (">=1.0", "1.0.1") → True
        ("==1.0.0", "1.0.1") → False
        ("", "7.0.0") → True
    """
    if not requirement:
        return True
    try:
        candidate = Version(version)
    except InvalidVersion:
        # Tags like "dev.x" have no PEP 440 spelling; stand in the lowest prerelease
        release, _, pre = version.split("+", 1)[0].partition("-")
        candidate = Version(f"{release}.dev0" if pre else release)
    return parse_specifier(requirement).contains(candidate, prereleases=True)
