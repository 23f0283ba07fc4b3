"""Registry capabilities consumed by the planner and executor.

The HTTP transport and authentication of a real registry live outside
this package. The core only needs the small protocols defined here; any
client that implements them (and raises the RegistryError subclasses from
lazy_publish.errors) can be passed in.

MemoryRegistry is an in-process implementation used for dry runs from
JSON snapshots and throughout the test suite.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Protocol

from packaging.utils import canonicalize_name
from pydantic import BaseModel, TypeAdapter, field_validator

from .errors import ConfigError, FatalRegistryError, RegistryNotFound
from .models import RegistryState
from .versions import max_version, normalize_version

# Builds the uploadable payload for (name, version)
ArtifactSource = Callable[[str, str], bytes]


class RegistryClient(Protocol):
    """What the planner and executor need from a package registry.

    Implementations raise RegistryNotFound for unknown packages,
    TransientRegistryError (or TimeoutError) for retryable failures and
    FatalRegistryError for everything else. Each call is expected to carry
    its own bounded timeout.
    """

    def fetch_latest(self, name: str) -> RegistryState: ...

    def publish(self, name: str, version: str, data: bytes) -> None: ...


class SourceDownloader(Protocol):
    """Optional capability: fetch the published source of a release."""

    def download(self, name: str, version: str) -> bytes | None: ...


class Release(BaseModel):
    """One version of a package held by a MemoryRegistry."""

    version: str
    fingerprint: str | None = None
    yanked: bool = False

    @field_validator("version")
    @classmethod
    def valid_version(cls, value: str) -> str:
        return normalize_version(value)


class MemoryRegistry:
    """Thread-safe in-memory registry.

    Args:
        releases: Initial map of package name → releases.
        fingerprint_uploads: Computes the fingerprint recorded for uploaded
                             payloads. Without it uploads carry none.
    """

    def __init__(
        self,
        releases: Mapping[str, Iterable[Release]] | None = None,
        *,
        fingerprint_uploads: Callable[[bytes], str] | None = None,
    ):
        self._lock = threading.Lock()
        self._releases: dict[str, dict[str, Release]] = {}
        self._archives: dict[tuple[str, str], bytes] = {}
        self.fingerprint_uploads = fingerprint_uploads
        # (name, version) pairs in upload order
        self.published: list[tuple[str, str]] = []
        for name, items in (releases or {}).items():
            for release in items:
                self.add_release(
                    name, release.version, release.fingerprint, yanked=release.yanked
                )

    @classmethod
    def from_json(cls, path: Path) -> MemoryRegistry:
        """Load a registry snapshot.

        The file maps package names to release lists, e.g.
        ``{"pkg-a": [{"version": "1.0.0", "fingerprint": "sha256:..."}]}``.

        Raises:
            ConfigError: If the file cannot be read or has the wrong shape.
        """
        try:
            raw = json.loads(path.read_text())
            releases = TypeAdapter(dict[str, list[Release]]).validate_python(raw)
            return cls(releases)
        except (OSError, ValueError) as exc:
            # JSONDecodeError and ValidationError are both ValueErrors
            raise ConfigError(f"Invalid registry snapshot {path}: {exc}") from exc

    def add_release(
        self,
        name: str,
        version: str,
        fingerprint: str | None = None,
        *,
        yanked: bool = False,
        data: bytes | None = None,
    ) -> None:
        """Record a release directly, bypassing publish checks."""
        name = canonicalize_name(name)
        version = normalize_version(version)
        with self._lock:
            self._releases.setdefault(name, {})[version] = Release(
                version=version, fingerprint=fingerprint, yanked=yanked
            )
            if data is not None:
                self._archives[(name, version)] = data

    def yank(self, name: str, version: str) -> None:
        with self._lock:
            self._releases[canonicalize_name(name)][normalize_version(version)].yanked = True

    def versions(self, name: str) -> list[str]:
        """All recorded versions of name, yanked included, in no particular order."""
        with self._lock:
            return list(self._releases.get(canonicalize_name(name), {}))

    def fetch_latest(self, name: str) -> RegistryState:
        name = canonicalize_name(name)
        with self._lock:
            releases = self._releases.get(name)
            if not releases:
                raise RegistryNotFound(f"{name} is not on the registry")
            latest = max_version([v for v, r in releases.items() if not r.yanked])
            if latest is None:
                return RegistryState()
            return RegistryState(
                published_version=latest,
                published_fingerprint=releases[latest].fingerprint,
            )

    def publish(self, name: str, version: str, data: bytes) -> None:
        name = canonicalize_name(name)
        version = normalize_version(version)
        fingerprint = self.fingerprint_uploads(data) if self.fingerprint_uploads else None
        with self._lock:
            existing = self._releases.setdefault(name, {})
            if version in existing:
                raise FatalRegistryError(f"{name} {version} already exists")
            existing[version] = Release(version=version, fingerprint=fingerprint)
            self._archives[(name, version)] = data
            self.published.append((name, version))

    def download(self, name: str, version: str) -> bytes | None:
        with self._lock:
            return self._archives.get(
                (canonicalize_name(name), normalize_version(version))
            )
