"""Content fingerprints for change detection.

A fingerprint is a sha256 digest over the sorted (relative path, bytes)
pairs of a package's publishable files. The same scheme applies to a
directory on disk and to an sdist downloaded from the registry, so a
local package and its published release can be compared directly.
"""

from __future__ import annotations

import hashlib
import io
import tarfile
from collections.abc import Mapping
from pathlib import Path

# Build output and caches never end up in a published artifact
IGNORED_DIRS = frozenset({"build", "dist", "target", "__pycache__", "node_modules"})
PREFIX = "sha256:"


def fingerprint_files(files: Mapping[str, bytes]) -> str:
    """Fingerprint a mapping of POSIX relative path → file content.

    The result depends only on the paths and contents, not on the
    mapping's iteration order.
    """
    digest = hashlib.sha256()
    for path in sorted(files):
        content = files[path]
        # Length-prefix each field so that no two inputs share an encoding
        encoded = path.encode("utf-8")
        digest.update(len(encoded).to_bytes(8, "big"))
        digest.update(encoded)
        digest.update(len(content).to_bytes(8, "big"))
        digest.update(content)
    return PREFIX + digest.hexdigest()


def collect_files(root: Path) -> dict[str, bytes]:
    """Read every publishable file below root.

    Hidden files and directories and build output directories are skipped.
    """
    files: dict[str, bytes] = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root)
        if any(part.startswith(".") or part in IGNORED_DIRS for part in rel.parts):
            continue
        if path.is_file():
            files[rel.as_posix()] = path.read_bytes()
    return files


def fingerprint_directory(root: Path) -> str:
    """Fingerprint the publishable content of a package directory."""
    return fingerprint_files(collect_files(root))


def fingerprint_sdist(data: bytes) -> str:
    """Fingerprint a published .tar.gz source archive.

    The archive's single top-level directory (``name-version/``) is
    stripped so paths line up with those of the local package directory.
    Entries that collect_files would skip locally are skipped here too.
    """
    files: dict[str, bytes] = {}
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as archive:
        for member in archive.getmembers():
            if not member.isfile():
                continue
            parts = Path(member.name).parts[1:]
            if not parts:
                continue
            if any(part.startswith(".") or part in IGNORED_DIRS for part in parts):
                continue
            extracted = archive.extractfile(member)
            if extracted is None:
                continue
            files["/".join(parts)] = extracted.read()
    return fingerprint_files(files)
