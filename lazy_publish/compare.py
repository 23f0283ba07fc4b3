"""Registry comparison: which packages actually need a new release.

Registry state is fetched once per package per planning pass, concurrently
and bounded by a concurrency limit. Classification itself is a pure
function of the local package and that snapshot.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait

from pydantic import ValidationError

from .errors import FatalRegistryError, RegistryNotFound
from .fingerprint import fingerprint_sdist
from .graph import DependencyGraph
from .logs import get_logger
from .models import ChangeKind, PackageNode, PublishPolicy, RegistryState
from .registry import RegistryClient, SourceDownloader
from .retry import RetryPolicy, call_with_retry

logger = get_logger(__name__)


def classify(node: PackageNode, state: RegistryState) -> ChangeKind:
    """Classify one package against its registry snapshot.

    - skip policy → UNCHANGED (never planned)
    - force policy → FORCED
    - nothing published → NEVER_PUBLISHED
    - fingerprint differs from the published one → CONTENT_CHANGED
    - otherwise → UNCHANGED
    """
    if node.policy is PublishPolicy.SKIP:
        return ChangeKind.UNCHANGED
    if node.policy is PublishPolicy.FORCE:
        return ChangeKind.FORCED
    if state.published_version is None:
        return ChangeKind.NEVER_PUBLISHED
    if node.fingerprint != state.published_fingerprint:
        return ChangeKind.CONTENT_CHANGED
    return ChangeKind.UNCHANGED


def fetch_state(
    client: RegistryClient,
    name: str,
    *,
    retry: RetryPolicy,
    downloader: SourceDownloader | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RegistryState:
    """Fetch the registry snapshot for one package.

    A package the registry does not know is reported as never published.
    When the registry has a version but no fingerprint for it and a
    downloader is available, the fingerprint is derived by re-hashing the
    published source.

    Raises:
        TransientRegistryError: When retries are exhausted.
        FatalRegistryError: On authentication or other hard failures, or
                            when the registry reports a version that is
                            not a semantic version.
    """
    try:
        state = call_with_retry(
            lambda: client.fetch_latest(name), retry, describe=f"fetch {name}", sleep=sleep
        )
    except RegistryNotFound:
        logger.debug("%s: not on the registry", name)
        return RegistryState()
    except ValidationError as exc:
        raise FatalRegistryError(
            f"Registry returned an invalid release for {name}: {exc}",
            details={"package": name},
        ) from exc

    version = state.published_version
    if version is None or state.published_fingerprint is not None or downloader is None:
        return state

    data = call_with_retry(
        lambda: downloader.download(name, version),
        retry,
        describe=f"download {name} {version}",
        sleep=sleep,
    )
    if data is None:
        return state
    logger.debug("%s: derived fingerprint from published %s", name, version)
    return RegistryState(
        published_version=version, published_fingerprint=fingerprint_sdist(data)
    )


def fetch_registry_states(
    client: RegistryClient,
    names: Iterable[str],
    *,
    concurrency: int = 8,
    retry: RetryPolicy | None = None,
    downloader: SourceDownloader | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> dict[str, RegistryState]:
    """Fetch registry snapshots for many packages concurrently.

    Every fetch completes (or fails) before anything is returned. The first
    hard failure cancels the fetches that have not started yet and is
    re-raised; a partial result is never returned.

    Args:
        client: Registry capability.
        names: Packages to look up.
        concurrency: Maximum number of fetches in flight.
        retry: Retry policy for transient failures.
        downloader: Optional source download capability.
        sleep: Sleep function used between retries.

    Returns:
        Map of package name → RegistryState, sorted by name.
    """
    policy = retry or RetryPolicy()
    ordered = sorted(set(names))
    if not ordered:
        return {}

    with ThreadPoolExecutor(max_workers=max(1, concurrency)) as pool:
        futures = {
            name: pool.submit(
                fetch_state,
                client,
                name,
                retry=policy,
                downloader=downloader,
                sleep=sleep,
            )
            for name in ordered
        }
        done, pending = wait(futures.values(), return_when=FIRST_EXCEPTION)
        for future in pending:
            future.cancel()
        # Surface the first failure in name order for reproducible errors
        for name in ordered:
            future = futures[name]
            if future not in done:
                continue
            exc = future.exception()
            if exc is not None:
                raise exc

    return {name: futures[name].result() for name in ordered}


def classify_graph(
    graph: DependencyGraph, states: dict[str, RegistryState]
) -> dict[str, ChangeKind]:
    """Classify every node of the graph.

    Nodes without a fetched state are treated as never published.
    """
    changes: dict[str, ChangeKind] = {}
    for name, node in graph.nodes.items():
        change = classify(node, states.get(name, RegistryState()))
        changes[name] = change
        logger.info("  %s %s: %s", name, node.version, change.value)
    return changes
