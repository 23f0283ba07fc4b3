"""Sequential execution of a publish plan.

Steps are executed strictly one at a time, in plan order: a dependency has
to be visible on the registry before a dependent that references it can
be uploaded. The first failure halts execution; everything already done
is kept in the returned report so a later run can resume by re-planning.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from .config import PublishConfig
from .errors import (
    LazyPublishError,
    PublishFailed,
    RaceDetected,
    RegistryNotFound,
    TransientRegistryError,
)
from .logs import get_logger
from .models import (
    ExecutionReport,
    PublishPlan,
    PublishStep,
    RegistryState,
    StepOutcome,
    StepResult,
)
from .registry import ArtifactSource, RegistryClient
from .retry import RETRYABLE, call_with_retry
from .versions import is_newer

logger = get_logger(__name__)


def _current_state(
    client: RegistryClient,
    step: PublishStep,
    config: PublishConfig,
    sleep: Callable[[float], None],
) -> RegistryState:
    try:
        return call_with_retry(
            lambda: client.fetch_latest(step.name),
            config.retry,
            describe=f"fetch {step.name}",
            sleep=sleep,
        )
    except RegistryNotFound:
        return RegistryState()
    except TransientRegistryError as exc:
        raise PublishFailed(
            step.name,
            step.version,
            attempts=config.retry.max_attempts,
            reason=f"could not re-check the registry: {exc.__cause__ or exc}",
        ) from exc


def _is_visible(client: RegistryClient, step: PublishStep) -> bool:
    try:
        state = client.fetch_latest(step.name)
    except (RegistryNotFound, *RETRYABLE):
        return False
    return state.published_version is not None and not is_newer(
        step.version, state.published_version
    )


def _wait_until_visible(
    client: RegistryClient,
    step: PublishStep,
    config: PublishConfig,
    sleep: Callable[[float], None],
) -> None:
    """Poll until the registry serves the new version or the timeout passes."""
    if config.visibility_timeout <= 0:
        return
    waited = 0.0
    while not _is_visible(client, step):
        if waited >= config.visibility_timeout:
            raise PublishFailed(
                step.name,
                step.version,
                attempts=1,
                reason=(
                    "published but not visible on the registry after"
                    f" {config.visibility_timeout:g}s"
                ),
            )
        logger.debug("Waiting for %s %s to become visible", step.name, step.version)
        sleep(config.visibility_poll_interval)
        waited += config.visibility_poll_interval


def publish_step(
    step: PublishStep,
    client: RegistryClient,
    artifacts: ArtifactSource,
    config: PublishConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Publish one plan step.

    Re-checks the registry first: if a version at or above the planned one
    is already there, the plan is stale.

    Raises:
        RaceDetected: If the registry moved since planning.
        PublishFailed: If the artifact cannot be built or retries are
                       exhausted.
        FatalRegistryError: On non-retryable registry failures.
    """
    state = _current_state(client, step, config, sleep)
    if state.published_version is not None and not is_newer(
        step.version, state.published_version
    ):
        raise RaceDetected(
            step.name, planned=step.version, found=state.published_version
        )

    try:
        data = artifacts(step.name, step.version)
    except Exception as exc:
        raise PublishFailed(
            step.name,
            step.version,
            attempts=0,
            reason=f"could not build the artifact: {exc}",
        ) from exc

    try:
        call_with_retry(
            lambda: client.publish(step.name, step.version, data),
            config.retry,
            describe=f"publish {step.name} {step.version}",
            sleep=sleep,
        )
    except TransientRegistryError as exc:
        raise PublishFailed(
            step.name,
            step.version,
            attempts=config.retry.max_attempts,
            reason=str(exc.__cause__ or exc),
        ) from exc

    _wait_until_visible(client, step, config, sleep)
    if config.after_publish_delay > 0:
        sleep(config.after_publish_delay)


def execute_plan(
    plan: PublishPlan,
    client: RegistryClient,
    artifacts: ArtifactSource,
    *,
    config: PublishConfig | None = None,
    cancel: threading.Event | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_result: Callable[[StepResult], None] | None = None,
) -> ExecutionReport:
    """Walk the plan and publish every new step, in order.

    Args:
        plan: Validated plan from build_plan.
        client: Registry capability.
        artifacts: Builds the payload for (name, version).
        config: Retry, delay and visibility settings.
        cancel: Checked before each step; once set, the remaining steps
                are reported as not attempted.
        sleep: Sleep function; injectable for tests.
        on_result: Progress callback invoked with each StepResult.

    Returns:
        One result per plan step, in plan order.
    """
    config = config or PublishConfig()
    results: list[StepResult] = []
    halted_by: str | None = None
    cancelled = False

    def record(result: StepResult) -> None:
        results.append(result)
        if on_result is not None:
            on_result(result)

    for step in plan.steps:
        if halted_by is None and cancel is not None and cancel.is_set():
            logger.info("Cancellation requested; stopping before %s", step.name)
            cancelled = True
            halted_by = "cancelled"

        if halted_by is not None:
            record(
                StepResult(
                    name=step.name,
                    version=step.version,
                    outcome=StepOutcome.NOT_ATTEMPTED,
                    reason=halted_by,
                )
            )
            continue

        if not step.is_new_publish:
            record(
                StepResult(
                    name=step.name,
                    version=step.version,
                    outcome=StepOutcome.SKIPPED,
                    reason=step.change.value,
                )
            )
            continue

        logger.info("Publishing %s %s", step.name, step.version)
        try:
            publish_step(step, client, artifacts, config, sleep)
        except Exception as exc:
            # Any failure halts the run, but the report is always returned
            if isinstance(exc, LazyPublishError):
                logger.error("%s", exc)
            else:
                logger.exception("Unexpected error publishing %s", step.name)
            halted_by = f"halted after {step.name} failed"
            record(
                StepResult(
                    name=step.name,
                    version=step.version,
                    outcome=StepOutcome.FAILED,
                    reason=str(exc),
                    error=type(exc).__name__,
                )
            )
            continue

        record(
            StepResult(
                name=step.name, version=step.version, outcome=StepOutcome.PUBLISHED
            )
        )

    return ExecutionReport(results=tuple(results), cancelled=cancelled)
