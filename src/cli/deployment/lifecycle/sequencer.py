"""Ordered execution of deployment stages.

Each stage runs an action and then, optionally, waits for its pods to become
ready before the next stage starts. Actions are idempotent, so re-running a
pipeline after a partial failure picks up where it stopped.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

from src.utils.console_like import ConsoleLike, coalesce_console

from .errors import OperationCancelledError, ReadinessTimeoutError
from .readiness import ProbeOutcome, ReadinessProber, ReadinessSpec


class TimeoutPolicy(str, Enum):
    """What a readiness timeout means for the pipeline."""

    WARN = "warn"
    ABORT = "abort"


class StageStatus(str, Enum):
    SUCCEEDED = "succeeded"
    WARNED = "warned"
    FAILED = "failed"


@dataclass(frozen=True)
class Stage:
    """One step of a pipeline.

    Attributes:
        name: Unique stage name
        action: Callable performing the work; raising means failure
        readiness: Optional readiness gate checked after the action
        precondition: Name of a stage that must complete first
        on_timeout: Policy applied when the readiness gate times out
        description: Human-readable progress text
    """

    name: str
    action: Callable[[], None]
    readiness: ReadinessSpec | None = None
    precondition: str | None = None
    on_timeout: TimeoutPolicy = TimeoutPolicy.WARN
    description: str = ""


@dataclass
class StageResult:
    name: str
    status: StageStatus
    message: str = ""
    elapsed: float = 0.0


@dataclass
class PipelineResult:
    """Outcome of a pipeline run.

    ``ok`` is True when every stage ran (possibly with warnings). On failure
    ``failed_at`` names the stage and ``cause`` holds the exception.
    """

    ok: bool = True
    failed_at: str | None = None
    cause: BaseException | None = None
    stages: list[StageResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


def validate_stages(stages: Sequence[Stage]) -> None:
    """Check names are unique and preconditions point backwards.

    Raises:
        ValueError: If the pipeline definition is inconsistent
    """
    seen: set[str] = set()
    for stage in stages:
        if stage.name in seen:
            raise ValueError(f"Duplicate stage name: {stage.name}")
        if stage.precondition is not None and stage.precondition not in seen:
            raise ValueError(
                f"Stage '{stage.name}' requires '{stage.precondition}' to run before it"
            )
        seen.add(stage.name)


class StageSequencer:
    """Runs stages strictly in order, gating each on readiness."""

    def __init__(
        self,
        prober: ReadinessProber,
        console: ConsoleLike | None = None,
        *,
        cancel: threading.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._prober = prober
        self.console = coalesce_console(console)
        self._cancel = cancel
        self._clock = clock

    def run(self, stages: Sequence[Stage]) -> PipelineResult:
        """Run the pipeline, stopping at the first fatal failure."""
        validate_stages(stages)
        result = PipelineResult()

        for index, stage in enumerate(stages, start=1):
            started = self._clock()
            if self._cancel is not None and self._cancel.is_set():
                return self._fail(
                    result,
                    stage,
                    OperationCancelledError(f"Cancelled before stage '{stage.name}'"),
                    started,
                )
            label = stage.description or stage.name
            self.console.info(f"[{index}/{len(stages)}] {label}")
            logger.debug(f"Stage '{stage.name}' starting")

            try:
                stage.action()
            except Exception as e:
                logger.debug(f"Stage '{stage.name}' action failed: {e}")
                return self._fail(result, stage, e, started)

            status = StageStatus.SUCCEEDED
            message = ""
            if stage.readiness is not None:
                wait = self._prober.wait_until_ready(stage.readiness, self._cancel)
                if wait.outcome == ProbeOutcome.CANCELLED:
                    return self._fail(
                        result,
                        stage,
                        OperationCancelledError(f"Stage '{stage.name}' was cancelled"),
                        started,
                    )
                if wait.outcome == ProbeOutcome.TIMED_OUT:
                    message = (
                        f"Pods matching '{stage.readiness.selector}' in "
                        f"{stage.readiness.namespace} not ready after "
                        f"{stage.readiness.timeout:g}s"
                    )
                    if stage.on_timeout == TimeoutPolicy.ABORT:
                        return self._fail(
                            result, stage, ReadinessTimeoutError(message), started
                        )
                    status = StageStatus.WARNED
                    result.warnings.append(f"{stage.name}: {message}")
                    self.console.warn(f"{message}; continuing")

            result.stages.append(
                StageResult(
                    name=stage.name,
                    status=status,
                    message=message,
                    elapsed=self._clock() - started,
                )
            )
            logger.debug(f"Stage '{stage.name}' finished: {status.value}")

        return result

    def _fail(
        self,
        result: PipelineResult,
        stage: Stage,
        cause: BaseException,
        started: float,
    ) -> PipelineResult:
        result.ok = False
        result.failed_at = stage.name
        result.cause = cause
        result.stages.append(
            StageResult(
                name=stage.name,
                status=StageStatus.FAILED,
                message=str(cause),
                elapsed=self._clock() - started,
            )
        )
        return result
