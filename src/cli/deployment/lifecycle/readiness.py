"""Readiness probing for pods selected by label.

The prober polls at a fixed interval until every pod matching a selector
reports the requested condition, or a wall-clock deadline passes.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from loguru import logger


class ProbeOutcome(str, Enum):
    OK = "ok"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ReadinessSpec:
    """What to wait for after a stage action.

    Attributes:
        selector: Label selector (equality or set-based)
        namespace: Namespace the pods live in
        timeout: Wall-clock budget in seconds
        poll_interval: Seconds between polls
        condition: Pod condition that must be True
    """

    selector: str
    namespace: str
    timeout: float
    poll_interval: float = 5.0
    condition: str = "Ready"

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("Readiness timeout must be positive")
        if self.poll_interval <= 0:
            raise ValueError("Readiness poll interval must be positive")


@dataclass(frozen=True)
class ProbeResult:
    outcome: ProbeOutcome
    elapsed: float
    polls: int

    @property
    def ok(self) -> bool:
        return self.outcome == ProbeOutcome.OK


class PodReadinessSource(Protocol):
    """Anything that can answer a single point-in-time readiness query."""

    def pods_ready(
        self, namespace: str, label_selector: str, *, condition: str = "Ready"
    ) -> bool: ...


class ReadinessProber:
    """Fixed-interval poller with a hard wall-clock deadline.

    A never-satisfied condition returns ``TIMED_OUT`` within
    ``[timeout, timeout + poll_interval)``: the final sleep is clipped to the
    deadline. Errors raised by a poll count as "not ready".
    """

    def __init__(
        self,
        source: PodReadinessSource,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._source = source
        self._clock = clock
        self._sleep = sleep

    def wait_until_ready(
        self,
        spec: ReadinessSpec,
        cancel: threading.Event | None = None,
    ) -> ProbeResult:
        """Poll until ready, timed out, or cancelled."""
        start = self._clock()
        deadline = start + spec.timeout
        polls = 0

        while True:
            if cancel is not None and cancel.is_set():
                return self._result(ProbeOutcome.CANCELLED, start, polls)

            polls += 1
            if self._poll(spec):
                logger.debug(
                    f"Pods '{spec.selector}' in {spec.namespace} ready after {polls} poll(s)"
                )
                return self._result(ProbeOutcome.OK, start, polls)

            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.debug(
                    f"Pods '{spec.selector}' in {spec.namespace} not ready after {polls} poll(s)"
                )
                return self._result(ProbeOutcome.TIMED_OUT, start, polls)

            self._wait(min(spec.poll_interval, remaining), cancel)

    def _poll(self, spec: ReadinessSpec) -> bool:
        try:
            return self._source.pods_ready(
                spec.namespace, spec.selector, condition=spec.condition
            )
        except Exception as e:
            logger.debug(f"Readiness poll for '{spec.selector}' failed: {e}")
            return False

    def _wait(self, seconds: float, cancel: threading.Event | None) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
        elif cancel is not None:
            # Wakes early when cancelled
            cancel.wait(seconds)
        else:
            time.sleep(seconds)

    def _result(self, outcome: ProbeOutcome, start: float, polls: int) -> ProbeResult:
        return ProbeResult(outcome=outcome, elapsed=self._clock() - start, polls=polls)
