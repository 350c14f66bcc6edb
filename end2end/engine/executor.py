"""Sequential step execution through an injected probe."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Protocol

from .status import CheckTimeout
from .steps import Method, Payload, Step, StepSequence

logger = logging.getLogger(__name__)


class Deadline:
    """Wall-clock budget shared by every probe call of one run."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.seconds = seconds
        self._clock = clock
        self._expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self._clock() >= self._expires_at

    def check(self) -> None:
        if self.expired:
            raise CheckTimeout(self.seconds)


@dataclass(frozen=True)
class ProbeOutcome:
    succeeded: bool
    detail: str = ""


class Probe(Protocol):
    def __call__(
        self,
        method: Method,
        target: str,
        payload: Payload | None,
        deadline: Deadline | None = None,
    ) -> ProbeOutcome: ...


@dataclass(frozen=True)
class StepResult:
    step_name: str
    succeeded: bool
    duration_seconds: float
    failure_detail: str | None = None


class Executor:
    """Runs steps one at a time, timing each probe call.

    No retries and no timeout of its own: the optional deadline is handed to
    the probe and checked before each call and again once it returns, so a
    step that ends past the deadline never produces a result.
    """

    def __init__(
        self,
        probe: Probe,
        deadline: Deadline | None = None,
        timer: Callable[[], float] | None = None,
    ) -> None:
        self.probe = probe
        self.deadline = deadline
        self._timer = timer or time.perf_counter

    def perform(self, step: Step) -> StepResult:
        if self.deadline is not None:
            self.deadline.check()

        logger.debug("Performing step: %s (%s %s)", step.name, step.method.value, step.target)
        before = self._timer()
        try:
            outcome = self.probe(step.method, step.target, step.payload, self.deadline)
        except CheckTimeout:
            raise
        except Exception as e:
            outcome = ProbeOutcome(False, str(e) or type(e).__name__)
        if self.deadline is not None:
            self.deadline.check()
        duration = round(self._timer() - before, 3)

        if outcome.succeeded:
            logger.debug("Step %s succeeded in %.3fs", step.name, duration)
            return StepResult(step.name, True, duration)
        logger.debug("Step %s failed in %.3fs: %s", step.name, duration, outcome.detail)
        return StepResult(step.name, False, duration, outcome.detail)

    def run(self, sequence: StepSequence) -> Iterator[tuple[Step, StepResult]]:
        """Yield each step with its result, in name order, lazily."""
        for name in sequence.list():
            step = sequence.lookup(name)
            yield step, self.perform(step)
