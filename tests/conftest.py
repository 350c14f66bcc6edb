"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from end2end.engine import Deadline, Method, ProbeOutcome


class FakeClock:
    """Manually advanced clock usable as both timer and deadline clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class Call:
    method: Method
    target: str
    payload: tuple[tuple[str, str], ...] | None
    deadline: Deadline | None


@dataclass
class ScriptedProbe:
    """Probe answering from a script keyed by target.

    Each entry is ``(duration, outcome)``; an exception instance as outcome is
    raised instead of returned. Unscripted targets succeed instantly.
    """

    clock: FakeClock
    script: dict[str, tuple[float, ProbeOutcome | Exception]] = field(default_factory=dict)
    calls: list[Call] = field(default_factory=list)

    def __call__(self, method, target, payload, deadline=None):  # noqa: ANN001
        self.calls.append(Call(method, target, payload, deadline))
        duration, outcome = self.script.get(target, (0.0, ProbeOutcome(True, "200 OK")))
        self.clock.advance(duration)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def targets(self) -> list[str]:
        return [c.target for c in self.calls]


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    """A fake clock that also drives the executor's default timer."""
    fake = FakeClock()
    monkeypatch.setattr("end2end.engine.executor.time.perf_counter", fake)
    return fake


@pytest.fixture
def probe(clock: FakeClock) -> ScriptedProbe:
    return ScriptedProbe(clock=clock)


@pytest.fixture
def step_defs() -> Callable[..., dict[str, dict[str, str]]]:
    """Build a raw step mapping: ``step_defs("a", "b", b={"on_failure": "OK"})``."""

    def _build(*names: str, **overrides: dict[str, str]) -> dict[str, dict[str, str]]:
        raw = {name: {"url": f"http://example.test/{name}"} for name in names}
        for name, extra in overrides.items():
            raw.setdefault(name, {"url": f"http://example.test/{name}"}).update(extra)
        return raw

    return _build
