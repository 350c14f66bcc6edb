"""Folds step results into one monotonic verdict.

A succeeded step is timed against its critical threshold first, then its
warning threshold. A failed step follows its ``on_failure`` policy: OK is
recorded and ignored, WARNING raises the verdict and the run continues,
CRITICAL or UNKNOWN ends the run on the spot with that single failure as the
whole report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .executor import StepResult
from .status import Severity
from .steps import Step
from .thresholds import Threshold, ThresholdSet

logger = logging.getLogger(__name__)

TOTAL_LABEL = "Total_duration"


@dataclass(frozen=True)
class Metric:
    """A performance value for the host's perfdata output."""

    label: str
    value: float
    uom: str = "s"
    warning: str = ""
    critical: str = ""


@dataclass
class Verdict:
    severity: Severity = Severity.OK
    oks: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    criticals: list[str] = field(default_factory=list)

    def raise_to(self, severity: Severity) -> None:
        if severity > self.severity:
            self.severity = severity

    def add_ok(self, message: str) -> None:
        self.oks.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)
        self.raise_to(Severity.WARNING)

    def add_critical(self, message: str) -> None:
        self.criticals.append(message)
        self.raise_to(Severity.CRITICAL)


@dataclass(frozen=True)
class Report:
    severity: Severity
    message: str
    metrics: tuple[Metric, ...] = ()
    total_duration: float | None = None


def _fmt(seconds: float) -> str:
    return f"{seconds:.3f}"


def classify(value: float, warning: Threshold | None, critical: Threshold | None) -> Severity:
    """Critical wins over warning; no threshold never breaches."""
    if critical is not None and critical.evaluate(value):
        return Severity.CRITICAL
    if warning is not None and warning.evaluate(value):
        return Severity.WARNING
    return Severity.OK


class StatusAggregator:
    """Owns the verdict of a single run."""

    def __init__(
        self,
        warnings: ThresholdSet | None = None,
        criticals: ThresholdSet | None = None,
        total_warning: Threshold | None = None,
        total_critical: Threshold | None = None,
    ) -> None:
        self.warnings = warnings or ThresholdSet()
        self.criticals = criticals or ThresholdSet()
        self.total_warning = total_warning or Threshold()
        self.total_critical = total_critical or Threshold()
        self.verdict = Verdict()
        self.metrics: list[Metric] = []
        self.total_duration = 0.0

    def record(self, step: Step, result: StepResult) -> Report | None:
        """Fold one result in. Returns a final Report when the run must stop now."""
        self.total_duration = round(self.total_duration + result.duration_seconds, 3)
        if result.succeeded:
            self._record_success(result)
            return None
        return self._record_failure(step, result)

    def _record_success(self, result: StepResult) -> None:
        name, duration = result.step_name, result.duration_seconds
        warn = self.warnings.get(name)
        crit = self.criticals.get(name)
        self.metrics.append(
            Metric(
                label=f"Step_{name}_duration",
                value=duration,
                warning=str(warn or ""),
                critical=str(crit or ""),
            )
        )

        status = classify(duration, warn, crit)
        logger.debug("Step %s took %ss -> %s", name, _fmt(duration), status.name)
        if status == Severity.CRITICAL:
            self.verdict.add_critical(f"Step {name} took {_fmt(duration)}s > {crit}s")
        elif status == Severity.WARNING:
            self.verdict.add_warning(f"Step {name} took {_fmt(duration)}s > {warn}s")
        else:
            self.verdict.add_ok(f"Step {name} took {_fmt(duration)}s")

    def _record_failure(self, step: Step, result: StepResult) -> Report | None:
        message = f"Step {result.step_name} failed ({result.failure_detail})"
        policy = step.on_failure

        if policy == Severity.OK:
            self.verdict.add_ok(f"{message} but was ignored as configured")
            return None
        if policy == Severity.WARNING:
            self.verdict.add_warning(message)
            return None

        logger.info("Stopping run at step %s (on_failure=%s)", result.step_name, policy.name)
        return Report(severity=policy, message=message, metrics=tuple(self.metrics))

    def finish(self) -> Report:
        """Check the total duration and compose the final message."""
        total = self.total_duration
        self.metrics.append(
            Metric(
                label=TOTAL_LABEL,
                value=total,
                warning=str(self.total_warning),
                critical=str(self.total_critical),
            )
        )

        sections: list[str] = []
        status = classify(total, self.total_warning, self.total_critical)
        if status == Severity.CRITICAL:
            sections.append(f"CRITICAL: Total duration was {_fmt(total)}s > {self.total_critical}s")
        elif status == Severity.WARNING:
            sections.append(f"WARNING: Total duration was {_fmt(total)}s > {self.total_warning}s")
        self.verdict.raise_to(status)

        if self.verdict.criticals:
            sections.append("CRITICAL steps: " + "; ".join(self.verdict.criticals))
        if self.verdict.warnings:
            sections.append("WARNING steps: " + "; ".join(self.verdict.warnings))
        if self.verdict.oks:
            sections.append("Steps OK: " + "; ".join(self.verdict.oks))

        message = "Check complete. " + "; ".join(sections) if sections else "Check complete."
        return Report(
            severity=self.verdict.severity,
            message=message,
            metrics=tuple(self.metrics),
            total_duration=total,
        )
