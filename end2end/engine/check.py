"""One complete check run: steps through the probe, results into a verdict."""

from __future__ import annotations

import logging

from .aggregator import Report, StatusAggregator
from .executor import Deadline, Executor, Probe
from .status import CheckTimeout, Severity
from .steps import StepSequence
from .thresholds import Threshold, ThresholdSet

logger = logging.getLogger(__name__)


def run_check(
    sequence: StepSequence,
    probe: Probe,
    *,
    warning: str | None = None,
    critical: str | None = None,
    total_warning: str | None = None,
    total_critical: str | None = None,
    deadline: Deadline | None = None,
) -> Report:
    """Run every step in order and return the aggregated report.

    Threshold specs are parsed before the first probe call, so a malformed
    one raises InvalidThresholdFormat without touching the network. A
    deadline expiry ends the run with UNKNOWN.
    """
    names = sequence.list()
    aggregator = StatusAggregator(
        warnings=ThresholdSet.build(warning, names),
        criticals=ThresholdSet.build(critical, names),
        total_warning=Threshold.parse(total_warning),
        total_critical=Threshold.parse(total_critical),
    )
    logger.debug("Warning thresholds: %s", dict(aggregator.warnings.by_name))
    logger.debug("Critical thresholds: %s", dict(aggregator.criticals.by_name))

    executor = Executor(probe, deadline=deadline)
    try:
        for step, result in executor.run(sequence):
            final = aggregator.record(step, result)
            if final is not None:
                return final
    except CheckTimeout as e:
        logger.info("%s", e)
        return Report(severity=Severity.UNKNOWN, message=str(e))

    return aggregator.finish()
