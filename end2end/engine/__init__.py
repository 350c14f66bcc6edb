"""Step sequencing and status aggregation engine."""

from .aggregator import Metric, Report, StatusAggregator, Verdict
from .check import run_check
from .executor import Deadline, Executor, Probe, ProbeOutcome, StepResult
from .status import (
    CheckTimeout,
    ConfigError,
    End2EndError,
    InvalidThresholdFormat,
    MalformedStepConfig,
    Severity,
    UnknownSeverity,
    parse_severity,
)
from .steps import Method, Step, StepSequence
from .thresholds import Threshold, ThresholdSet
