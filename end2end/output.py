"""Plugin output: ``SHORTNAME STATUS - message | perfdata`` and exit codes."""

from __future__ import annotations

import os
import re

from .engine.aggregator import Metric, Report
from .engine.status import Severity

_NEEDS_QUOTES = re.compile(r"[\s'=]")


def default_shortname(program: str) -> str:
    """``/usr/lib/nagios/check_end2end.py`` -> ``END2END``."""
    name = os.path.basename(program)
    name = os.path.splitext(name)[0]
    if name.startswith("check_"):
        name = name[len("check_"):]
    return name.upper()


def format_value(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".")


def format_metric(metric: Metric) -> str:
    label = metric.label
    if _NEEDS_QUOTES.search(label):
        label = "'" + label.replace("'", "''") + "'"
    fields = [f"{format_value(metric.value)}{metric.uom}", metric.warning, metric.critical]
    while fields and not fields[-1]:
        fields.pop()
    return f"{label}=" + ";".join(fields)


def render(report: Report, shortname: str) -> str:
    line = f"{shortname} {report.severity.name} - {report.message}"
    if report.metrics:
        line += " | " + " ".join(format_metric(m) for m in report.metrics)
    return line


def exit_code(severity: Severity) -> int:
    return int(severity)
