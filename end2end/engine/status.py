"""Severity levels and the engine's error taxonomy."""

from __future__ import annotations

from enum import IntEnum


class Severity(IntEnum):
    """Monitoring severity. The integer value is the plugin exit code."""

    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


# ── Errors ───────────────────────────────────────────────────────────────────


class End2EndError(Exception):
    """Base class for every error raised before or during a check run."""


class UnknownSeverity(End2EndError, ValueError):
    """Raised when a token does not name one of the four severities."""

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(
            f"unrecognised severity {token!r} (expected OK, WARNING, CRITICAL or UNKNOWN)"
        )


class InvalidThresholdFormat(End2EndError, ValueError):
    """Raised when a range threshold does not follow the plugin range grammar."""

    def __init__(self, spec: str, reason: str) -> None:
        self.spec = spec
        self.reason = reason
        super().__init__(f"Invalid threshold {spec!r}: {reason}")


class MalformedStepConfig(End2EndError):
    """Raised when a step definition is missing fields or has unparsable ones."""

    def __init__(self, step_name: str, reason: str) -> None:
        self.step_name = step_name
        self.reason = reason
        super().__init__(
            f"Malformed configuration -- cannot proceed on step {step_name}; "
            f"error token was: {reason}"
        )


class ConfigError(End2EndError):
    """Raised for step file and command line problems."""


class CheckTimeout(End2EndError):
    """Raised when the global deadline of a run has passed."""

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        super().__init__(f"Operation timed out after {seconds:g}s")


def parse_severity(token: str) -> Severity:
    """Map ``ok``/``warning``/``critical``/``unknown`` (any case) to a Severity."""
    try:
        return Severity[token.strip().upper()]
    except (KeyError, AttributeError):
        raise UnknownSeverity(str(token)) from None
