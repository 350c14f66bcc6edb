"""Range thresholds in the monitoring-plugins format, and their per-step expansion.

Grammar (``[@]start:end``)::

    10        alert when value < 0 or > 10
    10:       alert when value < 10
    ~:10      alert when value > 10
    10:20     alert when value < 10 or > 20
    @10:20    alert when 10 <= value <= 20

An empty spec is a threshold that never alerts.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .status import InvalidThresholdFormat

logger = logging.getLogger(__name__)

_NUMBER = r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)"
_RANGE_RE = re.compile(
    rf"^(?P<inside>@)?(?:(?P<start>~|{_NUMBER})?:)?(?P<end>{_NUMBER})?$"
)


@dataclass(frozen=True)
class Threshold:
    """One parsed range. ``None`` bounds are infinite."""

    spec: str = ""
    start: float | None = 0.0
    end: float | None = None
    inside: bool = False
    defined: bool = False

    @classmethod
    def parse(cls, spec: str | None) -> Threshold:
        text = (spec or "").strip()
        if not text:
            return cls()

        m = _RANGE_RE.match(text)
        if m is None:
            raise InvalidThresholdFormat(text, "does not match [@]start:end")

        raw_start, raw_end = m.group("start"), m.group("end")
        if raw_start is None and raw_end is None:
            raise InvalidThresholdFormat(text, "range needs at least one bound")

        if raw_start == "~":
            start: float | None = None
        elif raw_start is not None:
            start = float(raw_start)
        else:
            start = 0.0
        end = float(raw_end) if raw_end is not None else None

        if start is not None and end is not None and start > end:
            raise InvalidThresholdFormat(text, "start of range is greater than its end")

        return cls(spec=text, start=start, end=end, inside=m.group("inside") is not None, defined=True)

    def evaluate(self, value: float) -> bool:
        """Return True when ``value`` breaches this threshold."""
        if not self.defined:
            return False
        above_start = self.start is None or value >= self.start
        below_end = self.end is None or value <= self.end
        within = above_start and below_end
        return within if self.inside else not within

    def __str__(self) -> str:
        return self.spec


@dataclass(frozen=True)
class ThresholdSet:
    """Per-step thresholds expanded from one raw spec.

    Without a comma the single threshold applies to every step. With commas,
    segment *i* belongs to the *i*-th step name; blank or missing segments mean
    no threshold, extra segments are ignored.
    """

    spec: str = ""
    by_name: Mapping[str, Threshold] = field(default_factory=dict)

    @classmethod
    def build(cls, spec: str | None, ordered_names: Iterable[str]) -> ThresholdSet:
        raw = (spec or "").strip()
        names = list(ordered_names)
        thresholds: dict[str, Threshold] = {}

        if "," in raw:
            segments = [s.strip() for s in raw.split(",")]
            for index, name in enumerate(names):
                segment = segments[index] if index < len(segments) else ""
                if segment:
                    thresholds[name] = Threshold.parse(segment)
            if len(segments) > len(names) and any(segments[len(names):]):
                logger.debug(
                    "Ignoring %d threshold segment(s) beyond the last step in %r",
                    len(segments) - len(names), raw,
                )
        elif raw:
            shared = Threshold.parse(raw)
            thresholds = {name: shared for name in names}

        return cls(spec=raw, by_name=MappingProxyType(thresholds))

    def get(self, name: str) -> Threshold | None:
        """Threshold for ``name``, or None when the step has none."""
        return self.by_name.get(name)
