"""Step definitions and the name-ordered sequence they run in."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any
from urllib.parse import parse_qsl

from .status import MalformedStepConfig, Severity, UnknownSeverity, parse_severity

logger = logging.getLogger(__name__)

Payload = tuple[tuple[str, str], ...]

# Keys accepted in a step definition, with their aliases.
TARGET_KEYS = ("url", "target")
PAYLOAD_KEYS = ("binary_data", "payload")
KNOWN_KEYS = {*TARGET_KEYS, *PAYLOAD_KEYS, "method", "on_failure"}


class Method(str, Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    CONNECT = "CONNECT"

    @property
    def sends_body(self) -> bool:
        return self in (Method.POST, Method.PUT, Method.PATCH, Method.DELETE)


def decode_payload(raw: str) -> Payload:
    """Decode a URL-encoded ``a=1&b=2`` string into ordered name/value pairs.

    Empty fields are skipped and a field without ``=`` gets an empty value;
    escapes that do not decode to UTF-8 raise ValueError.
    """
    return tuple(parse_qsl(raw.strip(), keep_blank_values=True, errors="strict"))


@dataclass(frozen=True)
class Step:
    """One probe action. Invalid definitions never produce a Step."""

    name: str
    target: str
    method: Method = Method.GET
    payload: Payload | None = None
    on_failure: Severity = Severity.CRITICAL

    @classmethod
    def from_definition(cls, name: str, definition: Mapping[str, Any]) -> Step:
        if not isinstance(definition, Mapping):
            raise MalformedStepConfig(name, "step definition is not a mapping")

        unknown = sorted(set(definition) - KNOWN_KEYS)
        if unknown:
            raise MalformedStepConfig(name, f"unknown directive(s): {', '.join(unknown)}")

        target = next((definition[k] for k in TARGET_KEYS if definition.get(k)), "")
        target = str(target).strip()
        if not target:
            raise MalformedStepConfig(name, "missing 'url' directive")

        raw_method = definition.get("method") or Method.GET.value
        try:
            method = Method(str(raw_method).strip().upper())
        except ValueError:
            raise MalformedStepConfig(name, f"unsupported method {raw_method!r}") from None

        payload: Payload | None = None
        raw_payload = next((definition[k] for k in PAYLOAD_KEYS if definition.get(k) not in (None, "")), None)
        if raw_payload is not None:
            try:
                payload = decode_payload(str(raw_payload))
            except ValueError as e:
                raise MalformedStepConfig(name, f"parsing 'binary_data' failed ({e})") from None
            if not method.sends_body:
                raise MalformedStepConfig(
                    name, f"'binary_data' given but method {method.value} does not send a body"
                )

        on_failure = Severity.CRITICAL
        if definition.get("on_failure") is not None:
            try:
                on_failure = parse_severity(str(definition["on_failure"]))
            except UnknownSeverity as e:
                raise MalformedStepConfig(name, f"parsing 'on_failure' failed (Caused by: {e})") from None

        return cls(name=name, target=target, method=method, payload=payload, on_failure=on_failure)


class StepSequence:
    """Steps keyed by name, always iterated in sorted name order.

    Step names encode execution order; insertion order is ignored.
    """

    def __init__(self, steps: Mapping[str, Step] | None = None) -> None:
        self._steps: Mapping[str, Step] = MappingProxyType(dict(steps or {}))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Mapping[str, Any]]) -> StepSequence:
        """Build every step up front; the first bad one (in name order) raises."""
        steps: dict[str, Step] = {}
        for name in sorted(raw, key=str):
            steps[str(name)] = Step.from_definition(str(name), raw[name])
        logger.debug("Loaded %d step(s): %s", len(steps), ", ".join(steps))
        return cls(steps)

    def list(self) -> list[str]:
        return sorted(self._steps)

    def lookup(self, name: str) -> Step:
        return self._steps[name]

    def __iter__(self) -> Iterator[Step]:
        return (self._steps[name] for name in self.list())

    def __len__(self) -> int:
        return len(self._steps)

    def __contains__(self, name: object) -> bool:
        return name in self._steps
