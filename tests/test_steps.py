"""Tests for step definitions and the name-ordered step sequence."""

from __future__ import annotations

import pytest

from end2end.engine import MalformedStepConfig, Method, Severity, Step, StepSequence


class TestStep:
    def test_defaults(self) -> None:
        step = Step.from_definition("00 home", {"url": "http://example.test/"})
        assert step.target == "http://example.test/"
        assert step.method == Method.GET
        assert step.payload is None
        assert step.on_failure == Severity.CRITICAL

    def test_target_alias(self) -> None:
        step = Step.from_definition("a", {"target": "example.test:443", "method": "connect"})
        assert step.target == "example.test:443"
        assert step.method == Method.CONNECT

    def test_method_is_case_insensitive(self) -> None:
        assert Step.from_definition("a", {"url": "http://x", "method": "head"}).method == Method.HEAD

    def test_payload_decoded(self) -> None:
        step = Step.from_definition(
            "login",
            {"url": "http://x", "method": "POST", "binary_data": "username=me&password=p%40ss&empty="},
        )
        assert step.payload == (("username", "me"), ("password", "p@ss"), ("empty", ""))

    def test_repeated_payload_fields_kept_in_order(self) -> None:
        step = Step.from_definition("a", {"url": "http://x", "method": "POST", "payload": "a=1&a=2"})
        assert step.payload == (("a", "1"), ("a", "2"))

    @pytest.mark.parametrize("token,expected", [
        ("ok", Severity.OK),
        ("Warning", Severity.WARNING),
        ("CRITICAL", Severity.CRITICAL),
        (" unknown ", Severity.UNKNOWN),
    ])
    def test_on_failure_tokens(self, token: str, expected: Severity) -> None:
        step = Step.from_definition("a", {"url": "http://x", "on_failure": token})
        assert step.on_failure == expected

    def test_missing_url(self) -> None:
        with pytest.raises(MalformedStepConfig) as exc:
            Step.from_definition("03 broken", {"method": "GET"})
        assert exc.value.step_name == "03 broken"
        assert "missing 'url'" in exc.value.reason

    def test_empty_url(self) -> None:
        with pytest.raises(MalformedStepConfig):
            Step.from_definition("a", {"url": "   "})

    def test_bad_on_failure(self) -> None:
        with pytest.raises(MalformedStepConfig) as exc:
            Step.from_definition("a", {"url": "http://x", "on_failure": "PANIC"})
        assert "on_failure" in exc.value.reason

    def test_loose_payload_fields(self) -> None:
        step = Step.from_definition("a", {"url": "http://x", "method": "POST", "binary_data": "a=1&b&&c=3&"})
        assert step.payload == (("a", "1"), ("b", ""), ("c", "3"))

    def test_undecodable_payload(self) -> None:
        with pytest.raises(MalformedStepConfig) as exc:
            Step.from_definition("a", {"url": "http://x", "method": "POST", "binary_data": "name=%ff"})
        assert "binary_data" in exc.value.reason

    def test_payload_on_bodyless_method(self) -> None:
        with pytest.raises(MalformedStepConfig):
            Step.from_definition("a", {"url": "http://x", "binary_data": "a=1"})

    def test_unknown_method(self) -> None:
        with pytest.raises(MalformedStepConfig):
            Step.from_definition("a", {"url": "http://x", "method": "TELEPORT"})

    def test_unknown_directive(self) -> None:
        with pytest.raises(MalformedStepConfig) as exc:
            Step.from_definition("a", {"url": "http://x", "onfailure": "OK"})
        assert "onfailure" in exc.value.reason

    def test_not_a_mapping(self) -> None:
        with pytest.raises(MalformedStepConfig):
            Step.from_definition("a", "http://x")  # type: ignore[arg-type]

    def test_is_immutable(self) -> None:
        step = Step.from_definition("a", {"url": "http://x"})
        with pytest.raises(AttributeError):
            step.target = "http://y"  # type: ignore[misc]


class TestStepSequence:
    def test_list_is_sorted_regardless_of_insertion_order(self, step_defs) -> None:
        seq = StepSequence.from_mapping(step_defs("b", "a", "c"))
        assert seq.list() == ["a", "b", "c"]
        assert [s.name for s in seq] == ["a", "b", "c"]

    def test_list_is_restartable(self, step_defs) -> None:
        seq = StepSequence.from_mapping(step_defs("b", "a"))
        assert seq.list() == seq.list()
        assert list(seq) == list(seq)

    def test_lookup(self, step_defs) -> None:
        seq = StepSequence.from_mapping(step_defs("a", "b"))
        assert seq.lookup("b").target == "http://example.test/b"
        assert "a" in seq
        assert len(seq) == 2

    def test_lookup_missing(self, step_defs) -> None:
        seq = StepSequence.from_mapping(step_defs("a"))
        with pytest.raises(KeyError):
            seq.lookup("zzz")

    def test_first_malformed_step_in_name_order_is_reported(self) -> None:
        raw = {
            "c": {"method": "GET"},
            "a": {"url": "http://x"},
            "b": {"url": "http://x", "on_failure": "nope"},
        }
        with pytest.raises(MalformedStepConfig) as exc:
            StepSequence.from_mapping(raw)
        assert exc.value.step_name == "b"

    def test_empty(self) -> None:
        seq = StepSequence.from_mapping({})
        assert seq.list() == []
