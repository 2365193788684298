from __future__ import annotations

import logging
from pathlib import Path

import pytest

from iwp_web.adapters.log_sinks import LoggingSink, MemorySink
from iwp_web.domain.models import Failure, JobResult, LogLevel, Success
from iwp_web.services.result_classifier import (
    ResultClassifier,
    default_signals,
    exited_cleanly,
    has_completion_marker,
    produced_package,
)

PKG = Path("/out/setup.intunewin")


def make_result(exit_code=0, stdout="", stderr="", output_files=()) -> JobResult:
    return JobResult(
        exit_code=exit_code,
        stdout=stdout,
        stderr=stderr,
        output_files=tuple(output_files),
        args='-c "a" -s "a/setup.exe" -o "b" -q',
    )


def warnings(sink: MemorySink):
    return [e for e in sink.events if e.level == LogLevel.WARNING]


# -----------------------------
# Individual predicates
# -----------------------------
@pytest.mark.parametrize("code, expected", [(0, True), (1, False), (-1, False), (None, False)])
def test_exited_cleanly(code, expected):
    assert exited_cleanly(make_result(exit_code=code)) is expected


@pytest.mark.parametrize(
    "stdout, expected",
    [
        ("[Info] Done!!!", True),
        ("Compressing...\nDone!!!\n", True),
        ("done!!!", False),     # case-sensitive
        ("Done", False),
        ("", False),
    ],
)
def test_has_completion_marker(stdout, expected):
    assert has_completion_marker("Done!!!")(make_result(stdout=stdout)) is expected


def test_empty_marker_never_matches():
    assert has_completion_marker("")(make_result(stdout="anything")) is False


def test_produced_package():
    assert produced_package(make_result(output_files=[PKG])) is True
    assert produced_package(make_result(output_files=[])) is False


# -----------------------------
# Combined policy
# -----------------------------
def test_exit_zero_is_success():
    outcome = ResultClassifier(sink=MemorySink()).classify(make_result(exit_code=0))
    assert outcome == Success(signal="exit_code", progress=100)


def test_marker_alone_is_success():
    outcome = ResultClassifier(sink=MemorySink()).classify(make_result(exit_code=5, stdout="Done!!!"))
    assert outcome == Success(signal="completion_marker")


def test_artifact_alone_is_success():
    outcome = ResultClassifier(sink=MemorySink()).classify(make_result(exit_code=5, output_files=[PKG]))
    assert outcome == Success(signal="output_file")


def test_no_signal_fails_with_exit_code():
    outcome = ResultClassifier(sink=MemorySink()).classify(make_result(exit_code=3, stdout="Error"))
    assert outcome == Failure(reason_code=3)


def test_missing_exit_code_without_signal_fails_with_minus_one_and_warns():
    sink = MemorySink()
    outcome = ResultClassifier(sink=sink).classify(make_result(exit_code=None))

    assert outcome == Failure(reason_code=-1)
    assert len(warnings(sink)) == 1


def test_missing_exit_code_with_artifact_succeeds_and_still_warns():
    sink = MemorySink()
    outcome = ResultClassifier(sink=sink).classify(make_result(exit_code=None, output_files=[PKG]))

    assert isinstance(outcome, Success)
    assert len(warnings(sink)) == 1
    assert "exit code" in warnings(sink)[0].message


def test_present_exit_code_does_not_warn():
    sink = MemorySink()
    ResultClassifier(sink=sink).classify(make_result(exit_code=3))
    assert warnings(sink) == []


def test_custom_marker_from_settings():
    classifier = ResultClassifier(signals=default_signals("Package created"), sink=MemorySink())
    assert isinstance(classifier.classify(make_result(exit_code=1, stdout="Package created")), Success)
    assert isinstance(classifier.classify(make_result(exit_code=1, stdout="Done!!!")), Failure)


def test_signals_are_evaluated_in_order():
    seen = []

    def record(name, value):
        def check(_):
            seen.append(name)
            return value
        return check

    classifier = ResultClassifier(
        signals=[("a", record("a", False)), ("b", record("b", True)), ("c", record("c", True))],
        sink=MemorySink(),
    )

    assert classifier.classify(make_result()) == Success(signal="b")
    assert seen == ["a", "b"]


def test_default_sink_is_built_once(caplog):
    classifier = ResultClassifier()
    sink = classifier.sink

    with caplog.at_level(logging.WARNING, logger="iwp_web.jobs"):
        classifier.classify(make_result(exit_code=None))
        classifier.classify(make_result(exit_code=None))

    assert isinstance(sink, LoggingSink)
    assert classifier.sink is sink
    assert [r.levelno for r in caplog.records] == [logging.WARNING, logging.WARNING]
