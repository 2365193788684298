from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Tuple

from iwp_web.adapters.log_sinks import LoggingSink, LogSink
from iwp_web.domain.models import Failure, JobResult, Outcome, Success

DEFAULT_COMPLETION_MARKER = "Done!!!"
MISSING_EXIT_CODE = -1

SuccessSignal = Tuple[str, Callable[[JobResult], bool]]


def exited_cleanly(result: JobResult) -> bool:
    return result.exit_code == 0


def has_completion_marker(marker: str) -> Callable[[JobResult], bool]:
    def check(result: JobResult) -> bool:
        return bool(marker) and marker in (result.stdout or "")
    return check


def produced_package(result: JobResult) -> bool:
    return len(result.output_files) > 0


def default_signals(completion_marker: str = DEFAULT_COMPLETION_MARKER) -> List[SuccessSignal]:
    # The tool's exit code is not reliable across versions, so any one signal is enough.
    return [
        ("exit_code", exited_cleanly),
        ("completion_marker", has_completion_marker(completion_marker)),
        ("output_file", produced_package),
    ]


@dataclass
class ResultClassifier:
    signals: List[SuccessSignal] = field(default_factory=default_signals)
    sink: LogSink = field(default_factory=LoggingSink)

    def classify(self, result: JobResult) -> Outcome:
        if result.exit_code is None:
            self.sink.warning("Packaging tool did not report an exit code.")

        for name, predicate in self.signals:
            if predicate(result):
                return Success(signal=name)

        code = result.exit_code if result.exit_code is not None else MISSING_EXIT_CODE
        return Failure(reason_code=code)
