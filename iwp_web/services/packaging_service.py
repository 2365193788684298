from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from iwp_web.adapters.log_sinks import LogSink
from iwp_web.domain.models import (
    Failure,
    Finished,
    JobHandle,
    JobResult,
    Outcome,
    PackagingRequest,
    PollOutcome,
    Success,
)
from iwp_web.services.job_poller import JobPoller
from iwp_web.services.job_runner import JobRunner
from iwp_web.services.request_validator import RawPath, RequestValidator
from iwp_web.services.result_classifier import ResultClassifier


def _tail(text: str, lines: int = 20) -> str:
    return "\n".join((text or "").splitlines()[-lines:])


@dataclass
class PackagingService:
    """
    Service layer: the caller-facing API of the packaging job subsystem.
    Keeps the HTTP and CLI callers thin.
    """
    tool_path: Path
    validator: RequestValidator
    runner: JobRunner
    poller: JobPoller
    classifier: ResultClassifier
    sink: LogSink
    _last_outcome: Optional[Outcome] = field(default=None, init=False, repr=False)
    _latest_job_id: Optional[str] = field(default=None, init=False, repr=False)
    _outcome_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def validate(
        self,
        raw_source_folder: RawPath,
        raw_setup_path: RawPath,
        raw_output_folder: RawPath,
        *,
        detected_setup: RawPath = None,
    ) -> PackagingRequest:
        return self.validator.validate(
            raw_source_folder,
            raw_setup_path,
            raw_output_folder,
            self.tool_path,
            detected_setup=detected_setup,
        )

    def start(self, request: PackagingRequest) -> JobHandle:
        handle = self.runner.start(request)
        with self._outcome_lock:
            self._latest_job_id = handle.job_id
            self._last_outcome = None
        return handle

    def tick(self) -> PollOutcome:
        outcome = self.poller.tick()
        if not isinstance(outcome, Finished):
            return outcome

        result = outcome.result
        verdict = self.classifier.classify(result)
        with self._outcome_lock:
            # a newer job may have started since the handoff
            if self._latest_job_id in (None, result.job_id):
                self._last_outcome = verdict
        self._report(result, verdict)
        return replace(outcome, outcome=verdict)

    def cancel(self) -> bool:
        return self.runner.cancel()

    @property
    def busy(self) -> bool:
        return self.runner.busy

    @property
    def progress(self) -> int:
        if self.runner.current_job_id is not None:
            return self.runner.progress
        last = self.last_outcome
        return last.progress if isinstance(last, Success) else 0

    @property
    def last_result(self) -> Optional[JobResult]:
        return self.runner.last_result

    @property
    def last_outcome(self) -> Optional[Outcome]:
        with self._outcome_lock:
            return self._last_outcome

    def _report(self, result: JobResult, verdict: Outcome) -> None:
        if isinstance(verdict, Success):
            where = result.output_files[0] if result.output_files else "the output folder"
            self.sink.success(
                f"Package created in {result.duration_seconds}s ({verdict.signal}): {where}"
            )
            return

        assert isinstance(verdict, Failure)
        self.sink.error(f"Packaging failed with exit code {verdict.reason_code}. Args: {result.args}")
        if result.stderr.strip():
            self.sink.error(_tail(result.stderr))
        elif result.stdout.strip():
            self.sink.info(_tail(result.stdout))
