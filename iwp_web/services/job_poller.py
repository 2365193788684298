from __future__ import annotations

from typing import Optional

from iwp_web.adapters.log_sinks import LoggingSink, LogSink
from iwp_web.domain.models import Finished, Idle, PollOutcome, StillRunning
from iwp_web.services.job_runner import JobRunner

DEFAULT_PROGRESS_CEILING = 85


class JobPoller:
    """
    Non-blocking completion check, called by the caller's loop on a fixed period.

    While the job runs, each tick bumps a synthetic progress estimate by one,
    never past `progress_ceiling`. A finished job's result is handed out once.
    """

    def __init__(
        self,
        runner: JobRunner,
        *,
        progress_ceiling: int = DEFAULT_PROGRESS_CEILING,
        sink: Optional[LogSink] = None,
    ):
        self.runner = runner
        self.progress_ceiling = progress_ceiling
        self.sink = sink or LoggingSink()

    def tick(self) -> PollOutcome:
        with self.runner.lock:
            job = self.runner.job
            if job is None:
                return Idle()

            if not job.done:
                if job.cancelled:
                    return Idle()
                job.progress_estimate = min(job.progress_estimate + 1, self.progress_ceiling)
                return StillRunning(job.progress_estimate)

            # The worker has returned, so this join does not wait on the tool.
            result = None if job.future.cancelled() else job.future.result()
            self.runner.complete(job, result)

        if job.cancelled or result is None:
            self.sink.info(f"Cancelled job {job.job_id} has exited; its result was discarded.")
            return Idle()
        return Finished(result)
