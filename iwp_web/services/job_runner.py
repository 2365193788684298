from __future__ import annotations

import logging
import subprocess
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from iwp_web.adapters.log_sinks import LoggingSink, LogSink
from iwp_web.domain.errors import AlreadyRunning
from iwp_web.domain.models import JobHandle, JobResult, JobState, PackagingRequest
from iwp_web.repositories.output_repository import OutputRepository

logger = logging.getLogger(__name__)


def build_tool_args(request: PackagingRequest) -> List[str]:
    return [
        "-c", str(request.source_folder),
        "-s", str(request.setup_file),
        "-o", str(request.output_folder),
        "-q",
    ]


def format_tool_args(request: PackagingRequest) -> str:
    return f'-c "{request.source_folder}" -s "{request.setup_file}" -o "{request.output_folder}" -q'


@dataclass
class Job:
    job_id: str
    request: PackagingRequest
    args: str
    started_at: datetime
    state: JobState = JobState.RUNNING
    progress_estimate: int = 0
    cancelled: bool = False
    future: Optional[Future] = field(default=None, repr=False)
    process: Optional[subprocess.Popen] = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.future is not None and self.future.done()


class JobRunner:
    """
    Owns at most one in-flight packaging job.

    The job record and the busy gate are guarded by `lock`; the poller takes
    the same lock so ticks serialize with state transitions.
    """

    def __init__(
        self,
        output_repo: OutputRepository,
        *,
        sink: Optional[LogSink] = None,
        terminate_on_cancel: bool = False,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        self.output_repo = output_repo
        self.sink = sink or LoggingSink()
        self.terminate_on_cancel = terminate_on_cancel
        self._popen = popen
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="iwp-job")
        self.lock = threading.Lock()
        self.job: Optional[Job] = None
        self._busy = False
        self._last_result: Optional[JobResult] = None

    # -----------------------------
    # Read access
    # -----------------------------
    @property
    def busy(self) -> bool:
        with self.lock:
            return self._busy

    @property
    def state(self) -> JobState:
        with self.lock:
            if self.job is None or self.job.cancelled:
                return JobState.IDLE
            return self.job.state

    @property
    def progress(self) -> int:
        with self.lock:
            if self.job is None or self.job.cancelled:
                return 0
            return self.job.progress_estimate

    @property
    def current_job_id(self) -> Optional[str]:
        with self.lock:
            return self.job.job_id if self.job and not self.job.cancelled else None

    @property
    def last_result(self) -> Optional[JobResult]:
        with self.lock:
            return self._last_result

    # -----------------------------
    # Mutation
    # -----------------------------
    def start(self, request: PackagingRequest) -> JobHandle:
        with self.lock:
            self._reap_cancelled_locked()
            if self._busy:
                raise AlreadyRunning(self.job.job_id if self.job else "")

            self._busy = True
            job = Job(
                job_id=uuid.uuid4().hex[:12],
                request=request,
                args=format_tool_args(request),
                started_at=datetime.now(),
            )
            self.job = job
            try:
                job.future = self._executor.submit(self._execute, job)
            except RuntimeError:
                # executor already shut down
                self.job = None
                self._busy = False
                raise

        self.sink.info(f"Started packaging job {job.job_id}: {request.tool_path.name} {job.args}")
        return JobHandle(job_id=job.job_id, started_at=job.started_at, args=job.args)

    def cancel(self) -> bool:
        """
        Stops monitoring the current job. The gate stays closed until the worker
        has really exited; the child process keeps running unless terminate_on_cancel.
        """
        with self.lock:
            job = self.job
            if job is None or job.cancelled:
                return False
            job.cancelled = True
            if job.future is not None and job.future.cancel():
                # never reached the worker, nothing was spawned
                self._release_locked(job, None)
            elif self.terminate_on_cancel and job.process is not None:
                self._terminate(job)

        self.sink.warning(f"Cancelled monitoring of packaging job {job.job_id}.")
        if not self.terminate_on_cancel:
            self.sink.warning("The packaging tool may still be running in the background.")
        return True

    def complete(self, job: Job, result: Optional[JobResult]) -> None:
        """Called by the poller with `lock` held, once the worker is done."""
        self._release_locked(job, result)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    # -----------------------------
    # Internals
    # -----------------------------
    def _release_locked(self, job: Job, result: Optional[JobResult]) -> None:
        if self.job is job:
            self.job = None
            self._busy = False
        if result is not None and not job.cancelled:
            self._last_result = result

    def _reap_cancelled_locked(self) -> None:
        job = self.job
        if job is not None and job.cancelled and job.done:
            logger.info("Reaping cancelled job %s", job.job_id)
            self._release_locked(job, None)

    def _terminate(self, job: Job) -> None:
        try:
            job.process.terminate()
        except OSError:
            logger.exception("Failed to terminate packaging tool for job %s", job.job_id)

    def _kill(self, job: Job, proc: subprocess.Popen) -> None:
        try:
            proc.kill()
            proc.wait(timeout=10)
        except (OSError, subprocess.TimeoutExpired):
            logger.exception("Failed to reap packaging tool for job %s", job.job_id)

    def _execute(self, job: Job) -> JobResult:
        request = job.request
        argv = [str(request.tool_path), *build_tool_args(request)]
        exit_code: Optional[int] = None
        stdout = ""
        stderr = ""
        output_files = ()
        proc = None
        faulted = False

        try:
            proc = self._popen(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                cwd=str(request.tool_path.parent),
                creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
            )
            with self.lock:
                job.process = proc
                kill_now = job.cancelled and self.terminate_on_cancel
            if kill_now:
                self._terminate(job)

            out, err = proc.communicate()
            stdout = out or ""
            stderr = err or ""
            exit_code = proc.returncode
        except Exception as e:
            logger.exception("Packaging job %s failed to execute", job.job_id)
            faulted = True
            exit_code = -1
            stderr = str(e) or e.__class__.__name__
            self.sink.error(f"Failed to execute packaging tool: {stderr}")
            if proc is not None:
                self._kill(job, proc)

        if not faulted:
            try:
                output_files = self.output_repo.list_packages(request.output_folder)
            except OSError as e:
                logger.warning("Listing %s failed for job %s: %s", request.output_folder, job.job_id, e)
                self.sink.warning(f"Could not list output folder {request.output_folder}: {e}")
                output_files = ()

        finished = datetime.now()
        with self.lock:
            job.state = JobState.COMPLETED
            job.process = None

        logger.debug("Job %s exited with %s", job.job_id, exit_code)
        return JobResult(
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            output_files=tuple(output_files),
            args=job.args,
            job_id=job.job_id,
            started_at=job.started_at,
            finished_at=finished,
        )
