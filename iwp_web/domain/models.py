from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class PackagingRequest:
    """Validated input for exactly one packaging job."""
    source_folder: Path
    setup_file: Path
    output_folder: Path
    tool_path: Path


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass(frozen=True)
class JobHandle:
    job_id: str
    started_at: datetime
    args: str


@dataclass(frozen=True)
class JobResult:
    exit_code: Optional[int]            # None when the process never reported one
    stdout: str
    stderr: str
    output_files: Tuple[Path, ...]      # newest first
    args: str
    job_id: str = ""
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> int:
        if not self.started_at or not self.finished_at:
            return 0
        return int((self.finished_at - self.started_at).total_seconds())


@dataclass(frozen=True)
class Success:
    signal: str
    progress: int = 100


@dataclass(frozen=True)
class Failure:
    reason_code: int


Outcome = Union[Success, Failure]


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class StillRunning:
    progress: int


@dataclass(frozen=True)
class Finished:
    result: JobResult
    outcome: Optional[Outcome] = None


PollOutcome = Union[Idle, StillRunning, Finished]


class LogLevel(str, Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class LogEvent:
    level: LogLevel
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
