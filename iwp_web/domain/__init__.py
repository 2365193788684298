from .errors import AlreadyRunning, StartError, ValidationError, ValidationReason
from .models import (
    Failure,
    Finished,
    Idle,
    JobHandle,
    JobResult,
    JobState,
    LogEvent,
    LogLevel,
    PackagingRequest,
    StillRunning,
    Success,
)

__all__ = [
    "AlreadyRunning",
    "StartError",
    "ValidationError",
    "ValidationReason",
    "Failure",
    "Finished",
    "Idle",
    "JobHandle",
    "JobResult",
    "JobState",
    "LogEvent",
    "LogLevel",
    "PackagingRequest",
    "StillRunning",
    "Success",
]
