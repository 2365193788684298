from __future__ import annotations

from enum import Enum


class ValidationReason(str, Enum):
    SOURCE_FOLDER_INVALID = "SourceFolderInvalid"
    SETUP_FILE_INVALID = "SetupFileInvalid"
    UNSUPPORTED_EXTENSION = "UnsupportedExtension"
    SETUP_OUTSIDE_SOURCE = "SetupOutsideSource"
    OUTPUT_FOLDER_UNAVAILABLE = "OutputFolderUnavailable"
    TOOL_MISSING = "ToolMissing"


class ValidationError(ValueError):
    """Raised by the validator; no job is started."""

    def __init__(self, reason: ValidationReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


class StartError(RuntimeError):
    pass


class AlreadyRunning(StartError):
    def __init__(self, job_id: str = ""):
        super().__init__(f"A packaging job is already running ({job_id})." if job_id else
                         "A packaging job is already running.")
        self.job_id = job_id
