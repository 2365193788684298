from .job_poller import JobPoller
from .job_runner import JobRunner
from .packaging_service import PackagingService
from .request_validator import RequestValidator, is_path_descendant
from .result_classifier import ResultClassifier

__all__ = [
    "JobPoller",
    "JobRunner",
    "PackagingService",
    "RequestValidator",
    "ResultClassifier",
    "is_path_descendant",
]
