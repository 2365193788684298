from __future__ import annotations

import atexit
import logging
import subprocess
from typing import Callable, Optional

from flask import Flask

from iwp_web.adapters.log_sinks import FanOutSink, LoggingSink, LogSink, MemorySink
from iwp_web.config.ini_config import AppSettings, IniConfig
from iwp_web.repositories.output_repository import OutputRepository
from iwp_web.services.job_poller import JobPoller
from iwp_web.services.job_runner import JobRunner
from iwp_web.services.packaging_service import PackagingService
from iwp_web.services.request_validator import RequestValidator
from iwp_web.services.result_classifier import ResultClassifier, default_signals
from iwp_web.web.routes import create_blueprint


def configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_packaging_service(
    settings: AppSettings,
    sink: LogSink,
    popen: Callable[..., subprocess.Popen] = subprocess.Popen,
) -> PackagingService:
    """Composition root for the job subsystem, shared by the web app and the CLI."""
    output_repo = OutputRepository(
        package_extension=settings.package_extension,
        max_files=settings.max_output_files,
    )

    runner = JobRunner(
        output_repo,
        sink=sink,
        terminate_on_cancel=settings.terminate_on_cancel,
        popen=popen,
    )

    poller = JobPoller(runner, progress_ceiling=settings.progress_ceiling, sink=sink)
    classifier = ResultClassifier(signals=default_signals(settings.completion_marker), sink=sink)

    return PackagingService(
        tool_path=settings.tool_path,
        validator=RequestValidator(),
        runner=runner,
        poller=poller,
        classifier=classifier,
        sink=sink,
    )


def create_app(
    settings: Optional[AppSettings] = None,
    popen: Callable[..., subprocess.Popen] = subprocess.Popen,
) -> Flask:
    if settings is None:
        settings = IniConfig.from_env_or_default().load_settings()

    memory_sink = MemorySink(capacity=settings.memory_log_capacity)
    sink = FanOutSink([memory_sink, LoggingSink()])

    packaging_service = build_packaging_service(settings, sink, popen=popen)
    atexit.register(packaging_service.runner.shutdown)

    app = Flask(__name__)
    app.extensions["packaging_service"] = packaging_service
    app.register_blueprint(create_blueprint(packaging_service, memory_sink, settings))

    app.config["HOST"] = settings.flask_host
    app.config["PORT"] = settings.flask_port
    app.config["DEBUG"] = settings.flask_debug

    return app
