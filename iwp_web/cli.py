from __future__ import annotations

import argparse
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional, TextIO

from iwp_web.adapters.log_sinks import LoggingSink
from iwp_web.app_factory import build_packaging_service, configure_logging, create_app
from iwp_web.config.ini_config import AppSettings, IniConfig
from iwp_web.domain.errors import StartError, ValidationError
from iwp_web.domain.models import Finished, StillRunning, Success
from iwp_web.services.packaging_service import PackagingService


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_REJECTED = 2
EXIT_INTERRUPTED = 130


def add_package_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--source", required=True, help="Folder containing the installer and its files")
    p.add_argument("--setup", default="", help="Installer inside the source folder (.exe or .msi)")
    p.add_argument("--output", default="", help="Folder receiving the .intunewin package")
    p.add_argument("--tool", default="", help="Override the IntuneWinAppUtil.exe path from the INI")


def run_package(
    args: argparse.Namespace,
    service: PackagingService,
    settings: AppSettings,
    *,
    out: TextIO = sys.stdout,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Drives one job from the command line: validate, start, poll until finished."""

    output_raw = args.output or str(settings.default_output_folder or "")

    try:
        request = service.validate(args.source, args.setup, output_raw)
    except ValidationError as e:
        print(f"error: {e.reason.value}: {e.message}", file=out)
        return EXIT_REJECTED

    try:
        handle = service.start(request)
    except StartError as e:
        print(f"error: {e}", file=out)
        return EXIT_REJECTED

    print(f"Packaging {request.setup_file.name} (job {handle.job_id})", file=out)

    interval = settings.poll_interval_ms / 1000.0
    try:
        while True:
            outcome = service.tick()
            if isinstance(outcome, StillRunning):
                print(f"\r  {outcome.progress:3d}%", end="", file=out, flush=True)
                sleep(interval)
                continue
            if isinstance(outcome, Finished):
                break
            # Idle here means the job vanished (cancelled elsewhere)
            print("\nJob is no longer monitored.", file=out)
            return EXIT_FAILED
    except KeyboardInterrupt:
        service.cancel()
        print("\nCancelled.", file=out)
        return EXIT_INTERRUPTED

    if isinstance(outcome.outcome, Success):
        print(f"\r  100%\nDone: {', '.join(str(p) for p in outcome.result.output_files) or request.output_folder}", file=out)
        return EXIT_OK

    print(f"\nFailed with exit code {outcome.outcome.reason_code}", file=out)
    return EXIT_FAILED


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="iwp_web")
    sub = p.add_subparsers(dest="command")
    sub.add_parser("serve", help="Run the HTTP API (default)")
    add_package_arguments(sub.add_parser("package", help="Package one installer and wait for the result"))

    args = p.parse_args(argv)

    settings = IniConfig.from_env_or_default().load_settings()
    configure_logging(settings)

    if args.command == "package":
        if args.tool:
            settings = replace(settings, tool_path=Path(args.tool).resolve())
        service = build_packaging_service(settings, LoggingSink())
        try:
            return run_package(args, service, settings)
        finally:
            service.runner.shutdown()

    app = create_app(settings)
    app.run(host=app.config["HOST"], port=app.config["PORT"], debug=app.config["DEBUG"])
    return EXIT_OK
