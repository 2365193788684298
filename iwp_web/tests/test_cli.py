from __future__ import annotations

import argparse
import io

import pytest

from iwp_web import cli

from iwp_web.tests.doubles import make_package, make_settings


def _args(layout, **overrides) -> argparse.Namespace:
    values = dict(source=str(layout.source), setup=str(layout.setup), output=str(layout.output), tool="")
    values.update(overrides)
    return argparse.Namespace(**values)


def _run(service, layout, args):
    out = io.StringIO()
    code = cli.run_package(args, service, make_settings(layout.tool, layout.output), out=out, sleep=lambda s: None)
    return code, out.getvalue()


def test_package_success(service, layout, fake_tool):
    fake_tool.on_run = lambda argv: make_package(layout.output)

    code, text = _run(service, layout, _args(layout))

    assert code == cli.EXIT_OK
    assert "100%" in text
    assert "setup.intunewin" in text


def test_package_failure(service, layout, fake_tool):
    fake_tool.returncode = 7

    code, text = _run(service, layout, _args(layout))

    assert code == cli.EXIT_FAILED
    assert "exit code 7" in text


def test_validation_error_is_rejected(service, layout):
    code, text = _run(service, layout, _args(layout, setup=str(layout.root / "missing.exe")))

    assert code == cli.EXIT_REJECTED
    assert "SetupFileInvalid" in text
    assert service.busy is False


def test_busy_service_is_rejected(service, layout, fake_tool):
    fake_tool.block()
    service.start(service.validate(layout.source, layout.setup, layout.output))

    code, text = _run(service, layout, _args(layout))

    assert code == cli.EXIT_REJECTED
    assert "already running" in text


def test_interrupt_cancels(service, layout, fake_tool):
    fake_tool.block()

    def interrupt(_):
        raise KeyboardInterrupt

    out = io.StringIO()
    code = cli.run_package(
        _args(layout), service, make_settings(layout.tool, layout.output), out=out, sleep=interrupt
    )

    assert code == cli.EXIT_INTERRUPTED
    assert service.runner.current_job_id is None


def test_parser_requires_source():
    p = argparse.ArgumentParser()
    cli.add_package_arguments(p)
    with pytest.raises(SystemExit):
        p.parse_args([])
