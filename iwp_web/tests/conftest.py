from __future__ import annotations

from pathlib import Path

import pytest

from iwp_web.adapters.log_sinks import MemorySink
from iwp_web.repositories.output_repository import OutputRepository
from iwp_web.services.job_poller import JobPoller
from iwp_web.services.job_runner import JobRunner
from iwp_web.services.packaging_service import PackagingService
from iwp_web.services.request_validator import RequestValidator
from iwp_web.services.result_classifier import ResultClassifier, default_signals
from iwp_web.tests.doubles import FakeTool


class Layout:
    def __init__(self, root: Path):
        self.root = root
        self.source = root / "pkg" / "src"
        self.setup = self.source / "setup.exe"
        self.output = root / "pkg" / "out"
        self.tool = root / "tools" / "IntuneWinAppUtil.exe"


@pytest.fixture
def layout(tmp_path: Path) -> Layout:
    lay = Layout(tmp_path)
    lay.source.mkdir(parents=True)
    lay.setup.write_text("MZ")
    lay.tool.parent.mkdir()
    lay.tool.write_text("MZ")
    return lay


@pytest.fixture
def fake_tool():
    tool = FakeTool()
    yield tool
    tool.release()


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def runner(fake_tool: FakeTool, sink: MemorySink):
    r = JobRunner(OutputRepository(), sink=sink, popen=fake_tool)
    yield r
    fake_tool.release()
    r.shutdown()


@pytest.fixture
def service(layout: Layout, runner: JobRunner, sink: MemorySink) -> PackagingService:
    return PackagingService(
        tool_path=layout.tool,
        validator=RequestValidator(),
        runner=runner,
        poller=JobPoller(runner, sink=sink),
        classifier=ResultClassifier(signals=default_signals("Done!!!"), sink=sink),
        sink=sink,
    )
