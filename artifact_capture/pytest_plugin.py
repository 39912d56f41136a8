"""pytest plugin that feeds test lifecycle events to the capture router.

Load it explicitly and switch it on::

    pytest -p artifact_capture.pytest_plugin --capture-artifacts

The browser session is looked up in the test's fixtures under the name given
by ``--artifacts-driver-fixture`` (default ``driver_session``). The fixture
must return a :class:`~artifact_capture.drivers.base.DriverSession`.
"""

import logging
import socket
import time
from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from artifact_capture.config import load_config
from artifact_capture.drivers.base import DriverSession
from artifact_capture.models.execution import FailureCause, TestExecution, TestStatus
from artifact_capture.router import LifecycleRouter
from artifact_capture.sinks import AllureAttachmentSink

log = logging.getLogger(__name__)

PLUGIN_NAME = "artifact-capture-router"
DEFAULT_DRIVER_FIXTURE = "driver_session"


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command line options."""
    group = parser.getgroup("artifact-capture", "test artifact capture")
    group.addoption(
        "--capture-artifacts",
        action="store_true",
        default=False,
        help="Capture screenshots, logs and video of failed tests",
    )
    group.addoption(
        "--artifacts-results-dir",
        type=Path,
        default=None,
        help="Results directory read by the report generator",
    )
    group.addoption(
        "--artifacts-report-dir",
        type=Path,
        default=None,
        help="Previously generated report, source of trend history",
    )
    group.addoption(
        "--artifacts-headless",
        action="store_true",
        default=None,
        help="Browser runs headless; disables video recording",
    )
    group.addoption(
        "--artifacts-recorder",
        default=None,
        help="Screen recorder backend key (default: ffmpeg)",
    )
    group.addoption(
        "--artifacts-driver-fixture",
        default=DEFAULT_DRIVER_FIXTURE,
        help="Fixture providing the browser driver session",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the capture plugin when enabled."""
    if not config.getoption("capture_artifacts"):
        return

    capture_config = load_config(
        results_dir=config.getoption("artifacts_results_dir"),
        report_dir=config.getoption("artifacts_report_dir"),
        headless=config.getoption("artifacts_headless"),
        recorder=config.getoption("artifacts_recorder"),
    )
    router = LifecycleRouter.from_config(capture_config, AllureAttachmentSink())
    config.pluginmanager.register(
        ArtifactCapturePlugin(
            router=router,
            driver_fixture=config.getoption("artifacts_driver_fixture"),
        ),
        PLUGIN_NAME,
    )


def build_execution(
    item: pytest.Item,
    call: pytest.CallInfo[Any],
    report: pytest.TestReport,
    status: TestStatus,
    started: float,
    host: str | None = None,
) -> TestExecution:
    """Describe a finished test phase as a test execution."""
    failure = None
    if report.failed and call.excinfo is not None:
        failure = FailureCause.from_exception(call.excinfo.value)

    callspec = getattr(item, "callspec", None)
    parameters = (
        {name: repr(value) for name, value in callspec.params.items()}
        if callspec is not None
        else {}
    )

    start_millis = int(started * 1000)
    return TestExecution(
        execution_id=item.nodeid,
        name=item.name,
        class_name=item.nodeid.rpartition("::")[0],
        status=status,
        start_millis=start_millis,
        end_millis=max(start_millis, int(call.stop * 1000)),
        parameters=parameters,
        messages=tuple(report.caplog.splitlines()),
        suite_name=item.session.name,
        host=host,
        failure=failure,
    )


def report_status(report: pytest.TestReport) -> TestStatus | None:
    """Map a phase report to a final test status, or None if not final.

    A setup error is a broken test: it is reported as skipped with its
    exception attached.
    """
    if report.when == "setup":
        if report.failed or report.skipped:
            return TestStatus.SKIPPED
        return None
    if report.when == "call":
        if report.passed:
            return TestStatus.SUCCESS
        if report.failed:
            return TestStatus.FAILURE
        return TestStatus.SKIPPED
    return None


@dataclass(kw_only=True)
class ArtifactCapturePlugin:
    """Hook implementations bound to one router."""

    router: LifecycleRouter
    driver_fixture: str = DEFAULT_DRIVER_FIXTURE
    host: str = field(default_factory=socket.gethostname)
    _started: dict[str, float] = field(default_factory=dict, init=False, repr=False)

    def pytest_collection_finish(self, session: pytest.Session) -> None:
        """Start the suite once the number of tests is known."""
        self.router.on_suite_start(session.name, len(session.items))

    @pytest.hookimpl(tryfirst=True)
    def pytest_runtest_logstart(self, nodeid: str) -> None:
        """Start capture before the test's fixtures are set up."""
        self._started[nodeid] = time.time()
        self.router.on_test_start(nodeid, nodeid.rpartition("::")[2])

    @pytest.hookimpl(hookwrapper=True, tryfirst=True)
    def pytest_runtest_makereport(
        self, item: pytest.Item, call: pytest.CallInfo[Any]
    ) -> Generator[None, Any, None]:
        """Dispatch the test outcome while its fixtures are still alive."""
        outcome = yield
        try:
            self.dispatch(item, call, outcome.get_result())
        except Exception:
            log.exception("Artifact capture failed for %s", item.nodeid)

    def pytest_sessionfinish(self, session: pytest.Session) -> None:
        """Finish the suite."""
        self.router.on_suite_finish()

    def dispatch(
        self, item: pytest.Item, call: pytest.CallInfo[Any], report: pytest.TestReport
    ) -> None:
        """Send the outcome event for a final phase report."""
        if item.nodeid not in self._started:
            return
        status = report_status(report)
        if status is None:
            return

        started = self._started.pop(item.nodeid)
        execution = build_execution(item, call, report, status, started, self.host)
        match status:
            case TestStatus.SUCCESS:
                self.router.on_test_success(execution)
            case TestStatus.FAILURE:
                self.router.on_test_failure(execution, self.driver_session(item))
            case TestStatus.SKIPPED:
                self.router.on_test_skip(execution, self.driver_session(item))

    def driver_session(self, item: pytest.Item) -> DriverSession | None:
        """Browser session of the test, if its fixture provides one."""
        funcargs = getattr(item, "funcargs", {})
        session = funcargs.get(self.driver_fixture)
        return session if isinstance(session, DriverSession) else None
