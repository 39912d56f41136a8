"""Tests for lifecycle router."""

from datetime import datetime
from pathlib import Path
from unittest.mock import Mock

import pytest

from artifact_capture.capture import DiagnosticsCapturer
from artifact_capture.config import CaptureConfig
from artifact_capture.history import MARKER_FILE, HistoryManager
from artifact_capture.models.console import ConsoleEntry, ConsoleLevel
from artifact_capture.models.execution import TestStatus
from artifact_capture.recording import VideoRecorderManager
from artifact_capture.router import LifecycleRouter
from artifact_capture.sinks import NullAttachmentSink
from artifact_capture.store import ArtifactStore
from artifact_capture.testing.factories import (
    FailureCauseFactory,
    HostFactsFactory,
    TestExecutionFactory,
)
from artifact_capture.testing.fakes import FakeDriverSession, FakeScreenRecorder

ENTRIES = (
    ConsoleEntry(
        level=ConsoleLevel.SEVERE,
        message="Uncaught TypeError",
        timestamp=datetime(2024, 5, 1, 9, 0, 0),
    ),
    ConsoleEntry(
        level=ConsoleLevel.WARNING,
        message="Deprecated API",
        timestamp=datetime(2024, 5, 1, 9, 0, 1),
    ),
)


def _router(
    store: ArtifactStore,
    tmp_path: Path,
    *,
    headless: bool = False,
    recorders: list[FakeScreenRecorder] | None = None,
) -> LifecycleRouter:
    config = CaptureConfig(
        results_dir=store.results_dir,
        report_dir=tmp_path / "allure-report",
        headless=headless,
    )
    factory = (
        iter(recorders).__next__ if recorders is not None else FakeScreenRecorder
    )
    return LifecycleRouter(
        config=config,
        store=store,
        capturer=DiagnosticsCapturer(store=store),
        recorder=VideoRecorderManager(store=store, recorder_factory=factory),
        history=HistoryManager(store=store, history_source=config.history_source),
        host_facts=HostFactsFactory.build,
    )


@pytest.fixture
def router(store: ArtifactStore, tmp_path: Path) -> LifecycleRouter:
    """Create router with a GUI browser and fake recorders."""
    router = _router(store, tmp_path)
    router.on_suite_start("ui-suite", 3)
    return router


def _files(directory: Path) -> list[Path]:
    return sorted(directory.iterdir()) if directory.exists() else []


class TestSuiteStart:
    """Tests for LifecycleRouter.on_suite_start."""

    def test_prepares_results_directory(
        self, router: LifecycleRouter, results_dir: Path
    ) -> None:
        """Creates the layout and writes the environment snapshot."""
        assert (results_dir / "screenshots").is_dir()
        assert (results_dir / "logs").is_dir()
        assert (results_dir / "videos").is_dir()
        properties = (results_dir / "environment.properties").read_text()
        assert "Suite.Name=ui-suite" in properties
        assert "Total.Tests=3" in properties
        assert "Headless.Mode=No" in properties
        assert not router.headless

    def test_headless_detected(self, store: ArtifactStore, tmp_path: Path) -> None:
        """Headless configuration disables video for the suite."""
        router = _router(store, tmp_path, headless=True)

        router.on_suite_start("ui-suite", 1)

        assert router.headless

    def test_host_facts_failure(
        self, store: ArtifactStore, tmp_path: Path, results_dir: Path
    ) -> None:
        """Failing host facts skip the snapshot but not the suite."""
        router = _router(store, tmp_path)
        router.host_facts = Mock(side_effect=OSError("no hostname"))

        router.on_suite_start("ui-suite", 1)

        assert not (results_dir / "environment.properties").exists()
        assert (results_dir / "logs").is_dir()


def test_passed_test_leaves_no_artifacts(
    router: LifecycleRouter, results_dir: Path, sink: Mock
) -> None:
    """A passing test keeps nothing and discards its video."""
    router.on_test_start("id-1", "test_login")
    assert _files(results_dir / "videos")

    router.on_test_success(
        TestExecutionFactory.build(execution_id="id-1", name="test_login")
    )

    assert _files(results_dir / "screenshots") == []
    assert _files(results_dir / "logs") == []
    assert _files(results_dir / "videos") == []
    assert router.recorder.active is None
    sink.attach.assert_not_called()


def test_failed_test_captures_everything(
    router: LifecycleRouter, results_dir: Path, sink: Mock
) -> None:
    """A failing test keeps screenshot, logs, video and failure details."""
    router.on_test_start("id-1", "test_checkout")
    execution = TestExecutionFactory.build(
        execution_id="id-1",
        name="test_checkout",
        status=TestStatus.FAILURE,
        failure=FailureCauseFactory.build(type_name="AssertionError"),
    )

    router.on_test_failure(execution, FakeDriverSession(entries=ENTRIES))

    assert len(_files(results_dir / "screenshots")) == 1
    logs = [p.name for p in _files(results_dir / "logs")]
    assert any("_browser_" in name for name in logs)
    assert any("_execution_" in name for name in logs)
    assert any("_exception_" in name for name in logs)
    assert len(_files(results_dir / "videos")) == 1

    browser_log = next(
        p for p in _files(results_dir / "logs") if "_browser_" in p.name
    ).read_text()
    assert "Errors: 1" in browser_log
    assert "Warnings: 1" in browser_log
    assert "Info: 0" in browser_log

    labels = [c.args[0] for c in sink.attach.call_args_list]
    assert labels == [
        "Screenshot - test_checkout",
        "Browser Console Logs - test_checkout",
        "Execution Logs - test_checkout",
        "Video Recording - test_checkout",
        "Exception Details - test_checkout",
    ]


def test_failed_test_without_session(
    router: LifecycleRouter, results_dir: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Without a browser session only execution logs and video are kept."""
    router.on_test_start("id-1", "test_checkout")

    router.on_test_failure(
        TestExecutionFactory.build(
            execution_id="id-1", name="test_checkout", status=TestStatus.FAILURE
        ),
        None,
    )

    assert _files(results_dir / "screenshots") == []
    logs = [p.name for p in _files(results_dir / "logs")]
    assert len(logs) == 1
    assert "_execution_" in logs[0]
    assert len(_files(results_dir / "videos")) == 1
    assert "No browser session" in caplog.text


def test_broken_skip_treated_as_failure(
    router: LifecycleRouter, results_dir: Path
) -> None:
    """A skip caused by an exception captures like a failure."""
    router.on_test_start("id-1", "test_search")

    router.on_test_skip(
        TestExecutionFactory.build(
            execution_id="id-1",
            name="test_search",
            status=TestStatus.SKIPPED,
            failure=FailureCauseFactory.build(),
        ),
        FakeDriverSession(),
    )

    assert len(_files(results_dir / "screenshots")) == 1
    assert len(_files(results_dir / "videos")) == 1


def test_clean_skip_treated_as_pass(
    router: LifecycleRouter, results_dir: Path
) -> None:
    """A skip without a cause discards its video."""
    router.on_test_start("id-1", "test_search")

    router.on_test_skip(
        TestExecutionFactory.build(
            execution_id="id-1", name="test_search", status=TestStatus.SKIPPED
        ),
        FakeDriverSession(),
    )

    assert _files(results_dir / "screenshots") == []
    assert _files(results_dir / "videos") == []


def test_headless_never_records(
    store: ArtifactStore, tmp_path: Path, results_dir: Path
) -> None:
    """In headless mode video is never started, even for failures."""
    router = _router(store, tmp_path, headless=True)
    router.recorder = Mock(spec=VideoRecorderManager)
    router.on_suite_start("ui-suite", 2)

    router.on_test_start("id-1", "test_a")
    router.on_test_success(
        TestExecutionFactory.build(execution_id="id-1", name="test_a")
    )
    router.on_test_start("id-2", "test_b")
    router.on_test_failure(
        TestExecutionFactory.build(
            execution_id="id-2", name="test_b", status=TestStatus.FAILURE
        ),
        FakeDriverSession(),
    )

    router.recorder.start.assert_not_called()
    assert len(_files(results_dir / "screenshots")) == 1


def test_recorder_failure_does_not_block_capture(
    store: ArtifactStore, tmp_path: Path, results_dir: Path
) -> None:
    """An unavailable recorder still lets the other artifacts through."""
    router = _router(
        store,
        tmp_path,
        recorders=[FakeScreenRecorder(begin_error=OSError("no display"))],
    )
    router.on_suite_start("ui-suite", 1)
    router.on_test_start("id-1", "test_a")

    router.on_test_failure(
        TestExecutionFactory.build(
            execution_id="id-1", name="test_a", status=TestStatus.FAILURE
        ),
        FakeDriverSession(),
    )

    assert len(_files(results_dir / "screenshots")) == 1
    assert _files(results_dir / "videos") == []


def test_events_never_raise(
    router: LifecycleRouter, caplog: pytest.LogCaptureFixture
) -> None:
    """Internal errors are logged instead of propagating to the runner."""
    router.capturer = Mock(spec=DiagnosticsCapturer)
    router.capturer.capture_execution_logs.side_effect = RuntimeError("disk full")
    router.on_test_start("id-1", "test_a")

    router.on_test_failure(
        TestExecutionFactory.build(
            execution_id="id-1", name="test_a", status=TestStatus.FAILURE
        ),
        None,
    )

    assert "Artifact capture failed while handling failure of test_a" in caplog.text


def test_suite_finish_summary(
    router: LifecycleRouter, store: ArtifactStore, caplog: pytest.LogCaptureFixture
) -> None:
    """Counts outcomes, logs the summary and leaves a history marker."""
    outcomes = [
        (TestStatus.SUCCESS, None),
        (TestStatus.FAILURE, None),
        (TestStatus.SKIPPED, FailureCauseFactory.build()),
    ]
    for index, (status, failure) in enumerate(outcomes):
        execution_id = f"id-{index}"
        router.on_test_start(execution_id, f"test_{index}")
        execution = TestExecutionFactory.build(
            execution_id=execution_id,
            name=f"test_{index}",
            status=status,
            failure=failure,
        )
        match status:
            case TestStatus.SUCCESS:
                router.on_test_success(execution)
            case TestStatus.FAILURE:
                router.on_test_failure(execution, None)
            case TestStatus.SKIPPED:
                router.on_test_skip(execution, None)

    summary = router.on_suite_finish()

    assert (summary.passed, summary.failed, summary.skipped, summary.broken) == (
        1,
        1,
        1,
        1,
    )
    assert summary.total == 3
    assert (store.history_dir / MARKER_FILE).exists()
    assert "Test Suite Finished: ui-suite" in caplog.text


def test_suite_finish_discards_leftover_recording(
    router: LifecycleRouter, results_dir: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """A test that never reported an outcome has its video discarded."""
    router.on_test_start("id-1", "test_hung")

    router.on_suite_finish()

    assert _files(results_dir / "videos") == []
    assert router.recorder.active is None
    assert "test_hung never reported an outcome" in caplog.text


def test_from_config_with_unknown_recorder(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """An unknown recorder key disables video without failing the router."""
    config = CaptureConfig(
        results_dir=tmp_path / "allure-results",
        report_dir=tmp_path / "allure-report",
        recorder="does-not-exist",
    )

    router = LifecycleRouter.from_config(config, NullAttachmentSink())
    outcome = router.recorder.start("id-1", "test_a")

    assert outcome.status == "failed"
    assert "Recorder 'does-not-exist' not found" in (outcome.reason or "")
    assert "Video recording unavailable" in caplog.text
