"""Lifecycle event router coordinating artifact capture for a test suite."""

import logging
import threading
from collections import Counter
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from artifact_capture.capture import DiagnosticsCapturer
from artifact_capture.classifier import classify
from artifact_capture.config import CaptureConfig
from artifact_capture.drivers.base import DriverSession
from artifact_capture.history import HistoryManager
from artifact_capture.models.capture import CaptureOutcome, CapturePolicy
from artifact_capture.models.environment import EnvironmentSnapshot, HostFacts
from artifact_capture.models.execution import Outcome, TestExecution
from artifact_capture.recorders.base import RecorderUnavailableError, ScreenRecorder
from artifact_capture.recorders.loading import RecorderNotFoundError, recorder_factory
from artifact_capture.recording import VideoRecorderManager
from artifact_capture.sinks import AttachmentSink
from artifact_capture.store import ArtifactStore
from artifact_capture.summary import SuiteSummary, log_suite_summary

log = logging.getLogger(__name__)


@contextmanager
def _never_raise(event: str) -> Iterator[None]:
    try:
        yield
    except Exception:
        log.exception("Artifact capture failed while handling %s", event)


def _resolve_recorder(
    key: str, options: Mapping[str, Any]
) -> Callable[[], ScreenRecorder]:
    try:
        return recorder_factory(key, options)
    except (RecorderNotFoundError, ValidationError) as e:
        log.error("Video recording unavailable: %s", e)
        reason = str(e)

        def _unavailable() -> ScreenRecorder:
            raise RecorderUnavailableError(reason)

        return _unavailable


@dataclass(frozen=True, kw_only=True)
class TestState:
    """Capture state of one in-flight test."""

    __test__ = False

    execution_id: str
    test_name: str
    recording: bool


@dataclass(kw_only=True)
class LifecycleRouter:
    """Routes test lifecycle events to the capture components.

    Per-test state is keyed by execution id, so events of different tests
    never overwrite each other's state. Video recording still assumes one
    test in flight at a time since the screen is a single device. No public
    method raises: capture problems are logged and the test result stands.
    """

    config: CaptureConfig
    store: ArtifactStore
    capturer: DiagnosticsCapturer
    recorder: VideoRecorderManager
    history: HistoryManager
    host_facts: Callable[[], HostFacts] = field(default=HostFacts.collect, repr=False)
    _headless: bool = field(default=False, init=False)
    _suite_name: str = field(default="", init=False)
    _tests: dict[str, TestState] = field(default_factory=dict, init=False, repr=False)
    _outcomes: Counter[Outcome] = field(default_factory=Counter, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @classmethod
    def from_config(cls, config: CaptureConfig, sink: AttachmentSink) -> "LifecycleRouter":
        """Wire all capture components from a configuration."""
        store = ArtifactStore(results_dir=config.results_dir, sink=sink)
        return cls(
            config=config,
            store=store,
            capturer=DiagnosticsCapturer(store=store),
            recorder=VideoRecorderManager(
                store=store,
                recorder_factory=_resolve_recorder(
                    config.recorder, config.recorder_options
                ),
            ),
            history=HistoryManager(store=store, history_source=config.history_source),
        )

    @property
    def headless(self) -> bool:
        """Whether video capture is disabled for this suite."""
        return self._headless

    def on_suite_start(self, suite_name: str, total_tests: int) -> None:
        """Prepare the results directory before any test runs."""
        with _never_raise("suite start"):
            log.info("=" * 80)
            log.info("Test Suite Started: %s", suite_name)
            log.info("=" * 80)
            self._suite_name = suite_name
            self._headless = self._detect_headless()
            if self._headless:
                log.info("Video recording disabled (headless mode detected)")

            try:
                self.store.prepare_layout()
            except OSError as e:
                log.error("Failed to create artifact directories: %s", e)

            self._report(suite_name, [self.history.migrate_history()])
            self._report(suite_name, [self._write_snapshot(suite_name, total_tests)])

    def on_test_start(self, execution_id: str, test_name: str) -> None:
        """Start recording for a test unless running headless."""
        with _never_raise(f"start of {test_name}"):
            log.info("Starting Test: %s", test_name)
            recording = False
            if not self._headless:
                outcome = self.recorder.start(execution_id, test_name)
                self._report(test_name, [outcome])
                recording = outcome.status == "captured"

            with self._lock:
                if execution_id in self._tests:
                    log.warning("Test %s started twice without an outcome", test_name)
                self._tests[execution_id] = TestState(
                    execution_id=execution_id,
                    test_name=test_name,
                    recording=recording,
                )

    def on_test_success(self, execution: TestExecution) -> None:
        """Discard the recording of a passed test."""
        with _never_raise(f"success of {execution.name}"):
            log.info("Test Passed: %s", execution.name)
            self._finish(execution, None)

    def on_test_failure(
        self, execution: TestExecution, session: DriverSession | None
    ) -> None:
        """Capture and keep every artifact of a failed test."""
        with _never_raise(f"failure of {execution.name}"):
            log.info("Test Failed: %s", execution.name)
            self._finish(execution, session)

    def on_test_skip(
        self, execution: TestExecution, session: DriverSession | None
    ) -> None:
        """Treat a broken skip as a failure and a clean skip as a pass."""
        with _never_raise(f"skip of {execution.name}"):
            if execution.failure is not None:
                log.info("Test Skipped due to exception: %s", execution.name)
            else:
                log.info("Test Skipped: %s", execution.name)
            self._finish(execution, session)

    def on_suite_finish(self) -> SuiteSummary:
        """Log the suite summary and leave a history directory behind."""
        with self._lock:
            summary = SuiteSummary.from_outcomes(self._suite_name, self._outcomes)
            leftovers = list(self._tests.values())
            self._tests.clear()

        with _never_raise("suite finish"):
            for state in leftovers:
                log.warning("Test %s never reported an outcome", state.test_name)
                if state.recording:
                    self._report(
                        state.test_name,
                        [self.recorder.stop(state.execution_id, discard=True)],
                    )

            log_suite_summary(log, summary)
            self._report(self._suite_name, [self.history.place_history_marker()])
        return summary

    def _finish(self, execution: TestExecution, session: DriverSession | None) -> None:
        with self._lock:
            self._tests.pop(execution.execution_id, None)
            self._outcomes[execution.outcome] += 1

        policy = classify(execution.status, execution.failure)
        if policy is CapturePolicy.RECORD_ONLY_DISCARD_ON_SUCCESS and self._headless:
            policy = CapturePolicy.SKIP_CAPTURE

        match policy:
            case CapturePolicy.CAPTURE_AND_RETAIN:
                outcomes = self._capture_and_retain(execution, session)
            case CapturePolicy.RECORD_ONLY_DISCARD_ON_SUCCESS:
                outcomes = [self.recorder.stop(execution.execution_id, discard=True)]
            case CapturePolicy.SKIP_CAPTURE:
                outcomes = []

        self._report(execution.name, outcomes)

    def _capture_and_retain(
        self, execution: TestExecution, session: DriverSession | None
    ) -> Sequence[CaptureOutcome]:
        outcomes: list[CaptureOutcome] = []
        if session is not None:
            outcomes.append(self.capturer.capture_screenshot(session, execution.name))
            outcomes.append(
                self.capturer.capture_browser_console_logs(session, execution.name)
            )
        else:
            log.warning(
                "No browser session for %s, skipping screenshot and browser logs",
                execution.name,
            )

        outcomes.append(self.capturer.capture_execution_logs(execution))
        outcomes.append(self.recorder.stop(execution.execution_id, discard=False))
        outcomes.append(self.capturer.attach_failure_details(execution))
        return outcomes

    def _detect_headless(self) -> bool:
        try:
            return bool(self.config.headless)
        except Exception as e:
            log.warning("Could not detect headless mode, assuming GUI mode: %s", e)
            return False

    def _write_snapshot(self, suite_name: str, total_tests: int) -> CaptureOutcome:
        try:
            host = self.host_facts()
        except Exception as e:
            log.error("Failed to collect host facts: %s", e)
            return CaptureOutcome.failed("environment-snapshot", str(e))

        snapshot = EnvironmentSnapshot(
            environment=self.config.environment_label,
            base_url=self.config.base_url,
            browser=self.config.browser,
            headless=self._headless,
            implicit_wait_seconds=self.config.implicit_wait_seconds,
            page_load_timeout_seconds=self.config.page_load_timeout_seconds,
            host=host,
            suite_name=suite_name,
            total_tests=total_tests,
        )
        return self.history.write_environment_snapshot(snapshot)

    def _report(self, subject: str, outcomes: Sequence[CaptureOutcome]) -> None:
        for outcome in outcomes:
            if outcome.status == "failed":
                log.warning(
                    "Capture step %s failed for %s: %s",
                    outcome.step,
                    subject,
                    outcome.reason,
                )
            else:
                log.debug(
                    "Capture step %s %s for %s", outcome.step, outcome.status, subject
                )
