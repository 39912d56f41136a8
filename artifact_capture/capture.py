"""Capture screenshots and logs for a finished test."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from artifact_capture.drivers.base import DriverSession
from artifact_capture.models.capture import ArtifactKind, CaptureOutcome
from artifact_capture.models.console import ConsoleEntry, ConsoleSummary
from artifact_capture.models.execution import FailureCause, TestExecution
from artifact_capture.store import ArtifactStore

log = logging.getLogger(__name__)

RULE = "=" * 65
THIN_RULE = "-" * 65
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

STATUS_LABELS = {
    "pass": "SUCCESS",
    "fail": "FAILURE",
    "skip-clean": "SKIPPED",
    "skip-broken": "SKIPPED (broken)",
}


def _banner(title: str, test_name: str | None = None) -> list[str]:
    lines = [RULE, f"  {title}"]
    if test_name is not None:
        lines.append(f"  Test: {test_name}")
    lines.extend([RULE, ""])
    return lines


def _format_millis(millis: int) -> str:
    return datetime.fromtimestamp(millis / 1000).strftime(TIME_FORMAT)


def format_console_log(
    test_name: str, entries: Sequence[ConsoleEntry]
) -> tuple[str, ConsoleSummary]:
    """Render console entries with a severity summary.

    Returns:
        The log text and the summary it reports

    """
    summary = ConsoleSummary.tally(entries)
    lines = _banner("BROWSER CONSOLE LOGS", test_name)
    lines.extend(
        f"[{entry.level.name:<7}] {entry.timestamp.strftime(TIME_FORMAT)}"
        f" - {entry.message}"
        for entry in entries
    )
    lines.extend(
        [
            "",
            RULE,
            "  SUMMARY",
            RULE,
            f"  Total Logs: {summary.total}",
            f"  Errors: {summary.errors}",
            f"  Warnings: {summary.warnings}",
            f"  Info: {summary.info}",
            RULE,
        ]
    )
    return "\n".join(lines) + "\n", summary


def format_execution_log(execution: TestExecution) -> str:
    """Render what the runner knows about a test execution."""
    lines = _banner("TEST EXECUTION LOGS", execution.name)
    lines.extend(
        [
            "Test Information:",
            f"  * Test Name: {execution.name}",
            f"  * Test Class: {execution.class_name}",
            f"  * Status: {STATUS_LABELS[execution.outcome]}",
            f"  * Start Time: {_format_millis(execution.start_millis)}",
            f"  * End Time: {_format_millis(execution.end_millis)}",
            f"  * Duration: {execution.duration_seconds} seconds",
        ]
    )

    if execution.parameters:
        lines.extend(["", "Test Parameters:"])
        lines.extend(
            f"  * {name}: {value}" for name, value in execution.parameters.items()
        )

    if execution.messages:
        lines.extend(["", "Logged Messages:"])
        lines.extend(f"  * {message}" for message in execution.messages)

    lines.extend(
        [
            "",
            "Test Context:",
            f"  * Suite Name: {execution.suite_name}",
            f"  * Execution Id: {execution.execution_id}",
            f"  * Host: {execution.host or 'N/A'}",
        ]
    )
    return "\n".join(lines) + "\n"


def format_failure_details(failure: FailureCause) -> str:
    """Render an exception, its frames and its nested cause."""
    lines = _banner("EXCEPTION DETAILS")
    lines.extend(
        [
            f"Exception Type: {failure.type_name}",
            f"Message: {failure.message}",
            "",
            "Stack Trace:",
            THIN_RULE,
        ]
    )
    lines.extend(f"  at {frame}" for frame in failure.frames)

    if failure.cause is not None:
        cause = failure.cause
        lines.extend(
            [
                "",
                f"Caused by: {cause.type_name}",
                f"Cause Message: {cause.message}",
                "",
                "Cause Stack Trace:",
                THIN_RULE,
            ]
        )
        lines.extend(f"  at {frame}" for frame in cause.frames)
    return "\n".join(lines) + "\n"


@dataclass(frozen=True, kw_only=True)
class DiagnosticsCapturer:
    """Writes screenshots and logs through the artifact store.

    Every capture is independent and best-effort: errors are logged and
    reported as a failed outcome, never raised.
    """

    store: ArtifactStore

    def capture_screenshot(self, session: DriverSession, test_name: str) -> CaptureOutcome:
        """Capture a full-page PNG from the browser."""
        step = "screenshot"
        try:
            png = session.take_full_page_screenshot()
            artifact = self.store.write(
                kind=ArtifactKind.SCREENSHOT,
                test_name=test_name,
                label=f"Screenshot - {test_name}",
                mime_type="image/png",
                extension="png",
                body=png,
            )
        except Exception as e:
            log.error("Failed to capture screenshot for %s: %s", test_name, e)
            return CaptureOutcome.failed(step, str(e))

        log.info("Screenshot captured: %s", artifact.path.name)
        return CaptureOutcome.captured(step, artifact)

    def capture_browser_console_logs(
        self, session: DriverSession, test_name: str
    ) -> CaptureOutcome:
        """Capture the browser console buffer with a severity summary."""
        step = "browser-logs"
        try:
            content, summary = format_console_log(test_name, session.console_entries())
            artifact = self.store.write(
                kind=ArtifactKind.LOG,
                test_name=test_name,
                label=f"Browser Console Logs - {test_name}",
                mime_type="text/plain",
                extension="log",
                body=content,
                qualifier="browser",
            )
        except Exception as e:
            log.error("Failed to capture browser logs for %s: %s", test_name, e)
            return CaptureOutcome.failed(step, str(e))

        log.info(
            "Browser logs captured: %s (errors=%d warnings=%d info=%d)",
            artifact.path.name,
            summary.errors,
            summary.warnings,
            summary.info,
        )
        return CaptureOutcome.captured(step, artifact)

    def capture_execution_logs(self, execution: TestExecution) -> CaptureOutcome:
        """Capture the runner's view of the execution."""
        step = "execution-logs"
        try:
            artifact = self.store.write(
                kind=ArtifactKind.LOG,
                test_name=execution.name,
                label=f"Execution Logs - {execution.name}",
                mime_type="text/plain",
                extension="log",
                body=format_execution_log(execution),
                qualifier="execution",
            )
        except Exception as e:
            log.error("Failed to capture execution logs for %s: %s", execution.name, e)
            return CaptureOutcome.failed(step, str(e))

        log.info("Execution logs captured: %s", artifact.path.name)
        return CaptureOutcome.captured(step, artifact)

    def attach_failure_details(self, execution: TestExecution) -> CaptureOutcome:
        """Attach the failure cause of a failed or broken test."""
        step = "failure-details"
        if execution.failure is None:
            return CaptureOutcome.skipped(step, "no failure cause")

        try:
            artifact = self.store.write(
                kind=ArtifactKind.LOG,
                test_name=execution.name,
                label=f"Exception Details - {execution.name}",
                mime_type="text/plain",
                extension="txt",
                body=format_failure_details(execution.failure),
                qualifier="exception",
            )
        except Exception as e:
            log.error("Failed to attach failure details for %s: %s", execution.name, e)
            return CaptureOutcome.failed(step, str(e))

        return CaptureOutcome.captured(step, artifact)
