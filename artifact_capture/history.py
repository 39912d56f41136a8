"""Cross-run history and per-run environment metadata for the dashboard."""

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from artifact_capture.models.capture import CaptureOutcome
from artifact_capture.models.environment import EnvironmentSnapshot
from artifact_capture.store import ArtifactStore

log = logging.getLogger(__name__)

MARKER_FILE = "history-marker.txt"
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _escape(value: object) -> str:
    return (
        str(value)
        .replace("\\", "\\\\")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def render_properties(snapshot: EnvironmentSnapshot) -> str:
    """Render a snapshot as a flat key=value properties document."""
    sections = [
        (
            "Environment Information",
            {
                "Environment": snapshot.environment,
                "Base.URL": snapshot.base_url,
                "Browser": snapshot.browser.upper(),
                "Headless.Mode": "Yes" if snapshot.headless else "No",
                "Implicit.Wait": f"{snapshot.implicit_wait_seconds} seconds",
                "Page.Load.Timeout": f"{snapshot.page_load_timeout_seconds} seconds",
            },
        ),
        (
            "System Information",
            {
                "OS": snapshot.host.os_name,
                "OS.Version": snapshot.host.os_version,
                "Python.Version": snapshot.host.python_version,
                "User": snapshot.host.user,
                "Host": snapshot.host.hostname,
            },
        ),
        (
            "Test Suite Information",
            {
                "Suite.Name": snapshot.suite_name,
                "Total.Tests": snapshot.total_tests,
            },
        ),
    ]

    lines = [f"# Generated: {snapshot.generated_at.strftime(TIME_FORMAT)}"]
    for title, properties in sections:
        lines.extend(["", f"# {title}"])
        lines.extend(f"{key}={_escape(value)}" for key, value in properties.items())
    return "\n".join(lines) + "\n"


@dataclass(frozen=True, kw_only=True)
class HistoryManager:
    """Carries report history forward and records the run environment."""

    store: ArtifactStore
    history_source: Path
    clock: Callable[[], datetime] = field(default=datetime.now, repr=False)

    def migrate_history(self) -> CaptureOutcome:
        """Replace the results history with the previous report's history.

        A missing or empty source is normal (trends start fresh) and leaves
        the destination untouched.
        """
        step = "history-migration"
        source = self.history_source
        destination = self.store.history_dir
        log.info("Looking for report history in %s", source)

        try:
            if not source.is_dir() or not any(source.iterdir()):
                log.info("No previous report history found, trends start fresh")
                return CaptureOutcome.skipped(step, f"no history at {source}")

            if source.resolve() == destination.resolve():
                log.info("Report history already in place at %s", destination)
                return CaptureOutcome.skipped(step, "history source is the destination")

            if destination.exists():
                shutil.rmtree(destination)
            shutil.copytree(source, destination)
        except OSError as e:
            log.error("Failed to copy report history: %s", e)
            return CaptureOutcome.failed(step, str(e))

        log.info("Report history copied from %s", source)
        return CaptureOutcome.captured(step)

    def write_environment_snapshot(self, snapshot: EnvironmentSnapshot) -> CaptureOutcome:
        """Write environment.properties, replacing any earlier one."""
        step = "environment-snapshot"
        path = self.store.environment_file
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(render_properties(snapshot), encoding="utf-8")
        except OSError as e:
            log.error("Failed to write %s: %s", path.name, e)
            return CaptureOutcome.failed(step, str(e))

        log.info("Environment properties written to %s", path)
        return CaptureOutcome.captured(step)

    def place_history_marker(self) -> CaptureOutcome:
        """Make sure a history directory exists for the next run."""
        step = "history-marker"
        history_dir = self.store.history_dir
        try:
            history_dir.mkdir(parents=True, exist_ok=True)
            (history_dir / MARKER_FILE).write_text(
                f"Report History Marker\nCreated: {self.clock().strftime(TIME_FORMAT)}\n",
                encoding="utf-8",
            )
        except OSError as e:
            log.error("Failed to place history marker: %s", e)
            return CaptureOutcome.failed(step, str(e))

        log.info("History directory prepared for next run")
        return CaptureOutcome.captured(step)
