"""Lifetime management of the single screen recording session."""

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from artifact_capture.models.capture import Artifact, ArtifactKind, CaptureOutcome
from artifact_capture.recorders.base import ScreenRecorder
from artifact_capture.store import ArtifactStore

log = logging.getLogger(__name__)

STEP_START = "video-start"
STEP_STOP = "video-stop"


@dataclass(kw_only=True)
class RecordingSession:
    """One active screen recording bound to a single test execution."""

    execution_id: str
    test_name: str
    started_at: datetime
    recorder: ScreenRecorder = field(repr=False)
    output: Path | None = None


@dataclass(kw_only=True)
class VideoRecorderManager:
    """Starts and stops screen recordings, keeping at most one active.

    The screen is a single device, so a ``start`` while a session is active
    force-stops the stale session and discards its video. ``stop`` only acts
    on the session owned by the given execution.
    """

    store: ArtifactStore
    recorder_factory: Callable[[], ScreenRecorder]
    _session: RecordingSession | None = field(default=None, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def active(self) -> RecordingSession | None:
        """The active session, if any."""
        return self._session

    def start(self, execution_id: str, test_name: str) -> CaptureOutcome:
        """Begin recording the screen for a test.

        Never raises: when the recorder cannot be acquired the failure is
        reported in the outcome and no session is left active.
        """
        with self._lock:
            if self._session is not None:
                stale = self._session
                log.warning(
                    "Recording for %s still active when %s started, discarding it",
                    stale.test_name,
                    test_name,
                )
                self._release(stale, discard=True)

            try:
                recorder = self.recorder_factory()
                output = self.store.artifact_path(
                    ArtifactKind.VIDEO, test_name, recorder.extension
                )
                recorder.begin(output)
            except Exception as e:
                log.error("Failed to start video recording for %s: %s", test_name, e)
                return CaptureOutcome.failed(STEP_START, str(e))

            self._session = RecordingSession(
                execution_id=execution_id,
                test_name=test_name,
                started_at=datetime.now(),
                recorder=recorder,
            )
            log.info("Video recording started for: %s", test_name)
            return CaptureOutcome.captured(STEP_START)

    def stop(self, execution_id: str, *, discard: bool) -> CaptureOutcome:
        """Stop the execution's recording, deleting or keeping the video."""
        with self._lock:
            session = self._session
            if session is None:
                return CaptureOutcome.skipped(STEP_STOP, "no active recording")
            if session.execution_id != execution_id:
                return CaptureOutcome.skipped(
                    STEP_STOP, f"active recording belongs to {session.test_name}"
                )
            return self._release(session, discard=discard)

    def _release(self, session: RecordingSession, *, discard: bool) -> CaptureOutcome:
        try:
            created = session.recorder.end()
            if not created:
                return CaptureOutcome.skipped(STEP_STOP, "recorder produced no video")

            session.output = created[0]
            if discard:
                _delete(created)
                log.info("Video deleted (test passed/skipped): %s", session.test_name)
                return CaptureOutcome.captured(STEP_STOP)

            artifact = Artifact(
                kind=ArtifactKind.VIDEO,
                path=session.output,
                label=f"Video Recording - {session.test_name}",
                mime_type=session.recorder.mime_type,
            )
            self.store.register(artifact, session.output.read_bytes())
            log.info("Video saved and attached: %s", session.output.name)
            return CaptureOutcome.captured(STEP_STOP, artifact)
        except Exception as e:
            log.error("Failed to stop video recording for %s: %s", session.test_name, e)
            return CaptureOutcome.failed(STEP_STOP, str(e))
        finally:
            self._session = None


def _delete(paths: Sequence[Path]) -> None:
    for path in paths:
        path.unlink(missing_ok=True)
