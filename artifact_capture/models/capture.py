"""Models for capture decisions and captured artifacts."""

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Literal


class CapturePolicy(StrEnum):
    """Which diagnostic artifacts to retain for a test outcome."""

    CAPTURE_AND_RETAIN = "capture-and-retain"
    RECORD_ONLY_DISCARD_ON_SUCCESS = "record-only-discard-on-success"
    SKIP_CAPTURE = "skip-capture"


class ArtifactKind(StrEnum):
    """Kind of artifact; the value is its subdirectory in the results dir."""

    SCREENSHOT = "screenshots"
    LOG = "logs"
    VIDEO = "videos"


@dataclass(frozen=True, kw_only=True)
class Artifact:
    """A file written to the results directory and registered for the report."""

    kind: ArtifactKind
    path: Path
    label: str
    mime_type: str

    @property
    def extension(self) -> str:
        """File extension without the leading dot."""
        return self.path.suffix.lstrip(".")


@dataclass(frozen=True, kw_only=True)
class CaptureOutcome:
    """Result of a single best-effort capture step.

    Capture steps never raise; they report what happened through this value
    so the caller can log and carry on.
    """

    step: str
    status: Literal["captured", "skipped", "failed"]
    artifact: Artifact | None = None
    reason: str | None = None

    @classmethod
    def captured(cls, step: str, artifact: Artifact | None = None) -> "CaptureOutcome":
        """Step succeeded, optionally producing an artifact."""
        return cls(step=step, status="captured", artifact=artifact)

    @classmethod
    def skipped(cls, step: str, reason: str) -> "CaptureOutcome":
        """Step had nothing to do."""
        return cls(step=step, status="skipped", reason=reason)

    @classmethod
    def failed(cls, step: str, reason: str) -> "CaptureOutcome":
        """Step was attempted and abandoned."""
        return cls(step=step, status="failed", reason=reason)
