"""On-disk layout and naming of captured artifacts."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from artifact_capture.models.capture import Artifact, ArtifactKind
from artifact_capture.sinks import AttachmentSink

log = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
HISTORY_DIR = "history"
ENVIRONMENT_FILE = "environment.properties"

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_filename(name: str, max_length: int = 100) -> str:
    """Make a test name safe to use as a file name component."""
    sanitized = _UNSAFE_CHARS.sub("", name).replace(" ", "_")
    return sanitized[:max_length] or "unnamed"


@dataclass(kw_only=True)
class ArtifactStore:
    """Owns the results directory and writes artifacts into it.

    Layout::

        <results_dir>/environment.properties
        <results_dir>/history/
        <results_dir>/screenshots/<test>_<yyyyMMdd_HHmmss>.png
        <results_dir>/logs/<test>_<qualifier>_<yyyyMMdd_HHmmss>.log
        <results_dir>/videos/<test>_<yyyyMMdd_HHmmss>.<ext>

    Every written artifact is also handed to the attachment sink. Sink
    failures are logged and never undo the file write.
    """

    results_dir: Path
    sink: AttachmentSink
    clock: Callable[[], datetime] = field(default=datetime.now, repr=False)

    @property
    def history_dir(self) -> Path:
        """History directory inside the results directory."""
        return self.results_dir / HISTORY_DIR

    @property
    def environment_file(self) -> Path:
        """Environment snapshot read by the report dashboard."""
        return self.results_dir / ENVIRONMENT_FILE

    def directory(self, kind: ArtifactKind) -> Path:
        """Subdirectory holding artifacts of the given kind."""
        return self.results_dir / kind.value

    def prepare_layout(self) -> None:
        """Create the artifact subdirectories."""
        for kind in ArtifactKind:
            self.directory(kind).mkdir(parents=True, exist_ok=True)

    def artifact_path(
        self,
        kind: ArtifactKind,
        test_name: str,
        extension: str,
        qualifier: str | None = None,
    ) -> Path:
        """Timestamp-qualified path for a new artifact."""
        parts = [sanitize_filename(test_name)]
        if qualifier:
            parts.append(qualifier)
        parts.append(self.clock().strftime(TIMESTAMP_FORMAT))
        return self.directory(kind) / f"{'_'.join(parts)}.{extension}"

    def write(
        self,
        *,
        kind: ArtifactKind,
        test_name: str,
        label: str,
        mime_type: str,
        extension: str,
        body: bytes | str,
        qualifier: str | None = None,
    ) -> Artifact:
        """Write a new artifact file and register it with the sink."""
        path = self.artifact_path(kind, test_name, extension, qualifier)
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(body, bytes):
            path.write_bytes(body)
        else:
            path.write_text(body, encoding="utf-8")

        artifact = Artifact(kind=kind, path=path, label=label, mime_type=mime_type)
        self.register(artifact, body)
        return artifact

    def register(self, artifact: Artifact, body: bytes | str) -> None:
        """Hand an already written artifact to the attachment sink."""
        try:
            self.sink.attach(artifact.label, artifact.mime_type, body, artifact.extension)
        except Exception as e:
            log.warning(
                "Attachment skipped for %s (file saved locally): %s",
                artifact.path.name,
                e,
            )
