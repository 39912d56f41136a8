"""Screen recorder backed by an ffmpeg subprocess."""

import logging
import os
import shutil
import subprocess
import sys
import tempfile
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

from artifact_capture.recorders.base import RecorderUnavailableError, ScreenRecorder
from artifact_capture.recorders.ffmpeg.config import (
    CONTAINER_MIME_TYPES,
    FfmpegRecorderConfig,
)

log = logging.getLogger(__name__)

PLATFORM_INPUT_FORMATS: Mapping[str, str] = {
    "linux": "x11grab",
    "win32": "gdigrab",
    "darwin": "avfoundation",
}

PLATFORM_INPUT_DEVICES: Mapping[str, str] = {
    "win32": "desktop",
    "darwin": "1:none",
}


@dataclass(kw_only=True)
class FfmpegScreenRecorder(ScreenRecorder):
    """Records the default screen by running ffmpeg until asked to quit."""

    config: FfmpegRecorderConfig
    platform: str = sys.platform
    environ: Mapping[str, str] = field(default_factory=lambda: os.environ, repr=False)
    _process: "subprocess.Popen[bytes] | None" = field(
        default=None, init=False, repr=False
    )
    _output: Path | None = field(default=None, init=False)
    # ffmpeg error output, spooled to disk rather than a pipe
    _stderr: IO[bytes] | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_config(cls, config: FfmpegRecorderConfig) -> "FfmpegScreenRecorder":
        """Create a recorder for the current platform."""
        return cls(config=config)

    @property
    def extension(self) -> str:
        """Container extension, e.g. ``mp4``."""
        return self.config.container

    @property
    def mime_type(self) -> str:
        """MIME type of the configured container."""
        return CONTAINER_MIME_TYPES[self.config.container]

    def build_command(self, output: Path) -> Sequence[str]:
        """Build the ffmpeg command line recording the screen into ``output``."""
        platform_key = "linux" if self.platform.startswith("linux") else self.platform
        input_format = self.config.input_format or PLATFORM_INPUT_FORMATS.get(
            platform_key
        )
        if input_format is None:
            raise RecorderUnavailableError(
                f"No screen capture input known for platform '{self.platform}'"
            )

        input_device = self.config.input_device or self._default_device(platform_key)

        return [
            self.config.executable,
            "-y",
            "-nostats",
            "-loglevel",
            "error",
            "-f",
            input_format,
            "-framerate",
            str(self.config.frame_rate),
            "-i",
            input_device,
            "-c:v",
            self.config.codec,
            "-crf",
            str(self.config.quality),
            "-pix_fmt",
            "yuv420p",
            str(output),
        ]

    def begin(self, output: Path) -> None:
        """Start ffmpeg and make sure it survives its startup grace period."""
        if self._process is not None:
            raise RuntimeError("Recording already in progress")

        command = self.build_command(output)
        if shutil.which(self.config.executable) is None:
            raise RecorderUnavailableError(
                f"ffmpeg executable not found: {self.config.executable}"
            )

        output.parent.mkdir(parents=True, exist_ok=True)
        stderr = tempfile.TemporaryFile()
        try:
            process = subprocess.Popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=stderr,
            )
        except OSError as e:
            stderr.close()
            raise RecorderUnavailableError(f"Cannot start ffmpeg: {e}") from e

        try:
            process.wait(timeout=self.config.startup_grace)
        except subprocess.TimeoutExpired:
            self._process = process
            self._output = output
            self._stderr = stderr
            log.debug("ffmpeg recording into %s (pid=%s)", output, process.pid)
            return

        with stderr:
            stderr.seek(0)
            message = stderr.read().decode(errors="replace").strip()
        raise RecorderUnavailableError(
            f"ffmpeg exited with code {process.returncode}: {message}"
        )

    def end(self) -> Sequence[Path]:
        """Ask ffmpeg to quit, killing it if it does not finish in time."""
        process, output, stderr = self._process, self._output, self._stderr
        self._process = None
        self._output = None
        self._stderr = None
        if process is None or output is None:
            return []

        try:
            process.communicate(input=b"q", timeout=self.config.stop_timeout)
        except subprocess.TimeoutExpired:
            log.warning(
                "ffmpeg did not stop within %.1fs, killing it", self.config.stop_timeout
            )
            process.kill()
            process.communicate()
        finally:
            if stderr is not None:
                stderr.close()

        if output.exists() and output.stat().st_size > 0:
            return [output]
        return []

    def _default_device(self, platform_key: str) -> str:
        if platform_key != "linux":
            return PLATFORM_INPUT_DEVICES[platform_key]

        display = self.environ.get("DISPLAY")
        if not display:
            raise RecorderUnavailableError("No display available ($DISPLAY is not set)")
        return display
