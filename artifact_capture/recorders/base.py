"""Abstract base class for screen recorder backends."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path


class RecorderUnavailableError(Exception):
    """Raised when the screen recording device cannot be acquired."""


class ScreenRecorder(ABC):
    """Abstract screen recorder bound to a single recording.

    A recorder instance is created per test by the recorder manifest's
    factory. ``begin`` acquires the screen device and starts writing,
    ``end`` releases it and reports which files were produced.
    """

    @property
    @abstractmethod
    def extension(self) -> str:
        """File extension of produced videos, without the leading dot."""

    @property
    @abstractmethod
    def mime_type(self) -> str:
        """MIME type of produced videos."""

    @abstractmethod
    def begin(self, output: Path) -> None:
        """Start recording the default screen into ``output``.

        Args:
            output: Path of the video file to produce

        Raises:
            RecorderUnavailableError: If no display or encoder is available

        """

    @abstractmethod
    def end(self) -> Sequence[Path]:
        """Stop recording and release the screen device.

        Returns:
            Video files produced by this recording (usually one, empty if the
            recorder produced nothing)

        """
