"""Loading of screen recorders from entry points."""

from collections.abc import Callable, Mapping
from importlib.metadata import entry_points
from typing import Any

from artifact_capture.recorders.base import ScreenRecorder
from artifact_capture.recorders.manifest import RecorderManifest

ENTRY_POINT_GROUP = "artifact_capture.recorders"


class RecorderNotFoundError(Exception):
    """Raised when a recorder is not found."""


def load_recorder_manifest(key: str) -> RecorderManifest[Any]:
    """Load a recorder manifest by key.

    Args:
        key: The recorder key as registered in pyproject.toml (e.g., "ffmpeg")

    Returns:
        The recorder manifest instance

    Raises:
        RecorderNotFoundError: If no recorder with the given key is found

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == key:
            manifest: RecorderManifest[Any] = entry.load()
            return manifest

    available = [e.name for e in entries]
    raise RecorderNotFoundError(
        f"Recorder '{key}' not found. Available recorders: {available}"
    )


def recorder_factory(
    key: str, options: Mapping[str, Any]
) -> Callable[[], ScreenRecorder]:
    """Resolve a recorder key and options into a zero-argument factory.

    The options are validated once, up front, by the manifest's config class.
    """
    manifest = load_recorder_manifest(key)
    config = manifest.config_cls(**options)
    return lambda: manifest.recorder_factory(config)
