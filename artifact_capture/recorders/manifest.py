"""Recorder manifest definition for the plugin system."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel

from artifact_capture.recorders.base import ScreenRecorder

ConfigT = TypeVar("ConfigT", bound=BaseModel)


@dataclass(frozen=True, kw_only=True)
class RecorderManifest(Generic[ConfigT]):
    """Manifest describing a screen recorder plugin.

    Holds the recorder's configuration class and the factory that builds a
    fresh recorder for each recording, so backends are loaded lazily by key.
    """

    config_cls: type[ConfigT]
    recorder_factory: Callable[[ConfigT], ScreenRecorder]
