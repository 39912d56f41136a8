"""Configuration for the ffmpeg screen recorder."""

from collections.abc import Mapping
from typing import Literal, TypeAlias

from pydantic import BaseModel, Field

Container: TypeAlias = Literal["mp4", "avi", "webm", "mkv"]

CONTAINER_MIME_TYPES: Mapping[Container, str] = {
    "mp4": "video/mp4",
    "avi": "video/x-msvideo",
    "webm": "video/webm",
    "mkv": "video/x-matroska",
}


class FfmpegRecorderConfig(BaseModel):
    """Configuration for the ffmpeg screen recorder."""

    executable: str = "ffmpeg"
    # None picks the platform default (x11grab, gdigrab or avfoundation)
    input_format: str | None = None
    input_device: str | None = None
    frame_rate: int = Field(default=15, gt=0)
    # Constant rate factor, lower is better quality
    quality: int = Field(default=23, ge=0, le=51)
    codec: str = "libx264"
    container: Container = "mp4"
    startup_grace: float = Field(default=0.5, ge=0)
    stop_timeout: float = Field(default=10.0, gt=0)
