"""ffmpeg recorder module."""

from artifact_capture.recorders.ffmpeg.config import FfmpegRecorderConfig
from artifact_capture.recorders.ffmpeg.manifest import ffmpeg_manifest
from artifact_capture.recorders.ffmpeg.recorder import FfmpegScreenRecorder

__all__ = ["FfmpegRecorderConfig", "FfmpegScreenRecorder", "ffmpeg_manifest"]
