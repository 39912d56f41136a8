"""ffmpeg recorder manifest."""

from artifact_capture.recorders.ffmpeg.config import FfmpegRecorderConfig
from artifact_capture.recorders.ffmpeg.recorder import FfmpegScreenRecorder
from artifact_capture.recorders.manifest import RecorderManifest

ffmpeg_manifest = RecorderManifest(
    config_cls=FfmpegRecorderConfig,
    recorder_factory=FfmpegScreenRecorder.from_config,
)
