"""FFmpeg discovery and command helpers for camera capture."""
from __future__ import annotations

import logging
import os
import platform
from dataclasses import dataclass

from scancore.paths import BUNDLED_BIN_DIR
from scanner.services.camera_device import VideoDevice
from scanner.services.camera_enumerator import append_camera_debug_log

LOG = logging.getLogger(__name__)


def ffmpeg_debug_enabled() -> bool:
    """Enable verbose ffmpeg logs only when explicitly requested."""
    return os.environ.get("FFMPEG_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"}


class FfmpegNotFoundError(RuntimeError):
    """Raised when FFmpeg cannot be located."""


@dataclass(frozen=True)
class VideoConstraints:
    width: int = 640
    height: int = 480
    fps: int = 30
    facing_mode: str = "environment"

    @property
    def frame_size(self) -> int:
        return self.width * self.height * 3


def resolve_ffmpeg_path() -> str:
    env_path = os.environ.get("FFMPEG_PATH")
    if env_path and os.path.isfile(env_path):
        return env_path
    exe_name = "ffmpeg.exe" if platform.system() == "Windows" else "ffmpeg"
    bundled = BUNDLED_BIN_DIR / exe_name
    if bundled.exists():
        return str(bundled)
    return "ffmpeg"


def _input_args(device: VideoDevice, constraints: VideoConstraints, allow_input_tuning: bool) -> list[str]:
    if device.backend == "avfoundation":
        # AVFoundation refuses to open without an explicit frame rate.
        args = ["-f", "avfoundation", "-framerate", str(constraints.fps)]
        if allow_input_tuning:
            args.extend(["-video_size", f"{constraints.width}x{constraints.height}"])
        args.extend(["-i", f"{device.id}:none"])
        return args

    args = ["-f", device.backend]
    if device.backend == "dshow":
        args.extend(["-rtbufsize", "64M"])
    if allow_input_tuning:
        args.extend(["-video_size", f"{constraints.width}x{constraints.height}"])
        args.extend(["-framerate", str(constraints.fps)])
    args.extend(["-i", device.id])
    return args


def build_ffmpeg_capture_command(
    device: VideoDevice,
    constraints: VideoConstraints,
    *,
    allow_input_tuning: bool = True,
) -> list[str]:
    ffmpeg_loglevel = "verbose" if ffmpeg_debug_enabled() else "warning"
    cmd = [
        resolve_ffmpeg_path(),
        "-hide_banner",
        "-nostdin",
        "-loglevel",
        ffmpeg_loglevel,
        "-fflags",
        "nobuffer",
        "-flags",
        "low_delay",
    ]
    cmd.extend(_input_args(device, constraints, allow_input_tuning))
    cmd.extend(["-vf", f"scale={constraints.width}:{constraints.height}:flags=fast_bilinear"])
    cmd.extend([
        "-r",
        str(constraints.fps),
        "-pix_fmt",
        "bgr24",
        "-f",
        "rawvideo",
        "pipe:1",
    ])
    LOG.info("[CAM_CAPTURE] ffmpeg command: %s", cmd)
    append_camera_debug_log("CAM_CAPTURE_CMD", " ".join(cmd))
    return cmd
