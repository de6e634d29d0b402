"""Platform camera access: enumerate devices, open and close live streams."""
from __future__ import annotations

import logging
import platform
from abc import ABC, abstractmethod
from typing import Callable

from scanner.services.camera_device import VideoDevice
from scanner.services.camera_enumerator import enumerate_video_devices
from scanner.services.capture_pipeline import FfmpegCapture
from scanner.services.ffmpeg_tools import FfmpegNotFoundError, VideoConstraints, resolve_ffmpeg_path
from scanner.services.frame_bus import FrameQueue
from scanner.services.scan_errors import DeviceUnavailable, PermissionDenied

LOG = logging.getLogger(__name__)


class MediaDeviceProvider(ABC):
    @abstractmethod
    def enumerate(self) -> list[VideoDevice]:
        raise NotImplementedError

    @abstractmethod
    def open(
        self,
        device: VideoDevice,
        constraints: VideoConstraints,
        frames: FrameQueue,
        on_ended: Callable[[str], None] | None = None,
    ):
        """Open one live stream publishing into ``frames``; returns the stream object."""
        raise NotImplementedError

    @abstractmethod
    def close(self, stream) -> None:
        raise NotImplementedError


class FfmpegMediaDeviceProvider(MediaDeviceProvider):
    STARTUP_GRACE_SEC = 2.5

    def enumerate(self) -> list[VideoDevice]:
        ffmpeg_path = resolve_ffmpeg_path()
        devices = enumerate_video_devices(ffmpeg_path=ffmpeg_path)
        if not devices and platform.system() != "Windows" and ffmpeg_path != "ffmpeg":
            devices = enumerate_video_devices(ffmpeg_path="ffmpeg")
        return devices

    def open(self, device, constraints, frames, on_ended=None):
        last_reason = "unknown capture failure"
        # Requested size/rate first, then let the driver negotiate its own input format.
        for attempt, allow_input_tuning in enumerate((True, False), start=1):
            capture = FfmpegCapture(device, constraints, frames, allow_input_tuning=allow_input_tuning)
            try:
                capture.start()
            except FfmpegNotFoundError as exc:
                raise DeviceUnavailable(f"ffmpeg executable not found ({exc})") from exc

            if capture.wait_until_streaming(self.STARTUP_GRACE_SEC):
                capture.on_ended = on_ended
                LOG.info("[CAM_CAPTURE] streaming camera=%r attempt=%s", device.id, attempt)
                return capture

            last_reason = capture.last_error or "ffmpeg exited during startup"
            permission_denied = capture.permission_denied
            capture.stop()
            if permission_denied:
                raise PermissionDenied(f"camera access denied for {device.label!r}: {last_reason}")
            LOG.warning("[CAM_CAPTURE] retry camera=%r reason=%s", device.id, last_reason)

        raise DeviceUnavailable(f"camera {device.label!r} unavailable: {last_reason}")

    def close(self, stream) -> None:
        stream.stop()
