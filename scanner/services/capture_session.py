"""Single-owner camera capture with idempotent, non-throwing release."""
from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable

from scanner.services.camera_device import VideoDevice
from scanner.services.ffmpeg_tools import VideoConstraints
from scanner.services.frame_bus import FramePacket, FrameQueue, OverflowPolicy
from scanner.services.scan_errors import DeviceUnavailable, ErrorKind, ScannerError

LOG = logging.getLogger(__name__)


class CaptureHandle:
    """One live stream acquisition. Owned by CaptureSession, never shared."""

    def __init__(self, handle_id: int, device: VideoDevice, constraints: VideoConstraints, frames: FrameQueue):
        self.id = handle_id
        self.device = device
        self.constraints = constraints
        self.frames = frames
        self.stream = None
        self.released = False

    def latest_frame(self) -> FramePacket | None:
        if self.released:
            return None
        return self.frames.peek_latest()

    def __repr__(self) -> str:
        return f"CaptureHandle(id={self.id}, device={self.device.id!r}, released={self.released})"


class CaptureSession:
    def __init__(self, provider):
        self._provider = provider
        self._lock = threading.RLock()
        self._active: CaptureHandle | None = None
        self._ids = itertools.count(1)

    @property
    def active_handle(self) -> CaptureHandle | None:
        with self._lock:
            return self._active

    def acquire(
        self,
        device: VideoDevice,
        constraints: VideoConstraints,
        on_ended: Callable[[CaptureHandle, str], None] | None = None,
    ) -> CaptureHandle:
        """Open exactly one stream for ``device``.

        Raises DeviceUnavailable or PermissionDenied. Never opens a second
        stream while a handle is still held.
        """
        with self._lock:
            if self._active is not None and not self._active.released:
                raise DeviceUnavailable(f"camera already held by {self._active!r}")

            handle = CaptureHandle(
                next(self._ids),
                device,
                constraints,
                FrameQueue(maxlen=2, policy=OverflowPolicy.LAST_ONLY),
            )
            stream_ended = None
            if on_ended is not None:
                def stream_ended(reason: str) -> None:
                    on_ended(handle, reason)

            try:
                handle.stream = self._provider.open(device, constraints, handle.frames, stream_ended)
            except ScannerError:
                raise
            except Exception as exc:
                LOG.error("[CAM_CAPTURE] open failed camera=%r", device.id, exc_info=True)
                raise DeviceUnavailable(f"camera {device.label!r} could not be opened: {exc}") from exc

            self._active = handle
            LOG.info("[CAM_CAPTURE] acquired %r", handle)
            return handle

    def release(self, handle: CaptureHandle | None) -> None:
        """Stop the handle's stream. Safe on None or already released handles; never raises."""
        if handle is None:
            return
        with self._lock:
            if handle.released:
                return
            handle.released = True
            if self._active is handle:
                self._active = None
            try:
                if handle.stream is not None:
                    self._provider.close(handle.stream)
            except Exception:
                LOG.warning("[CAM_CAPTURE] %s while releasing %r", ErrorKind.RELEASE_ERROR.value, handle, exc_info=True)
            finally:
                handle.stream = None
                handle.frames.clear(stale=True)
            LOG.info("[CAM_CAPTURE] released %r", handle)

    def release_active(self) -> None:
        """Release whatever handle is held, regardless of caller bookkeeping."""
        with self._lock:
            handle = self._active
        self.release(handle)

    def switch_device(
        self,
        handle: CaptureHandle | None,
        device: VideoDevice,
        constraints: VideoConstraints,
        on_ended: Callable[[CaptureHandle, str], None] | None = None,
    ) -> CaptureHandle:
        with self._lock:
            self.release(handle)
            return self.acquire(device, constraints, on_ended)
