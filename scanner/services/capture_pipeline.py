"""Supervise an FFmpeg capture process and publish raw frames to a FrameQueue."""
from __future__ import annotations

import logging
import subprocess
import threading
import time
from collections import deque
from enum import Enum
from typing import Callable

from scanner.services.camera_device import VideoDevice
from scanner.services.ffmpeg_tools import FfmpegNotFoundError, VideoConstraints, build_ffmpeg_capture_command
from scanner.services.frame_bus import FramePacket, FrameQueue

LOG = logging.getLogger(__name__)

_PERMISSION_MARKERS = (
    "permission denied",
    "access denied",
    "not authorized",
    "operation not permitted",
)


class LogLevel(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class FfmpegCapture:
    """Spawn FFmpeg for one device and stream BGR frames into a FrameQueue.

    ``on_ended(reason)`` runs on the reader thread when the stream stops
    without ``stop()`` having been requested.
    """

    def __init__(
        self,
        device: VideoDevice,
        constraints: VideoConstraints,
        frame_queue: FrameQueue,
        *,
        allow_input_tuning: bool = True,
        on_ended: Callable[[str], None] | None = None,
    ):
        self.device = device
        self.constraints = constraints
        self.frame_queue = frame_queue
        self.allow_input_tuning = allow_input_tuning
        self.on_ended = on_ended
        self.process: subprocess.Popen | None = None
        self._stop = threading.Event()
        self._reader_thread: threading.Thread | None = None
        self._stderr_thread: threading.Thread | None = None
        self._stderr_tail: deque[str] = deque(maxlen=20)
        self.frames_captured = 0
        self.last_error: str | None = None

    def start(self) -> None:
        cmd = build_ffmpeg_capture_command(
            self.device,
            self.constraints,
            allow_input_tuning=self.allow_input_tuning,
        )
        try:
            self.process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=0,
                creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
            )
        except FileNotFoundError as exc:
            raise FfmpegNotFoundError(str(exc)) from exc

        self._stop.clear()
        self._reader_thread = threading.Thread(target=self._reader_loop, daemon=True)
        self._stderr_thread = threading.Thread(target=self._stderr_loop, daemon=True)
        self._reader_thread.start()
        self._stderr_thread.start()

    def _reader_loop(self) -> None:
        if not self.process or not self.process.stdout:
            return
        width, height = self.constraints.width, self.constraints.height
        try:
            while not self._stop.is_set():
                frame = self._read_exact(self.process.stdout, self.constraints.frame_size)
                if frame is None:
                    break
                self.frame_queue.put(FramePacket(timestamp=time.time(), payload=frame, width=width, height=height))
                self.frames_captured += 1
        except Exception as exc:
            self.last_error = f"FFmpeg frame reader failed: {exc}"
            LOG.error("[CAM_CAPTURE] %s", self.last_error)
        finally:
            if self.process and self.process.poll() is None and not self._stop.is_set():
                self.process.terminate()

        if not self._stop.is_set() and self.on_ended:
            self.on_ended(self.last_error or "camera stream ended")

    def _stderr_loop(self) -> None:
        if not self.process or not self.process.stderr:
            return
        for raw in iter(self.process.stderr.readline, b""):
            if self._stop.is_set():
                break
            text = raw.decode(errors="ignore").strip()
            if not text:
                continue
            self._stderr_tail.append(text)
            level = self._classify_log(text)
            getattr(LOG, level.value.lower())("FFmpeg %s", text)
            if level == LogLevel.ERROR:
                self.last_error = text

    @staticmethod
    def _classify_log(text: str) -> LogLevel:
        lowered = text.lower()
        if any(token in lowered for token in ("error", "failed", "invalid", "unable", "i/o", "denied")):
            return LogLevel.ERROR
        if any(token in lowered for token in ("warning", "deprecated", "buffer")):
            return LogLevel.WARNING
        return LogLevel.INFO

    @staticmethod
    def _read_exact(stream, size: int) -> bytes | None:
        data = bytearray()
        while len(data) < size:
            chunk = stream.read(size - len(data))
            if not chunk:
                return None
            data.extend(chunk)
        return bytes(data)

    @property
    def permission_denied(self) -> bool:
        text = " ".join(self._stderr_tail).lower()
        return any(marker in text for marker in _PERMISSION_MARKERS)

    def wait_until_streaming(self, timeout: float) -> bool:
        """Wait for the first frame; False if FFmpeg exits or the grace period elapses."""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self.frame_queue.wait_for_frame(timeout=0.1):
                return True
            if not self.is_alive():
                # stderr must be drained before permission_denied is read.
                if self._stderr_thread:
                    self._stderr_thread.join(timeout=0.5)
                return False
        return False

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self.process and self.process.poll() is None:
            self.process.terminate()
            try:
                self.process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                self.process.kill()
        if self._reader_thread and self._reader_thread is not threading.current_thread():
            self._reader_thread.join(timeout=timeout)
        if self._stderr_thread and self._stderr_thread is not threading.current_thread():
            self._stderr_thread.join(timeout=timeout)
        self.frame_queue.clear(stale=True)

    def is_alive(self) -> bool:
        return bool(self.process and self.process.poll() is None)
