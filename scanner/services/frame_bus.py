"""Bounded hand-off of raw camera frames between the capture and decode threads.

The capture reader publishes every frame; the decoders and the preview look
at the newest packet only. ``clear`` marks the queue stale when its capture
is released.
"""
from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque

import numpy as np


class OverflowPolicy(str, Enum):
    DROP_OLDEST = "drop_oldest"
    LAST_ONLY = "last_only"


@dataclass(frozen=True)
class FramePacket:
    """One bgr24 frame as read from ffmpeg's stdout."""

    timestamp: float
    payload: bytes
    width: int
    height: int

    @property
    def shape(self) -> tuple[int, int, int]:
        return (self.height, self.width, 3)

    def to_array(self) -> np.ndarray | None:
        """View the payload as an (h, w, 3) array; None when the byte count is off."""
        frame = np.frombuffer(self.payload, dtype=np.uint8)
        if frame.size != self.width * self.height * 3:
            return None
        return frame.reshape(self.shape)


class FrameQueue:
    def __init__(self, maxlen: int = 8, policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST):
        self.maxlen = max(1, int(maxlen))
        self.policy = policy
        self._frames: Deque[FramePacket] = deque()
        self._ready = threading.Condition()
        self.published = 0
        self.dropped_frames = 0
        self.stale = False

    def _make_room(self) -> int:
        if self.policy == OverflowPolicy.LAST_ONLY:
            dropped = len(self._frames)
            self._frames.clear()
            return dropped
        dropped = 0
        while len(self._frames) >= self.maxlen:
            self._frames.popleft()
            dropped += 1
        return dropped

    def put(self, packet: FramePacket) -> None:
        with self._ready:
            self.dropped_frames += self._make_room()
            self._frames.append(packet)
            self.published += 1
            self.stale = False
            self._ready.notify_all()

    def get(self, timeout: float | None = None) -> FramePacket | None:
        """Pop the oldest packet, waiting up to ``timeout`` for one to arrive."""
        with self._ready:
            if not self._ready.wait_for(lambda: bool(self._frames), timeout=timeout):
                return None
            return self._frames.popleft()

    def peek_latest(self) -> FramePacket | None:
        with self._ready:
            if not self._frames:
                return None
            return self._frames[-1]

    def wait_for_frame(self, timeout: float) -> bool:
        with self._ready:
            return self._ready.wait_for(lambda: bool(self._frames), timeout=timeout)

    def clear(self, stale: bool = True) -> None:
        with self._ready:
            self._frames.clear()
            self.stale = stale
            self._ready.notify_all()

    def size(self) -> int:
        with self._ready:
            return len(self._frames)
