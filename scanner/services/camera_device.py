"""Camera device model shared between inventory, capture, and UI layers."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class VideoDevice:
    """Snapshot of one enumerated camera.

    Attributes:
        id: Token the capture provider opens (``video=<name>`` for DirectShow,
            device index for AVFoundation, device path for V4L2).
        label: Human-friendly camera name shown in UI.
        is_rear_facing: Label matched the rear/back-facing heuristic.
        backend: FFmpeg input format used to open the device.
    """

    id: str
    label: str
    is_rear_facing: bool = False
    backend: str = "v4l2"


def display_label(device: VideoDevice) -> str:
    """Label for selectors; rear cameras are marked so users can tell them apart."""
    label = (device.label or device.id).strip()
    return f"{label} (rear)" if device.is_rear_facing else label
