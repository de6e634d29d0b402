"""Per-session scan configuration and its environment defaults."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace

from scanner.services.ffmpeg_tools import VideoConstraints
from scanner.services.scan_models import DEFAULT_SYMBOLOGIES, Symbology, parse_symbologies

DEFAULT_SAMPLING_INTERVAL_MS = 100


@dataclass(frozen=True)
class DecodeRegion:
    """Fractional box of the frame handed to the decoder."""

    left: float
    top: float
    width: float
    height: float

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError("decode region must have a positive size")
        if self.left < 0 or self.top < 0 or self.left + self.width > 1 or self.top + self.height > 1:
            raise ValueError("decode region must lie inside the frame")

    def crop(self, frame):
        height, width = frame.shape[:2]
        x0 = int(round(self.left * width))
        y0 = int(round(self.top * height))
        x1 = max(x0 + 1, int(round((self.left + self.width) * width)))
        y1 = max(y0 + 1, int(round((self.top + self.height) * height)))
        return frame[y0:y1, x0:x1]


@dataclass(frozen=True)
class ScanConfig:
    sampling_interval_ms: int = DEFAULT_SAMPLING_INTERVAL_MS
    decode_region: DecodeRegion | None = None
    accepted_symbologies: frozenset[Symbology] = DEFAULT_SYMBOLOGIES
    preferred_device_id: str | None = None
    constraints: VideoConstraints = field(default_factory=VideoConstraints)

    def __post_init__(self):
        if self.sampling_interval_ms <= 0:
            raise ValueError("sampling_interval_ms must be positive")
        if not self.accepted_symbologies:
            raise ValueError("at least one symbology must be accepted")
        object.__setattr__(self, "accepted_symbologies", frozenset(self.accepted_symbologies))

    @property
    def sampling_interval(self) -> float:
        return self.sampling_interval_ms / 1000.0

    def with_device(self, device_id: str | None) -> "ScanConfig":
        return replace(self, preferred_device_id=device_id)

    @classmethod
    def from_env(cls) -> "ScanConfig":
        interval = int(os.environ.get("SCAN_SAMPLING_INTERVAL_MS", DEFAULT_SAMPLING_INTERVAL_MS))
        raw_symbologies = os.environ.get("SCAN_SYMBOLOGIES", "").strip()
        symbologies = parse_symbologies(raw_symbologies) if raw_symbologies else DEFAULT_SYMBOLOGIES
        return cls(sampling_interval_ms=interval, accepted_symbologies=symbologies)


def decoder_mode_from_env() -> str:
    """Return ``"continuous"`` or ``"sampled"`` from SCAN_DECODER."""
    mode = os.environ.get("SCAN_DECODER", "sampled").strip().lower()
    return mode if mode in {"continuous", "sampled"} else "sampled"
