"""FFmpeg-based camera enumeration and default device selection."""
from __future__ import annotations

import json
import logging
import os
import platform
import re
import subprocess
from typing import Iterable, Sequence

from scancore.paths import logs_dir
from scanner.services.camera_device import VideoDevice
from scanner.services.scan_errors import EnumerationFailed, EnumerationUnsupported

LOG = logging.getLogger(__name__)

# Lowercase label fragments that identify rear/back-facing cameras across locales.
_REAR_FACING_HINTS = (
    "back",
    "rear",
    "environment",
    "world",
    "trasera",
    "trasero",
    "posterior",
    "arrière",
    "rück",
    "hinten",
    "背面",
    "後置",
)


def _camera_debug_enabled() -> bool:
    return os.environ.get("CAMERA_DEBUG", "").strip() in {"1", "true", "TRUE", "yes", "on"}


def append_camera_debug_log(section: str, payload: str) -> None:
    if not _camera_debug_enabled():
        return
    log_dir = logs_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_dir / "camera_debug.log"
    with path.open("a", encoding="utf-8") as fh:
        fh.write(f"[{section}]\n{payload}\n\n")


def _run_ffmpeg(args: list[str], timeout: int = 10) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        args,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        timeout=timeout,
        check=False,
        text=True,
    )


def _parse_dshow_video_devices(stderr_text: str) -> list[str]:
    """Parse authoritative dshow lines of format: "name" (video)."""
    devices: list[str] = []
    for line in stderr_text.splitlines():
        lowered = line.lower()
        if "alternative name" in lowered:
            continue
        match = re.search(r'"([^"]+)"\s*\(video\)', line, flags=re.IGNORECASE)
        if not match:
            continue
        candidate = match.group(1).strip()
        if candidate:
            devices.append(candidate)
    return devices


def _parse_avfoundation_video_devices(output: str) -> list[tuple[str, str]]:
    """Return (index, name) pairs from the AVFoundation video section."""
    devices: list[tuple[str, str]] = []
    in_video_section = False

    for line in output.splitlines():
        if "AVFoundation video devices" in line:
            in_video_section = True
            continue
        if "AVFoundation audio devices" in line:
            in_video_section = False
        if not in_video_section:
            continue

        match = re.search(r"\[([0-9]+)\]\s+(.+)$", line.strip())
        if match:
            devices.append((match.group(1), match.group(2).strip()))

    return devices


def _parse_v4l2_sources(output: str) -> list[tuple[str, str]]:
    """Return (device path, label) pairs from ``ffmpeg -sources v4l2``."""
    devices: list[tuple[str, str]] = []
    for line in output.splitlines():
        stripped = line.strip()
        if not stripped.startswith("*"):
            continue

        match = re.search(r"\*\s+(\S+)\s+\[(.+)\]", stripped)
        if not match:
            continue
        first, bracket = match.group(1).strip(), match.group(2).strip()
        if first.startswith("/dev/"):
            devices.append((first, bracket or first))
        elif bracket.startswith("/dev/"):
            devices.append((bracket, bracket))

    return devices


def _reject_placeholder_names(items: Iterable[str]) -> list[str]:
    valid: list[str] = []
    for item in items:
        name = item.strip()
        if not name:
            continue
        if re.fullmatch(r"camera\s*\d+", name, re.IGNORECASE):
            LOG.warning("[CAM_ENUM] rejecting fabricated/placeholder dshow name: %r", name)
            continue
        valid.append(name)
    return valid


def _dedupe(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        name = item.strip()
        if not name:
            continue
        key = name.casefold()
        if key in seen:
            continue
        seen.add(key)
        out.append(name)
    return out


def is_rear_facing(label: str) -> bool:
    lowered = (label or "").casefold()
    return any(hint in lowered for hint in _REAR_FACING_HINTS)


def _make_device(device_id: str, label: str, backend: str) -> VideoDevice:
    return VideoDevice(id=device_id, label=label, is_rear_facing=is_rear_facing(label), backend=backend)


def _enumerate_dshow(ffmpeg_path: str) -> list[str]:
    commands = [
        [ffmpeg_path, "-hide_banner", "-list_devices", "true", "-f", "dshow", "-i", "dummy"],
        [ffmpeg_path, "-loglevel", "verbose", "-f", "dshow", "-list_devices", "true", "-i", "dummy"],
    ]
    collected: list[str] = []
    for index, cmd in enumerate(commands, start=1):
        result = _run_ffmpeg(cmd)
        append_camera_debug_log(f"CAM_ENUM_DSHOW_CMD_{index}", " ".join(cmd))
        append_camera_debug_log(f"CAM_ENUM_DSHOW_STDERR_{index}", result.stderr or "")
        LOG.info("[CAM_ENUM] dshow cmd #%s exit=%s cmd=%s", index, result.returncode, cmd)
        parsed = _parse_dshow_video_devices(result.stderr or "")
        append_camera_debug_log(f"CAM_ENUM_PARSED_DSHOW_{index}", json.dumps(parsed, ensure_ascii=False, indent=2))
        if parsed:
            collected.extend(parsed)
            break
    return collected


def enumerate_video_devices(ffmpeg_path: str = "ffmpeg") -> list[VideoDevice]:
    """Enumerate camera devices without opening camera streams.

    Raises EnumerationUnsupported when ffmpeg (the media device API) is missing
    and EnumerationFailed for any other enumeration error. An empty list means
    the query worked and no camera is attached.
    """
    system = platform.system()
    try:
        if system == "Windows":
            names = _dedupe(_reject_placeholder_names(_enumerate_dshow(ffmpeg_path)))
            devices = [_make_device(f"video={name}", name, "dshow") for name in names]
        elif system == "Darwin":
            cmd = [ffmpeg_path, "-hide_banner", "-f", "avfoundation", "-list_devices", "true", "-i", ""]
            result = _run_ffmpeg(cmd)
            parsed = _parse_avfoundation_video_devices((result.stderr or "") + "\n" + (result.stdout or ""))
            devices = [_make_device(index, name, "avfoundation") for index, name in parsed]
        elif system == "Linux":
            cmd = [ffmpeg_path, "-hide_banner", "-sources", "v4l2"]
            result = _run_ffmpeg(cmd)
            parsed = _parse_v4l2_sources((result.stderr or "") + "\n" + (result.stdout or ""))
            seen: set[str] = set()
            devices = []
            for path, label in parsed:
                if path in seen:
                    continue
                seen.add(path)
                devices.append(_make_device(path, label, "v4l2"))
        else:
            raise EnumerationUnsupported(f"camera enumeration is not supported on {system or 'this platform'}")
    except (EnumerationUnsupported, EnumerationFailed):
        raise
    except FileNotFoundError as exc:
        raise EnumerationUnsupported(f"ffmpeg executable not found ({exc})") from exc
    except Exception as exc:
        LOG.error("[CAM_ENUM] enumeration failed", exc_info=True)
        raise EnumerationFailed(f"camera enumeration failed: {exc}") from exc

    append_camera_debug_log(
        "CAM_ENUM_FINAL",
        json.dumps([{"id": d.id, "label": d.label, "backend": d.backend} for d in devices], ensure_ascii=False, indent=2),
    )
    return devices


def pick_default(devices: Sequence[VideoDevice]) -> VideoDevice | None:
    """Prefer a rear/back-facing camera, else the first one."""
    if not devices:
        return None
    for device in devices:
        if device.is_rear_facing or is_rear_facing(device.label):
            return device
    return devices[0]


class DeviceInventory:
    """Camera listing over a MediaDeviceProvider; no side effects beyond the query."""

    def __init__(self, provider):
        self._provider = provider

    def list_devices(self) -> list[VideoDevice]:
        devices = list(self._provider.enumerate())
        LOG.info("[CAM_ENUM] %s camera(s): %s", len(devices), [d.label for d in devices])
        return devices

    def pick_default(self, devices: Sequence[VideoDevice]) -> VideoDevice | None:
        return pick_default(devices)

    def find(self, devices: Sequence[VideoDevice], device_id: str) -> VideoDevice | None:
        for device in devices:
            if device.id == device_id:
                return device
        return None
