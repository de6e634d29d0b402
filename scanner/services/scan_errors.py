"""Scanner error taxonomy shared by inventory, capture, decoder and controller."""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    ENUMERATION_UNSUPPORTED = "EnumerationUnsupported"
    ENUMERATION_FAILED = "EnumerationFailed"
    DEVICE_UNAVAILABLE = "DeviceUnavailable"
    PERMISSION_DENIED = "PermissionDenied"
    DECODER_INIT_ERROR = "DecoderInitError"
    DECODE_MISS = "DecodeMiss"
    RELEASE_ERROR = "ReleaseError"
    ALREADY_ACTIVE = "AlreadyActive"
    STORAGE_UNAVAILABLE = "StorageUnavailable"


class ScannerError(RuntimeError):
    kind = ErrorKind.DEVICE_UNAVAILABLE


class EnumerationUnsupported(ScannerError):
    """Raised when the platform has no usable media device API."""

    kind = ErrorKind.ENUMERATION_UNSUPPORTED


class EnumerationFailed(ScannerError):
    kind = ErrorKind.ENUMERATION_FAILED


class DeviceUnavailable(ScannerError):
    kind = ErrorKind.DEVICE_UNAVAILABLE


class PermissionDenied(ScannerError):
    kind = ErrorKind.PERMISSION_DENIED


class DecoderInitError(ScannerError):
    kind = ErrorKind.DECODER_INIT_ERROR


class AlreadyActive(ScannerError):
    """Raised when start/stop/switch overlaps an operation already in flight."""

    kind = ErrorKind.ALREADY_ACTIVE
