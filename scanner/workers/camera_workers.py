"""Worker threads for camera enumeration and scan start-up."""
import logging

from PyQt6.QtCore import QThread, pyqtSignal

from scanner.services.scan_errors import AlreadyActive, ScannerError


class DeviceProbeWorker(QThread):
    """Enumerate cameras off the UI thread."""
    devicesReady = pyqtSignal(list)
    probeFailed = pyqtSignal(str)

    def __init__(self, list_devices):
        super().__init__()
        self.list_devices = list_devices

    def run(self):
        """Emit the device list, or a failure message when enumeration breaks."""
        try:
            devices = self.list_devices()
        except ScannerError as exc:
            logging.error("Camera enumeration failed (%s): %s", exc.kind.value, exc)
            self.probeFailed.emit(f"{exc.kind.value}: {exc}")
            return
        except Exception as exc:
            logging.error("Camera enumeration crashed", exc_info=True)
            self.probeFailed.emit(f"Camera enumeration failed ({exc})")
            return
        self.devicesReady.emit(devices)


class ScanStartWorker(QThread):
    """Open the camera off the UI thread; ffmpeg start-up can take seconds."""
    started_with = pyqtSignal(str)
    rejected = pyqtSignal(str)

    def __init__(self, start_scan):
        super().__init__()
        self.start_scan = start_scan

    def run(self):
        try:
            message = self.start_scan()
        except AlreadyActive as exc:
            self.rejected.emit(str(exc))
            return
        except Exception as exc:
            logging.error("Scan start crashed", exc_info=True)
            self.rejected.emit(f"Scan start failed ({exc})")
            return
        self.started_with.emit(message or "")
