import logging

from scanner.app_state import app_state
from scanner.services.scan_errors import AlreadyActive
from scanner.services.scan_state_machine import ACTIVE_STATES, ScanState


class ScannerController:
    """UI-facing wrapper around ScanController returning status messages."""

    def __init__(self, scan_controller):
        self.scanner = scan_controller

    def start(self):
        if self.scanner.state in ACTIVE_STATES:
            return "Already scanning"

        try:
            self.scanner.start(self.scanner.config.with_device(app_state.selected_device_id))
        except AlreadyActive as exc:
            return f"Busy: {exc}"

        if self.scanner.state == ScanState.ERROR:
            error = self.scanner.last_error
            return f"Scan failed: {error}" if error else "Scan failed"
        app_state.scanning_active = self.scanner.state == ScanState.SCANNING
        return "Scanning"

    def stop(self):
        if self.scanner.state != ScanState.SCANNING:
            return "Not scanning"

        try:
            self.scanner.stop()
        except AlreadyActive as exc:
            logging.warning("Stop rejected: %s", exc)
            return f"Busy: {exc}"
        app_state.scanning_active = False
        return "Scanning stopped"

    def select_device(self, device_id):
        if not device_id:
            return False, "No camera selected"
        try:
            self.scanner.select_device(device_id)
        except AlreadyActive as exc:
            return False, f"Busy: {exc}"
        app_state.remember_device(device_id)
        if self.scanner.state == ScanState.ERROR:
            return False, f"Camera switch failed: {self.scanner.last_error}"
        return True, f"Camera selected: {device_id}"

    def on_result(self, result):
        app_state.scanning_active = False
        app_state.last_result = result
