"""Scanner window: camera selection, live preview, last result and history."""
import logging

from PyQt6.QtCore import QTimer, Qt, pyqtSlot
from PyQt6.QtGui import QPixmap
from PyQt6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QVBoxLayout,
    QWidget,
)

from scanner.app_state import app_state
from scanner.controllers.history_controller import HistoryController
from scanner.controllers.scanner_controller import ScannerController
from scanner.services.camera_device import display_label
from scanner.services.scan_state_machine import ScanState
from scanner.ui.theme import Colors, Styles
from scanner.ui.widget_utils import bgr_to_qimage, make_button, make_info_label, make_preview_label
from scanner.workers.camera_workers import DeviceProbeWorker, ScanStartWorker
from scancore import notifier

RESULT_PLACEHOLDER = "No code scanned yet"


class ScannerWindow(QWidget):
    PREVIEW_INTERVAL_MS = 66

    def __init__(self, scan_controller, *, notify=notifier.alert, probe_on_show=True):
        super().__init__()
        self.scan_controller = scan_controller
        self.scanner = ScannerController(scan_controller)
        self.history = HistoryController(scan_controller)
        self._notify = notify
        self._probe_worker = None
        self._start_worker = None

        self.setWindowTitle("Code Scanner")
        self.setGeometry(300, 300, 560, 640)

        self.camera_label = make_info_label("Camera")
        self.camera_combo = QComboBox()
        self.camera_combo.setStyleSheet(Styles.combo_box())
        self.camera_combo.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.refresh_btn = make_button("↻ Refresh")

        self.start_btn = make_button("▶ Start Scan")
        self.stop_btn = make_button("⏹ Stop")
        self.status_label = make_info_label("Status: Idle")

        self.preview = make_preview_label("Camera preview unavailable")
        self.result_label = QLabel(RESULT_PLACEHOLDER)
        self.result_label.setStyleSheet(Styles.result_label())
        self.result_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)

        self.history_title = make_info_label("History")
        self.history_list = QListWidget()
        self.history_list.setStyleSheet(Styles.history_list())
        self.clear_btn = make_button("🗑 Clear History")

        camera_row = QHBoxLayout()
        camera_row.addWidget(self.camera_label)
        camera_row.addWidget(self.camera_combo, 1)
        camera_row.addWidget(self.refresh_btn)

        controls_row = QHBoxLayout()
        controls_row.addWidget(self.start_btn)
        controls_row.addWidget(self.stop_btn)
        controls_row.addWidget(self.status_label, 1)

        history_row = QHBoxLayout()
        history_row.addWidget(self.history_title, 1)
        history_row.addWidget(self.clear_btn)

        layout = QVBoxLayout()
        layout.addLayout(camera_row)
        layout.addLayout(controls_row)
        layout.addWidget(self.preview)
        layout.addWidget(self.result_label)
        layout.addLayout(history_row)
        layout.addWidget(self.history_list, 1)
        self.setLayout(layout)

        self.preview_timer = QTimer(self)
        self.preview_timer.setInterval(self.PREVIEW_INTERVAL_MS)
        self.preview_timer.timeout.connect(self.refresh_preview)

        self.refresh_btn.clicked.connect(self.refresh_devices)
        self.start_btn.clicked.connect(self.start)
        self.stop_btn.clicked.connect(self.stop)
        self.clear_btn.clicked.connect(self.clear_history)
        self.camera_combo.activated.connect(self.on_camera_activated)

        scan_controller.result_ready.connect(self.on_result)
        scan_controller.error_occurred.connect(self.on_error)
        scan_controller.state_changed.connect(self.on_state_changed)

        self.refresh_history()
        self._apply_state(scan_controller.state.value)
        if probe_on_show:
            self.refresh_devices()

    # ---- devices ----
    def refresh_devices(self):
        if self._probe_worker is not None and self._probe_worker.isRunning():
            return
        self.refresh_btn.setEnabled(False)
        self.status_label.setText("Status: Looking for cameras…")
        self._probe_worker = DeviceProbeWorker(self.scan_controller.list_devices)
        self._probe_worker.devicesReady.connect(self.populate_devices)
        self._probe_worker.probeFailed.connect(self.on_probe_failed)
        self._probe_worker.finished.connect(lambda: self.refresh_btn.setEnabled(True))
        self._probe_worker.start()

    def populate_devices(self, devices):
        self.camera_combo.blockSignals(True)
        self.camera_combo.clear()
        for device in devices:
            self.camera_combo.addItem(display_label(device), device.id)
        selected = app_state.selected_device_id
        index = self.camera_combo.findData(selected) if selected else -1
        if index < 0 and devices:
            default = self.scan_controller.pick_default(devices)
            index = self.camera_combo.findData(default.id) if default else 0
        if index >= 0:
            self.camera_combo.setCurrentIndex(index)
        self.camera_combo.blockSignals(False)

        if not devices:
            self.status_label.setText("Status: No cameras found")
        else:
            self._apply_state(self.scan_controller.state.value)

    @pyqtSlot(str)
    def on_probe_failed(self, message):
        self.camera_combo.clear()
        self.status_label.setText(f"Status: {message}")

    def on_camera_activated(self, index):
        device_id = self.camera_combo.itemData(index)
        ok, message = self.scanner.select_device(device_id)
        if not ok:
            self.status_label.setText(f"Status: {message}")

    # ---- scanning ----
    def start(self):
        if self._start_worker is not None and self._start_worker.isRunning():
            return
        device_id = self.camera_combo.currentData()
        if device_id and device_id != app_state.selected_device_id:
            app_state.remember_device(device_id)
        self.start_btn.setEnabled(False)
        self._start_worker = ScanStartWorker(self.scanner.start)
        self._start_worker.started_with.connect(self.on_start_finished)
        self._start_worker.rejected.connect(self.on_start_finished)
        self._start_worker.finished.connect(lambda: self._apply_state(self.scan_controller.state.value))
        self._start_worker.start()

    @pyqtSlot(str)
    def on_start_finished(self, message):
        if message:
            logging.info("Scan start: %s", message)

    def stop(self):
        message = self.scanner.stop()
        logging.info("Scan stop: %s", message)
        self._apply_state(self.scan_controller.state.value)

    def on_result(self, result):
        self.scanner.on_result(result)
        self.result_label.setText(f"{result.text}  [{result.symbology.value}]")
        self.refresh_history()
        self._notify(f"{result.symbology.value}: {result.text}")

    @pyqtSlot(str, str)
    def on_error(self, kind, message):
        self.status_label.setText(f"Status: {kind}")
        self.status_label.setStyleSheet(Styles.info_label(Colors.ERROR_FG))
        self.status_label.setToolTip(message)

    @pyqtSlot(str)
    def on_state_changed(self, state):
        self._apply_state(state)

    def _apply_state(self, state):
        active = state in (ScanState.STARTING.value, ScanState.SCANNING.value)
        app_state.scanning_active = state == ScanState.SCANNING.value
        starting = self._start_worker is not None and self._start_worker.isRunning()
        self.start_btn.setEnabled(not active and not starting)
        self.stop_btn.setEnabled(state == ScanState.SCANNING.value)
        self.camera_combo.setEnabled(state != ScanState.STARTING.value)

        if state != ScanState.ERROR.value:
            self.status_label.setText(f"Status: {state}")
            self.status_label.setStyleSheet(Styles.info_label())
            self.status_label.setToolTip("")

        if state == ScanState.SCANNING.value:
            if not self.preview_timer.isActive():
                self.preview_timer.start()
        else:
            self.preview_timer.stop()
            self.preview.setPixmap(QPixmap())
            self.preview.setText("Camera preview unavailable")

    def refresh_preview(self):
        frame = self.scan_controller.latest_frame()
        if frame is None:
            return
        pixmap = QPixmap.fromImage(bgr_to_qimage(frame))
        self.preview.setPixmap(
            pixmap.scaled(
                self.preview.size(),
                Qt.AspectRatioMode.KeepAspectRatio,
                Qt.TransformationMode.SmoothTransformation,
            )
        )

    # ---- history ----
    def refresh_history(self):
        self.history_list.clear()
        self.history_list.addItems(self.history.list_labels())

    def clear_history(self):
        _, message = self.history.clear()
        logging.info(message)
        self.refresh_history()

    def closeEvent(self, event):
        self.preview_timer.stop()
        for worker in (self._probe_worker, self._start_worker):
            if worker is not None and worker.isRunning():
                worker.wait(5000)
        self.scan_controller.teardown()
        super().closeEvent(event)
