"""Scanner orchestration: device resolution, capture, decoding and history."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot

from scanner.services.scan_config import ScanConfig
from scanner.services.scan_errors import (
    AlreadyActive,
    DecoderInitError,
    DeviceUnavailable,
    ScannerError,
)
from scanner.services.scan_models import ScanResult, Symbology
from scanner.services.scan_state_machine import InvalidTransition, ScanState, ScanStateMachine

LOG = logging.getLogger(__name__)


class ScanController(QObject):
    """Single public entry point for scanning.

    Decoder and stream-loss callbacks arrive on worker threads and are
    re-emitted through private signals, so their handlers run on the thread
    that owns the controller.
    """

    result_ready = pyqtSignal(object)
    error_occurred = pyqtSignal(str, str)
    state_changed = pyqtSignal(str)

    _detected = pyqtSignal(str, str)
    _stream_lost = pyqtSignal(int, str)

    def __init__(self, inventory, capture_session, decoder, history, *, config: ScanConfig | None = None, parent=None):
        super().__init__(parent)
        self._inventory = inventory
        self._capture = capture_session
        self._decoder = decoder
        self._history = history
        self._config = config or ScanConfig()
        self._selected_device_id = self._config.preferred_device_id
        self._state = ScanStateMachine()
        self._handle = None
        self._decoder_handle = None
        self._last_error: ScannerError | None = None

        self._detected.connect(self._on_detect)
        self._stream_lost.connect(self._on_stream_lost)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def state(self) -> ScanState:
        return self._state.state

    @property
    def last_error(self) -> ScannerError | None:
        return self._last_error

    @property
    def config(self) -> ScanConfig:
        return self._config

    @property
    def selected_device_id(self) -> str | None:
        return self._selected_device_id

    @property
    def active_device(self):
        handle = self._handle
        return handle.device if handle is not None else None

    def latest_frame(self):
        handle = self._handle
        if handle is None:
            return None
        packet = handle.latest_frame()
        return packet.to_array() if packet is not None else None

    def list_devices(self):
        return self._inventory.list_devices()

    def pick_default(self, devices):
        return self._inventory.pick_default(devices)

    def get_history(self):
        return self._history.list()

    def clear_history(self) -> None:
        self._history.clear()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def start(self, config: ScanConfig | None = None) -> None:
        """Acquire a camera and begin decoding.

        Raises AlreadyActive while another start, a session or a stop is in
        progress. Acquisition failures move the controller to Error and are
        reported once through ``error_occurred``.
        """
        state = self.state
        if state != ScanState.IDLE and state != ScanState.ERROR:
            raise AlreadyActive(f"scanner is {state.value}")
        if config is not None:
            self._config = config
            if config.preferred_device_id:
                self._selected_device_id = config.preferred_device_id

        try:
            self._set_state(self._state.request_start)
        except InvalidTransition as exc:
            raise AlreadyActive(str(exc)) from exc
        self._last_error = None
        LOG.info("[SCAN] start requested device=%r", self._selected_device_id)
        self._activate(None)

    def stop(self) -> None:
        state = self.state
        if state in (ScanState.IDLE, ScanState.STOPPING, ScanState.ERROR):
            return
        if state == ScanState.STARTING:
            raise AlreadyActive("camera start in progress")
        try:
            self._set_state(self._state.request_stop)
        except InvalidTransition:
            return
        LOG.info("[SCAN] stop requested")
        self._release_resources()
        self._finish_stop()

    def switch_device(self, device_id: str) -> None:
        """Select a camera; re-acquires immediately when a session is running."""
        self._selected_device_id = device_id
        self._config = self._config.with_device(device_id)
        state = self.state
        if state in (ScanState.IDLE, ScanState.ERROR):
            LOG.info("[SCAN] device %r selected for next start", device_id)
            return
        if state != ScanState.SCANNING:
            raise AlreadyActive(f"cannot switch camera while {state.value}")

        try:
            self._set_state(self._state.request_switch)
        except InvalidTransition as exc:
            raise AlreadyActive(str(exc)) from exc
        LOG.info("[SCAN] switching to device %r", device_id)
        self._release_resources()
        self._activate(device_id)

    select_device = switch_device

    def reset(self) -> None:
        """Retry from scratch after an error."""
        state = self.state
        if state == ScanState.ERROR:
            self.start(self._config)
            return
        if state == ScanState.IDLE:
            self._last_error = None
            return
        raise AlreadyActive(f"scanner is {state.value}")

    def teardown(self) -> None:
        """Forced cleanup for disposal; always ends Idle and never raises."""
        LOG.info("[SCAN] teardown from %s", self.state.value)
        try:
            self._release_resources()
        finally:
            self._capture.release_active()
            previous = self.state
            self._state.force_idle()
            if previous != ScanState.IDLE:
                self.state_changed.emit(ScanState.IDLE.value)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _set_state(self, transition) -> ScanState:
        new_state = transition()
        self.state_changed.emit(new_state.value)
        return new_state

    def _resolve_device(self, device_id: str | None):
        devices = self._inventory.list_devices()
        wanted = device_id or self._config.preferred_device_id or self._selected_device_id
        if wanted:
            device = self._inventory.find(devices, wanted)
            if device is None:
                raise DeviceUnavailable(f"camera {wanted!r} not found")
            return device
        device = self._inventory.pick_default(devices)
        if device is None:
            raise DeviceUnavailable("no camera devices available")
        return device

    def _activate(self, device_id: str | None) -> None:
        """Acquire, enter Scanning, then attach the decoder.

        The state moves to Scanning before the decoder is attached so a
        detection reported during ``attach`` is accepted. A teardown or stop
        that lands while acquiring or attaching wins; the new resources are
        released instead of being published.
        """
        config = self._config
        try:
            device = self._resolve_device(device_id)
            handle = self._capture.acquire(device, config.constraints, self._report_stream_end)
        except ScannerError as exc:
            self._fail(exc)
            return
        except Exception as exc:
            LOG.error("[SCAN] start crashed", exc_info=True)
            self._fail(DeviceUnavailable(str(exc)))
            return

        self._handle = handle
        try:
            self._set_state(self._state.mark_scanning)
        except InvalidTransition:
            LOG.info("[SCAN] start abandoned in state %s", self.state.value)
            self._release_resources()
            return
        self._selected_device_id = device.id

        try:
            decoder_handle = self._decoder.attach(handle, config, self._report_detection)
        except ScannerError as exc:
            self._fail(exc)
            return
        except Exception as exc:
            self._fail(DecoderInitError(f"decoder failed to attach: {exc}"))
            return

        if self._handle is not handle or self.state != ScanState.SCANNING:
            LOG.info("[SCAN] session ended while attaching decoder")
            self._decoder.detach(decoder_handle)
            return
        self._decoder_handle = decoder_handle
        LOG.info("[SCAN] scanning with %r", device.label)

    def _fail(self, exc: ScannerError) -> None:
        LOG.warning("[SCAN] %s: %s", exc.kind.value, exc)
        self._release_resources()
        self._last_error = exc
        try:
            self._set_state(self._state.mark_failed)
        except InvalidTransition:
            self._state.force_idle()
            self.state_changed.emit(ScanState.IDLE.value)
            return
        self.error_occurred.emit(exc.kind.value, str(exc))

    def _release_resources(self) -> None:
        """Detach the decoder, then release the capture handle."""
        decoder_handle, self._decoder_handle = self._decoder_handle, None
        if decoder_handle is not None:
            try:
                self._decoder.detach(decoder_handle)
            except Exception:
                LOG.warning("[SCAN] decoder detach failed", exc_info=True)
        handle, self._handle = self._handle, None
        if handle is not None:
            self._capture.release(handle)

    def _finish_stop(self) -> None:
        try:
            self._set_state(self._state.mark_idle)
        except InvalidTransition:
            self._state.force_idle()
            self.state_changed.emit(ScanState.IDLE.value)

    def _report_detection(self, text: str, symbology: Symbology) -> None:
        self._detected.emit(text, Symbology(symbology).value)

    def _report_stream_end(self, handle, reason: str) -> None:
        self._stream_lost.emit(handle.id, reason)

    @pyqtSlot(str, str)
    def _on_detect(self, text: str, symbology_value: str) -> None:
        if self.state != ScanState.SCANNING:
            LOG.debug("[SCAN] detection ignored in state %s", self.state.value)
            return
        symbology = Symbology(symbology_value)
        if symbology not in self._config.accepted_symbologies:
            LOG.debug("[SCAN] detection ignored for symbology %s", symbology.value)
            return
        try:
            self._set_state(self._state.request_stop)
        except InvalidTransition:
            return

        result = ScanResult(text=text, symbology=symbology, detected_at=datetime.now(timezone.utc))
        self._release_resources()
        self._finish_stop()

        try:
            self._history.append(result)
        except Exception:
            LOG.warning("[SCAN] history append failed", exc_info=True)
        LOG.info("[SCAN] result %s %r", symbology.value, text)
        self.result_ready.emit(result)

    @pyqtSlot(int, str)
    def _on_stream_lost(self, handle_id: int, reason: str) -> None:
        handle = self._handle
        if handle is None or handle.id != handle_id or self.state != ScanState.SCANNING:
            return
        self._fail(DeviceUnavailable(f"camera stream ended: {reason}"))
