"""ScanController lifecycle tests with fake camera, decoder and storage."""
import os
import subprocess
import sys
import unittest
from types import SimpleNamespace


def _module_importable(module: str) -> bool:
    """Return True when module can be imported in a subprocess."""
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        check=False,
    )
    return result.returncode == 0


QT_AVAILABLE = _module_importable("PyQt6.QtCore")


class FakeStream:
    def __init__(self, device, on_ended):
        self.device = device
        self.on_ended = on_ended


class FakeProvider:
    def __init__(self, devices):
        self.devices = list(devices)
        self.open_error = None
        self.before_open = None
        self.events = []
        self.open_count = 0
        self.streams = []

    def enumerate(self):
        return list(self.devices)

    def open(self, device, constraints, frames, on_ended=None):
        if self.before_open is not None:
            self.before_open()
        if self.open_error is not None:
            raise self.open_error
        self.open_count += 1
        self.events.append(("open", device.id))
        stream = FakeStream(device, on_ended)
        self.streams.append(stream)
        return stream

    def close(self, stream):
        self.open_count -= 1
        self.events.append(("close", stream.device.id))


class FakeDecoder:
    def __init__(self):
        self.attach_error = None
        self.attached = []
        self.detached = []

    def attach(self, capture_handle, config, on_detect, on_miss=None):
        if self.attach_error is not None:
            raise self.attach_error
        handle = SimpleNamespace(capture_handle=capture_handle, config=config, on_detect=on_detect)
        self.attached.append(handle)
        return handle

    def detach(self, handle):
        self.detached.append(handle)

    def fire(self, text, symbology):
        self.attached[-1].on_detect(text, symbology)


@unittest.skipUnless(QT_AVAILABLE, "PyQt6 unavailable in test environment")
class ScanControllerTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
        from PyQt6.QtCore import QCoreApplication

        cls._app = QCoreApplication.instance() or QCoreApplication([])

    def setUp(self):
        from scancore.storage import MemoryKeyValueStore
        from scanner.services.camera_device import VideoDevice
        from scanner.services.history_store import HistoryStore
        from scanner.services.scan_models import Symbology
        from scanner.services.scan_state_machine import ScanState

        self.ScanState = ScanState
        self.Symbology = Symbology
        self.front = VideoDevice(id="/dev/video0", label="Integrated Webcam")
        self.rear = VideoDevice(id="/dev/video2", label="Back Camera", is_rear_facing=True)
        self.provider = FakeProvider([self.front, self.rear])
        self.decoder = FakeDecoder()
        self.history = HistoryStore(MemoryKeyValueStore())
        self.controller = self._make_controller(self.history)

        self.results = []
        self.errors = []
        self.states = []
        self.controller.result_ready.connect(self.results.append)
        self.controller.error_occurred.connect(lambda kind, message: self.errors.append((kind, message)))
        self.controller.state_changed.connect(self.states.append)

    def _make_controller(self, history, decoder=None):
        from scanner.services.camera_enumerator import DeviceInventory
        from scanner.services.capture_session import CaptureSession
        from scanner.services.scan_controller import ScanController

        self.capture = CaptureSession(self.provider)
        return ScanController(DeviceInventory(self.provider), self.capture, decoder or self.decoder, history)

    def test_detection_produces_one_result_and_returns_idle(self):
        self.controller.start()
        self.assertEqual(self.controller.state, self.ScanState.SCANNING)
        self.assertEqual(self.controller.active_device, self.rear)
        self.assertEqual(self.provider.open_count, 1)

        self.decoder.fire("ABC123", self.Symbology.EAN13)
        self.decoder.fire("ABC123", self.Symbology.EAN13)

        self.assertEqual(len(self.results), 1)
        self.assertEqual(self.results[0].text, "ABC123")
        self.assertEqual(self.results[0].symbology, self.Symbology.EAN13)
        self.assertEqual(self.controller.state, self.ScanState.IDLE)
        self.assertEqual(self.provider.open_count, 0)
        self.assertEqual(len(self.decoder.detached), 1)
        head = self.controller.get_history()[0]
        self.assertEqual((head.text, head.symbology), ("ABC123", self.Symbology.EAN13))
        self.assertEqual(self.states, ["Starting", "Scanning", "Stopping", "Idle"])

    def test_start_while_scanning_is_rejected(self):
        from scanner.services.scan_errors import AlreadyActive

        self.controller.start()
        with self.assertRaises(AlreadyActive):
            self.controller.start()
        self.assertEqual(self.controller.state, self.ScanState.SCANNING)
        self.assertEqual(self.provider.open_count, 1)
        self.assertEqual(len(self.decoder.attached), 1)

    def test_no_devices_errors_then_reset_retries(self):
        self.provider.devices = []
        self.controller.start()
        self.assertEqual(self.controller.state, self.ScanState.ERROR)
        self.assertEqual([kind for kind, _ in self.errors], ["DeviceUnavailable"])
        self.assertIsNotNone(self.controller.last_error)

        self.provider.devices = [self.front]
        self.controller.reset()
        self.assertEqual(self.controller.state, self.ScanState.SCANNING)
        self.assertIsNone(self.controller.last_error)
        self.assertEqual(self.states, ["Starting", "Error", "Starting", "Scanning"])

    def test_stop_twice_is_harmless(self):
        self.controller.start()
        self.controller.stop()
        self.controller.stop()
        self.assertEqual(self.controller.state, self.ScanState.IDLE)
        self.assertEqual(self.provider.open_count, 0)
        self.assertIsNone(self.capture.active_handle)
        self.assertIsNone(self.controller.latest_frame())

    def test_switch_releases_before_acquire(self):
        self.controller.start()
        self.controller.switch_device(self.front.id)
        self.assertEqual(
            self.provider.events,
            [("open", self.rear.id), ("close", self.rear.id), ("open", self.front.id)],
        )
        self.assertEqual(self.controller.state, self.ScanState.SCANNING)
        self.assertEqual(self.controller.active_device, self.front)
        self.assertEqual(len(self.decoder.detached), 1)

    def test_select_device_while_idle_only_records_choice(self):
        self.controller.select_device(self.front.id)
        self.assertEqual(self.provider.events, [])
        self.controller.start()
        self.assertEqual(self.controller.active_device, self.front)

    def test_switch_to_missing_device_fails_cleanly(self):
        self.controller.start()
        self.controller.switch_device("/dev/video9")
        self.assertEqual(self.controller.state, self.ScanState.ERROR)
        self.assertEqual(self.provider.open_count, 0)
        self.assertEqual(self.errors[0][0], "DeviceUnavailable")

    def test_permission_denied_surfaces_once(self):
        from scanner.services.scan_errors import PermissionDenied

        self.provider.open_error = PermissionDenied("blocked by OS")
        self.controller.start()
        self.assertEqual(self.controller.state, self.ScanState.ERROR)
        self.assertEqual([kind for kind, _ in self.errors], ["PermissionDenied"])

    def test_decoder_failure_releases_capture(self):
        from scanner.services.scan_errors import DecoderInitError

        self.decoder.attach_error = DecoderInitError("no engine")
        self.controller.start()
        self.assertEqual(self.controller.state, self.ScanState.ERROR)
        self.assertEqual(self.provider.open_count, 0)
        self.assertEqual(self.errors[0][0], "DecoderInitError")

    def test_unexpected_decoder_error_is_wrapped(self):
        self.decoder.attach_error = RuntimeError("boom")
        self.controller.start()
        self.assertEqual(self.errors[0][0], "DecoderInitError")
        self.assertEqual(self.provider.open_count, 0)

    def test_stream_loss_moves_to_error(self):
        self.controller.start()
        self.provider.streams[-1].on_ended("ffmpeg exited")
        self.assertEqual(self.controller.state, self.ScanState.ERROR)
        self.assertEqual(self.errors[0][0], "DeviceUnavailable")
        self.assertEqual(self.provider.open_count, 0)

    def test_stale_stream_loss_is_ignored(self):
        self.controller.start()
        stale = self.provider.streams[-1]
        self.controller.switch_device(self.front.id)
        stale.on_ended("old device closed")
        self.assertEqual(self.controller.state, self.ScanState.SCANNING)
        self.assertEqual(self.errors, [])

    def test_teardown_always_ends_idle(self):
        self.controller.start()
        self.controller.teardown()
        self.controller.teardown()
        self.assertEqual(self.controller.state, self.ScanState.IDLE)
        self.assertEqual(self.provider.open_count, 0)

    def test_teardown_during_acquire_releases_new_capture(self):
        self.provider.before_open = self.controller.teardown
        self.controller.start()
        self.assertEqual(self.controller.state, self.ScanState.IDLE)
        self.assertEqual(self.provider.open_count, 0)
        self.assertIsNone(self.controller.active_device)
        self.assertIsNone(self.capture.active_handle)
        self.assertEqual(self.decoder.attached, [])

    def test_detection_reported_while_attaching_is_delivered(self):
        from scanner.services.decoder import ContinuousDecoding, DecodeEngine, Decoder, Detection

        Symbology = self.Symbology

        class EagerEngine(DecodeEngine):
            def __init__(self):
                self.stopped = []

            def start(self, frames, config, on_attempt):
                on_attempt([Detection("ABC123", Symbology.EAN13)])
                return "session"

            def stop(self, session):
                self.stopped.append(session)

        engine = EagerEngine()
        controller = self._make_controller(self.history, Decoder(ContinuousDecoding(engine)))
        results = []
        controller.result_ready.connect(results.append)
        controller.start()
        self._app.processEvents()

        self.assertEqual([r.text for r in results], ["ABC123"])
        self.assertEqual(controller.state, self.ScanState.IDLE)
        self.assertEqual(self.provider.open_count, 0)
        self.assertEqual(engine.stopped, ["session"])
        self.assertEqual(controller.get_history()[0].text, "ABC123")

    def test_detection_after_stop_is_ignored(self):
        self.controller.start()
        self.controller.stop()
        self.decoder.fire("late", self.Symbology.QRCODE)
        self.assertEqual(self.results, [])
        self.assertEqual(self.controller.get_history(), [])

    def test_storage_failure_still_delivers_result(self):
        from scancore.storage import KeyValueStore, StorageUnavailable
        from scanner.services.history_store import HistoryStore

        class BrokenStore(KeyValueStore):
            def get(self, key):
                raise StorageUnavailable("locked")

            def set(self, key, value):
                raise StorageUnavailable("locked")

            def remove(self, key):
                raise StorageUnavailable("locked")

        controller = self._make_controller(HistoryStore(BrokenStore()))
        results = []
        controller.result_ready.connect(results.append)
        controller.start()
        self.decoder.fire("ABC123", self.Symbology.EAN13)
        self.assertEqual([r.text for r in results], ["ABC123"])
        self.assertEqual(controller.state, self.ScanState.IDLE)
        self.assertEqual(controller.get_history()[0].text, "ABC123")

    def test_clear_history(self):
        self.controller.start()
        self.decoder.fire("ABC123", self.Symbology.EAN13)
        self.controller.clear_history()
        self.assertEqual(self.controller.get_history(), [])


if __name__ == "__main__":
    unittest.main()
