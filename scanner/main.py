import logging
import sys

from PyQt6.QtWidgets import QApplication

from scancore import storage
from scancore.logging_setup import setup_logging
from scanner.app_state import app_state
from scanner.services.camera_enumerator import DeviceInventory
from scanner.services.capture_session import CaptureSession
from scanner.services.decoder import ContinuousDecoding, Decoder, SampledDecoding
from scanner.services.history_store import HistoryStore
from scanner.services.media_provider import FfmpegMediaDeviceProvider
from scanner.services.scan_config import ScanConfig, decoder_mode_from_env
from scanner.services.scan_controller import ScanController
from scanner.ui.scanner_window import ScannerWindow


def build_decoder(mode=None):
    from scanner.services import barcode_decoding

    mode = mode or decoder_mode_from_env()
    if mode == "continuous":
        return Decoder(ContinuousDecoding(barcode_decoding.PyzbarDecodeEngine()))
    return Decoder(SampledDecoding(barcode_decoding.decode_image))


def create_controller(provider=None, store=None, decoder=None, config=None):
    """Wire the scanner stack; every collaborator can be swapped for tests."""
    provider = provider or FfmpegMediaDeviceProvider()
    config = config or ScanConfig.from_env()
    return ScanController(
        DeviceInventory(provider),
        CaptureSession(provider),
        decoder or build_decoder(),
        HistoryStore(store or storage.SqliteKeyValueStore()),
        config=config,
    )


def main():
    setup_logging()
    try:
        storage.init_db()
    except Exception:
        logging.error("Database initialization failed; history will not persist", exc_info=True)

    app = QApplication(sys.argv)
    app.setApplicationName("Code Scanner")

    selected = app_state.load()
    config = ScanConfig.from_env().with_device(selected)
    controller = create_controller(config=config)

    window = ScannerWindow(controller)
    window.show()
    app.aboutToQuit.connect(controller.teardown)
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
