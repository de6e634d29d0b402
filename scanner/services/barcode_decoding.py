"""pyzbar-backed decoding: a stateless image decoder and a continuous engine."""
from __future__ import annotations

import logging
import threading
import time
import unicodedata

import cv2
import numpy as np
from pyzbar.pyzbar import ZBarSymbol, decode

from scanner.services.decoder import DecodeEngine, Detection
from scanner.services.frame_bus import FrameQueue
from scanner.services.scan_config import ScanConfig
from scanner.services.scan_models import Symbology

LOG = logging.getLogger(__name__)

cv2.setUseOptimized(True)
cv2.setNumThreads(1)


def _decode_symbol_data(raw: bytes) -> str:
    if not raw:
        return ""
    try:
        decoded = raw.decode("utf-8")
    except UnicodeDecodeError:
        decoded = raw.decode("latin-1")
    return unicodedata.normalize("NFC", decoded).strip()


def _zbar_symbols(symbologies) -> list[ZBarSymbol]:
    return [ZBarSymbol[s.value] for s in symbologies]


def decode_image(frame: np.ndarray, symbologies) -> list[Detection]:
    """Decode every accepted symbol in one BGR or grayscale frame."""
    if frame is None or frame.size == 0:
        return []
    gray = frame if frame.ndim == 2 else cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)

    detections: list[Detection] = []
    for barcode in decode(gray, symbols=_zbar_symbols(symbologies)):
        try:
            symbology = Symbology(barcode.type)
        except ValueError:
            continue
        if symbology not in symbologies:
            continue
        text = _decode_symbol_data(barcode.data)
        if text:
            detections.append(Detection(text=text, symbology=symbology))
    return detections


class _EngineSession:
    def __init__(self):
        self.stop_event = threading.Event()
        self.thread: threading.Thread | None = None


class PyzbarDecodeEngine(DecodeEngine):
    """Continuous engine: decodes the newest captured frame at most once per interval.

    Frames are peeked, never popped, so the preview keeps reading the same queue.
    """

    def start(self, frames: FrameQueue, config: ScanConfig, on_attempt):
        session = _EngineSession()
        session.thread = threading.Thread(
            target=self._run,
            args=(session, frames, config, on_attempt),
            daemon=True,
        )
        session.thread.start()
        return session

    def stop(self, session: _EngineSession) -> None:
        session.stop_event.set()
        if session.thread and session.thread is not threading.current_thread():
            session.thread.join(timeout=2.0)

    @staticmethod
    def _run(session: _EngineSession, frames: FrameQueue, config: ScanConfig, on_attempt) -> None:
        interval = config.sampling_interval
        last_packet = None
        last_attempt_at = 0.0
        while not session.stop_event.is_set():
            if not frames.wait_for_frame(timeout=0.5):
                continue
            remaining = interval - (time.monotonic() - last_attempt_at)
            if remaining > 0 and session.stop_event.wait(remaining):
                break
            packet = frames.peek_latest()
            if packet is None or packet is last_packet:
                session.stop_event.wait(interval)
                continue
            last_packet = packet
            last_attempt_at = time.monotonic()

            frame = packet.to_array()
            if frame is None:
                continue
            if config.decode_region is not None:
                frame = config.decode_region.crop(frame)
            try:
                detections = decode_image(frame, config.accepted_symbologies)
            except Exception:
                LOG.debug("[DECODE] engine attempt failed", exc_info=True)
                detections = []
            on_attempt(detections)
