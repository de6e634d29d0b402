"""Decoder capability: turns a live capture into decode events.

Two strategies share one contract and are picked when the Decoder is built:

* ``ContinuousDecoding`` hands the frame source to a DecodeEngine that runs
  its own polling loop and reports every attempt back.
* ``SampledDecoding`` draws the latest frame itself every
  ``sampling_interval_ms`` and passes it to a stateless ``decode_image``.

Either way ``on_detect(text, symbology)`` fires at most once per attached
handle, only for accepted symbologies, and ``on_miss()`` fires on every
unsuccessful attempt.
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Union

import numpy as np

from scanner.services.frame_bus import FrameQueue
from scanner.services.scan_config import ScanConfig
from scanner.services.scan_errors import DecoderInitError
from scanner.services.scan_models import Symbology

LOG = logging.getLogger(__name__)

DETACH_JOIN_TIMEOUT_SEC = 2.0


@dataclass(frozen=True)
class Detection:
    text: str
    symbology: Symbology


DecodeImageFn = Callable[[np.ndarray, frozenset], list]


class DecodeEngine(ABC):
    """Library-driven decoder polling a frame source on its own."""

    @abstractmethod
    def start(self, frames: FrameQueue, config: ScanConfig, on_attempt: Callable[[list], None]):
        """Begin decoding; ``on_attempt`` receives the detections of each attempt."""
        raise NotImplementedError

    @abstractmethod
    def stop(self, session) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class ContinuousDecoding:
    engine: DecodeEngine
    kind: str = "continuous"


@dataclass(frozen=True)
class SampledDecoding:
    decode_image: DecodeImageFn
    kind: str = "sampled"


DecoderStrategy = Union[ContinuousDecoding, SampledDecoding]


def _noop() -> None:
    return None


class DecoderHandle:
    def __init__(self, capture_handle, config: ScanConfig, on_detect, on_miss):
        self.capture_handle = capture_handle
        self.config = config
        self._on_detect = on_detect
        self._on_miss = on_miss or _noop
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._fired = False
        self.thread: threading.Thread | None = None
        self.engine_session = None
        self.attempts = 0
        self.misses = 0

    @property
    def detached(self) -> bool:
        return self._stop.is_set()

    @property
    def fired(self) -> bool:
        return self._fired

    def report(self, detections) -> None:
        """Record one decode attempt; called from the decoding thread."""
        if self._stop.is_set():
            return
        self.attempts += 1
        accepted = [d for d in detections or [] if d.symbology in self.config.accepted_symbologies]
        if not accepted:
            self.misses += 1
            self._on_miss()
            return
        with self._lock:
            if self._fired:
                return
            self._fired = True
        hit = accepted[0]
        LOG.info("[DECODE] detected %s payload=%r", hit.symbology.value, hit.text)
        self._on_detect(hit.text, hit.symbology)


class Decoder:
    def __init__(self, strategy: DecoderStrategy):
        if not isinstance(strategy, (ContinuousDecoding, SampledDecoding)):
            raise TypeError(f"unsupported decoder strategy: {strategy!r}")
        self._strategy = strategy

    @property
    def kind(self) -> str:
        return self._strategy.kind

    def attach(self, capture_handle, config: ScanConfig, on_detect, on_miss=None) -> DecoderHandle:
        handle = DecoderHandle(capture_handle, config, on_detect, on_miss)
        if isinstance(self._strategy, SampledDecoding):
            handle.thread = threading.Thread(target=self._sample_loop, args=(handle,), daemon=True)
            handle.thread.start()
        else:
            try:
                handle.engine_session = self._strategy.engine.start(capture_handle.frames, config, handle.report)
            except Exception as exc:
                handle._stop.set()
                raise DecoderInitError(f"decode engine failed to start: {exc}") from exc
        LOG.info(
            "[DECODE] attached %s decoder interval=%sms symbologies=%s",
            self.kind,
            config.sampling_interval_ms,
            sorted(s.value for s in config.accepted_symbologies),
        )
        return handle

    def detach(self, handle: DecoderHandle | None) -> None:
        """Stop decode attempts. Idempotent."""
        if handle is None or handle.detached:
            return
        handle._stop.set()
        if isinstance(self._strategy, ContinuousDecoding) and handle.engine_session is not None:
            try:
                self._strategy.engine.stop(handle.engine_session)
            except Exception:
                LOG.warning("[DECODE] engine stop failed", exc_info=True)
        if handle.thread and handle.thread is not threading.current_thread():
            handle.thread.join(timeout=DETACH_JOIN_TIMEOUT_SEC)
        LOG.info("[DECODE] detached after %s attempt(s), %s miss(es)", handle.attempts, handle.misses)

    def _sample_loop(self, handle: DecoderHandle) -> None:
        decode_image = self._strategy.decode_image
        region = handle.config.decode_region
        last_packet = None
        while not handle._stop.wait(handle.config.sampling_interval):
            packet = handle.capture_handle.latest_frame()
            if packet is None or packet is last_packet:
                continue
            last_packet = packet
            frame = packet.to_array()
            if frame is None:
                continue
            if region is not None:
                frame = region.crop(frame)
            try:
                detections = decode_image(frame, handle.config.accepted_symbologies)
            except Exception:
                LOG.debug("[DECODE] attempt failed", exc_info=True)
                detections = []
            handle.report(detections)
            if handle.fired:
                break
