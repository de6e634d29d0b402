"""Explicit scanner state machine with strict transition controls."""
from __future__ import annotations

import threading
from enum import Enum


class ScanState(str, Enum):
    IDLE = "Idle"
    STARTING = "Starting"
    SCANNING = "Scanning"
    STOPPING = "Stopping"
    ERROR = "Error"


ACTIVE_STATES = frozenset({ScanState.STARTING, ScanState.SCANNING})


class InvalidTransition(RuntimeError):
    pass


class ScanStateMachine:
    def __init__(self):
        self._state = ScanState.IDLE
        self._lock = threading.Lock()

    @property
    def state(self) -> ScanState:
        with self._lock:
            return self._state

    def _transition(self, expected: set[ScanState], new_state: ScanState) -> ScanState:
        with self._lock:
            if self._state not in expected:
                raise InvalidTransition(f"Cannot transition {self._state.value} -> {new_state.value}")
            self._state = new_state
            return self._state

    def request_start(self) -> ScanState:
        return self._transition({ScanState.IDLE, ScanState.ERROR}, ScanState.STARTING)

    def mark_scanning(self) -> ScanState:
        return self._transition({ScanState.STARTING}, ScanState.SCANNING)

    def request_switch(self) -> ScanState:
        return self._transition({ScanState.SCANNING}, ScanState.STARTING)

    def request_stop(self) -> ScanState:
        return self._transition({ScanState.SCANNING}, ScanState.STOPPING)

    def mark_failed(self) -> ScanState:
        return self._transition({ScanState.STARTING, ScanState.SCANNING}, ScanState.ERROR)

    def mark_idle(self) -> ScanState:
        return self._transition({ScanState.STOPPING}, ScanState.IDLE)

    def force_idle(self) -> ScanState:
        with self._lock:
            self._state = ScanState.IDLE
            return self._state
