"""Bounded, persisted, most-recent-first ledger of accepted scans."""
from __future__ import annotations

import json
import logging
import threading

from scancore.storage import KeyValueStore, StorageUnavailable
from scanner.services.scan_models import HistoryEntry, ScanResult

LOG = logging.getLogger(__name__)

HISTORY_STORAGE_KEY = "scan_history"
HISTORY_CAPACITY = 20


class HistoryStore:
    """History over a KeyValueStore.

    The list is loaded lazily on first access and cached. Mutations re-read
    the persisted sequence, apply the change and write the whole list back.
    Persistence is best effort: once a write or remove fails the in-memory
    list is authoritative, and storage is not re-read until a later write
    succeeds.
    """

    def __init__(self, store: KeyValueStore, *, key: str = HISTORY_STORAGE_KEY, capacity: int = HISTORY_CAPACITY):
        if capacity <= 0:
            raise ValueError("history capacity must be positive")
        self._store = store
        self._key = key
        self.capacity = capacity
        self._entries: list[HistoryEntry] | None = None
        self._dirty = False
        self._lock = threading.Lock()

    def append(self, result: ScanResult) -> HistoryEntry:
        with self._lock:
            entries = None if self._dirty else self._read_persisted()
            if entries is None:
                entries = self._cached()
            entry_id = entries[0].id + 1 if entries else 1
            entry = HistoryEntry.from_result(entry_id, result)
            entries.insert(0, entry)
            del entries[self.capacity:]
            self._entries = entries
            self._dirty = not self._write(entries)
            LOG.info("[HISTORY] appended #%s %s %r", entry.id, entry.symbology.value, entry.text)
            return entry

    def list(self) -> list[HistoryEntry]:
        with self._lock:
            return list(self._cached())

    def clear(self) -> None:
        with self._lock:
            self._entries = []
            try:
                self._store.remove(self._key)
            except StorageUnavailable:
                LOG.warning("[HISTORY] clear not persisted", exc_info=True)
                self._dirty = True
            else:
                self._dirty = False
            LOG.info("[HISTORY] cleared")

    def _cached(self) -> list[HistoryEntry]:
        if self._entries is None:
            self._entries = self._read_persisted() or []
        return self._entries

    def _read_persisted(self) -> list[HistoryEntry] | None:
        """Return the stored list, [] when nothing is stored, None when storage is unreadable."""
        try:
            raw = self._store.get(self._key)
        except StorageUnavailable:
            LOG.warning("[HISTORY] storage unavailable, using in-memory history", exc_info=True)
            return None
        if not raw:
            return []
        try:
            payload = json.loads(raw)
        except ValueError:
            LOG.warning("[HISTORY] discarding unreadable history payload")
            return []
        if not isinstance(payload, list):
            LOG.warning("[HISTORY] discarding history payload of type %s", type(payload).__name__)
            return []

        entries: list[HistoryEntry] = []
        for item in payload:
            try:
                entries.append(HistoryEntry.from_dict(item))
            except (KeyError, TypeError, ValueError):
                LOG.warning("[HISTORY] skipping malformed entry %r", item)
        return entries[: self.capacity]

    def _write(self, entries: list[HistoryEntry]) -> bool:
        try:
            self._store.set(self._key, json.dumps([entry.to_dict() for entry in entries], ensure_ascii=False))
        except StorageUnavailable:
            LOG.warning("[HISTORY] history not persisted", exc_info=True)
            return False
        return True
