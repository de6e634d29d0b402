"""Key-value persistence for scanner state and scan history.

Design:
 - SQLite `app_state` table holds small string values (selected camera,
   serialized history).
 - Each call opens a short-lived connection (thread-safe, WAL mode).
 - Backends implement the KeyValueStore contract so history and preferences
   can run against SQLite or plain memory.
"""
from __future__ import annotations

import contextlib
import os
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator

from scancore.paths import data_dir


class StorageUnavailable(RuntimeError):
    """Raised when the backing store cannot be read or written."""


def _db_path() -> Path:
    """Resolve SQLite DB path from environment or default."""
    return Path(os.environ.get("SCANNER_DB_PATH", data_dir() / "app.db"))


def init_db() -> None:
    """Initialize SQLite schema and enable WAL mode."""
    db_path = _db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with connect() as conn:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS app_state (
                key TEXT PRIMARY KEY,
                value TEXT
            );
            """
        )


@contextlib.contextmanager
def connect() -> Iterator[sqlite3.Connection]:
    """Yield a short-lived SQLite connection (thread-safe)."""
    conn = sqlite3.connect(_db_path(), timeout=10, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def set_app_state(key: str, value: str | None) -> None:
    """Persist a single app state value."""
    init_db()
    with connect() as conn:
        if value is None:
            conn.execute("DELETE FROM app_state WHERE key = ?", (key,))
        else:
            conn.execute(
                "INSERT INTO app_state (key, value) VALUES (?, ?)"
                " ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )


def get_app_state(key: str) -> str | None:
    """Fetch a stored app state value."""
    init_db()
    with connect() as conn:
        row = conn.execute("SELECT value FROM app_state WHERE key = ?", (key,)).fetchone()
    return row["value"] if row else None


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove(self, key: str) -> None:
        raise NotImplementedError


class SqliteKeyValueStore(KeyValueStore):
    """KeyValueStore over the SQLite app_state table."""

    def get(self, key: str) -> str | None:
        try:
            return get_app_state(key)
        except (sqlite3.Error, OSError) as exc:
            raise StorageUnavailable(f"read of {key!r} failed: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        try:
            set_app_state(key, value)
        except (sqlite3.Error, OSError) as exc:
            raise StorageUnavailable(f"write of {key!r} failed: {exc}") from exc

    def remove(self, key: str) -> None:
        try:
            set_app_state(key, None)
        except (sqlite3.Error, OSError) as exc:
            raise StorageUnavailable(f"delete of {key!r} failed: {exc}") from exc


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store; used when persistence is not wanted."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._values: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)
