"""Storage tests for the SQLite key-value store and app state."""
import os
import tempfile
import unittest
from pathlib import Path

from scancore import storage


class StorageTests(unittest.TestCase):
    """Validate SQLite storage behavior."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.temp_dir.cleanup)
        os.environ["SCANNER_DB_PATH"] = str(Path(self.temp_dir.name) / "Data" / "app.db")

    def tearDown(self):
        os.environ.pop("SCANNER_DB_PATH", None)

    def test_app_state_roundtrip_and_delete(self):
        """Values are stored, overwritten and removed."""
        storage.set_app_state("selected_device_id", "/dev/video0")
        storage.set_app_state("selected_device_id", "/dev/video2")
        self.assertEqual(storage.get_app_state("selected_device_id"), "/dev/video2")
        storage.set_app_state("selected_device_id", None)
        self.assertIsNone(storage.get_app_state("selected_device_id"))

    def test_db_created_under_env_path(self):
        storage.init_db()
        self.assertTrue(Path(os.environ["SCANNER_DB_PATH"]).exists())

    def test_sqlite_key_value_store(self):
        store = storage.SqliteKeyValueStore()
        self.assertIsNone(store.get("scan_history"))
        store.set("scan_history", "[]")
        self.assertEqual(store.get("scan_history"), "[]")
        store.remove("scan_history")
        self.assertIsNone(store.get("scan_history"))

    def test_unusable_path_raises_storage_unavailable(self):
        blocker = Path(self.temp_dir.name) / "blocker"
        blocker.write_text("not a directory")
        os.environ["SCANNER_DB_PATH"] = str(blocker / "app.db")
        with self.assertRaises(storage.StorageUnavailable):
            storage.SqliteKeyValueStore().get("scan_history")


class MemoryKeyValueStoreTests(unittest.TestCase):
    def test_initial_values_and_remove(self):
        store = storage.MemoryKeyValueStore({"a": "1"})
        self.assertEqual(store.get("a"), "1")
        store.remove("a")
        store.remove("a")
        self.assertIsNone(store.get("a"))


if __name__ == "__main__":
    unittest.main()
